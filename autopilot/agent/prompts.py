"""
Agent Prompts for Autopilot

System prompts and task prompts for the three attempt kinds:
- implement: coding system prompt + feature prompt built from scratch
- resume: verification system prompt + feature prompt with prior transcript
- commit: commit-assistant system prompt + fixed git instructions
"""

from autopilot.agent.tool_bridge import TOOL_NAME
from autopilot.features.models import Feature

# Prior transcripts can be long; keep the tail, which holds the latest state
MAX_RESUME_CONTEXT_CHARS = 50_000

CODING_SYSTEM_PROMPT = f"""You are an autonomous software engineer implementing one feature of an existing project.

YOUR ROLE:
- Read the codebase before changing it and follow its existing patterns
- Implement exactly the feature you are given, nothing more
- Write or update tests that prove the feature works, then run them

STATUS REPORTING (REQUIRED):
- Use the {TOOL_NAME} tool to report the outcome before you finish
- Mark the feature "verified" only after its tests pass
- Mark it "waiting_approval" if it needs a human decision
- Leave it "in_progress" if work remains
- Always include a one or two sentence summary of what you changed

RULES:
1. Make minimal, focused changes; do not refactor unrelated code
2. Never mark a feature verified without running its tests
3. Do not commit; committing is a separate step"""

VERIFICATION_SYSTEM_PROMPT = f"""You are an autonomous software engineer continuing work on a feature that was started earlier.

YOUR ROLE:
- Review the previous work described in the context you are given
- Check what is already done by reading the code and running the tests
- Finish any remaining work, fix failing tests, then verify again

STATUS REPORTING (REQUIRED):
- Use the {TOOL_NAME} tool to report the outcome before you finish
- Mark the feature "verified" only after its tests pass
- Mark it "waiting_approval" if it needs a human decision
- Always include a one or two sentence summary of the final state

RULES:
1. Do not redo work that is already complete and passing
2. Never mark a feature verified without running its tests
3. Do not commit; committing is a separate step"""

COMMIT_SYSTEM_PROMPT = """You are a git commit assistant that creates professional conventional commit messages.

IMPORTANT RULES:
- DO NOT modify any code
- DO NOT write tests
- DO NOT do anything except analyzing changes and committing them
- Use the git command line tools via Bash
- Create proper conventional commit messages based on what was actually changed"""


def get_coding_prompt() -> str:
    """System prompt for a fresh implementation attempt."""
    return CODING_SYSTEM_PROMPT


def get_verification_prompt() -> str:
    """System prompt for a resumed attempt."""
    return VERIFICATION_SYSTEM_PROMPT


def get_commit_prompt() -> str:
    """System prompt for a commit-only attempt."""
    return COMMIT_SYSTEM_PROMPT


def _format_steps(steps: object) -> list[str]:
    if not steps:
        return []
    if isinstance(steps, str):
        return [steps]
    if isinstance(steps, (list, tuple)):
        return [str(step) for step in steps]
    return [str(steps)]


def _feature_section(feature: Feature) -> list[str]:
    parts = [
        f"Feature ID: {feature.id}",
        f"Category: {feature.category or 'uncategorized'}",
        f"Description: {feature.title}",
    ]

    steps = _format_steps(feature.steps)
    if steps:
        parts.append("")
        parts.append("Steps to verify:")
        for i, step in enumerate(steps, 1):
            parts.append(f"{i}. {step}")

    if feature.image_paths:
        parts.append("")
        parts.append("Reference images:")
        for image_path in _format_steps(feature.image_paths):
            parts.append(f"- {image_path}")

    return parts


def _status_instructions(feature: Feature) -> list[str]:
    if feature.skip_tests:
        return [
            "This feature skips automated tests. When the implementation is complete,",
            f'call {TOOL_NAME} with featureId "{feature.id}" and status "waiting_approval"',
            "so a human can review it.",
        ]
    return [
        "When the implementation is complete and its tests pass,",
        f'call {TOOL_NAME} with featureId "{feature.id}" and status "verified".',
        "If tests still fail, do not mark it verified.",
    ]


def build_feature_prompt(feature: Feature) -> str:
    """
    Build the task prompt for implementing a feature from scratch.

    Args:
        feature: The feature to implement

    Returns:
        Formatted prompt string
    """
    parts = [
        "Implement the following feature.",
        "",
        *_feature_section(feature),
        "",
        "WORKFLOW:",
        "1. Explore the relevant parts of the codebase",
        "2. Plan the change",
        "3. Implement it following existing conventions",
        "4. Add or update tests covering the steps above and run them",
        "",
        *_status_instructions(feature),
        "",
        "When complete, summarize what you did in 1-2 sentences.",
    ]
    return "\n".join(parts)


def build_resume_prompt(feature: Feature, previous_context: str) -> str:
    """
    Build the task prompt for continuing a feature with its prior transcript.

    Args:
        feature: The feature being resumed
        previous_context: Transcript or notes from earlier attempts

    Returns:
        Formatted prompt string
    """
    context = previous_context.strip()
    if len(context) > MAX_RESUME_CONTEXT_CHARS:
        context = "[earlier context truncated]\n" + context[-MAX_RESUME_CONTEXT_CHARS:]

    parts = [
        "Continue working on the following feature.",
        "",
        *_feature_section(feature),
        "",
        "PREVIOUS WORK:",
        context or "(no previous context recorded)",
        "",
        "WORKFLOW:",
        "1. Check which parts of the previous work are done",
        "2. Run the tests to see the current state",
        "3. Finish the remaining work and fix any failures",
        "",
        *_status_instructions(feature),
    ]
    return "\n".join(parts)


def build_commit_prompt(feature: Feature) -> str:
    """Build the fixed instructions for a commit-only attempt."""
    return f"""Please commit the current changes with a proper conventional commit message.

**Feature Context:**
Category: {feature.category or 'uncategorized'}
Description: {feature.title}

**Your Task:**

1. First, run `git status` to see all untracked and modified files
2. Run `git diff` to see the actual changes (both staged and unstaged)
3. Run `git log --oneline -5` to see recent commit message styles in this repo
4. Analyze all the changes and draft a proper conventional commit message:
   - Use conventional commit format: `type(scope): description`
   - Types: feat, fix, refactor, style, docs, test, chore
   - The description should be concise (under 72 chars) and focus on "what" was done
   - Make sure the commit message accurately reflects the actual code changes
5. Run `git add .` to stage all changes
6. Create the commit, using a HEREDOC for the message:
```bash
git commit -m "$(cat <<'EOF'
type(scope): Short description here

Optional longer description if needed.
EOF
)"
```

**IMPORTANT:**
- DO NOT use the feature description verbatim as the commit message
- Analyze the actual code changes to determine the appropriate commit message
- DO NOT modify any code or run tests - ONLY commit the existing changes"""
