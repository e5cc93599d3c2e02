"""
Execution Controller - Plan / Act / Verify for one feature

Drives a single agent session per attempt, forwards its output to the
feature's context log and the progress sink in arrival order, and decides
success by re-reading the feature store after the session ends. The agent
reports status only through the UpdateFeatureStatus tool; nothing it says
in prose is parsed.

Usage:
    controller = ExecutionController(store, context_log, claude_session_factory)
    execution = Execution(feature.id)
    result = await controller.implement(feature, execution)
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from contextlib import aclosing
from dataclasses import dataclass

from autopilot.agent.prompts import (
    build_commit_prompt,
    build_feature_prompt,
    build_resume_prompt,
    get_coding_prompt,
    get_commit_prompt,
    get_verification_prompt,
)
from autopilot.agent.session import (
    AgentSession,
    CancelToken,
    ResultEvent,
    SessionFactory,
    SessionOptions,
    TextEvent,
    ToolUseEvent,
)
from autopilot.agent.tool_bridge import QUALIFIED_TOOL_NAME, ToolBridge
from autopilot.config import EngineSettings
from autopilot.context_log import ContextLog
from autopilot.exceptions import ContextLogError, SessionCancelledError, SessionTimeoutError
from autopilot.features import Feature, FeatureStore
from autopilot.logging import AttemptLogEntry, attempt_logger, get_run_id, now_iso
from autopilot.orchestrator.events import (
    AttemptEvent,
    PhaseEvent,
    ProgressEvent,
    ProgressSink,
    ToolEvent,
    log_event,
)
from autopilot.orchestrator.execution import Execution
from autopilot.state import AttemptContext, AttemptKind, AttemptPhase

logger = logging.getLogger(__name__)

MAX_MESSAGE_CHARS = 500

CODING_TOOLS = [
    "Read",
    "Write",
    "Edit",
    "Glob",
    "Grep",
    "Bash",
    "WebSearch",
    "WebFetch",
    QUALIFIED_TOOL_NAME,
]

# git needs to run outside the sandbox
COMMIT_TOOLS = ["Bash", QUALIFIED_TOOL_NAME]

IMPLEMENTATION_STARTED = "Starting code implementation...\n"
VERIFYING_STATUS = "Verifying implementation and checking test results...\n"


@dataclass
class AttemptResult:
    """Outcome of one implement / resume / commit attempt."""

    passed: bool
    message: str
    feature_id: str = ""
    kind: AttemptKind | None = None
    aborted: bool = False
    final_status: str | None = None

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "message": self.message,
            "featureId": self.feature_id,
            "kind": self.kind.value if self.kind else None,
            "aborted": self.aborted,
            "finalStatus": self.final_status,
        }


AttemptBody = Callable[[AttemptContext, Feature, Execution], Awaitable[AttemptResult]]


class ExecutionController:
    """
    Runs attempts against one project's feature store.

    Args:
        store: Feature store the tool bridge writes and verification reads
        context_log: Per-feature transcript files
        session_factory: Creates the agent session for each attempt
        sink: Receives progress events; defaults to the events.jsonl mirror
        settings: Models, turn ceilings and optional session timeout
    """

    def __init__(
        self,
        store: FeatureStore,
        context_log: ContextLog,
        session_factory: SessionFactory,
        sink: ProgressSink | None = None,
        settings: EngineSettings | None = None,
    ):
        self.store = store
        self.context_log = context_log
        self.session_factory = session_factory
        self.sink: ProgressSink = sink or log_event
        self.settings = settings or EngineSettings()
        self.tool_bridge = ToolBridge(store)

    @property
    def project_path(self) -> str:
        return str(self.store.project_path)

    # =========================================================================
    # Attempts
    # =========================================================================

    async def implement(self, feature: Feature, execution: Execution) -> AttemptResult:
        """Plan, act and verify a feature from scratch."""
        return await self._attempt(AttemptKind.IMPLEMENT, feature, execution, self._implement)

    async def resume(
        self,
        feature: Feature,
        execution: Execution,
        previous_context: str | None = None,
    ) -> AttemptResult:
        """
        Continue a feature using its earlier transcript.

        When ``previous_context`` is None the transcript is read from the
        context log.
        """
        if previous_context is None:
            previous_context = self.context_log.read(feature.id)

        async def body(attempt: AttemptContext, feature: Feature, execution: Execution):
            return await self._resume(attempt, feature, execution, previous_context)

        return await self._attempt(AttemptKind.RESUME, feature, execution, body)

    async def commit(self, feature: Feature, execution: Execution) -> AttemptResult:
        """Commit the working tree changes for a feature."""
        return await self._attempt(AttemptKind.COMMIT, feature, execution, self._commit)

    async def _attempt(
        self,
        kind: AttemptKind,
        feature: Feature,
        execution: Execution,
        body: AttemptBody,
    ) -> AttemptResult:
        attempt = AttemptContext(kind=kind, feature_id=feature.id)
        logger.info(f"{kind.label} started for {feature.id}: {feature.title}")

        try:
            result = await body(attempt, feature, execution)
        except SessionCancelledError:
            result = self._aborted(attempt, feature)
        except Exception as e:
            attempt.finish(AttemptPhase.FAILED)
            logger.exception(f"Error during {kind.value} of feature {feature.id}")
            self._log_attempt(attempt, error=e)
            raise
        finally:
            execution.clear_handles()

        self._log_attempt(attempt, result=result)
        return result

    async def _implement(
        self, attempt: AttemptContext, feature: Feature, execution: Execution
    ) -> AttemptResult:
        # Planning
        attempt.require_transition(AttemptPhase.PLANNING)
        self._marker(feature, f"Planning implementation for: {feature.title}")
        self._emit(
            PhaseEvent(feature.id, "planning", f"Planning implementation for: {feature.title}")
        )
        prompt = build_feature_prompt(feature)
        self._emit(
            ProgressEvent(
                feature.id, "Analyzing codebase structure and creating implementation plan..."
            )
        )

        # Action
        attempt.require_transition(AttemptPhase.ACTING)
        self._marker(feature, f"Executing implementation for: {feature.title}")
        self._emit(
            PhaseEvent(feature.id, "action", f"Executing implementation for: {feature.title}")
        )
        options = self._coding_options(feature, get_coding_prompt())
        completed = await self._run_session(
            attempt, feature, execution, prompt, options, announce_start=True
        )
        if not completed:
            return self._aborted(attempt, feature)

        return self._verify(
            attempt,
            feature,
            passed_line="✓ Verification successful: All tests passed\n",
            failed_line="✗ Verification: Tests need attention\n",
        )

    async def _resume(
        self,
        attempt: AttemptContext,
        feature: Feature,
        execution: Execution,
        previous_context: str,
    ) -> AttemptResult:
        attempt.require_transition(AttemptPhase.ACTING)
        self._marker(feature, f"Resuming implementation for: {feature.title}")
        self._emit(
            PhaseEvent(feature.id, "action", f"Resuming implementation for: {feature.title}")
        )
        prompt = build_resume_prompt(feature, previous_context)
        options = self._coding_options(feature, get_verification_prompt())
        completed = await self._run_session(
            attempt, feature, execution, prompt, options, announce_start=False
        )
        if not completed:
            return self._aborted(attempt, feature)

        return self._verify(
            attempt,
            feature,
            passed_line="✓ Feature successfully verified and completed\n",
            failed_line="⚠ Feature still in progress - may need additional work\n",
        )

    async def _commit(
        self, attempt: AttemptContext, feature: Feature, execution: Execution
    ) -> AttemptResult:
        attempt.require_transition(AttemptPhase.COMMITTING)
        self._marker(feature, f"Committing changes for: {feature.title}")
        self._emit(ProgressEvent(feature.id, "Analyzing changes and creating commit...\n"))

        options = SessionOptions(
            system_prompt=get_commit_prompt(),
            allowed_tools=list(COMMIT_TOOLS),
            max_turns=self.settings.commit_max_turns,
            cwd=self.project_path,
            cancel=CancelToken(),
            model=self.settings.commit_model,
            permission_mode=self.settings.permission_mode,
            sandbox=False,
            tool_bridge=self.tool_bridge,
        )
        completed = await self._run_session(
            attempt, feature, execution, build_commit_prompt(feature), options, announce_start=False
        )
        if not completed:
            return self._aborted(attempt, feature)

        self._write(feature.id, "\n✓ Changes committed successfully\n")
        self._emit(ProgressEvent(feature.id, "✓ Changes committed successfully\n"))
        attempt.finish(AttemptPhase.PASSED)
        return AttemptResult(
            passed=True,
            message=attempt.response_text[:MAX_MESSAGE_CHARS],
            feature_id=feature.id,
            kind=attempt.kind,
        )

    # =========================================================================
    # Session handling
    # =========================================================================

    def _coding_options(self, feature: Feature, system_prompt: str) -> SessionOptions:
        return SessionOptions(
            system_prompt=system_prompt,
            allowed_tools=list(CODING_TOOLS),
            max_turns=self.settings.max_turns,
            cwd=self.project_path,
            cancel=CancelToken(),
            model=feature.model or self.settings.model,
            permission_mode=self.settings.permission_mode,
            sandbox=True,
            tool_bridge=self.tool_bridge,
        )

    async def _run_session(
        self,
        attempt: AttemptContext,
        feature: Feature,
        execution: Execution,
        prompt: str,
        options: SessionOptions,
        announce_start: bool,
    ) -> bool:
        """
        Open a session and consume its stream to the end.

        Returns:
            False if the execution stopped being active, True otherwise

        Raises:
            SessionCancelledError: If the cancel token fired mid-stream
            SessionTimeoutError: If the session outlived settings.session_timeout
        """
        attempt.prompt = prompt
        attempt.model = options.model or ""
        attempt.max_turns = options.max_turns
        attempt.allowed_tools = list(options.allowed_tools)

        if not execution.is_active():
            logger.info(f"Execution for {feature.id} stopped before the session opened")
            return False

        execution.cancel = options.cancel
        session = self.session_factory(prompt, options)
        execution.session = session

        timeout = self.settings.session_timeout
        consume = self._consume(attempt, feature, execution, session, announce_start)
        if timeout is None:
            return await consume

        try:
            return await asyncio.wait_for(consume, timeout=timeout)
        except asyncio.TimeoutError:
            options.cancel.cancel()
            raise SessionTimeoutError(
                f"{attempt.kind.label} session for {feature.id} timed out after {timeout}s",
                timeout_seconds=timeout,
            )

    async def _consume(
        self,
        attempt: AttemptContext,
        feature: Feature,
        execution: Execution,
        session: AgentSession,
        announce_start: bool,
    ) -> bool:
        async with aclosing(session.events()) as stream:
            async for event in stream:
                if isinstance(event, TextEvent):
                    attempt.record_text(event.text)
                    self._write(feature.id, event.text)
                    self._emit(ProgressEvent(feature.id, event.text))

                elif isinstance(event, ToolUseEvent):
                    if announce_start and not attempt.has_used_tools:
                        self._write(feature.id, IMPLEMENTATION_STARTED)
                        self._emit(ProgressEvent(feature.id, IMPLEMENTATION_STARTED))
                    attempt.record_tool(event.name, event.input)
                    self._write(feature.id, f"\n[Tool: {event.name}]\n")
                    self._emit(ToolEvent(feature.id, event.name, event.input))

                elif isinstance(event, ResultEvent):
                    attempt.num_turns = event.num_turns
                    attempt.cost_usd = event.cost_usd

                if not execution.is_active():
                    logger.info(f"Execution for {feature.id} is no longer active, stopping")
                    return False
        return True

    def _verify(
        self,
        attempt: AttemptContext,
        feature: Feature,
        passed_line: str,
        failed_line: str,
    ) -> AttemptResult:
        """Decide the outcome from the persisted status, never from the agent's prose."""
        attempt.require_transition(AttemptPhase.VERIFYING)
        self._marker(feature, f"Verifying implementation for: {feature.title}")
        self._emit(
            PhaseEvent(
                feature.id, "verification", f"Verifying implementation for: {feature.title}"
            )
        )
        self._write(feature.id, VERIFYING_STATUS)
        self._emit(ProgressEvent(feature.id, VERIFYING_STATUS))

        current = self.store.get(feature.id)
        passed = current is not None and current.has_passed

        line = passed_line if passed else failed_line
        self._write(feature.id, f"\n{line}")
        self._emit(ProgressEvent(feature.id, line))

        attempt.finish(AttemptPhase.PASSED if passed else AttemptPhase.FAILED)
        return AttemptResult(
            passed=passed,
            message=attempt.response_text[:MAX_MESSAGE_CHARS],
            feature_id=feature.id,
            kind=attempt.kind,
            final_status=current.status if current else None,
        )

    def _aborted(self, attempt: AttemptContext, feature: Feature) -> AttemptResult:
        attempt.finish(AttemptPhase.ABORTED)
        message = f"{attempt.kind.label} aborted"
        logger.info(f"{message} for {feature.id}")
        self._write(feature.id, f"\n{message}\n")
        return AttemptResult(
            passed=False,
            message=message,
            feature_id=feature.id,
            kind=attempt.kind,
            aborted=True,
        )

    # =========================================================================
    # Output
    # =========================================================================

    def _emit(self, event: AttemptEvent) -> None:
        self.sink(event)

    def _write(self, feature_id: str, text: str) -> None:
        try:
            self.context_log.append(feature_id, text)
        except ContextLogError as e:
            logger.warning(f"Context log write failed: {e}")

    def _marker(self, feature: Feature, heading: str) -> None:
        self._write(feature.id, f"\n## [{now_iso()}] {heading}\n")

    def _log_attempt(
        self,
        attempt: AttemptContext,
        result: AttemptResult | None = None,
        error: Exception | None = None,
    ) -> None:
        entry = AttemptLogEntry(
            timestamp=now_iso(),
            attempt_id=str(uuid.uuid4()),
            run_id=get_run_id(),
            feature_id=attempt.feature_id,
            kind=attempt.kind.value,
            model=attempt.model,
            max_turns=attempt.max_turns,
            allowed_tools=attempt.allowed_tools,
            prompt=attempt.prompt[:5000],
            project_path=self.project_path,
            tool_calls=attempt.tool_calls,
            duration_ms=attempt.elapsed_ms(),
            num_events=attempt.event_count,
            num_turns=attempt.num_turns,
            cost_usd=attempt.cost_usd,
        )
        if result is not None:
            entry.passed = result.passed
            entry.aborted = result.aborted
            entry.final_status = result.final_status
            entry.message = result.message
        if error is not None:
            entry.error = str(error)[:500]
            entry.error_type = type(error).__name__
            attempt_logger.error(entry.to_json())
        else:
            attempt_logger.info(entry.to_json())
