"""
Claude Agent SDK Session

AgentSession implementation on top of ClaudeSDKClient. The tool bridge is
registered as an in-process MCP server, so UpdateFeatureStatus calls run in
this process against the same FeatureStore the controller reads.

Usage:
    from autopilot.agent.claude_sdk import claude_session_factory

    controller = ExecutionController(store, context_log, claude_session_factory)
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from collections.abc import AsyncGenerator, Iterator
from typing import Any

from autopilot.agent.session import (
    ResultEvent,
    SessionEvent,
    SessionOptions,
    TextEvent,
    ToolUseEvent,
    cancellable,
)
from autopilot.agent.tool_bridge import SERVER_NAME, ToolBridge
from autopilot.exceptions import SessionCancelledError

logger = logging.getLogger(__name__)

# Passed through to the Claude CLI so alternative API endpoints work without
# touching the user's global Claude settings
API_ENV_VARS = [
    "ANTHROPIC_BASE_URL",
    "ANTHROPIC_AUTH_TOKEN",
    "API_TIMEOUT_MS",
    "ANTHROPIC_DEFAULT_SONNET_MODEL",
    "ANTHROPIC_DEFAULT_OPUS_MODEL",
    "ANTHROPIC_DEFAULT_HAIKU_MODEL",
]

TOOL_SERVER_VERSION = "1.0.0"


def translate_message(message: Any) -> Iterator[SessionEvent]:
    """
    Map one SDK message onto session events.

    Dispatches on class name so the stream shape does not depend on which
    SDK module a message type is exported from.
    """
    msg_type = type(message).__name__

    if msg_type == "AssistantMessage":
        for block in getattr(message, "content", None) or []:
            block_type = type(block).__name__
            if block_type == "TextBlock":
                text = getattr(block, "text", "")
                if text:
                    yield TextEvent(text=text)
            elif block_type == "ToolUseBlock":
                yield ToolUseEvent(
                    name=getattr(block, "name", "unknown"),
                    input=dict(getattr(block, "input", None) or {}),
                    tool_use_id=getattr(block, "id", None),
                )

    elif msg_type == "ResultMessage":
        yield ResultEvent(
            num_turns=getattr(message, "num_turns", 0) or 0,
            cost_usd=getattr(message, "total_cost_usd", 0.0) or 0.0,
            duration_ms=getattr(message, "duration_ms", 0) or 0,
            is_error=bool(getattr(message, "is_error", False)),
            subtype=getattr(message, "subtype", "") or "",
        )


def build_tool_server(bridge: ToolBridge) -> Any:
    """Wrap the bridge as an in-process MCP server config."""
    from claude_agent_sdk import create_sdk_mcp_server, tool

    status_tool = tool(bridge.name, bridge.description, bridge.input_schema)(bridge.__call__)
    return create_sdk_mcp_server(
        name=SERVER_NAME,
        version=TOOL_SERVER_VERSION,
        tools=[status_tool],
    )


def api_env() -> dict[str, str]:
    """API endpoint overrides present in this process's environment."""
    return {var: value for var in API_ENV_VARS if (value := os.getenv(var))}


class ClaudeAgentSession:
    """
    One Claude Code session driven through the Agent SDK.

    Args:
        prompt: User prompt sent once the client connects
        options: Session configuration (tools, turns, cancel token, bridge)
    """

    def __init__(self, prompt: str, options: SessionOptions):
        self.prompt = prompt
        self.options = options
        self._settings_path: str | None = None

    def _write_settings(self) -> str:
        # Kept outside the project so the commit step never stages it
        settings = {
            "sandbox": {
                "enabled": self.options.sandbox,
                "autoAllowBashIfSandboxed": self.options.sandbox,
            },
            "permissions": {"defaultMode": self.options.permission_mode},
        }
        fd, path = tempfile.mkstemp(prefix="autopilot-settings-", suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(settings, f, indent=2)
        return path

    def build_options(self) -> Any:
        """Translate SessionOptions into ClaudeAgentOptions."""
        from claude_agent_sdk import ClaudeAgentOptions

        mcp_servers: dict[str, Any] = {}
        if self.options.tool_bridge is not None:
            mcp_servers[SERVER_NAME] = build_tool_server(self.options.tool_bridge)

        self._settings_path = self._write_settings()

        kwargs: dict[str, Any] = {
            "system_prompt": self.options.system_prompt,
            "allowed_tools": list(self.options.allowed_tools),
            "max_turns": self.options.max_turns,
            "cwd": self.options.cwd,
            "permission_mode": self.options.permission_mode,
            "mcp_servers": mcp_servers,
            "settings": self._settings_path,
            "env": api_env(),
        }
        if self.options.model:
            kwargs["model"] = self.options.model
        # Prefer the system CLI over the bundled one when installed
        if cli_path := shutil.which("claude"):
            kwargs["cli_path"] = cli_path

        return ClaudeAgentOptions(**kwargs)

    def _cleanup(self) -> None:
        if self._settings_path:
            try:
                os.unlink(self._settings_path)
            except OSError as e:
                logger.debug(f"Could not remove settings file {self._settings_path}: {e}")
            self._settings_path = None

    async def events(self) -> AsyncGenerator[SessionEvent, None]:
        from claude_agent_sdk import ClaudeSDKClient

        cancel = self.options.cancel
        cancel.raise_if_cancelled()

        try:
            async with ClaudeSDKClient(options=self.build_options()) as client:
                await client.query(self.prompt)
                try:
                    async for message in cancellable(client.receive_response(), cancel):
                        for event in translate_message(message):
                            yield event
                except SessionCancelledError:
                    logger.info("Interrupting Claude session after cancellation")
                    try:
                        await client.interrupt()
                    except Exception as e:
                        logger.debug(f"Interrupt failed: {e}")
                    raise
        finally:
            self._cleanup()


def claude_session_factory(prompt: str, options: SessionOptions) -> ClaudeAgentSession:
    """SessionFactory backed by the Claude Agent SDK."""
    return ClaudeAgentSession(prompt, options)
