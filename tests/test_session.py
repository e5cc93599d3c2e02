"""Tests for the session contract and the Claude Agent SDK adapter."""

import asyncio
import os
from dataclasses import dataclass, field
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from autopilot.agent.claude_sdk import ClaudeAgentSession, api_env, translate_message
from autopilot.agent.session import (
    CancelToken,
    ResultEvent,
    SessionOptions,
    TextEvent,
    ToolUseEvent,
    cancellable,
)
from autopilot.agent.tool_bridge import SERVER_NAME, ToolBridge
from autopilot.exceptions import SessionCancelledError


# SDK message stand-ins; the adapter dispatches on class name
@dataclass
class TextBlock:
    text: str


@dataclass
class ToolUseBlock:
    name: str
    input: dict
    id: str = "toolu_1"


@dataclass
class AssistantMessage:
    content: list = field(default_factory=list)


@dataclass
class ResultMessage:
    num_turns: int = 3
    total_cost_usd: float = 0.12
    duration_ms: int = 4500
    is_error: bool = False
    subtype: str = "success"


def _options(tmp_path, bridge=None) -> SessionOptions:
    return SessionOptions(
        system_prompt="system",
        allowed_tools=["Read", "Bash"],
        max_turns=5,
        cwd=str(tmp_path),
        cancel=CancelToken(),
        model="claude-sonnet-4-20250514",
        tool_bridge=bridge,
    )


class TestCancelToken:
    def test_initially_not_cancelled(self):
        token = CancelToken()
        assert not token.cancelled
        token.raise_if_cancelled()

    def test_cancel(self):
        token = CancelToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(SessionCancelledError):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_wait_returns_after_cancel(self):
        token = CancelToken()
        asyncio.get_running_loop().call_soon(token.cancel)
        await asyncio.wait_for(token.wait(), timeout=1)


class TestCancellable:
    @pytest.mark.asyncio
    async def test_passes_items_through(self):
        async def source():
            for i in range(3):
                yield i

        items = [item async for item in cancellable(source(), CancelToken())]
        assert items == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_cancel_interrupts_silent_source(self):
        token = CancelToken()

        async def silent():
            yield "first"
            await asyncio.sleep(3600)
            yield "never"

        received = []

        async def consume():
            async for item in cancellable(silent(), token):
                received.append(item)
                asyncio.get_running_loop().call_soon(token.cancel)

        with pytest.raises(SessionCancelledError):
            await asyncio.wait_for(consume(), timeout=1)
        assert received == ["first"]

    @pytest.mark.asyncio
    async def test_already_cancelled(self):
        token = CancelToken()
        token.cancel()

        async def source():
            yield 1

        with pytest.raises(SessionCancelledError):
            async for _ in cancellable(source(), token):
                pass


class TestTranslateMessage:
    def test_text_and_tool_blocks_in_order(self):
        message = AssistantMessage(
            content=[
                TextBlock("Reading"),
                ToolUseBlock("Read", {"file_path": "app.py"}),
                TextBlock("Done"),
            ]
        )
        events = list(translate_message(message))

        assert events == [
            TextEvent("Reading"),
            ToolUseEvent("Read", {"file_path": "app.py"}, "toolu_1"),
            TextEvent("Done"),
        ]

    def test_empty_text_skipped(self):
        assert list(translate_message(AssistantMessage(content=[TextBlock("")]))) == []

    def test_result_message(self):
        (event,) = translate_message(ResultMessage())
        assert event == ResultEvent(
            num_turns=3, cost_usd=0.12, duration_ms=4500, is_error=False, subtype="success"
        )

    def test_unknown_message_ignored(self):
        assert list(translate_message(object())) == []


def test_api_env_only_includes_set_vars(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_BASE_URL", "https://proxy.example")
    monkeypatch.delenv("ANTHROPIC_AUTH_TOKEN", raising=False)

    env = api_env()
    assert env["ANTHROPIC_BASE_URL"] == "https://proxy.example"
    assert "ANTHROPIC_AUTH_TOKEN" not in env


class FakeClient:
    """Stands in for ClaudeSDKClient."""

    def __init__(self, messages, options=None, hang=False):
        self.messages = messages
        self.hang = hang
        self.queries = []
        self.interrupt = AsyncMock()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        return False

    async def query(self, prompt):
        self.queries.append(prompt)

    async def receive_response(self):
        for message in self.messages:
            yield message
        if self.hang:
            await asyncio.sleep(3600)


class TestClaudeAgentSession:
    @pytest.mark.asyncio
    async def test_streams_translated_events(self, tmp_path):
        client = FakeClient(
            [
                AssistantMessage([TextBlock("Hi"), ToolUseBlock("Bash", {"command": "ls"})]),
                ResultMessage(),
            ]
        )
        session = ClaudeAgentSession("do it", _options(tmp_path))

        with patch("claude_agent_sdk.ClaudeSDKClient", return_value=client), patch.object(
            ClaudeAgentSession, "build_options", return_value=MagicMock()
        ):
            events = [event async for event in session.events()]

        assert client.queries == ["do it"]
        assert [type(e) for e in events] == [TextEvent, ToolUseEvent, ResultEvent]

    @pytest.mark.asyncio
    async def test_cancel_interrupts_client(self, tmp_path):
        client = FakeClient([AssistantMessage([TextBlock("working")])], hang=True)
        options = _options(tmp_path)
        session = ClaudeAgentSession("do it", options)

        async def consume():
            async for _ in session.events():
                asyncio.get_running_loop().call_soon(options.cancel.cancel)

        with patch("claude_agent_sdk.ClaudeSDKClient", return_value=client), patch.object(
            ClaudeAgentSession, "build_options", return_value=MagicMock()
        ):
            with pytest.raises(SessionCancelledError):
                await asyncio.wait_for(consume(), timeout=1)

        client.interrupt.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, tmp_path):
        options = _options(tmp_path)
        options.cancel.cancel()

        with pytest.raises(SessionCancelledError):
            async for _ in ClaudeAgentSession("do it", options).events():
                pass

    def test_build_options(self, tmp_path, store):
        session = ClaudeAgentSession("do it", _options(tmp_path, ToolBridge(store)))
        options = session.build_options()
        try:
            assert options.allowed_tools == ["Read", "Bash"]
            assert options.max_turns == 5
            assert options.model == "claude-sonnet-4-20250514"
            assert SERVER_NAME in options.mcp_servers
            assert os.path.exists(session._settings_path)
            assert not session._settings_path.startswith(str(tmp_path))
        finally:
            session._cleanup()
        assert session._settings_path is None
