"""
Agent Session Contract

The controller never talks to a concrete agent. It asks a SessionFactory for
an AgentSession configured with SessionOptions and consumes the session's
event stream. The stream yields TextEvent / ToolUseEvent / ResultEvent in the
order the agent produced them, raises SessionCancelledError once the options'
CancelToken fires, and raises anything else on a fault.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator, AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, Union

from autopilot.exceptions import SessionCancelledError

if TYPE_CHECKING:
    from autopilot.agent.tool_bridge import ToolBridge


@dataclass(frozen=True)
class TextEvent:
    """A text fragment from the assistant."""

    text: str


@dataclass(frozen=True)
class ToolUseEvent:
    """The assistant invoked a tool."""

    name: str
    input: dict[str, Any] = field(default_factory=dict)
    tool_use_id: str | None = None


@dataclass(frozen=True)
class ResultEvent:
    """Final accounting emitted once when the session ends normally."""

    num_turns: int = 0
    cost_usd: float = 0.0
    duration_ms: int = 0
    is_error: bool = False
    subtype: str = ""


SessionEvent = Union[TextEvent, ToolUseEvent, ResultEvent]


class CancelToken:
    """
    Cancellation handle owned by one Execution and handed to one session.

    cancel() must be called from the event loop thread (signal handlers
    installed with loop.add_signal_handler qualify).
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SessionCancelledError("Session cancelled")


@dataclass
class SessionOptions:
    """Everything a session needs besides the prompt."""

    system_prompt: str
    allowed_tools: list[str]
    max_turns: int
    cwd: str
    cancel: CancelToken
    model: str | None = None
    permission_mode: str = "acceptEdits"
    sandbox: bool = True
    tool_bridge: ToolBridge | None = None


class AgentSession(Protocol):
    """One running agent conversation."""

    def events(self) -> AsyncGenerator[SessionEvent, None]:
        """Stream events until the agent finishes."""
        ...


SessionFactory = Callable[[str, SessionOptions], AgentSession]


async def cancellable(
    source: AsyncIterable[Any],
    token: CancelToken,
) -> AsyncIterator[Any]:
    """
    Re-yield ``source`` but stop waiting the moment ``token`` fires.

    Each pending item is raced against the token, so a silent agent can
    still be cancelled. Raises SessionCancelledError on cancellation.
    """
    iterator = source.__aiter__()
    while True:
        token.raise_if_cancelled()
        next_item = asyncio.ensure_future(iterator.__anext__())
        cancel_wait = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {next_item, cancel_wait},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            cancel_wait.cancel()

        if next_item not in done:
            next_item.cancel()
            try:
                await next_item
            except (asyncio.CancelledError, StopAsyncIteration):
                pass
            raise SessionCancelledError("Session cancelled")

        try:
            item = next_item.result()
        except StopAsyncIteration:
            return
        yield item
