"""Agent session contract, Claude SDK adapter, tool bridge and prompts."""

from autopilot.agent.session import (
    AgentSession,
    CancelToken,
    ResultEvent,
    SessionEvent,
    SessionFactory,
    SessionOptions,
    TextEvent,
    ToolUseEvent,
    cancellable,
)
from autopilot.agent.tool_bridge import QUALIFIED_TOOL_NAME, ToolBridge

__all__ = [
    "AgentSession",
    "CancelToken",
    "ResultEvent",
    "SessionEvent",
    "SessionFactory",
    "SessionOptions",
    "TextEvent",
    "ToolUseEvent",
    "ToolBridge",
    "QUALIFIED_TOOL_NAME",
    "cancellable",
]
