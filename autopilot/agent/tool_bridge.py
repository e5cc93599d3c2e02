"""
Tool Bridge - lets the agent report feature status mid-session

Exposes one tool, UpdateFeatureStatus, whose handler writes straight into the
FeatureStore. Bad input never raises into the agent runtime; it comes back as
an error result the agent can read and correct.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from autopilot.features.models import Feature, FeatureStatus
from autopilot.features.store import FeatureStore

logger = logging.getLogger(__name__)

SERVER_NAME = "automaker-tools"
TOOL_NAME = "UpdateFeatureStatus"
QUALIFIED_TOOL_NAME = f"mcp__{SERVER_NAME}__{TOOL_NAME}"

TOOL_DESCRIPTION = (
    "Update the status of a feature in the project's feature list. "
    "Set status to 'verified' once the feature is implemented and its tests pass, "
    "or 'waiting_approval' when it needs a human decision. "
    "Always include a short summary of what was done."
)

INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "featureId": {
            "type": "string",
            "description": "ID of the feature to update",
        },
        "status": {
            "type": "string",
            "enum": FeatureStatus.values(),
            "description": "New status for the feature",
        },
        "summary": {
            "type": "string",
            "description": "Human-readable summary of what was implemented",
        },
    },
    "required": ["featureId", "status"],
}


def _text_result(text: str, is_error: bool = False) -> dict[str, Any]:
    result: dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["is_error"] = True
    return result


class ToolBridge:
    """
    Status-update callback surface handed to agent sessions.

    Args:
        store: Store the agent writes to
        on_update: Optional hook called with the feature after each successful update
    """

    name = TOOL_NAME
    qualified_name = QUALIFIED_TOOL_NAME
    description = TOOL_DESCRIPTION
    input_schema = INPUT_SCHEMA

    def __init__(
        self,
        store: FeatureStore,
        on_update: Callable[[Feature], None] | None = None,
    ):
        self.store = store
        self.on_update = on_update

    def apply(self, feature_id: str, status: str, summary: str | None = None) -> Feature | None:
        """
        Validate a status update and hand it to the store unchanged.

        Raises:
            ValueError: If status is not a known feature status
        """
        if status not in FeatureStatus.values():
            raise ValueError(
                f"Invalid status '{status}'. Expected one of: {', '.join(FeatureStatus.values())}"
            )

        updated = self.store.update_status(feature_id, status, summary)
        if updated is not None and self.on_update:
            self.on_update(updated)
        return updated

    async def __call__(self, args: dict[str, Any]) -> dict[str, Any]:
        """MCP tool handler: ``args`` follows INPUT_SCHEMA."""
        feature_id = str(args.get("featureId") or "").strip()
        status = str(args.get("status") or "").strip()
        summary = args.get("summary") or None

        if not feature_id or not status:
            return _text_result("featureId and status are required", is_error=True)

        try:
            updated = self.apply(feature_id, status, summary)
        except ValueError as e:
            logger.warning(f"UpdateFeatureStatus rejected for {feature_id}: {e}")
            return _text_result(str(e), is_error=True)

        if updated is None:
            return _text_result(f"Feature {feature_id} not found", is_error=True)

        message = f"Updated feature {feature_id} to status '{updated.status}'"
        if summary:
            message += f" with summary: {summary}"
        return _text_result(message)
