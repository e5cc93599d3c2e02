"""Tests for the UpdateFeatureStatus tool bridge."""

from unittest.mock import MagicMock

import pytest

from autopilot.agent.tool_bridge import INPUT_SCHEMA, QUALIFIED_TOOL_NAME, ToolBridge


class TestToolBridgeApply:
    def test_updates_store(self, store):
        bridge = ToolBridge(store)
        updated = bridge.apply("f1", "verified", "Login works")

        assert updated.status == "verified"
        assert store.get("f1").summary == "Login works"

    def test_status_passed_through_unchanged(self, store):
        bridge = ToolBridge(store)
        updated = bridge.apply("f2", "verified")

        assert updated.status == "verified"
        assert store.get("f2").status == "verified"

    def test_skip_tests_feature_passes_at_approval_gate(self, store):
        ToolBridge(store).apply("f2", "waiting_approval")
        assert store.get("f2").has_passed

    def test_invalid_status_raises(self, store):
        with pytest.raises(ValueError):
            ToolBridge(store).apply("f1", "done")
        assert store.get("f1").status == "backlog"

    def test_on_update_hook(self, store):
        hook = MagicMock()
        ToolBridge(store, on_update=hook).apply("f1", "in_progress")

        hook.assert_called_once()
        assert hook.call_args.args[0].id == "f1"

    def test_unknown_feature_returns_none(self, store):
        hook = MagicMock()
        assert ToolBridge(store, on_update=hook).apply("ghost", "verified") is None
        hook.assert_not_called()


class TestToolBridgeHandler:
    """The async MCP handler never raises into the agent runtime."""

    @pytest.mark.asyncio
    async def test_success_result(self, store):
        result = await ToolBridge(store)(
            {"featureId": "f1", "status": "verified", "summary": "Done"}
        )

        assert "is_error" not in result
        text = result["content"][0]["text"]
        assert "f1" in text
        assert "verified" in text

    @pytest.mark.asyncio
    async def test_missing_arguments(self, store):
        result = await ToolBridge(store)({"featureId": "f1"})
        assert result["is_error"] is True

    @pytest.mark.asyncio
    async def test_invalid_status(self, store):
        result = await ToolBridge(store)({"featureId": "f1", "status": "shipped"})
        assert result["is_error"] is True
        assert "shipped" in result["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_unknown_feature(self, store):
        result = await ToolBridge(store)({"featureId": "ghost", "status": "verified"})
        assert result["is_error"] is True
        assert "not found" in result["content"][0]["text"]


def test_schema_and_name():
    assert QUALIFIED_TOOL_NAME == "mcp__automaker-tools__UpdateFeatureStatus"
    assert INPUT_SCHEMA["required"] == ["featureId", "status"]
    assert "verified" in INPUT_SCHEMA["properties"]["status"]["enum"]
