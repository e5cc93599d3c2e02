"""Tests for the typer CLI."""

import pytest
from typer.testing import CliRunner

from autopilot.cli import app
from autopilot.config import load_config
from autopilot.features import FeatureStore

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_registry(tmp_path, monkeypatch):
    config_dir = tmp_path / "config"
    monkeypatch.setattr("autopilot.config.CONFIG_DIR", config_dir)
    monkeypatch.setattr("autopilot.config.PROJECTS_FILE", config_dir / "projects.json")
    for var in ("AUTOPILOT_MAX_TURNS", "AUTOPILOT_SESSION_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)
    return config_dir / "projects.json"


@pytest.fixture
def fake_agent(monkeypatch, make_factory):
    """Replace the Claude session factory used by the CLI."""

    def install(script):
        factory = make_factory(script)
        monkeypatch.setattr("autopilot.cli.typer_commands.claude_session_factory", factory)
        return factory

    return install


class TestProjectRegistry:
    def test_add_list_remove(self, project_dir, isolated_registry):
        result = runner.invoke(app, ["add", "web", str(project_dir), "--description", "Site"])
        assert result.exit_code == 0
        assert "Added project 'web'" in result.output
        assert load_config(isolated_registry).projects[0].name == "web"

        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "web" in result.output

        result = runner.invoke(app, ["remove", "web"])
        assert result.exit_code == 0
        assert load_config(isolated_registry).projects == []

    def test_add_duplicate_fails(self, project_dir):
        runner.invoke(app, ["add", "web", str(project_dir)])
        result = runner.invoke(app, ["add", "web", str(project_dir)])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_remove_unknown_fails(self):
        result = runner.invoke(app, ["remove", "ghost"])
        assert result.exit_code == 1

    def test_unknown_project_reference(self):
        result = runner.invoke(app, ["status", "ghost"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestFeatureCommands:
    def test_status_table(self, store, project_dir):
        result = runner.invoke(app, ["status", str(project_dir)])
        assert result.exit_code == 0
        assert "f1" in result.output
        assert "2 backlog" in result.output

    def test_next(self, store, project_dir):
        store.update_status("f1", "verified")
        result = runner.invoke(app, ["next", str(project_dir)])
        assert result.exit_code == 0
        assert "f2" in result.output

    def test_next_when_done(self, write_features, project_dir):
        write_features([{"id": "f1", "status": "verified"}])
        result = runner.invoke(app, ["next", str(project_dir)])
        assert result.exit_code == 0
        assert "No features left" in result.output

    def test_status_ids_usable_by_later_commands(self, write_features, project_dir, fake_agent):
        write_features([{"description": "No id yet", "status": "backlog"}])

        result = runner.invoke(app, ["status", str(project_dir)])
        assert result.exit_code == 0
        shown_id = FeatureStore(project_dir).load()[0].id
        assert shown_id.startswith("feature-0-")

        fake_agent([])
        result = runner.invoke(app, ["implement", str(project_dir), shown_id])
        assert "not found" not in result.output
        assert FeatureStore(project_dir).get(shown_id).status == "in_progress"

    def test_add_feature(self, store, project_dir, read_features):
        result = runner.invoke(
            app,
            [
                "add-feature",
                str(project_dir),
                "Export CSV",
                "--category",
                "data",
                "--step",
                "Click export",
                "--skip-tests",
            ],
        )
        assert result.exit_code == 0

        added = read_features()[-1]
        assert added["description"] == "Export CSV"
        assert added["steps"] == ["Click export"]
        assert added["skipTests"] is True


class TestAttemptCommands:
    def test_implement_passes(self, store, project_dir, fake_agent):
        def verify(options):
            options.tool_bridge.apply("f1", "verified", "done")

        fake_agent([verify])

        result = runner.invoke(app, ["implement", str(project_dir), "f1"])

        assert result.exit_code == 0
        assert "PASSED" in result.output
        assert store.get("f1").status == "verified"

    def test_implement_picks_next_feature(self, store, project_dir, fake_agent):
        factory = fake_agent([])

        result = runner.invoke(app, ["implement", str(project_dir)])

        assert result.exit_code == 1
        assert "Feature ID: f1" in factory.last.prompt

    def test_implement_unknown_feature(self, store, project_dir, fake_agent):
        fake_agent([])
        result = runner.invoke(app, ["implement", str(project_dir), "ghost"])
        assert result.exit_code == 1
        assert "ghost" in result.output

    def test_commit(self, store, project_dir, fake_agent):
        factory = fake_agent([])
        result = runner.invoke(app, ["commit", str(project_dir), "f1"])
        assert result.exit_code == 0
        assert factory.last.options.sandbox is False

    def test_run_summary(self, store, project_dir, fake_agent):
        fake_agent([])
        result = runner.invoke(app, ["run", str(project_dir), "--max", "1"])
        assert "0/1 features passed" in result.output
