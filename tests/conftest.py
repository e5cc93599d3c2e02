"""Shared fixtures: isolated logs, a project on disk and a scripted agent session."""

import asyncio
import inspect
import json
from pathlib import Path

import pytest

from autopilot.agent.session import SessionOptions
from autopilot.context_log import ContextLog
from autopilot.exceptions import SessionCancelledError
from autopilot.features import FeatureStore
from autopilot.logging import LogConfig, set_config


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path):
    """Point the JSONL loggers at a per-test directory."""
    config = LogConfig(log_dir=tmp_path / "logs", event_level="DEBUG")
    set_config(config)
    yield config


@pytest.fixture
def project_dir(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def feature_file(project_dir) -> Path:
    return project_dir / ".automaker" / "feature_list.json"


@pytest.fixture
def write_features(feature_file):
    """Write raw records (or any JSON value) as the feature list."""

    def write(records) -> None:
        feature_file.parent.mkdir(parents=True, exist_ok=True)
        feature_file.write_text(json.dumps(records, indent=2))

    return write


@pytest.fixture
def read_features(feature_file):
    return lambda: json.loads(feature_file.read_text())


@pytest.fixture
def sample_features():
    return [
        {
            "id": "f1",
            "category": "core",
            "description": "Add login form",
            "steps": ["Open /login", "Submit credentials"],
            "status": "backlog",
        },
        {
            "id": "f2",
            "category": "ui",
            "description": "Dark mode toggle",
            "steps": [],
            "status": "backlog",
            "skipTests": True,
        },
    ]


@pytest.fixture
def store(project_dir, sample_features, write_features):
    write_features(sample_features)
    return FeatureStore(project_dir)


@pytest.fixture
def context_log(project_dir):
    return ContextLog(project_dir)


async def hang_until_cancelled(options: SessionOptions) -> None:
    """Script step: block like a silent agent until the cancel token fires."""
    await options.cancel.wait()
    raise SessionCancelledError("Session cancelled")


class ScriptedSession:
    """
    Agent session that replays a script.

    Script steps are session events (yielded), exceptions (raised), or
    callables taking the SessionOptions (run for their side effects; may be
    async).
    """

    def __init__(self, prompt: str, options: SessionOptions, script: list):
        self.prompt = prompt
        self.options = options
        self.script = script
        self.closed = False

    async def events(self):
        try:
            for step in self.script:
                self.options.cancel.raise_if_cancelled()
                if isinstance(step, BaseException):
                    raise step
                if callable(step):
                    result = step(self.options)
                    if inspect.isawaitable(result):
                        await result
                    continue
                yield step
                await asyncio.sleep(0)
        finally:
            self.closed = True


class FakeSessionFactory:
    """
    SessionFactory that records every session it opens.

    ``script`` is a list of steps, or a callable mapping the prompt to one.
    """

    def __init__(self, script=None):
        self.script = script if callable(script) else list(script or [])
        self.sessions: list[ScriptedSession] = []

    def __call__(self, prompt: str, options: SessionOptions) -> ScriptedSession:
        script = self.script(prompt) if callable(self.script) else self.script
        session = ScriptedSession(prompt, options, script)
        self.sessions.append(session)
        return session

    @property
    def last(self) -> ScriptedSession:
        return self.sessions[-1]


class EventRecorder:
    """Progress sink that keeps every event."""

    def __init__(self):
        self.events = []

    def __call__(self, event) -> None:
        self.events.append(event)

    def of_type(self, cls) -> list:
        return [e for e in self.events if isinstance(e, cls)]


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def make_factory():
    """Build a FakeSessionFactory from a script."""
    return FakeSessionFactory


@pytest.fixture
def hang():
    """Script step that blocks until the session's cancel token fires."""
    return hang_until_cancelled
