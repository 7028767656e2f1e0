"""
Pytest configuration and shared fixtures for featurerun tests.

Provides a zero-delay configuration rooted in a temporary workspace, fake
process runners and fake download transports.
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple
from unittest.mock import AsyncMock, Mock

import pytest

from featurerun.core.config import Config
from featurerun.environments.manager import EnvironmentManager
from featurerun.environments.store import MemoryEnvironmentStore
from featurerun.execution.process import ProcessResult
from featurerun.provisioning.models import coverage_agent_spec, karate_runner_spec
from featurerun.provisioning.transports import Transport


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep host environment variables from changing configuration defaults."""
    for name in (
        "CI",
        "FEATURERUN_LOG_LEVEL",
        "FEATURERUN_JAVA",
        "FEATURERUN_FAST",
        "FEATURERUN_WORKSPACE",
    ):
        monkeypatch.delenv(name, raising=False)


def make_config(workspace: Path, **overrides) -> Config:
    values = dict(
        workspace_root=workspace,
        pre_execution_delay=0,
        provision_settle_delay=0,
        runner_settle_delay=0,
        provision_verify_retries=2,
        provision_verify_delay=0,
        health_initial_delay=0,
        health_max_attempts=3,
        health_interval=0,
        verification_settle_delay=0,
        coverage_report_delay=0,
    )
    values.update(overrides)
    return Config(**values)


@pytest.fixture
def config(tmp_path):
    """Create a zero-delay configuration in a temporary workspace."""
    return make_config(tmp_path)


def write_sized_file(path: Path, size: int) -> Path:
    """Create ``path`` with exactly ``size`` bytes (sparse)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.truncate(size)
    return path


@pytest.fixture
def installed_jars(config):
    """Place valid runner and agent jars where the provisioner looks first."""
    agent = coverage_agent_spec(config)
    runner = karate_runner_spec(config)
    write_sized_file(agent.install_path, agent.min_valid_bytes + 1)
    write_sized_file(runner.install_path, runner.min_valid_bytes + 1)
    return {"agent": agent.install_path, "runner": runner.install_path}


@pytest.fixture
def environments():
    """Environment manager seeded with the default environments, in memory."""
    return EnvironmentManager(MemoryEnvironmentStore())


class FakeRunner:
    """
    Stand-in for ``ProcessRunner``.

    ``handler(args, name)`` decides the outcome of each call; it may return a
    ``ProcessResult`` or raise.
    """

    def __init__(self, handler: Optional[Callable[[List[str], str], ProcessResult]] = None):
        self.handler = handler or (lambda args, name: ProcessResult(stdout="", exit_code=0))
        self.calls: List[Tuple[List[str], str]] = []
        self.started: List[Tuple[List[str], str]] = []

    async def run(self, args, name, require_approval=False, cwd=None, timeout=None, env=None):
        args = [str(arg) for arg in args]
        self.calls.append((args, name))
        return self.handler(args, name)

    async def start(self, args, name, cwd=None, log_file=None):
        self.started.append(([str(arg) for arg in args], name))
        process = Mock()
        process.returncode = None
        process.pid = 4242
        process.wait = AsyncMock(return_value=0)
        return process

    def calls_named(self, prefix: str) -> List[List[str]]:
        return [args for args, name in self.calls if name.startswith(prefix)]


@pytest.fixture
def fake_runner():
    return FakeRunner()


class FakeTransport(Transport):
    """Writes ``size`` bytes to the destination, or raises ``error``."""

    def __init__(self, name: str = "fake", size: int = 0, error: Optional[Exception] = None):
        self.name = name
        self.size = size
        self.error = error
        self.downloads: List[Tuple[str, Path]] = []

    async def download(self, url: str, dest: Path) -> None:
        self.downloads.append((url, dest))
        if self.size:
            write_sized_file(dest, self.size)
        if self.error is not None:
            raise self.error


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def restore_root_logger():
    """Swap handlers installed by ``setup_logging`` back for the original ones."""
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    for handler in before:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
