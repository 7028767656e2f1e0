"""
Unit tests for ExecutionSession wiring and its caller-facing operations.
"""

import json

import pytest

from featurerun.core.exceptions import ReportGenerationError
from featurerun.environments.store import FileEnvironmentStore, MemoryEnvironmentStore
from featurerun.execution.models import ExecutionOptions, TestCase, TestResultStatus
from featurerun.execution.notifier import RecordingStatusNotifier
from featurerun.execution.process import ProcessResult
from featurerun.session import ExecutionSession, generate_session_id

from conftest import FakeRunner, FakeTransport


@pytest.fixture
def session(config, installed_jars, recording_sleep):
    runner = FakeRunner(lambda args, name: ProcessResult(stdout="1 Scenario 1 passed", exit_code=0))
    return ExecutionSession.create(
        config,
        notifier=RecordingStatusNotifier(),
        environment_store=MemoryEnvironmentStore(),
        runner=runner,
        transports=[FakeTransport(size=10)],
        sleep=recording_sleep,
        session_id="20240501-abc",
    )


@pytest.fixture
def runner_reports(config):
    reports = config.karate_dir / "karate-reports"
    reports.mkdir(parents=True)
    (reports / "karate-summary.html").write_text("<html></html>")
    return reports


class TestSessionId:
    """Test cases for generate_session_id."""

    def test_format(self):
        session_id = generate_session_id()
        date, suffix = session_id.split("-")

        assert len(date) == 8 and date.isdigit()
        assert len(suffix) == 16


class TestExecutionSession:
    """Test cases for ExecutionSession."""

    def test_create_shares_components(self, session):
        assert session.session_id == "20240501-abc"
        assert session.scheduler.store is session.store
        assert session.scheduler.runner is session.runner
        assert session.scheduler.provisioner is session.provisioner
        assert session.reporter.store is session.store

    def test_create_uses_environments_file(self, config):
        session = ExecutionSession.create(config, runner=FakeRunner())

        assert isinstance(session.environments.store, FileEnvironmentStore)
        assert config.environments_file.exists()

    def test_available_environments(self, session):
        ids = [env.id for env in session.get_available_environments()]

        assert ids == ["dev", "test", "prod"]

    @pytest.mark.asyncio
    async def test_execute_and_report(self, session, config, runner_reports, tmp_path):
        case = TestCase(id="users", content="Feature: users")

        results = await session.execute_tests([case], ExecutionOptions(environment_id="test"))

        assert results[0].status == TestResultStatus.PASSED
        assert results[0].environment_id == "test"
        assert session.get_results() == results

        target = tmp_path / "summary.json"
        assert session.generate_report("json", target) == target
        data = json.loads(target.read_text())
        assert data["summary"]["totalTests"] == 1
        assert data["results"][0]["environmentId"] == "test"

        summary = session.get_summary()
        assert summary.passed == 1
        assert summary.success is True

    @pytest.mark.asyncio
    async def test_execute_single_test(self, session, tmp_path):
        feature = tmp_path / "users.feature"
        feature.write_text("Feature: users\n")

        result = await session.execute_test(feature)

        assert result.feature_name == "users"
        assert session.to_dict()["results"] == 1

    @pytest.mark.asyncio
    async def test_provision(self, session, installed_jars):
        resolved = await session.provision()

        assert set(resolved.values()) == set(installed_jars.values())

    def test_generate_report_unknown_format(self, session):
        with pytest.raises(ReportGenerationError):
            session.generate_report("pdf")

    def test_generate_report_with_no_results(self, session, config):
        path = session.generate_report()

        assert path.parent == config.reports_dir
        assert "Test Execution Report" in path.read_text()

    @pytest.mark.asyncio
    async def test_shutdown_stops_started_service(self, session):
        await session.scheduler.service_launcher.start()
        process = session.scheduler.service_launcher._process

        await session.shutdown()

        process.terminate.assert_called_once()
        assert not session.scheduler.service_launcher.is_running

    @pytest.mark.asyncio
    async def test_shutdown_without_service(self, session):
        await session.shutdown()

    def test_to_dict(self, session):
        data = session.to_dict()

        assert data["session_id"] == "20240501-abc"
        assert data["current_environment"] == "dev"
        assert data["results"] == 0
