"""
Unit tests for JaCoCo coverage report generation.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from featurerun.core.exceptions import ReportGenerationError
from featurerun.execution.process import ProcessResult
from featurerun.provisioning.models import COVERAGE_CLI
from featurerun.reporting.coverage import CoverageReporter

from conftest import FakeRunner, make_config, write_sized_file


@pytest.fixture
def provisioner(config):
    provisioner = Mock()
    provisioner.ensure = AsyncMock(return_value=config.jacoco_dir / "jacococli.jar")
    return provisioner


class TestCoverageReporter:
    """Test cases for CoverageReporter."""

    def test_build_command(self, config):
        reporter = CoverageReporter(config, Mock(), FakeRunner())

        args = reporter.build_command(config.jacoco_dir / "jacococli.jar")

        assert args[:5] == [
            "java",
            "-jar",
            str(config.jacoco_dir / "jacococli.jar"),
            "report",
            str(config.coverage_exec_file),
        ]
        assert args[args.index("--classfiles") + 1] == str(config.coverage_classes_dir)
        assert args[args.index("--sourcefiles") + 1] == str(config.coverage_sources_dir)
        assert args[args.index("--html") + 1] == str(config.coverage_report_dir / "html")
        assert args[args.index("--xml") + 1] == str(config.coverage_report_dir / "jacoco.xml")

    @pytest.mark.asyncio
    async def test_skips_without_execution_data(self, config, provisioner, recording_sleep):
        runner = FakeRunner()
        reporter = CoverageReporter(config, provisioner, runner, sleep=recording_sleep)

        assert await reporter.generate() is None
        provisioner.ensure.assert_not_awaited()
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_generates_report(self, config, provisioner, recording_sleep):
        write_sized_file(config.coverage_exec_file, 100)
        runner = FakeRunner()
        reporter = CoverageReporter(config, provisioner, runner, sleep=recording_sleep)

        out_dir = await reporter.generate()

        assert out_dir == config.coverage_report_dir
        assert out_dir.is_dir()
        assert provisioner.ensure.await_args[0][0].name == COVERAGE_CLI
        assert runner.calls[0][1] == "Coverage Report"

    @pytest.mark.asyncio
    async def test_failed_command_raises(self, config, provisioner, recording_sleep):
        write_sized_file(config.coverage_exec_file, 100)
        runner = FakeRunner(lambda args, name: ProcessResult(stdout="bad class files", exit_code=1))
        reporter = CoverageReporter(config, provisioner, runner, sleep=recording_sleep)

        with pytest.raises(ReportGenerationError) as exc_info:
            await reporter.generate()

        assert exc_info.value.format_name == "jacoco"

    @pytest.mark.asyncio
    async def test_waits_for_coverage_flush(self, tmp_path, provisioner, recording_sleep):
        config = make_config(tmp_path, coverage_report_delay=5)
        reporter = CoverageReporter(config, provisioner, FakeRunner(), sleep=recording_sleep)

        await reporter.generate()

        assert recording_sleep.delays == [5]
