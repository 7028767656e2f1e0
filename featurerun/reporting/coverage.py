"""
JaCoCo coverage report generation from collected agent data.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from ..core.config import Config
from ..core.exceptions import ReportGenerationError
from ..core.logging_config import get_logger
from ..execution.process import ProcessRunner
from ..provisioning.models import coverage_cli_spec
from ..provisioning.provisioner import DependencyProvisioner

SleepFn = Callable[[float], Awaitable[None]]


class CoverageReporter:
    """Runs ``jacococli.jar report`` over the agent's execution data."""

    def __init__(
        self,
        config: Config,
        provisioner: DependencyProvisioner,
        runner: ProcessRunner,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.config = config
        self.provisioner = provisioner
        self.runner = runner
        self.sleep = sleep
        self.logger = get_logger(__name__)

    def build_command(self, cli_path: Path) -> List[str]:
        out_dir = self.config.coverage_report_dir
        return [
            self.config.java_executable,
            "-jar",
            str(cli_path),
            "report",
            str(self.config.coverage_exec_file),
            "--classfiles",
            str(self.config.coverage_classes_dir),
            "--sourcefiles",
            str(self.config.coverage_sources_dir),
            "--html",
            str(out_dir / "html"),
            "--xml",
            str(out_dir / "jacoco.xml"),
        ]

    async def generate(self) -> Optional[Path]:
        """
        Build the coverage report.

        Returns:
            The report directory, or None when no execution data was recorded

        Raises:
            ReportGenerationError: If the report command fails
        """
        if self.config.coverage_report_delay > 0:
            self.logger.info(
                f"Waiting {self.config.coverage_report_delay:.0f}s for coverage data to flush"
            )
            await self.sleep(self.config.coverage_report_delay)

        exec_file = self.config.coverage_exec_file
        if not exec_file.exists():
            self.logger.warning(f"No coverage data at {exec_file}; skipping coverage report")
            return None

        cli_path = await self.provisioner.ensure(coverage_cli_spec(self.config))
        out_dir = self.config.coverage_report_dir
        out_dir.mkdir(parents=True, exist_ok=True)

        result = await self.runner.run(
            self.build_command(cli_path),
            name="Coverage Report",
            cwd=self.config.workspace_root,
        )
        if result.exit_code != 0:
            raise ReportGenerationError(
                f"Coverage report command exited with {result.exit_code}: {result.stdout.strip()[:500]}",
                format_name="jacoco",
                output_path=str(out_dir),
            )

        self.logger.info(f"Coverage report written to {out_dir}")
        return out_dir
