"""
Post-run check that the runner actually produced reports.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Sequence

from ..core.config import Config
from ..core.exceptions import VerificationError
from ..core.logging_config import get_logger
from ..core.paths import first_match
from .models import TestResult

SleepFn = Callable[[float], Awaitable[None]]

REPORT_EXTENSIONS = {".html", ".xml", ".json", ".svg", ".png", ".ico"}

# Inputs the runner reads from its own directory; never evidence of a run
RUNNER_INPUT_SUFFIXES = {".jar", ".js"}


def looks_like_report(path: Path) -> bool:
    """Broad match for files the runner writes into its report directory."""
    name = path.name
    if path.suffix.lower() in RUNNER_INPUT_SUFFIXES:
        return False
    return (
        path.suffix.lower() in REPORT_EXTENSIONS
        or name.endswith("-json.txt")
        or name == "res"
        or "karate" in name.lower()
    )


def candidate_report_dirs(config: Config) -> List[Path]:
    """Report locations in the order they are searched."""
    return [
        config.karate_dir / "karate-reports",
        config.workspace_root / "target" / "karate-reports",
        config.karate_dir / "reports",
        config.karate_dir,
        config.workspace_root / "karate-reports",
    ]


def per_test_report_names(feature_name: str) -> List[str]:
    """Filenames the runner has used for a single feature's report over time."""
    return [
        f"test-files.{feature_name}.html",
        f"{feature_name}.html",
        f"testautomationagentplugin.testcases.{feature_name}.html",
        f"test-files.{feature_name.lower()}.html",
        f"{feature_name}.karate-json.txt",
        f"test-files.{feature_name}.karate-json.txt",
    ]


def has_report_files(directory: Path) -> bool:
    if not directory.is_dir():
        return False
    try:
        return any(
            looks_like_report(entry)
            for entry in directory.iterdir()
            if entry.is_file() or entry.name == "res"
        )
    except OSError:
        return False


class CompletionVerifier:
    """Best-effort check that a batch left report files behind."""

    def __init__(self, config: Config, sleep: SleepFn = asyncio.sleep):
        self.config = config
        self.sleep = sleep
        self.logger = get_logger(__name__)

    async def verify(self, results: Sequence[TestResult]) -> Path:
        """
        Wait for reports to settle, then locate the report directory.

        Returns:
            The first candidate directory holding report files

        Raises:
            VerificationError: If there are no results or no report was found
        """
        if not results:
            raise VerificationError("No test results were produced")

        if self.config.verification_settle_delay > 0:
            self.logger.info(
                f"Waiting {self.config.verification_settle_delay:.0f}s for reports to be written"
            )
            await self.sleep(self.config.verification_settle_delay)

        candidates = candidate_report_dirs(self.config)
        found = first_match(candidates, has_report_files)

        if found is None:
            try:
                candidates[0].mkdir(parents=True, exist_ok=True)
            except OSError as e:
                self.logger.warning(f"Could not create report directory {candidates[0]}: {e}")
            raise VerificationError(
                "No runner reports found. The tests may not have run to completion.",
                searched_paths=[str(path) for path in candidates],
            )

        self.logger.info(f"Runner reports found in {found}")
        for result in results:
            self._check_test_report(found, result)
        return found

    def _check_test_report(self, report_dir: Path, result: TestResult) -> Optional[Path]:
        if not result.feature_name:
            return None

        names = per_test_report_names(result.feature_name)
        match = first_match(
            [report_dir / name for name in names]
            + [report_dir / "karate-reports" / name for name in names],
            lambda path: path.is_file(),
        )
        if match is None:
            self.logger.warning(
                f"No report file found for {result.feature_name}",
                extra={"metadata": {"report_dir": str(report_dir)}},
            )
        else:
            self.logger.debug(f"Report for {result.feature_name}: {match}")
        return match
