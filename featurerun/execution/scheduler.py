"""
Scheduler that drives runner artifacts through the execution pipeline.

Artifacts run sequentially (optionally fail-fast) or all at once. Reporting
runs as a post-step whose failures never reach the caller.
"""

import asyncio
import re
import time
import traceback
import uuid
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..core.config import Config
from ..core.exceptions import FileOperationError
from ..core.logging_config import get_logger, log_performance
from ..environments.manager import EnvironmentManager
from ..provisioning.models import COVERAGE_AGENT, KARATE_RUNNER
from ..provisioning.provisioner import DependencyProvisioner
from ..reporting.coverage import CoverageReporter
from ..reporting.generator import ReportGenerator
from ..reporting.store import ResultStore
from .command_builder import CommandBuilder
from .health import HealthPoller, ServiceLauncher, curl_health_check
from .models import (
    ArtifactInput,
    ExecutionOptions,
    FileRefArtifact,
    ResolvedArtifact,
    TestResult,
    TestResultStatus,
    is_runnable,
    resolve_artifact,
    utc_now_ms,
)
from .notifier import StatusNotifier
from .process import ProcessRunner
from .status import parse_test_status
from .verifier import CompletionVerifier

SleepFn = Callable[[float], Awaitable[None]]

_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w.-]")


def new_result_id() -> str:
    return f"result-{uuid.uuid4().hex[:12]}"


def feature_name_for(path: Path) -> str:
    """File name without a ``.feature`` extension."""
    name = path.name
    return name[: -len(".feature")] if name.endswith(".feature") else name


class Scheduler:
    """
    Runs test artifacts against an environment.

    One ``execute_tests`` call provisions dependencies once and runs every
    runnable artifact. Afterwards it checks that the runner wrote reports.
    """

    def __init__(
        self,
        config: Config,
        environments: EnvironmentManager,
        provisioner: DependencyProvisioner,
        runner: ProcessRunner,
        store: ResultStore,
        reporter: ReportGenerator,
        command_builder: Optional[CommandBuilder] = None,
        verifier: Optional[CompletionVerifier] = None,
        health_poller: Optional[HealthPoller] = None,
        service_launcher: Optional[ServiceLauncher] = None,
        coverage_reporter: Optional[CoverageReporter] = None,
        notifier: Optional[StatusNotifier] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.config = config
        self.environments = environments
        self.provisioner = provisioner
        self.runner = runner
        self.store = store
        self.reporter = reporter
        self.notifier = notifier or StatusNotifier()
        self.sleep = sleep
        self.command_builder = command_builder or CommandBuilder(config)
        self.verifier = verifier or CompletionVerifier(config, sleep=sleep)
        self.health_poller = health_poller or HealthPoller(self.notifier, sleep=sleep)
        self.service_launcher = service_launcher or ServiceLauncher(config, runner)
        self.coverage_reporter = coverage_reporter or CoverageReporter(
            config, provisioner, runner, sleep=sleep
        )
        self.logger = get_logger(__name__)

        self._dependencies: Dict[str, Path] = {}

    async def ensure_dependencies(self) -> Dict[str, Path]:
        """
        Provision the runner and the coverage agent.

        Raises:
            DependencyError: If a dependency cannot be provisioned
        """
        self.notifier.busy("Checking runner dependencies...")
        self._dependencies = await self.provisioner.ensure_all()

        if not self.config.karate_config_path.exists():
            self.environments.write_karate_config(self.config.karate_config_path)
            self.logger.info(f"Created {self.config.karate_config_path}")

        return self._dependencies

    async def start_dependent_service(self, options: ExecutionOptions) -> bool:
        """Start the service and wait for its health endpoint (fail-open)."""
        environment = self.environments.resolve(options.environment_id)
        self.notifier.busy("Starting dependent service...")
        await self.service_launcher.start()

        health_url = environment.base_url + self.config.health_path
        return await self.health_poller.wait_until_ready(
            curl_health_check(self.runner, health_url),
            max_attempts=self.config.health_max_attempts,
            interval=self.config.health_interval,
            initial_delay=self.config.health_initial_delay,
        )

    async def execute_tests(
        self,
        artifacts: Sequence[ArtifactInput],
        options: Optional[ExecutionOptions] = None,
    ) -> List[TestResult]:
        """
        Execute a batch of artifacts.

        Args:
            artifacts: Test cases, paths, or already resolved artifacts
            options: Scheduling options

        Returns:
            One result per executed artifact

        Raises:
            ConfigurationError: If the requested environment is unknown
            DependencyError: If provisioning fails; no test runs
            VerificationError: If no runner report was found afterwards
        """
        options = options or ExecutionOptions()
        start_time = time.time()

        await self.ensure_dependencies()

        if options.start_dependent_service:
            await self.start_dependent_service(options)

        resolved = [resolve_artifact(item) for item in artifacts]
        runnable = [artifact for artifact in resolved if is_runnable(artifact)]
        filtered = len(resolved) - len(runnable)
        if filtered:
            self.logger.warning(
                f"Skipping {filtered} artifact(s) that are not runnable feature tests",
                extra={"metadata": {"filtered": filtered, "total": len(resolved)}},
            )

        environment = self.environments.resolve(options.environment_id)
        self.environments.write_karate_config(self.config.karate_config_path)

        self.logger.info(
            f"Executing {len(runnable)} test(s) against {environment.id}",
            extra={
                "metadata": {
                    "environment_id": environment.id,
                    "parallel": options.parallel,
                    "fail_fast": options.fail_fast,
                    "with_coverage": options.with_coverage,
                }
            },
        )
        self.notifier.busy(f"Running {len(runnable)} test(s) on {environment.name}...")

        if options.parallel:
            results = list(
                await asyncio.gather(
                    *(self.execute_test(artifact, options) for artifact in runnable)
                )
            )
        else:
            results = []
            for artifact in runnable:
                result = await self.execute_test(artifact, options)
                results.append(result)
                if options.fail_fast and result.status != TestResultStatus.PASSED:
                    self.logger.warning(
                        f"Stopping after {result.name} ({result.status.value}) because fail-fast is set",
                        extra={"metadata": {"remaining": len(runnable) - len(results)}},
                    )
                    break

        passed = sum(1 for r in results if r.status == TestResultStatus.PASSED)
        self.logger.info(
            f"Test execution finished: {passed}/{len(results)} passed",
            extra={
                "metadata": {
                    "statuses": [r.status.value for r in results],
                    "filtered": filtered,
                }
            },
        )
        if passed == len(results):
            self.notifier.success(f"{passed}/{len(results)} test(s) passed")
        else:
            self.notifier.error(f"{len(results) - passed}/{len(results)} test(s) did not pass")

        await self.verifier.verify(results)
        await self._run_post_step(options)

        log_performance(
            self.logger,
            "execute_tests",
            time.time() - start_time,
            tests=len(results),
            passed=passed,
        )
        return results

    async def execute_test(
        self,
        artifact: ArtifactInput,
        options: Optional[ExecutionOptions] = None,
    ) -> TestResult:
        """
        Execute one artifact and record its result.

        Launch and parse failures produce an ERROR result instead of raising.

        Raises:
            ConfigurationError: If the requested environment is unknown
        """
        options = options or ExecutionOptions()
        artifact = resolve_artifact(artifact)
        environment = self.environments.resolve(options.environment_id)
        if KARATE_RUNNER not in self._dependencies:
            await self.ensure_dependencies()

        name = artifact.display_name
        test_file: Optional[Path] = None
        synthesized = False
        start_time = utc_now_ms()
        self.notifier.busy(f"Running test: {name}")

        try:
            test_file, synthesized = self._materialize(artifact)
            command = self.command_builder.build(
                test_file,
                artifact.format,
                environment.id,
                options,
                runner_path=self._dependencies[KARATE_RUNNER],
                agent_path=self._dependencies.get(COVERAGE_AGENT),
            )

            if self.config.pre_execution_delay > 0:
                await self.sleep(self.config.pre_execution_delay)

            process_result = await self.runner.run(
                command.args,
                name=f"Karate Test: {name}",
                cwd=self.config.workspace_root,
                timeout=self.config.process_timeout,
            )
            result = TestResult(
                id=new_result_id(),
                artifact_id=artifact.artifact_id,
                name=name,
                status=parse_test_status(process_result.stdout),
                start_time=start_time,
                end_time=utc_now_ms(),
                output=process_result.stdout,
                environment_id=environment.id,
                feature_name=feature_name_for(test_file),
                exit_code=process_result.exit_code,
            )
        except Exception as e:
            self.logger.error(
                f"Test execution failed: {name} - {e}",
                extra={"metadata": {"test_name": name, "error_type": type(e).__name__}},
            )
            result = TestResult(
                id=new_result_id(),
                artifact_id=artifact.artifact_id,
                name=name,
                status=TestResultStatus.ERROR,
                start_time=start_time,
                end_time=utc_now_ms(),
                error_message=str(e),
                stack_trace=traceback.format_exc(),
                environment_id=environment.id,
                feature_name=feature_name_for(test_file) if test_file else None,
                exit_code=getattr(e, "exit_code", None),
            )
        finally:
            if synthesized and test_file is not None:
                self._cleanup(test_file)

        self.store.add(result)

        self.logger.info(
            f"Test {name} completed with status: {result.status.value} in {result.duration_ms}ms",
            extra={
                "metadata": {
                    "test_name": name,
                    "status": result.status.value,
                    "environment_id": environment.id,
                }
            },
        )
        if result.status == TestResultStatus.PASSED:
            self.notifier.success(f"Test passed: {name}")
        else:
            self.notifier.error(f"Test {result.status.value}: {name}")
        return result

    def _materialize(self, artifact: ResolvedArtifact) -> Tuple[Path, bool]:
        """Return the file to run and whether it was written for this run."""
        if isinstance(artifact, FileRefArtifact):
            return artifact.path, False

        # One directory per attempt; the file name stays the runner's report name
        filename = _UNSAFE_FILENAME_CHARS.sub("_", artifact.id) + artifact.format.extension
        path = self.config.test_files_dir / f"run-{uuid.uuid4().hex[:8]}" / filename
        content = artifact.content if artifact.content.endswith("\n") else artifact.content + "\n"

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise FileOperationError(
                f"Failed to write test file: {e}",
                file_path=str(path),
                operation="write",
            )

        self.logger.debug(f"Wrote inline test {artifact.id} to {path}")
        return path, True

    def _cleanup(self, path: Path) -> None:
        try:
            path.unlink()
            path.parent.rmdir()
            self.logger.debug(f"Deleted temp test file: {path}")
        except OSError as e:
            self.logger.error(f"Error cleaning up temp test file {path}: {e}")

    async def _run_post_step(self, options: ExecutionOptions) -> None:
        """Write summary and coverage reports; failures are logged, never raised."""
        try:
            output_path = None
            if options.report_path:
                fmt = self.reporter.get_format("html")
                output_path = Path(options.report_path) / self.reporter.default_report_path(fmt).name
            self.reporter.generate_report("html", output_path)
        except Exception as e:
            self.logger.error(f"Summary report generation failed: {e}")

        if not options.with_coverage:
            return

        try:
            await self.coverage_reporter.generate()
        except Exception as e:
            self.logger.error(f"Coverage report generation failed: {e}")
