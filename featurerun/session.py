"""
Execution session for featurerun.

Owns one instance of every pipeline component and exposes the operations
callers use: running artifacts, listing environments and producing reports.
"""

import asyncio
import time
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from .core.config import Config
from .core.logging_config import get_logger
from .environments.manager import EnvironmentManager
from .environments.models import TestEnvironment
from .environments.store import EnvironmentStore, FileEnvironmentStore
from .execution.models import ArtifactInput, ExecutionOptions, TestResult
from .execution.notifier import LoggingStatusNotifier, StatusNotifier
from .execution.process import Approver, ProcessRunner
from .execution.scheduler import Scheduler
from .provisioning.provisioner import DependencyProvisioner
from .provisioning.transports import Transport
from .reporting.generator import ReportGenerator
from .reporting.models import ExecutionSummary
from .reporting.store import ResultStore

SleepFn = Callable[[float], Awaitable[None]]


def generate_session_id() -> str:
    """
    Generate a unique session ID for correlating logs and reports.

    Returns:
        Date-prefixed identifier, sortable by creation day
    """
    session_id = str(uuid.uuid4()).replace("-", "")[:16]
    timestamp = datetime.utcnow().strftime("%Y%m%d")
    return f"{timestamp}-{session_id}"


class ExecutionSession:
    """
    Orchestration context for one featurerun session.

    Build it with ``ExecutionSession.create`` and pass it by reference; every
    component it holds is shared by all calls made through it.
    """

    def __init__(
        self,
        config: Config,
        environments: EnvironmentManager,
        provisioner: DependencyProvisioner,
        runner: ProcessRunner,
        store: ResultStore,
        reporter: ReportGenerator,
        scheduler: Scheduler,
        session_id: Optional[str] = None,
    ):
        self.config = config
        self.environments = environments
        self.provisioner = provisioner
        self.runner = runner
        self.store = store
        self.reporter = reporter
        self.scheduler = scheduler
        self.session_id = session_id or generate_session_id()
        self.start_time = time.time()
        self.logger = get_logger("featurerun.session")

        self.logger.info(
            f"Session started: {self.session_id}",
            extra={"metadata": {"session_id": self.session_id, "config": config.to_dict()}},
        )

    @classmethod
    def create(
        cls,
        config: Optional[Config] = None,
        notifier: Optional[StatusNotifier] = None,
        environment_store: Optional[EnvironmentStore] = None,
        runner: Optional[ProcessRunner] = None,
        transports: Optional[Sequence[Transport]] = None,
        approver: Optional[Approver] = None,
        sleep: SleepFn = asyncio.sleep,
        session_id: Optional[str] = None,
    ) -> "ExecutionSession":
        """
        Wire up every component from ``config``.

        Args:
            config: Session configuration, read from the environment when omitted
            notifier: Status sink, logging-only by default
            environment_store: Registry persistence, the configured environments file by default
            runner: Process runner shared by all components
            transports: Download transports, curl then HTTP by default
            approver: Approval hook for commands that ask for it
            sleep: Coroutine used for every fixed wait
            session_id: Explicit session id, generated when omitted
        """
        config = config or Config.from_env()
        notifier = notifier or LoggingStatusNotifier()
        runner = runner or ProcessRunner(cwd=config.workspace_root, approver=approver)
        store = ResultStore()

        environments = EnvironmentManager(
            environment_store or FileEnvironmentStore(config.environments_file)
        )
        provisioner = DependencyProvisioner(
            config, transports=transports, runner=runner, notifier=notifier, sleep=sleep
        )
        reporter = ReportGenerator(store, config.reports_dir, template_dir=config.template_dir)
        scheduler = Scheduler(
            config,
            environments,
            provisioner,
            runner,
            store,
            reporter,
            notifier=notifier,
            sleep=sleep,
        )

        return cls(
            config,
            environments,
            provisioner,
            runner,
            store,
            reporter,
            scheduler,
            session_id=session_id,
        )

    @property
    def duration(self) -> float:
        return time.time() - self.start_time

    async def execute_tests(
        self,
        artifacts: Sequence[ArtifactInput],
        options: Optional[ExecutionOptions] = None,
    ) -> List[TestResult]:
        return await self.scheduler.execute_tests(artifacts, options)

    async def execute_test(
        self,
        artifact: ArtifactInput,
        options: Optional[ExecutionOptions] = None,
    ) -> TestResult:
        return await self.scheduler.execute_test(artifact, options)

    async def provision(self) -> Dict[str, Path]:
        """Provision the runner and coverage agent without running anything."""
        return await self.scheduler.ensure_dependencies()

    def get_available_environments(self) -> List[TestEnvironment]:
        return self.environments.get_environments()

    def get_results(self) -> List[TestResult]:
        return self.store.get_all_results()

    def generate_report(
        self, format_name: str = "html", output_path: Optional[Union[str, Path]] = None
    ) -> Path:
        """
        Write a summary report over every result of this session.

        Raises:
            ReportGenerationError: If the format is unknown or writing fails
        """
        return self.reporter.generate_report(format_name, output_path)

    def get_summary(self) -> ExecutionSummary:
        return self.reporter.get_summary()

    def open_report(self, path: Union[str, Path]) -> None:
        self.reporter.open_report(path)

    async def shutdown(self) -> None:
        """Stop the dependent service if this session started it."""
        await self.scheduler.service_launcher.stop()
        summary = self.get_summary()
        self.logger.info(
            f"Session finished: {self.session_id} ({self.duration:.2f}s)",
            extra={
                "metadata": {
                    "session_id": self.session_id,
                    "total_tests": summary.total_tests,
                    "success": summary.success,
                }
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "start_time": datetime.fromtimestamp(self.start_time).isoformat(),
            "duration": self.duration,
            "current_environment": self.environments.current_environment_id,
            "results": len(self.store),
        }
