"""
Readiness gating for the dependent service under test.

``HealthPoller`` polls a check until it passes or the attempts run out, and
then lets the caller proceed either way. ``ServiceLauncher`` starts the
service in the background.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from ..core.config import Config
from ..core.logging_config import get_logger
from .notifier import StatusNotifier
from .process import ProcessRunner

CheckFn = Callable[[], Awaitable[bool]]
SleepFn = Callable[[float], Awaitable[None]]


class HealthPoller:
    """Bounded, fixed-interval readiness polling that fails open."""

    def __init__(
        self,
        notifier: Optional[StatusNotifier] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.notifier = notifier or StatusNotifier()
        self.sleep = sleep
        self.logger = get_logger(__name__)

    async def wait_until_ready(
        self,
        check_fn: CheckFn,
        max_attempts: int = 30,
        interval: float = 2.0,
        initial_delay: float = 10.0,
    ) -> bool:
        """
        Poll ``check_fn`` until it reports ready.

        A raised exception or a falsy result counts as not ready. Exhausting
        the attempts logs a warning and returns normally.

        Returns:
            True when readiness was confirmed, False when polling gave up
        """
        if initial_delay > 0:
            self.logger.info(f"Waiting {initial_delay:.0f}s before checking service health")
            self.notifier.busy(f"Waiting {initial_delay:.0f}s before health check...")
            await self.sleep(initial_delay)

        self.notifier.busy("Waiting for service to be ready...")
        for attempt in range(1, max_attempts + 1):
            try:
                ready = await check_fn()
            except Exception as e:
                self.logger.debug(f"Health check attempt {attempt}/{max_attempts} raised: {e}")
                ready = False

            if ready:
                self.logger.info(
                    "Service is ready",
                    extra={"metadata": {"attempts": attempt}},
                )
                self.notifier.success("Service is ready")
                return True

            if attempt < max_attempts:
                self.logger.debug(
                    f"Service not ready yet (attempt {attempt}/{max_attempts}), waiting..."
                )
                await self.sleep(interval)

        self.logger.warning(
            f"Service not ready after {max_attempts} attempts. Proceeding anyway.",
            extra={"metadata": {"attempts": max_attempts}},
        )
        self.notifier.busy("Service readiness check timed out, proceeding anyway")
        return False


def curl_health_check(runner: ProcessRunner, url: str) -> CheckFn:
    """A check that requests ``url`` with ``curl -s`` and passes on exit code 0."""

    async def check() -> bool:
        result = await runner.run(["curl", "-s", url], name="Service Health Check")
        return result.exit_code == 0

    return check


class ServiceLauncher:
    """Starts the dependent service command and stops it on shutdown."""

    def __init__(self, config: Config, runner: ProcessRunner):
        self.config = config
        self.runner = runner
        self.logger = get_logger(__name__)
        self._process: Optional[asyncio.subprocess.Process] = None

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self) -> None:
        """Launch the service unless it is already running."""
        if self.is_running:
            self.logger.debug("Dependent service already running")
            return

        self._process = await self.runner.start(
            self.config.service_command,
            name="Dependent Service",
            cwd=self.config.workspace_root,
            log_file=self.config.logs_dir / "service.log",
        )

    async def stop(self, timeout: float = 10.0) -> None:
        """Terminate the service, killing it if it does not exit in ``timeout``."""
        if not self.is_running:
            self._process = None
            return

        process = self._process
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
        self.logger.info("Dependent service stopped")
        self._process = None
