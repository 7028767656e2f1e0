"""
Dependency provisioner.

Makes sure each required binary exists locally and is plausibly complete.
Local copies are preferred; download transports are tried in order after
that.
"""

import asyncio
import shutil
import time
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from ..core.config import Config
from ..core.exceptions import DependencyError
from ..core.logging_config import get_logger, log_performance
from ..core.paths import file_size, first_match, is_valid_file
from ..execution.notifier import StatusNotifier
from ..execution.process import ProcessRunner
from .models import (
    DependencySpec,
    coverage_agent_spec,
    karate_runner_spec,
)
from .transports import CurlTransport, HttpTransport, Transport

SleepFn = Callable[[float], Awaitable[None]]


class DependencyProvisioner:
    """
    Guarantees required binaries are present and size-valid.

    A spec that already has a valid candidate is accepted without touching
    the network, so repeated calls are cheap.
    """

    def __init__(
        self,
        config: Config,
        transports: Optional[Sequence[Transport]] = None,
        runner: Optional[ProcessRunner] = None,
        notifier: Optional[StatusNotifier] = None,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.config = config
        self.notifier = notifier or StatusNotifier()
        self.sleep = sleep
        self.logger = get_logger(__name__)

        if transports is None:
            runner = runner or ProcessRunner(cwd=config.workspace_root)
            transports = [
                CurlTransport(runner, timeout=config.download_timeout),
                HttpTransport(timeout=config.download_timeout),
            ]
        self.transports: List[Transport] = list(transports)

    def default_specs(self) -> List[DependencySpec]:
        """The coverage agent and the runner, in provisioning order."""
        return [coverage_agent_spec(self.config), karate_runner_spec(self.config)]

    async def ensure_all(
        self, specs: Optional[Iterable[DependencySpec]] = None
    ) -> Dict[str, Path]:
        """Provision every spec, returning the resolved path per dependency name."""
        resolved = {}
        for spec in specs if specs is not None else self.default_specs():
            resolved[spec.name] = await self.ensure(spec)
        return resolved

    async def ensure(self, spec: DependencySpec) -> Path:
        """
        Provision one dependency.

        Returns:
            Path of a valid copy of the binary

        Raises:
            DependencyError: If no candidate, fallback or transport produced one
        """
        start_time = time.time()

        existing = self.find_valid(spec)
        if existing is not None:
            self.logger.debug(
                f"{spec.name} already present at {existing}",
                extra={"metadata": {"size": file_size(existing)}},
            )
            return existing

        target = spec.install_path
        self.notifier.busy(f"Provisioning {spec.name}...")

        if self._copy_fallback(spec, target):
            self._mirror(spec, target)
            self.notifier.success(f"{spec.name} ready")
            return target

        attempts: List[str] = []
        for transport in self.transports:
            self.logger.info(
                f"Downloading {spec.name} via {transport.name}",
                extra={"metadata": {"url": spec.download_url, "target": str(target)}},
            )
            try:
                await transport.download(spec.download_url, target)
            except Exception as e:
                attempts.append(f"{transport.name}: {e}")
                self.logger.warning(f"{transport.name} download of {spec.name} failed: {e}")
                self._discard_partial(target)
                continue

            await self.sleep(self.config.provision_settle_delay + spec.extra_settle_delay)

            if await self._verify(spec, target):
                self._mirror(spec, target)
                log_performance(
                    self.logger,
                    f"provision_{spec.name}",
                    time.time() - start_time,
                    transport=transport.name,
                    size=file_size(target),
                )
                self.notifier.success(f"{spec.name} ready")
                return target

            attempts.append(
                f"{transport.name}: file missing or smaller than {spec.min_valid_bytes} bytes"
            )
            self._discard_partial(target)

        self.notifier.error(f"Could not provision {spec.name}")
        raise DependencyError(
            f"Failed to provision {spec.name} after trying every fallback and transport",
            dependency=spec.name,
            attempts=attempts,
        )

    def find_valid(self, spec: DependencySpec) -> Optional[Path]:
        """First candidate path holding a size-valid file."""
        return first_match(
            spec.candidate_paths, lambda path: is_valid_file(path, spec.min_valid_bytes)
        )

    def _copy_fallback(self, spec: DependencySpec, target: Path) -> bool:
        source = first_match(
            spec.fallback_sources, lambda path: is_valid_file(path, spec.min_valid_bytes)
        )
        if source is None:
            return False

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as e:
            self.logger.warning(f"Could not copy {spec.name} from {source}: {e}")
            return False

        if not is_valid_file(target, spec.min_valid_bytes):
            self.logger.warning(f"Copied {spec.name} from {source} but the copy is incomplete")
            self._discard_partial(target)
            return False

        self.logger.info(f"Copied {spec.name} from local fallback {source}")
        return True

    async def _verify(self, spec: DependencySpec, target: Path) -> bool:
        retries = self.config.provision_verify_retries
        for attempt in range(1, retries + 1):
            if is_valid_file(target, spec.min_valid_bytes):
                self.logger.info(
                    f"Verified {spec.name} ({file_size(target)} bytes)",
                    extra={"metadata": {"attempt": attempt}},
                )
                return True
            if attempt < retries:
                await self.sleep(self.config.provision_verify_delay)

        self.logger.warning(
            f"{spec.name} failed verification",
            extra={"metadata": {"size": file_size(target), "min_bytes": spec.min_valid_bytes}},
        )
        return False

    def _mirror(self, spec: DependencySpec, source: Path) -> None:
        for mirror in spec.mirror_paths:
            if mirror == source or is_valid_file(mirror, spec.min_valid_bytes):
                continue
            try:
                mirror.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(source, mirror)
                self.logger.debug(f"Mirrored {spec.name} to {mirror}")
            except OSError as e:
                self.logger.warning(f"Could not mirror {spec.name} to {mirror}: {e}")

    def _discard_partial(self, target: Path) -> None:
        try:
            target.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.logger.warning(f"Could not remove partial download {target}: {e}")
