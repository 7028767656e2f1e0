"""
Asynchronous subprocess execution with combined output capture.
"""

import asyncio
import shlex
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

from ..core.exceptions import ExecutionError
from ..core.logging_config import get_logger, log_process_call

# Exit code reported for runs killed on timeout
TIMEOUT_EXIT_CODE = 124

Approver = Callable[[str, str], bool]


@dataclass
class ProcessResult:
    """Outcome of a finished process."""

    stdout: str
    exit_code: int
    duration: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


def format_command(args: Sequence[str]) -> str:
    """Shell-quoted rendering of an argument list for display."""
    return shlex.join([str(arg) for arg in args])


class ProcessRunner:
    """
    Runs external commands and captures stdout and stderr as one stream.

    Commands flagged ``require_approval`` are passed to ``approver`` first;
    without an approver they run unchecked.
    """

    def __init__(
        self,
        cwd: Optional[Path] = None,
        approver: Optional[Approver] = None,
        timeout: Optional[float] = None,
    ):
        self.cwd = Path(cwd) if cwd else None
        self.approver = approver
        self.timeout = timeout
        self.logger = get_logger(__name__)

    async def run(
        self,
        args: Sequence[str],
        name: str,
        require_approval: bool = False,
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> ProcessResult:
        """
        Run ``args`` to completion.

        Returns:
            The combined output and exit code. A non-zero exit is not an error.

        Raises:
            ExecutionError: If the command is rejected or cannot start, or on timeout
        """
        command = format_command(args)
        self._check_approval(name, command, require_approval)

        workdir = cwd or self.cwd
        limit = timeout if timeout is not None else self.timeout
        self.logger.debug(
            f"Running {name}: {command}",
            extra={"metadata": {"cwd": str(workdir) if workdir else None}},
        )

        start_time = time.time()
        try:
            process = await asyncio.create_subprocess_exec(
                *[str(arg) for arg in args],
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=str(workdir) if workdir else None,
                env=env,
            )
        except OSError as e:
            log_process_call(self.logger, name, time.time() - start_time, None, command=command)
            raise ExecutionError(
                f"Failed to start {name}: {e}",
                test_name=name,
                command=command,
            )

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            duration = time.time() - start_time
            log_process_call(self.logger, name, duration, TIMEOUT_EXIT_CODE, command=command)
            raise ExecutionError(
                f"{name} timed out after {limit}s",
                test_name=name,
                exit_code=TIMEOUT_EXIT_CODE,
                command=command,
            )

        duration = time.time() - start_time
        exit_code = process.returncode if process.returncode is not None else -1
        log_process_call(self.logger, name, duration, exit_code, command=command)

        return ProcessResult(
            stdout=(stdout or b"").decode("utf-8", errors="replace"),
            exit_code=exit_code,
            duration=duration,
        )

    async def start(
        self,
        args: Sequence[str],
        name: str,
        cwd: Optional[Path] = None,
        log_file: Optional[Path] = None,
    ) -> asyncio.subprocess.Process:
        """
        Start ``args`` in the background without waiting for it.

        Output goes to ``log_file`` when given, otherwise it is discarded.
        """
        command = format_command(args)
        workdir = cwd or self.cwd

        if log_file is not None:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            output = open(log_file, "ab")
        else:
            output = asyncio.subprocess.DEVNULL

        try:
            process = await asyncio.create_subprocess_exec(
                *[str(arg) for arg in args],
                stdout=output,
                stderr=asyncio.subprocess.STDOUT,
                cwd=str(workdir) if workdir else None,
            )
        except OSError as e:
            raise ExecutionError(
                f"Failed to start {name}: {e}",
                test_name=name,
                command=command,
            )
        finally:
            if log_file is not None:
                # The child holds its own descriptor
                output.close()

        self.logger.info(
            f"Started {name} (pid {process.pid})",
            extra={"metadata": {"command": command}},
        )
        return process

    def _check_approval(self, name: str, command: str, require_approval: bool) -> None:
        if not require_approval or self.approver is None:
            return
        if not self.approver(name, command):
            raise ExecutionError(
                f"Command was not approved: {name}",
                test_name=name,
                command=command,
            )
