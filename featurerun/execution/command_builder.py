"""
Builds runner command lines for single test artifacts.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..core.config import Config
from ..core.logging_config import get_logger
from .models import ArtifactFormat, ExecutionOptions
from .process import format_command

REPORT_FORMATS = "html,json,xml"


@dataclass
class ExecutionCommand:
    """A ready-to-run argument list plus what went into it."""

    args: List[str]
    coverage_enabled: bool
    coverage_downgraded: bool = False
    notes: List[str] = field(default_factory=list)

    @property
    def display(self) -> str:
        return format_command(self.args)


class CommandBuilder:
    """
    Constructs ``java -jar karate.jar`` invocations.

    The artifact format decides instrumentation: black-box formats never get
    the coverage agent, whatever the caller asked for.
    """

    def __init__(self, config: Config):
        self.config = config
        self.logger = get_logger(__name__)

    def build(
        self,
        test_file: Path,
        artifact_format: Optional[ArtifactFormat],
        environment_id: str,
        options: ExecutionOptions,
        runner_path: Path,
        agent_path: Optional[Path] = None,
    ) -> ExecutionCommand:
        """
        Build the command for one artifact.

        Args:
            test_file: File handed to the runner
            artifact_format: Recognized format of the file, None if unknown
            environment_id: Value for the runner's ``-e`` switch
            options: Scheduling options (tags, directories, coverage)
            runner_path: Runner jar
            agent_path: Coverage agent jar, needed only when coverage applies

        Returns:
            The command with its coverage decision recorded
        """
        fmt = artifact_format or ArtifactFormat.from_path(test_file) or ArtifactFormat.KARATE
        notes: List[str] = []

        coverage = options.with_coverage
        downgraded = False
        if coverage and fmt.is_black_box:
            coverage = False
            downgraded = True
            notes.append(f"coverage disabled for {fmt.value} artifact {test_file.name}")
            self.logger.info(
                f"Coverage agent not attached to black-box artifact: {test_file.name}",
                extra={"metadata": {"format": fmt.value, "requested": True}},
            )
        if coverage and agent_path is None:
            coverage = False
            notes.append("coverage agent unavailable")
            self.logger.warning("Coverage requested but no agent path was provided")

        args: List[str] = [self.config.java_executable]
        if coverage:
            args.append(f"-javaagent:{agent_path}=destfile={self.config.coverage_exec_file}")

        args.extend(["-jar", str(runner_path), "-e", environment_id])

        if options.tags:
            args.extend(["-t", ",".join(options.tags)])

        output_dir = options.output_path or str(self.config.karate_dir)
        args.extend(["-o", str(output_dir)])

        if options.report_path:
            args.extend(["--report-dir", str(options.report_path)])

        args.extend(["-f", REPORT_FORMATS, str(test_file)])

        command = ExecutionCommand(
            args=args,
            coverage_enabled=coverage,
            coverage_downgraded=downgraded,
            notes=notes,
        )
        self.logger.debug(f"Built command: {command.display}")
        return command
