"""
Data models for test execution.

Defines the caller-facing test case and option models, the resolved artifact
variants the scheduler works with, and the immutable test result.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, Field, validator, ConfigDict


class TestResultStatus(Enum):
    """Terminal status of one execution attempt."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"
    SKIPPED = "skipped"
    PENDING = "pending"


class ArtifactFormat(Enum):
    """Recognized test artifact formats."""

    KARATE = "karate"
    JAVASCRIPT = "javascript"

    @property
    def extension(self) -> str:
        return ".feature" if self is ArtifactFormat.KARATE else ".js"

    @property
    def is_black_box(self) -> bool:
        """The runner consumes these files unmodified, so nothing can be instrumented."""
        return self is ArtifactFormat.KARATE

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> Optional["ArtifactFormat"]:
        suffix = Path(path).suffix.lower()
        for fmt in cls:
            if fmt.extension == suffix:
                return fmt
        return None


def utc_now_ms() -> datetime:
    """Current UTC time truncated to whole milliseconds."""
    now = datetime.utcnow()
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


class TestCase(BaseModel):
    """A structured test artifact supplied by the caller."""

    __test__ = False

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Test case identifier")
    name: Optional[str] = Field(None, description="Display name, defaults to the id")
    format: ArtifactFormat = Field(ArtifactFormat.KARATE, description="Artifact format")
    content: Optional[str] = Field(None, description="Inline test source")
    file_path: Optional[str] = Field(None, description="Existing test file on disk")

    @validator("id")
    def validate_id(cls, v):
        if not v or not v.strip():
            raise ValueError("Test case id cannot be empty")
        return v.strip()


@dataclass(frozen=True)
class InlineArtifact:
    """Test source held in memory, written to disk only for the run."""

    id: str
    name: str
    format: ArtifactFormat
    content: str

    @property
    def artifact_id(self) -> str:
        return self.id

    @property
    def display_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class FileRefArtifact:
    """An existing test file that is executed in place."""

    path: Path

    @property
    def artifact_id(self) -> str:
        return str(self.path)

    @property
    def display_name(self) -> str:
        return self.path.stem

    @property
    def format(self) -> Optional[ArtifactFormat]:
        return ArtifactFormat.from_path(self.path)


ResolvedArtifact = Union[InlineArtifact, FileRefArtifact]
ArtifactInput = Union[TestCase, str, Path, InlineArtifact, FileRefArtifact]


def resolve_artifact(item: ArtifactInput) -> ResolvedArtifact:
    """Normalize a caller-supplied artifact into its resolved variant."""
    if isinstance(item, (InlineArtifact, FileRefArtifact)):
        return item
    if isinstance(item, (str, Path)):
        return FileRefArtifact(path=Path(item))
    if isinstance(item, TestCase):
        if item.content:
            return InlineArtifact(
                id=item.id,
                name=item.name or item.id,
                format=item.format,
                content=item.content,
            )
        if item.file_path:
            return FileRefArtifact(path=Path(item.file_path))
        # Nothing to run; kept so the scheduler can count it as filtered
        return InlineArtifact(id=item.id, name=item.name or item.id, format=item.format, content="")
    raise TypeError(f"Unsupported artifact type: {type(item).__name__}")


def is_runnable(artifact: ResolvedArtifact) -> bool:
    """True for artifacts the runner accepts: .feature files or non-empty inline source."""
    if isinstance(artifact, FileRefArtifact):
        return artifact.format is ArtifactFormat.KARATE
    return bool(artifact.content.strip())


class ExecutionOptions(BaseModel):
    """Options for one scheduling pass."""

    model_config = ConfigDict(extra="forbid")

    environment_id: Optional[str] = Field(None, description="Environment to run against, current when unset")
    tags: List[str] = Field(default_factory=list, description="Runner tag filters")
    parallel: bool = Field(False, description="Run every artifact concurrently")
    fail_fast: bool = Field(False, description="Stop a sequential run at the first non-passing result")
    output_path: Optional[str] = Field(None, description="Runner output directory")
    report_path: Optional[str] = Field(None, description="Runner report directory")
    with_coverage: bool = Field(False, description="Attach the coverage agent where the format allows")
    start_dependent_service: bool = Field(False, description="Start and await the dependent service first")

    @validator("tags", pre=True)
    def split_tags(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        return [tag.strip() for tag in v if tag and tag.strip()]


class TestResult(BaseModel):
    """Immutable outcome of one execution attempt."""

    __test__ = False

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., description="Unique result identifier")
    artifact_id: str = Field(..., description="Identifier of the executed artifact")
    name: str = Field(..., description="Display name")
    status: TestResultStatus = Field(..., description="Terminal status")
    start_time: datetime = Field(..., description="Attempt start, UTC")
    end_time: datetime = Field(..., description="Attempt end, UTC")
    duration_ms: Optional[int] = Field(None, description="end_time - start_time in milliseconds")
    output: str = Field("", description="Combined runner output")
    error_message: Optional[str] = Field(None, description="Error message when the attempt errored")
    stack_trace: Optional[str] = Field(None, description="Stack trace when the attempt errored")
    environment_id: str = Field(..., description="Environment the attempt ran against")
    feature_name: Optional[str] = Field(None, description="Feature file name without extension")
    exit_code: Optional[int] = Field(None, description="Runner exit code")

    @validator("end_time")
    def validate_end_time(cls, v, values):
        start = values.get("start_time")
        if start is not None and v < start:
            raise ValueError("end_time must not precede start_time")
        return v

    @validator("duration_ms", always=True)
    def calculate_duration(cls, v, values):
        start = values.get("start_time")
        end = values.get("end_time")
        if start is None or end is None:
            return v
        expected = (end - start) // timedelta(milliseconds=1)
        if v is not None and v != expected:
            raise ValueError("duration_ms must equal end_time - start_time")
        return expected

    @property
    def duration_seconds(self) -> float:
        return (self.duration_ms or 0) / 1000.0

    def to_report_dict(self) -> dict:
        """camelCase rendering used by the JSON report."""
        return {
            "id": self.id,
            "artifactId": self.artifact_id,
            "name": self.name,
            "status": self.status.value,
            "durationMs": self.duration_ms,
            "startTime": self.start_time.isoformat() + "Z",
            "endTime": self.end_time.isoformat() + "Z",
            "environmentId": self.environment_id,
            "featureName": self.feature_name,
            "exitCode": self.exit_code,
            "errorMessage": self.error_message,
            "stackTrace": self.stack_trace,
            "output": self.output,
        }
