"""
Pydantic models for reporting.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, validator, ConfigDict

from ..execution.models import TestResult, TestResultStatus


class ExecutionSummary(BaseModel):
    """Aggregate view over a set of results. Derived, never persisted."""

    model_config = ConfigDict(extra="forbid")

    total_tests: int = Field(..., ge=0, description="Total number of results")
    passed: int = Field(0, ge=0, description="Number of passed results")
    failed: int = Field(0, ge=0, description="Number of failed results")
    skipped: int = Field(0, ge=0, description="Number of skipped results")
    errors: int = Field(0, ge=0, description="Number of errored results")
    pending: int = Field(0, ge=0, description="Number of results with no clear status")
    duration_ms: int = Field(0, ge=0, description="Sum of result durations in milliseconds")
    start_time: Optional[datetime] = Field(None, description="Earliest result start")
    end_time: Optional[datetime] = Field(None, description="Latest result end")
    success_rate: float = Field(0.0, ge=0, le=1, description="passed / total_tests")
    success: bool = Field(True, description="No failed and no errored results")

    @validator("success_rate", pre=True, always=True)
    def calculate_success_rate(cls, v, values):
        """Calculate success rate from test counts."""
        if values.get("total_tests", 0) > 0:
            return values.get("passed", 0) / values["total_tests"]
        return 0.0

    @validator("success", pre=True, always=True)
    def calculate_success(cls, v, values):
        return values.get("failed", 0) == 0 and values.get("errors", 0) == 0

    @property
    def success_percent(self) -> float:
        return self.success_rate * 100

    @classmethod
    def from_results(cls, results: Sequence[TestResult]) -> "ExecutionSummary":
        def count(status: TestResultStatus) -> int:
            return sum(1 for result in results if result.status == status)

        return cls(
            total_tests=len(results),
            passed=count(TestResultStatus.PASSED),
            failed=count(TestResultStatus.FAILED),
            skipped=count(TestResultStatus.SKIPPED),
            errors=count(TestResultStatus.ERROR),
            pending=count(TestResultStatus.PENDING),
            duration_ms=sum(result.duration_ms or 0 for result in results),
            start_time=min((r.start_time for r in results), default=None),
            end_time=max((r.end_time for r in results), default=None),
        )


def format_duration(ms: int) -> str:
    """Render milliseconds as ``Xm Ys``."""
    seconds = int(ms // 1000)
    return f"{seconds // 60}m {seconds % 60}s"


def summarize(results: Sequence[TestResult]) -> List[str]:
    """One line per result, used for console and log output."""
    return [
        f"{result.name}: {result.status.value.upper()} ({format_duration(result.duration_ms or 0)})"
        for result in results
    ]
