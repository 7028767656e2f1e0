"""Result storage and report generation."""

from .store import ResultStore
from .models import ExecutionSummary, format_duration
from .formats import (
    ReportFormatter,
    HtmlReportFormat,
    JsonReportFormat,
    JunitReportFormat,
)
from .generator import ReportGenerator

__all__ = [
    "ResultStore",
    "ExecutionSummary",
    "format_duration",
    "ReportFormatter",
    "HtmlReportFormat",
    "JsonReportFormat",
    "JunitReportFormat",
    "ReportGenerator",
]
