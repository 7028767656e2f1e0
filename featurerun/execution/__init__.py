"""
Test execution components for featurerun.

This package provides command construction, process execution, readiness
gating, scheduling and completion verification for runner artifacts.
"""

from .models import (
    ArtifactFormat,
    ExecutionOptions,
    FileRefArtifact,
    InlineArtifact,
    TestCase,
    TestResult,
    TestResultStatus,
    resolve_artifact,
)
from .process import ProcessResult, ProcessRunner
from .notifier import StatusNotifier, LoggingStatusNotifier, ConsoleStatusNotifier
from .command_builder import CommandBuilder, ExecutionCommand
from .health import HealthPoller, ServiceLauncher, curl_health_check

__all__ = [
    "ArtifactFormat",
    "ExecutionOptions",
    "FileRefArtifact",
    "InlineArtifact",
    "TestCase",
    "TestResult",
    "TestResultStatus",
    "resolve_artifact",
    "ProcessResult",
    "ProcessRunner",
    "StatusNotifier",
    "LoggingStatusNotifier",
    "ConsoleStatusNotifier",
    "CommandBuilder",
    "ExecutionCommand",
    "HealthPoller",
    "ServiceLauncher",
    "curl_health_check",
]
