"""Core components for featurerun."""

from .config import Config
from .exceptions import (
    FeatureRunError,
    ConfigurationError,
    DependencyError,
    ExecutionError,
    VerificationError,
    ReportGenerationError,
    FileOperationError,
    ValidationError,
)
from .logging_config import setup_logging

__all__ = [
    "Config",
    "FeatureRunError",
    "ConfigurationError",
    "DependencyError",
    "ExecutionError",
    "VerificationError",
    "ReportGenerationError",
    "FileOperationError",
    "ValidationError",
    "setup_logging",
]
