"""
Base exception classes for featurerun.

Provides a hierarchy of exceptions for the error types that can occur while
provisioning, executing and reporting on test runs.
"""

from typing import Optional, Dict, Any, List


class FeatureRunError(Exception):
    """Base exception class for all featurerun errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


class ConfigurationError(FeatureRunError):
    """Raised when an environment is unknown or no environment is selected."""

    def __init__(
        self,
        message: str,
        environment_id: Optional[str] = None,
    ):
        super().__init__(message, "CONFIGURATION_ERROR")
        self.environment_id = environment_id
        self.context.update({"environment_id": environment_id})


class DependencyError(FeatureRunError):
    """Raised when a required binary could not be provisioned."""

    def __init__(
        self,
        message: str,
        dependency: Optional[str] = None,
        attempts: Optional[List[str]] = None,
    ):
        super().__init__(message, "DEPENDENCY_UNAVAILABLE")
        self.dependency = dependency
        self.attempts = attempts or []
        self.context.update(
            {
                "dependency": dependency,
                "attempts": self.attempts,
            }
        )


class ExecutionError(FeatureRunError):
    """Raised when a process cannot be launched or its run fails."""

    def __init__(
        self,
        message: str,
        test_name: Optional[str] = None,
        exit_code: Optional[int] = None,
        command: Optional[str] = None,
    ):
        super().__init__(message, "EXECUTION_FAILED")
        self.test_name = test_name
        self.exit_code = exit_code
        self.command = command
        self.context.update(
            {
                "test_name": test_name,
                "exit_code": exit_code,
                "command": command,
            }
        )


class VerificationError(FeatureRunError):
    """Raised when no runner report could be located after a batch."""

    def __init__(
        self,
        message: str,
        searched_paths: Optional[List[str]] = None,
    ):
        super().__init__(message, "VERIFICATION_FAILED")
        self.searched_paths = searched_paths or []
        self.context.update({"searched_paths": self.searched_paths})


class ReportGenerationError(FeatureRunError):
    """Raised when a summary or coverage report cannot be produced."""

    def __init__(
        self,
        message: str,
        format_name: Optional[str] = None,
        output_path: Optional[str] = None,
    ):
        super().__init__(message, "REPORT_GENERATION_FAILED")
        self.format_name = format_name
        self.output_path = output_path
        self.context.update(
            {
                "format_name": format_name,
                "output_path": output_path,
            }
        )


class FileOperationError(FeatureRunError):
    """Raised when file system operations fail."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message, "FILE_OPERATION_FAILED")
        self.file_path = file_path
        self.operation = operation
        self.context.update(
            {
                "file_path": file_path,
                "operation": operation,
            }
        )


class ValidationError(FeatureRunError):
    """Raised when validation fails."""

    def __init__(
        self,
        message: str,
        validation_type: Optional[str] = None,
        violations: Optional[list] = None,
    ):
        super().__init__(message, "VALIDATION_FAILED")
        self.validation_type = validation_type
        self.violations = violations or []
        self.context.update(
            {
                "validation_type": validation_type,
                "violations": violations,
            }
        )
