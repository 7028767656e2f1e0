"""
Configuration management for featurerun.

Handles environment variables, defaults, and configuration validation
for the provisioning, execution and reporting components.
"""

import os
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from pathlib import Path

PLUGIN_DIR_NAME = "testautomationagentplugin"

# Fixed waits of the pipeline, in seconds
DELAY_FIELDS = (
    "pre_execution_delay",
    "provision_settle_delay",
    "runner_settle_delay",
    "provision_verify_delay",
    "health_initial_delay",
    "health_interval",
    "verification_settle_delay",
    "coverage_report_delay",
)


@dataclass
class Config:
    """Configuration class for featurerun with environment variable support."""

    # Environment detection
    ci_mode: bool = field(default=False)

    # Logging configuration
    log_level: str = field(default="INFO")
    log_format: str = field(default="text")

    # Directory paths
    workspace_root: Path = field(default_factory=lambda: Path.cwd())
    plugin_dir: Optional[Path] = field(default=None)
    test_files_dir: Optional[Path] = field(default=None)
    reports_dir: Optional[Path] = field(default=None)
    logs_dir: Optional[Path] = field(default=None)
    environments_file: Optional[Path] = field(default=None)
    bundled_resources_dir: Optional[Path] = field(default=None)
    template_dir: Optional[Path] = field(default=None)

    # Coverage report inputs and output
    coverage_classes_dir: Optional[Path] = field(default=None)
    coverage_sources_dir: Optional[Path] = field(default=None)
    coverage_report_dir: Optional[Path] = field(default=None)

    # External tools
    java_executable: str = field(default="java")
    service_command: List[str] = field(
        default_factory=lambda: ["./gradlew", "bootRun"]
    )
    health_path: str = field(default="/actuator/health")
    process_timeout: Optional[float] = field(default=None)
    download_timeout: float = field(default=300.0)

    # Waits and retry bounds
    pre_execution_delay: float = field(default=3.0)
    provision_settle_delay: float = field(default=3.0)
    runner_settle_delay: float = field(default=8.0)
    provision_verify_retries: int = field(default=3)
    provision_verify_delay: float = field(default=1.0)
    health_initial_delay: float = field(default=10.0)
    health_max_attempts: int = field(default=30)
    health_interval: float = field(default=2.0)
    verification_settle_delay: float = field(default=15.0)
    coverage_report_delay: float = field(default=5.0)

    def __post_init__(self):
        """Post-initialization validation and setup."""
        self.workspace_root = Path(self.workspace_root)

        # CI mode
        if os.getenv("CI", "").lower() == "true" and self.ci_mode is False:
            self.ci_mode = True

        log_env = os.getenv("FEATURERUN_LOG_LEVEL")
        if log_env:
            self.log_level = log_env
        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if self.log_level.upper() not in valid_log_levels:
            self.log_level = "INFO"
        else:
            self.log_level = self.log_level.upper()

        if self.ci_mode and self.log_format == "text":
            self.log_format = "json"

        java_env = os.getenv("FEATURERUN_JAVA")
        if java_env:
            self.java_executable = java_env

        if os.getenv("FEATURERUN_FAST", "").lower() == "true":
            for name in DELAY_FIELDS:
                setattr(self, name, 0.0)

        # Derived paths default to locations under the workspace
        root = self.workspace_root
        if self.plugin_dir is None:
            self.plugin_dir = root / PLUGIN_DIR_NAME
        if self.test_files_dir is None:
            self.test_files_dir = root / "test-files"
        if self.reports_dir is None:
            self.reports_dir = root / "reports"
        if self.logs_dir is None:
            self.logs_dir = root / "logs"
        if self.environments_file is None:
            self.environments_file = root / ".featurerun" / "environments.yaml"
        if self.coverage_classes_dir is None:
            self.coverage_classes_dir = root / "build" / "classes"
        if self.coverage_sources_dir is None:
            self.coverage_sources_dir = root / "src" / "main" / "java"
        if self.coverage_report_dir is None:
            self.coverage_report_dir = root / "target" / "site" / "jacoco"

    @property
    def is_ci_mode(self) -> bool:
        """Check if running in CI environment."""
        return self.ci_mode

    @property
    def debug_enabled(self) -> bool:
        """Check if debug logging is enabled."""
        return self.log_level == "DEBUG"

    @property
    def karate_dir(self) -> Path:
        return self.plugin_dir / "karate"

    @property
    def jacoco_dir(self) -> Path:
        return self.plugin_dir / "jacoco"

    @property
    def coverage_exec_file(self) -> Path:
        """Destination file the coverage agent writes execution data to."""
        return self.jacoco_dir / "jacoco.exec"

    @property
    def karate_config_path(self) -> Path:
        return self.karate_dir / "karate-config.js"

    def get_log_file_path(self) -> Path:
        """Get the main log file path."""
        return self.logs_dir / "featurerun.log"

    def get_debug_log_dir(self) -> Path:
        """Get the debug log directory path."""
        debug_dir = self.logs_dir / "debug"
        debug_dir.mkdir(parents=True, exist_ok=True)
        return debug_dir

    def ensure_directories(self) -> None:
        """Create the working directories used by a session."""
        for directory in (
            self.karate_dir,
            self.jacoco_dir,
            self.test_files_dir,
            self.reports_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for logging."""
        return {
            "ci_mode": self.ci_mode,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "workspace_root": str(self.workspace_root),
            "plugin_dir": str(self.plugin_dir),
            "test_files_dir": str(self.test_files_dir),
            "reports_dir": str(self.reports_dir),
            "logs_dir": str(self.logs_dir),
            "environments_file": str(self.environments_file),
            "java_executable": self.java_executable,
            "service_command": list(self.service_command),
            "health_path": self.health_path,
            "delays": {name: getattr(self, name) for name in DELAY_FIELDS},
        }

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        ci = os.getenv("CI", "").lower() == "true"
        workspace = os.getenv("FEATURERUN_WORKSPACE")

        return cls(
            ci_mode=ci,
            log_level=os.getenv("FEATURERUN_LOG_LEVEL", "INFO").upper(),
            log_format="json" if ci else "text",
            workspace_root=Path(workspace) if workspace else Path.cwd(),
            java_executable=os.getenv("FEATURERUN_JAVA", "java"),
        )

    def validate(self) -> None:
        """Validate configuration and raise ValidationError if invalid."""
        from .exceptions import ValidationError

        errors = []

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if self.log_level not in valid_log_levels:
            errors.append(
                f"Invalid log level: {self.log_level}. Must be one of {valid_log_levels}"
            )

        if self.log_format not in ("text", "json"):
            errors.append(f"Invalid log format: {self.log_format}")

        if not self.workspace_root.is_dir():
            errors.append(f"workspace directory does not exist: {self.workspace_root}")

        if not self.java_executable:
            errors.append("Java executable must not be empty")

        if not self.service_command:
            errors.append("Service command must not be empty")

        for name in DELAY_FIELDS:
            if getattr(self, name) < 0:
                errors.append(f"{name} must not be negative")

        if self.provision_verify_retries < 1:
            errors.append("provision_verify_retries must be at least 1")
        if self.health_max_attempts < 1:
            errors.append("health_max_attempts must be at least 1")

        if errors:
            message = "Configuration validation failed: " + "; ".join(errors)
            raise ValidationError(
                message,
                validation_type="config",
                violations=errors,
            )
