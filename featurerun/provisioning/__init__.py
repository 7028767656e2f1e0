"""On-demand provisioning of the runner and coverage binaries."""

from .models import (
    DependencySpec,
    COVERAGE_AGENT,
    KARATE_RUNNER,
    COVERAGE_CLI,
    coverage_agent_spec,
    karate_runner_spec,
    coverage_cli_spec,
)
from .transports import Transport, CurlTransport, HttpTransport
from .provisioner import DependencyProvisioner

__all__ = [
    "DependencySpec",
    "COVERAGE_AGENT",
    "KARATE_RUNNER",
    "COVERAGE_CLI",
    "coverage_agent_spec",
    "karate_runner_spec",
    "coverage_cli_spec",
    "Transport",
    "CurlTransport",
    "HttpTransport",
    "DependencyProvisioner",
]
