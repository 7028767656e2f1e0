"""
Descriptions of the external binaries a session depends on.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from ..core.config import Config

COVERAGE_AGENT = "coverage-agent"
KARATE_RUNNER = "karate-runner"
COVERAGE_CLI = "coverage-cli"

JACOCO_VERSION = "0.8.10"
KARATE_VERSION = "1.4.0"

JACOCO_AGENT_URL = (
    "https://repo1.maven.org/maven2/org/jacoco/org.jacoco.agent/"
    f"{JACOCO_VERSION}/org.jacoco.agent-{JACOCO_VERSION}-runtime.jar"
)
JACOCO_CLI_URL = (
    "https://repo1.maven.org/maven2/org/jacoco/org.jacoco.cli/"
    f"{JACOCO_VERSION}/org.jacoco.cli-{JACOCO_VERSION}-nodeps.jar"
)
KARATE_URL = (
    "https://github.com/karatelabs/karate/releases/download/"
    f"v{KARATE_VERSION}/karate-{KARATE_VERSION}.jar"
)


@dataclass(frozen=True)
class DependencySpec:
    """
    One required binary.

    ``candidate_paths`` are checked in order and the first one is the install
    target. ``min_valid_bytes`` is the size below which a file is treated as a
    failed or truncated download.
    """

    name: str
    candidate_paths: Tuple[Path, ...]
    download_url: str
    min_valid_bytes: int
    fallback_sources: Tuple[Path, ...] = field(default_factory=tuple)
    mirror_paths: Tuple[Path, ...] = field(default_factory=tuple)
    extra_settle_delay: float = 0.0

    @property
    def install_path(self) -> Path:
        return self.candidate_paths[0]


def coverage_agent_spec(config: Config) -> DependencySpec:
    return DependencySpec(
        name=COVERAGE_AGENT,
        candidate_paths=(config.jacoco_dir / "jacocoagent.jar",),
        download_url=JACOCO_AGENT_URL,
        min_valid_bytes=1000,
        mirror_paths=(config.workspace_root / "jacoco" / "jacocoagent.jar",),
    )


def karate_runner_spec(config: Config) -> DependencySpec:
    fallbacks = [config.workspace_root / "karate.jar"]
    if config.bundled_resources_dir is not None:
        fallbacks.append(config.bundled_resources_dir / "karate.jar")

    return DependencySpec(
        name=KARATE_RUNNER,
        candidate_paths=(config.karate_dir / "karate.jar",),
        download_url=KARATE_URL,
        min_valid_bytes=5_000_000,
        fallback_sources=tuple(fallbacks),
        extra_settle_delay=config.runner_settle_delay,
    )


def coverage_cli_spec(config: Config) -> DependencySpec:
    return DependencySpec(
        name=COVERAGE_CLI,
        candidate_paths=(config.jacoco_dir / "jacococli.jar",),
        download_url=JACOCO_CLI_URL,
        min_valid_bytes=10_000,
        mirror_paths=(config.workspace_root / "jacoco" / "jacococli.jar",),
    )
