"""Execution environment registry and persistence."""

from .models import TestEnvironment, DEFAULT_ENVIRONMENTS
from .manager import EnvironmentManager
from .store import EnvironmentStore, FileEnvironmentStore, MemoryEnvironmentStore
from .karate_config import render_karate_config, write_karate_config

__all__ = [
    "TestEnvironment",
    "DEFAULT_ENVIRONMENTS",
    "EnvironmentManager",
    "EnvironmentStore",
    "FileEnvironmentStore",
    "MemoryEnvironmentStore",
    "render_karate_config",
    "write_karate_config",
]
