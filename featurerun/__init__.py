"""
featurerun - Karate Test Execution Orchestrator

Provisions the Karate runner and JaCoCo binaries, runs feature files against
named environments, verifies the runner's reports and summarizes the results.
"""

__version__ = "0.1.0"
__author__ = "featurerun Team"

from .core.config import Config
from .core.exceptions import FeatureRunError
from .core.logging_config import setup_logging

__all__ = [
    "Config",
    "FeatureRunError",
    "setup_logging",
]
