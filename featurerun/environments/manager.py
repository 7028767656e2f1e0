"""
Registry of named execution environments.

Tracks which environment is current and writes every mutation through to an
``EnvironmentStore``.
"""

import time
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ConfigurationError
from ..core.logging_config import get_logger
from .karate_config import write_karate_config
from .models import TestEnvironment, DEFAULT_ENVIRONMENTS
from .store import EnvironmentStore, MemoryEnvironmentStore


class EnvironmentManager:
    """
    Owns the environment registry and the current-environment selection.

    Exactly one environment is current whenever the registry is non-empty.
    """

    def __init__(self, store: Optional[EnvironmentStore] = None):
        self.store = store or MemoryEnvironmentStore()
        self.logger = get_logger(__name__)
        self._environments: Dict[str, TestEnvironment] = {}
        self._current_id: Optional[str] = None
        self.load()

    def load(self) -> None:
        """Load the registry from the store, seeding defaults when it is empty."""
        records = self.store.load()
        self._environments = {}

        for env_id, record in records.items():
            try:
                env = TestEnvironment(**{**record, "id": record.get("id") or env_id})
            except PydanticValidationError as e:
                self.logger.warning(f"Skipping invalid stored environment '{env_id}': {e}")
                continue
            self._environments[env.id] = env

        if not self._environments:
            self._environments = {env.id: env.model_copy() for env in DEFAULT_ENVIRONMENTS}
            self._save()
            self.logger.info("Initialized default environments")

        self._current_id = None
        self._select_default()

        self.logger.info(
            f"Loaded {len(self._environments)} environments",
            extra={"metadata": {"current": self._current_id}},
        )

    def get_environment(self, environment_id: str) -> Optional[TestEnvironment]:
        return self._environments.get(environment_id)

    def get_environments(self) -> List[TestEnvironment]:
        return list(self._environments.values())

    def get_current_environment(self) -> Optional[TestEnvironment]:
        if self._current_id is None:
            return None
        return self._environments.get(self._current_id)

    @property
    def current_environment_id(self) -> Optional[str]:
        return self._current_id

    def set_current_environment(self, environment_id: str) -> TestEnvironment:
        """Select ``environment_id`` as current."""
        env = self._environments.get(environment_id)
        if env is None:
            raise ConfigurationError(
                f"Environment not found: {environment_id}",
                environment_id=environment_id,
            )
        self._current_id = environment_id
        self.logger.info(f"Current environment set to {environment_id}")
        return env

    def resolve(self, environment_id: Optional[str] = None) -> TestEnvironment:
        """
        Return the named environment, or the current one when no id is given.

        Raises:
            ConfigurationError: If the environment is unknown or none is current
        """
        if environment_id:
            env = self._environments.get(environment_id)
            if env is None:
                raise ConfigurationError(
                    f"Environment not found: {environment_id}",
                    environment_id=environment_id,
                )
            return env

        env = self.get_current_environment()
        if env is None:
            raise ConfigurationError("No environment is selected")
        return env

    def add_environment(self, environment: TestEnvironment) -> TestEnvironment:
        """
        Register a new environment.

        An empty id is replaced by ``env-<millis>``. The first environment, or
        one flagged ``is_default``, becomes current.
        """
        if not environment.id:
            environment = environment.model_copy(
                update={"id": f"env-{int(time.time() * 1000)}"}
            )

        if environment.id in self._environments:
            raise ConfigurationError(
                f"Environment already exists: {environment.id}",
                environment_id=environment.id,
            )

        self._environments[environment.id] = environment
        if environment.is_default or self._current_id is None:
            self._current_id = environment.id

        self._save()
        self.logger.info(f"Added environment {environment.id}")
        return environment

    def update_environment(self, environment_id: str, **changes) -> TestEnvironment:
        """Merge ``changes`` into an existing environment, keeping its id."""
        existing = self._environments.get(environment_id)
        if existing is None:
            raise ConfigurationError(
                f"Environment not found: {environment_id}",
                environment_id=environment_id,
            )

        changes.pop("id", None)
        # Re-validate the merged record
        updated = TestEnvironment(**{**existing.model_dump(), **changes, "id": environment_id})
        self._environments[environment_id] = updated

        if updated.is_default and self._current_id is None:
            self._current_id = environment_id

        self._save()
        self.logger.info(f"Updated environment {environment_id}")
        return updated

    def remove_environment(self, environment_id: str) -> None:
        """Remove an environment, re-selecting a default if it was current."""
        if environment_id not in self._environments:
            raise ConfigurationError(
                f"Environment not found: {environment_id}",
                environment_id=environment_id,
            )

        del self._environments[environment_id]
        if self._current_id == environment_id:
            self._current_id = None
            self._select_default()

        self._save()
        self.logger.info(
            f"Removed environment {environment_id}",
            extra={"metadata": {"current": self._current_id}},
        )

    def write_karate_config(self, path: Path) -> Path:
        """Write ``karate-config.js`` covering every registered environment."""
        return write_karate_config(path, self.get_environments(), self._current_id)

    def _select_default(self) -> None:
        if self._current_id in self._environments:
            return

        defaults = [env_id for env_id, env in self._environments.items() if env.is_default]
        if defaults:
            self._current_id = defaults[0]
        elif self._environments:
            self._current_id = next(iter(self._environments))
        else:
            self._current_id = None

    def _save(self) -> None:
        self.store.save(
            {env_id: env.model_dump() for env_id, env in self._environments.items()}
        )
