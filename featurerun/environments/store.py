"""
Persistence backends for the environment registry.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Any

import yaml

from ..core.exceptions import FileOperationError


class EnvironmentStore(ABC):
    """Loads and saves environment records keyed by id."""

    @abstractmethod
    def load(self) -> Dict[str, Dict[str, Any]]:
        """Return every stored record keyed by environment id."""

    @abstractmethod
    def save(self, environments: Dict[str, Dict[str, Any]]) -> None:
        """Replace the stored records."""


class MemoryEnvironmentStore(EnvironmentStore):
    """Keeps records in memory only."""

    def __init__(self, initial: Dict[str, Dict[str, Any]] = None):
        self._records = dict(initial or {})
        self.save_count = 0

    def load(self) -> Dict[str, Dict[str, Any]]:
        return {key: dict(value) for key, value in self._records.items()}

    def save(self, environments: Dict[str, Dict[str, Any]]) -> None:
        self._records = {key: dict(value) for key, value in environments.items()}
        self.save_count += 1


class FileEnvironmentStore(EnvironmentStore):
    """
    Stores records in a YAML file, or JSON when the file ends in ``.json``.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def is_json(self) -> bool:
        return self.path.suffix.lower() == ".json"

    def load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}

        try:
            text = self.path.read_text(encoding="utf-8")
            if self.is_json:
                data = json.loads(text) if text.strip() else {}
            else:
                data = yaml.safe_load(text) or {}
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise FileOperationError(
                f"Failed to read environments: {e}",
                file_path=str(self.path),
                operation="read",
            )

        if not isinstance(data, dict):
            raise FileOperationError(
                "Environments file must contain a mapping of id to environment",
                file_path=str(self.path),
                operation="read",
            )
        return data

    def save(self, environments: Dict[str, Dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                if self.is_json:
                    json.dump(environments, f, indent=2)
                else:
                    yaml.safe_dump(environments, f, sort_keys=False)
        except OSError as e:
            raise FileOperationError(
                f"Failed to save environments: {e}",
                file_path=str(self.path),
                operation="write",
            )
