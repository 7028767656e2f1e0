"""
In-memory store of produced test results.
"""

import threading
from typing import Dict, List, Optional

from ..execution.models import TestResult


class ResultStore:
    """
    Results keyed by id, in insertion order.

    Inserts are append-only; a lock makes them safe across threads.
    """

    def __init__(self):
        self._results: Dict[str, TestResult] = {}
        self._lock = threading.Lock()

    def add(self, result: TestResult) -> None:
        with self._lock:
            if result.id in self._results:
                raise ValueError(f"Duplicate result id: {result.id}")
            self._results[result.id] = result

    def get_result(self, result_id: str) -> Optional[TestResult]:
        with self._lock:
            return self._results.get(result_id)

    def get_all_results(self) -> List[TestResult]:
        with self._lock:
            return list(self._results.values())

    def get_results_for_artifact(self, artifact_id: str) -> List[TestResult]:
        with self._lock:
            return [r for r in self._results.values() if r.artifact_id == artifact_id]

    def get_latest_for_artifact(self, artifact_id: str) -> Optional[TestResult]:
        """The matching result with the latest ``end_time``, or None."""
        matches = self.get_results_for_artifact(artifact_id)
        if not matches:
            return None
        return max(matches, key=lambda r: r.end_time)

    def clear(self) -> None:
        with self._lock:
            self._results.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)
