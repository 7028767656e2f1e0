"""Heuristic test status detection from runner output."""

import re

from .models import TestResultStatus

FAILURE_MARKERS = ("FAILED", "failed:", "AssertionError", "error:", "Error:")
SKIP_MARKERS = ("SKIPPED", "skipped:")
PASS_MARKERS = ("PASSED", "passed:", "Success:")

# Runner summary lines such as "1 Scenario 1 passed"
PASS_SUMMARY = re.compile(r"\b\d+\s+passed\b")


def parse_test_status(output: str) -> TestResultStatus:
    """
    Classify runner output.

    Checks run in order: any failure marker wins, then skip markers, then
    pass markers. Output with none of them is PENDING.
    """
    if any(marker in output for marker in FAILURE_MARKERS):
        return TestResultStatus.FAILED
    if any(marker in output for marker in SKIP_MARKERS):
        return TestResultStatus.SKIPPED
    if any(marker in output for marker in PASS_MARKERS) or PASS_SUMMARY.search(output):
        return TestResultStatus.PASSED
    return TestResultStatus.PENDING
