"""
Status sinks that observe pipeline stage transitions.
"""

import sys
from typing import List, TextIO, Tuple

from ..core.logging_config import get_logger


class StatusNotifier:
    """Receives stage messages. Implementations must not raise."""

    def busy(self, message: str) -> None:
        pass

    def success(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        pass


class LoggingStatusNotifier(StatusNotifier):
    """Forwards status messages to the ``featurerun.status`` logger."""

    def __init__(self):
        self.logger = get_logger("featurerun.status")

    def busy(self, message: str) -> None:
        self.logger.info(message, extra={"metadata": {"state": "busy"}})

    def success(self, message: str) -> None:
        self.logger.info(message, extra={"metadata": {"state": "success"}})

    def error(self, message: str) -> None:
        self.logger.error(message, extra={"metadata": {"state": "error"}})


class ConsoleStatusNotifier(StatusNotifier):
    """Prints status lines for interactive CLI use."""

    def __init__(self, stream: TextIO = None):
        self.stream = stream or sys.stdout

    def busy(self, message: str) -> None:
        print(f"⏳ {message}", file=self.stream)

    def success(self, message: str) -> None:
        print(f"✅ {message}", file=self.stream)

    def error(self, message: str) -> None:
        print(f"❌ {message}", file=self.stream)


class RecordingStatusNotifier(StatusNotifier):
    """Keeps every message in order as ``(state, message)`` pairs."""

    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def busy(self, message: str) -> None:
        self.messages.append(("busy", message))

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))
