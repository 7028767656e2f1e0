"""Ordered candidate probing over filesystem locations."""

from pathlib import Path
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")


def first_match(candidates: Iterable[T], predicate: Callable[[T], bool]) -> Optional[T]:
    """Return the first candidate accepted by ``predicate``, or None."""
    for candidate in candidates:
        if predicate(candidate):
            return candidate
    return None


def file_size(path: Path) -> int:
    """Size of ``path`` in bytes, or -1 when it is missing or not a file."""
    try:
        if not path.is_file():
            return -1
        return path.stat().st_size
    except OSError:
        return -1


def is_valid_file(path: Path, min_bytes: int) -> bool:
    """True when ``path`` exists as a file of at least ``min_bytes`` bytes."""
    return file_size(path) >= max(min_bytes, 0)
