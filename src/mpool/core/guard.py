"""Reentrancy guard with one slot per entry point."""

from contextlib import contextmanager
from typing import Iterator, Set

from mpool.exceptions import ReentrancyError


class ReentrancyGuard:
    """
    Mutual-exclusion flags keyed by entry point name.

    A slot is held for the duration of the ``hold`` block and released on
    every exit path, including exceptions.
    """

    def __init__(self):
        self._active: Set[str] = set()

    @contextmanager
    def hold(self, entry_point: str) -> Iterator[None]:
        if entry_point in self._active:
            raise ReentrancyError(f"Reentrant call to {entry_point}")
        self._active.add(entry_point)
        try:
            yield
        finally:
            self._active.discard(entry_point)

    def is_active(self, entry_point: str) -> bool:
        return entry_point in self._active
