"""Request generation tracking.

Every request the controller issues gets a generation. Only the result
carrying the current generation may change what the user sees; anything
older is a stale request and is dropped on arrival.

Generations are scoped: reset() opens a fresh scope (a new session) and
makes every id handed out before it stale, whatever its sequence number.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class Generation:
    """Identifier of one issued request."""

    scope: int
    sequence: int

    def __str__(self) -> str:
        return f"{self.scope}.{self.sequence}"


class GenerationTracker:
    """Hands out generations and answers whether one is still current.

    Thread-safe: next_generation() is called on the interactive thread,
    is_current() may be called from anywhere.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._scopes = itertools.count(1)
        self._scope = next(self._scopes)
        self._sequences = itertools.count(1)
        self._current: Generation | None = None

    @property
    def current(self) -> Generation | None:
        with self._lock:
            return self._current

    @property
    def scope(self) -> int:
        with self._lock:
            return self._scope

    def next_generation(self) -> Generation:
        """Issue a new generation; every earlier one becomes stale."""
        with self._lock:
            self._current = Generation(self._scope, next(self._sequences))
            return self._current

    def is_current(self, generation: Generation) -> bool:
        with self._lock:
            return generation == self._current

    def reset(self) -> int:
        """Start a fresh scope and invalidate all prior generations.

        Returns:
            The new scope id
        """
        with self._lock:
            self._scope = next(self._scopes)
            self._sequences = itertools.count(1)
            self._current = None
            return self._scope
