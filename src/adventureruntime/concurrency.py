"""Per-game serialisation and the logical clock used for location updates."""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator

from .errors import GameBusy


class _GameLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class GameLocks:
    """Registry holding one mutual-exclusion lock per game.

    Mutating operations call :meth:`hold` for the game they change. When the
    lock cannot be taken within ``busy_timeout`` seconds the request is
    rejected with :class:`GameBusy` rather than interleaved with the running
    operation. A timeout of ``0`` rejects immediately. A game's entry only
    lives while some caller holds or waits for it.
    """

    def __init__(self, *, busy_timeout: float = 0.0) -> None:
        if busy_timeout < 0:
            raise ValueError("busy_timeout must not be negative")
        self.busy_timeout = busy_timeout
        self._locks: Dict[int, _GameLock] = {}
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    def _enter(self, game_id: int) -> _GameLock:
        with self._registry_lock:
            entry = self._locks.get(game_id)
            if entry is None:
                entry = _GameLock()
                self._locks[game_id] = entry
            entry.users += 1
            return entry

    def _leave(self, game_id: int, entry: _GameLock) -> None:
        with self._registry_lock:
            entry.users -= 1
            if entry.users == 0:
                self._locks.pop(game_id, None)

    @contextmanager
    def hold(self, game_id: int) -> Iterator[None]:
        """Serialise the enclosed block against other work on ``game_id``."""

        entry = self._enter(game_id)
        try:
            if self.busy_timeout > 0:
                acquired = entry.lock.acquire(timeout=self.busy_timeout)
            else:
                acquired = entry.lock.acquire(blocking=False)
            if not acquired:
                raise GameBusy(game_id)
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._leave(game_id, entry)

    def is_busy(self, game_id: int) -> bool:
        """Return ``True`` while an operation holds the lock for ``game_id``."""

        with self._registry_lock:
            entry = self._locks.get(game_id)
        return entry is not None and entry.lock.locked()


class LogicalClock:
    """Strictly increasing timestamp source.

    Values follow the wall clock in nanoseconds but never repeat or go
    backwards, even when the wall clock does.
    """

    def __init__(self, source: Callable[[], int] = time.time_ns) -> None:
        self._source = source
        self._last = 0
        self._lock = threading.Lock()

    def tick(self) -> int:
        with self._lock:
            self._last = max(self._last + 1, int(self._source()))
            return self._last


__all__ = ["GameLocks", "LogicalClock"]
