"""Per-key serialization for read-modify-write sequences.

Writes to one cart or one order must not interleave: each one re-reads the
stored state, validates against it and writes, and the next writer for the
same key starts only after that. Writes to different keys never wait on
each other. The locks are process-local; a single authoritative store and
process is assumed.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class _Entry:
    lock: threading.RLock = field(default_factory=threading.RLock)
    users: int = 0  # holders and waiters


class KeyedLock:
    """A re-entrant lock per key, kept only while someone holds or waits for it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _enter(self, key) -> _Entry:
        with self._guard:
            entry = self._entries.setdefault(key, _Entry())
            entry.users += 1
            return entry

    def _leave(self, key, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, key):
        key = str(key)
        entry = self._enter(key)
        try:
            with entry.lock:
                yield
        finally:
            self._leave(key, entry)


cart_locks = KeyedLock()
record_locks = KeyedLock()
