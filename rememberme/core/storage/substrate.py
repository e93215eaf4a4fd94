from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

from rememberme.core.errors import StorageWriteError

SECONDS_PER_DAY = 86400.0


@runtime_checkable
class Substrate(Protocol):
    """
    Size-limited key/value medium (cookie jar, local storage, ...).

    Expired entries must read exactly like entries that were never written.
    Writes that exceed the medium's limits raise StorageWriteError.
    """

    max_entry_size: Optional[int]

    def raw_get(self, key: str) -> Optional[str]: ...

    def raw_set(self, key: str, value: str, ttl_days: float) -> None: ...

    def raw_delete(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...


@dataclass
class Entry:
    value: str
    expires_at: float


def check_limits(substrate: Substrate, key: str, value: str, *, live_keys: int, exists: bool, max_entries: Optional[int]) -> None:
    if not isinstance(value, str):
        raise StorageWriteError("Stored values must be strings.", key=key, type=type(value).__name__)
    limit = substrate.max_entry_size
    if limit is not None and len(key) + len(value) > int(limit):
        raise StorageWriteError("Entry exceeds the per-entry size limit.", key=key, size=len(value), limit=limit)
    if max_entries is not None and not exists and live_keys >= int(max_entries):
        raise StorageWriteError("Storage entry budget exhausted.", key=key, limit=max_entries)


class MemorySubstrate:
    """
    In-process substrate with cookie-like limits: per-entry size cap
    (key + value, in characters), optional global entry budget, per-entry
    expiry in days.
    """

    def __init__(self, *, max_entry_size: Optional[int] = 4096, max_entries: Optional[int] = None, clock: Optional[Callable[[], float]] = None):
        self.max_entry_size = max_entry_size
        self.max_entries = max_entries
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._entries: Dict[str, Entry] = {}

    def raw_get(self, key: str) -> Optional[str]:
        with self._lock:
            e = self._live_locked(key)
            return e.value if e is not None else None

    def raw_set(self, key: str, value: str, ttl_days: float) -> None:
        with self._lock:
            self._purge_expired_locked()
            check_limits(self, key, value, live_keys=len(self._entries), exists=key in self._entries, max_entries=self.max_entries)
            self._entries[key] = Entry(value=value, expires_at=self._clock() + float(ttl_days) * SECONDS_PER_DAY)

    def raw_delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            self._purge_expired_locked()
            return list(self._entries.keys())

    def _live_locked(self, key: str) -> Optional[Entry]:
        e = self._entries.get(key)
        if e is None:
            return None
        if e.expires_at <= self._clock():
            del self._entries[key]
            return None
        return e

    def _purge_expired_locked(self) -> None:
        now = self._clock()
        for k in [k for k, e in self._entries.items() if e.expires_at <= now]:
            del self._entries[k]
