from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, List, Optional

from rememberme.core.config.io import atomic_write_json, read_json_file
from rememberme.core.errors import StorageWriteError
from rememberme.core.storage.substrate import SECONDS_PER_DAY, Entry, check_limits


class FileSubstrate:
    """
    Substrate persisted as one JSON document:

        {"version": 1, "entries": {"<key>": {"value": "...", "expires_at": <epoch>}}}

    Every mutation rewrites the file atomically. A corrupt file is logged and
    treated as empty; it is replaced on the next write.
    """

    VERSION = 1

    def __init__(
        self,
        path: str,
        *,
        max_entry_size: Optional[int] = 4096,
        max_entries: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None,
        logger=None,
    ):
        self.path = path
        self.max_entry_size = max_entry_size
        self.max_entries = max_entries
        self.logger = logger
        self._clock = clock or time.time
        self._lock = threading.Lock()
        self._entries: Dict[str, Entry] = self._load()

    def raw_get(self, key: str) -> Optional[str]:
        with self._lock:
            e = self._entries.get(key)
            if e is None or e.expires_at <= self._clock():
                return None
            return e.value

    def raw_set(self, key: str, value: str, ttl_days: float) -> None:
        with self._lock:
            self._drop_expired_locked()
            check_limits(self, key, value, live_keys=len(self._entries), exists=key in self._entries, max_entries=self.max_entries)
            previous = self._entries.get(key)
            self._entries[key] = Entry(value=value, expires_at=self._clock() + float(ttl_days) * SECONDS_PER_DAY)
            try:
                self._flush_locked()
            except OSError as e:
                if previous is None:
                    self._entries.pop(key, None)
                else:
                    self._entries[key] = previous
                raise StorageWriteError("Could not persist storage file.", key=key, path=self.path, error=str(e)) from e

    def raw_delete(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is None:
                return
            try:
                self._flush_locked()
            except OSError as e:
                raise StorageWriteError("Could not persist storage file.", key=key, path=self.path, error=str(e)) from e

    def keys(self) -> List[str]:
        with self._lock:
            now = self._clock()
            return [k for k, e in self._entries.items() if e.expires_at > now]

    # ---------- internals ----------
    def _load(self) -> Dict[str, Entry]:
        rr = read_json_file(self.path)
        if not rr.ok:
            if rr.error != "missing" and self.logger:
                self.logger.error("Storage file unreadable (%s); starting empty: %s", rr.error, self.path)
            return {}
        raw: Any = rr.data.get("entries") or {}
        out: Dict[str, Entry] = {}
        if not isinstance(raw, dict):
            return out
        for k, v in raw.items():
            if not isinstance(v, dict) or not isinstance(v.get("value"), str):
                continue
            try:
                out[str(k)] = Entry(value=v["value"], expires_at=float(v.get("expires_at") or 0.0))
            except (TypeError, ValueError):
                continue
        return out

    def _drop_expired_locked(self) -> None:
        now = self._clock()
        for k in [k for k, e in self._entries.items() if e.expires_at <= now]:
            del self._entries[k]

    def _flush_locked(self) -> None:
        payload = {
            "version": self.VERSION,
            "entries": {k: {"value": e.value, "expires_at": e.expires_at} for k, e in self._entries.items()},
        }
        atomic_write_json(self.path, payload, indent=None)
