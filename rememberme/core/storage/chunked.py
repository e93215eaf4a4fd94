from __future__ import annotations

from typing import List, Optional

from rememberme.core.config.models import StorageConfig
from rememberme.core.errors import StorageWriteError
from rememberme.core.storage.substrate import Substrate

CHUNK_MARKER = "chunked"


def count_key(key: str) -> str:
    return f"{key}_chunks"


def chunk_key(key: str, index: int) -> str:
    return f"{key}_chunk_{index}"


def split_chunks(value: str, size: int) -> List[str]:
    return [value[i : i + size] for i in range(0, len(value), size)]


class ChunkedEntryStore:
    """
    get/set/delete over a size-limited substrate. Values longer than
    `chunk_threshold` are stored as a chunk set:

        <key>            "chunked"
        <key>_chunks     "<N>"
        <key>_chunk_<i>  i-th slice of `chunk_size` characters, 0 <= i < N

    A chunk set with any piece missing reads as absent.
    """

    def __init__(self, substrate: Substrate, *, cfg: Optional[StorageConfig] = None, logger=None):
        self.substrate = substrate
        self.cfg = cfg or StorageConfig()
        self.logger = logger

    @property
    def fallback_value(self) -> str:
        return self.cfg.fallback_value

    def set_large(self, key: str, value: str, ttl_days: float) -> bool:
        """
        Store `value` under `key`. Returns False when the write failed and the
        fallback sentinel was stored instead.
        """
        if len(value) > self.cfg.warn_threshold and self.logger:
            self.logger.warning("Large value for %s (%d chars); consider shrinking it.", key, len(value))
        self._purge_chunks(key)
        written: List[str] = []
        try:
            if len(value) <= self.cfg.chunk_threshold:
                self.substrate.raw_set(key, value, ttl_days)
                return True
            chunks = split_chunks(value, self.cfg.chunk_size)
            if len(chunks) > self.cfg.max_chunks:
                raise StorageWriteError("Value needs more chunks than allowed.", key=key, chunks=len(chunks), limit=self.cfg.max_chunks)
            self.substrate.raw_set(key, CHUNK_MARKER, ttl_days)
            written.append(key)
            self.substrate.raw_set(count_key(key), str(len(chunks)), ttl_days)
            written.append(count_key(key))
            for i, chunk in enumerate(chunks):
                self.substrate.raw_set(chunk_key(key, i), chunk, ttl_days)
                written.append(chunk_key(key, i))
            return True
        except StorageWriteError as e:
            if self.logger:
                self.logger.error("Failed to store %s (%s); storing fallback value.", key, e.user_message)
            self._rollback(key, written)
            self._store_fallback(key, ttl_days)
            return False

    def get_large(self, key: str) -> Optional[str]:
        raw = self.substrate.raw_get(key)
        if raw is None:
            return None
        if raw != CHUNK_MARKER:
            return raw
        count = self._stored_count(key)
        if not count:
            if self.logger:
                self.logger.error("Chunk count missing or invalid for %s.", key)
            return None
        parts: List[str] = []
        for i in range(count):
            chunk = self.substrate.raw_get(chunk_key(key, i))
            if chunk is None:
                if self.logger:
                    self.logger.error("Chunk %d of %d missing for %s.", i, count, key)
                return None
            parts.append(chunk)
        return "".join(parts)

    def delete_large(self, key: str) -> None:
        self._purge_chunks(key)
        self.substrate.raw_delete(key)

    # ---------- internals ----------
    def _stored_count(self, key: str) -> Optional[int]:
        raw = self.substrate.raw_get(count_key(key))
        if raw is None:
            return None
        try:
            n = int(raw)
        except ValueError:
            return None
        return n if n > 0 else None

    def _purge_chunks(self, key: str) -> None:
        # The stored count bounds deletion exactly; without one, fall back to
        # the fixed scan older clients relied on.
        count = self._stored_count(key)
        bound = count if count is not None else self.cfg.legacy_scan_limit
        for i in range(bound):
            self.substrate.raw_delete(chunk_key(key, i))
        self.substrate.raw_delete(count_key(key))

    def _rollback(self, key: str, written: List[str]) -> None:
        for k in reversed(written):
            if k != key:
                self.substrate.raw_delete(k)

    def _store_fallback(self, key: str, ttl_days: float) -> None:
        try:
            self.substrate.raw_set(key, self.fallback_value, ttl_days)
        except StorageWriteError:
            self.substrate.raw_delete(key)
            raise
