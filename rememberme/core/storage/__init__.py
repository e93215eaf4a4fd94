from __future__ import annotations

from rememberme.core.storage.chunked import CHUNK_MARKER, ChunkedEntryStore
from rememberme.core.storage.file_substrate import FileSubstrate
from rememberme.core.storage.substrate import MemorySubstrate, Substrate

__all__ = ["CHUNK_MARKER", "ChunkedEntryStore", "FileSubstrate", "MemorySubstrate", "Substrate"]
