from __future__ import annotations

import logging

import pytest

from rememberme.core.accounts.store import AccountStore
from rememberme.core.accounts.validator import SessionValidator
from rememberme.core.config.models import AccountsConfig, StorageConfig
from rememberme.core.config.paths import ConfigFsPaths
from rememberme.core.storage.chunked import ChunkedEntryStore
from rememberme.core.storage.substrate import MemorySubstrate
from tests.helpers.fakes import FakeClock


class _L:
    def __init__(self):
        self.records = []

    def debug(self, msg, *a, **_k):
        self.records.append(("DEBUG", msg % a if a else msg))

    def info(self, msg, *a, **_k):
        self.records.append(("INFO", msg % a if a else msg))

    def warning(self, msg, *a, **_k):
        self.records.append(("WARNING", msg % a if a else msg))

    def error(self, msg, *a, **_k):
        self.records.append(("ERROR", msg % a if a else msg))

    def messages(self, level: str):
        return [m for lvl, m in self.records if lvl == level]


@pytest.fixture
def log():
    return _L()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def substrate(clock):
    return MemorySubstrate(max_entry_size=4096, clock=clock.time)


@pytest.fixture
def chunks(substrate, log):
    return ChunkedEntryStore(substrate, cfg=StorageConfig(), logger=log)


@pytest.fixture
def store(substrate, chunks, log):
    return AccountStore(substrate, chunks=chunks, cfg=AccountsConfig(), logger=log)


@pytest.fixture
def validator(store, log):
    return SessionValidator(store, logger=log)


@pytest.fixture
def tmp_root(tmp_path):
    return ConfigFsPaths(root=str(tmp_path))


@pytest.fixture(autouse=True)
def _restore_app_logger():
    lg = logging.getLogger("rememberme")
    handlers, level, propagate = list(lg.handlers), lg.level, lg.propagate
    yield
    for h in list(lg.handlers):
        if h not in handlers:
            lg.removeHandler(h)
            h.close()
    lg.handlers[:] = handlers
    lg.setLevel(level)
    lg.propagate = propagate
