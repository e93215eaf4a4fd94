from __future__ import annotations

import json
import os

import pytest

from rememberme.core.accounts.store import AccountStore
from rememberme.core.errors import StorageWriteError
from rememberme.core.storage.file_substrate import FileSubstrate
from rememberme.core.storage.substrate import Substrate


def test_persists_across_instances(tmp_path, clock):
    path = str(tmp_path / "state" / "entries.json")
    a = FileSubstrate(path, clock=clock.time)
    assert isinstance(a, Substrate)
    a.raw_set("k", "v", 1)
    b = FileSubstrate(path, clock=clock.time)
    assert b.raw_get("k") == "v"
    doc = json.loads(open(path, encoding="utf-8").read())
    assert doc["version"] == 1 and doc["entries"]["k"]["value"] == "v"


def test_expiry_and_delete(tmp_path, clock):
    s = FileSubstrate(str(tmp_path / "e.json"), clock=clock.time)
    s.raw_set("short", "1", 1)
    s.raw_set("long", "2", 30)
    clock.advance_days(2)
    assert s.raw_get("short") is None
    assert s.keys() == ["long"]
    s.raw_delete("long")
    s.raw_delete("never-written")
    assert FileSubstrate(str(tmp_path / "e.json"), clock=clock.time).keys() == []


def test_size_limit(tmp_path):
    s = FileSubstrate(str(tmp_path / "e.json"), max_entry_size=10)
    with pytest.raises(StorageWriteError):
        s.raw_set("key", "x" * 8, 1)
    assert s.raw_get("key") is None


def test_entry_budget(tmp_path):
    s = FileSubstrate(str(tmp_path / "e.json"), max_entries=2)
    s.raw_set("a", "1", 1)
    s.raw_set("b", "1", 1)
    s.raw_set("a", "2", 1)
    with pytest.raises(StorageWriteError):
        s.raw_set("c", "1", 1)


def test_corrupt_file_starts_empty(tmp_path, log):
    path = tmp_path / "e.json"
    path.write_text("{broken", encoding="utf-8")
    s = FileSubstrate(str(path), logger=log)
    assert s.keys() == []
    assert log.messages("ERROR")
    s.raw_set("k", "v", 1)
    assert json.loads(path.read_text(encoding="utf-8"))["entries"]["k"]["value"] == "v"


def test_failed_flush_rolls_back(tmp_path, monkeypatch):
    path = str(tmp_path / "e.json")
    s = FileSubstrate(path)
    s.raw_set("k", "old", 1)

    def boom(*_a, **_k):
        raise OSError("disk full")

    monkeypatch.setattr("rememberme.core.storage.file_substrate.atomic_write_json", boom)
    with pytest.raises(StorageWriteError):
        s.raw_set("k", "new", 1)
    with pytest.raises(StorageWriteError):
        s.raw_set("other", "x", 1)
    assert s.raw_get("k") == "old"
    assert s.raw_get("other") is None


def test_account_store_on_file_backend(tmp_path):
    path = str(tmp_path / "e.json")
    avatar = "B" * 8000
    AccountStore(FileSubstrate(path)).set_account("alice", "tok", {"username": "alice", "avatar": avatar})
    reopened = AccountStore(FileSubstrate(path))
    assert reopened.get_active() == "alice"
    assert reopened.get_account("alice")["avatar"] == avatar
    assert os.path.getsize(path) > 8000
