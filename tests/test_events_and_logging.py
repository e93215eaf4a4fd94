from __future__ import annotations

import json
import os
from logging.handlers import RotatingFileHandler

from rememberme.core.errors import IdentityIntegrityError, StorageWriteError
from rememberme.core.events import EventLogger, redact
from rememberme.core.logger import setup_logging


def test_redact_nested():
    out = redact({"Token": "t", "nested": [{"password": "p", "ok": 1}], "userAvatar": "abcd"})
    assert out == {"Token": "***REDACTED***", "nested": [{"password": "***REDACTED***", "ok": 1}], "userAvatar": "<4 chars>"}


def test_event_logger_appends_jsonl(tmp_path):
    path = tmp_path / "sub" / "events.jsonl"
    ev = EventLogger(str(path))
    ev.log("t1", "account.stored", {"username": "a", "authToken": "x"})
    ev.log("t2", "account.deleted", {"username": "a"})
    rows = [json.loads(x) for x in path.read_text(encoding="utf-8").splitlines()]
    assert [r["event"] for r in rows] == ["account.stored", "account.deleted"]
    assert rows[0]["details"]["authToken"] == "***REDACTED***"


def test_error_to_dict_redacts_context():
    e = StorageWriteError(key="userToken_a", token="abc")
    d = e.to_dict()
    assert d["code"] == "storage_write_error" and d["recoverable"] is True
    assert d["context"] == {"key": "userToken_a", "token": "***REDACTED***"}
    assert IdentityIntegrityError(reason="role_mismatch").reason == "role_mismatch"


def test_setup_logging_is_idempotent(tmp_path):
    lg = setup_logging(str(tmp_path / "logs"))
    setup_logging(str(tmp_path / "logs"))
    assert sum(isinstance(h, RotatingFileHandler) for h in lg.handlers) == 1
    assert len(lg.handlers) == 2
    lg.info("hello")
    for h in lg.handlers:
        h.flush()
    assert "hello" in (tmp_path / "logs" / "rememberme.log").read_text(encoding="utf-8")


def test_setup_logging_follows_new_directory(tmp_path):
    setup_logging(str(tmp_path / "first"))
    lg = setup_logging(str(tmp_path / "second"))
    files = [h.baseFilename for h in lg.handlers if isinstance(h, RotatingFileHandler)]
    assert files == [os.path.abspath(str(tmp_path / "second" / "rememberme.log"))]
    lg.warning("moved")
    for h in lg.handlers:
        h.flush()
    assert "moved" in (tmp_path / "second" / "rememberme.log").read_text(encoding="utf-8")
    assert "moved" not in (tmp_path / "first" / "rememberme.log").read_text(encoding="utf-8")
