from __future__ import annotations

import json
import os

import pytest

from rememberme.core.config.manager import ConfigManager
from rememberme.core.config.models import AppConfig, StorageConfig
from rememberme.core.errors import ConfigError


def test_defaults_created_on_first_load(tmp_root):
    cfg = ConfigManager(fs=tmp_root).load()
    assert cfg.accounts.roster_limit == 2
    assert cfg.storage.chunk_threshold == 3500 and cfg.storage.chunk_size == 3000
    assert cfg.storage.fallback_value == "default"
    assert os.path.exists(tmp_root.app)
    assert os.path.exists(os.path.join(tmp_root.last_known_good_dir, "rememberme.json"))


def test_read_only_does_not_write(tmp_root):
    cfg = ConfigManager(fs=tmp_root, read_only=True).load()
    assert isinstance(cfg, AppConfig)
    assert not os.path.exists(tmp_root.app)


def test_save_validates_before_writing(tmp_root):
    cm = ConfigManager(fs=tmp_root)
    cm.load()
    data = cm.get().model_dump()
    data["accounts"]["roster_limit"] = 0
    with pytest.raises(ConfigError):
        cm.save(data)
    assert json.loads(open(tmp_root.app, encoding="utf-8").read())["accounts"]["roster_limit"] == 2


def test_unknown_keys_rejected(tmp_root):
    os.makedirs(tmp_root.config_dir, exist_ok=True)
    with open(tmp_root.app, "w", encoding="utf-8") as f:
        json.dump({"accounts": {"roster_size": 5}}, f)
    with pytest.raises(ConfigError) as ei:
        ConfigManager(fs=tmp_root).load()
    assert ei.value.context["errors"]


def test_corrupt_config_restored_from_last_known_good(tmp_root, log):
    cm = ConfigManager(fs=tmp_root, logger=log)
    cfg = cm.load()
    data = cfg.model_dump()
    data["accounts"]["roster_limit"] = 4
    cm.save(data)
    with open(tmp_root.app, "w", encoding="utf-8") as f:
        f.write("{not json")
    cfg2 = ConfigManager(fs=tmp_root, logger=log).load()
    assert cfg2.accounts.roster_limit == 4
    assert any(n.endswith(".corrupt.json") for n in os.listdir(tmp_root.backups_dir))
    assert log.messages("WARNING")


def test_get_before_load(tmp_root):
    with pytest.raises(ConfigError):
        ConfigManager(fs=tmp_root).get()


def test_chunk_size_must_fit_threshold():
    with pytest.raises(ValueError):
        StorageConfig(chunk_threshold=1000, chunk_size=2000)
