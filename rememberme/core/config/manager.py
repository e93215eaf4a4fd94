from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import ValidationError

from rememberme.core.config.io import (
    atomic_write_json,
    ensure_dirs,
    read_json_file,
    recover_from_corrupt,
    snapshot_last_known_good,
)
from rememberme.core.config.models import AppConfig
from rememberme.core.config.paths import ConfigFsPaths
from rememberme.core.errors import ConfigError


class ConfigManager:
    def __init__(self, *, fs: Optional[ConfigFsPaths] = None, logger=None, read_only: bool = False):
        self.fs = fs or ConfigFsPaths(".")
        self.logger = logger
        self.read_only = read_only
        self._cfg: Optional[AppConfig] = None

    # ---------- public API ----------
    def load(self) -> AppConfig:
        """
        Read config/rememberme.json, creating it with defaults when missing.

        A corrupt file is moved to backups/ and the last known good copy
        restored; schema violations raise ConfigError.
        """
        ensure_dirs(self.fs.config_dir, self.fs.backups_dir, self.fs.last_known_good_dir)
        raw = self._read_raw()
        cfg = self._validate(raw)
        if not self.read_only:
            if not raw:
                atomic_write_json(self.fs.app, cfg.model_dump())
            snapshot_last_known_good(self.fs.app, self.fs.last_known_good_dir)
        self._cfg = cfg
        return cfg

    def get(self) -> AppConfig:
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        return self._cfg

    def save(self, data: Dict[str, Any]) -> AppConfig:
        """Validate, then write atomically. Invalid data never reaches disk."""
        if self.read_only:
            raise ConfigError("Config manager is read-only.")
        if not isinstance(data, dict):
            raise ConfigError("Config data must be an object.")
        cfg = self._validate(data)
        atomic_write_json(self.fs.app, cfg.model_dump())
        snapshot_last_known_good(self.fs.app, self.fs.last_known_good_dir)
        self._cfg = cfg
        if self.logger:
            self.logger.info("Config saved: %s", self.fs.app)
        return cfg

    # ---------- internals ----------
    def _read_raw(self) -> Dict[str, Any]:
        rr = read_json_file(self.fs.app)
        if rr.ok:
            return rr.data
        if rr.error == "missing":
            return {}
        if self.read_only:
            raise ConfigError(f"Config unreadable: {rr.error}", path=self.fs.app)
        data, recovered = recover_from_corrupt(self.fs.app, self.fs.backups_dir, self.fs.last_known_good_dir)
        if self.logger:
            if recovered:
                self.logger.warning("Config was corrupt (%s); restored last known good.", rr.error)
            else:
                self.logger.warning("Config was corrupt (%s); no last known good, using defaults.", rr.error)
        return data

    def _validate(self, raw: Dict[str, Any]) -> AppConfig:
        try:
            return AppConfig.model_validate(raw or {})
        except ValidationError as e:
            raise ConfigError(f"Config invalid: {e.error_count()} error(s).", path=self.fs.app, errors=e.errors(include_url=False)) from e
