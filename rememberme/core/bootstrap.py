from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from rememberme.core.accounts.intake import LoginIntake
from rememberme.core.accounts.store import AccountStore
from rememberme.core.accounts.validator import SessionValidator
from rememberme.core.config.models import AppConfig
from rememberme.core.config.paths import ConfigFsPaths
from rememberme.core.events import EventLogger
from rememberme.core.storage.chunked import ChunkedEntryStore
from rememberme.core.storage.file_substrate import FileSubstrate
from rememberme.core.storage.substrate import MemorySubstrate, Substrate


@dataclass
class Services:
    substrate: Substrate
    chunks: ChunkedEntryStore
    accounts: AccountStore
    validator: SessionValidator
    intake: LoginIntake


def build_substrate(cfg: AppConfig, *, fs: Optional[ConfigFsPaths] = None, logger=None) -> Substrate:
    sc = cfg.substrate
    if sc.backend == "memory":
        return MemorySubstrate(max_entry_size=sc.max_entry_size, max_entries=sc.max_entries)
    path = (fs or ConfigFsPaths(".")).resolve(sc.path)
    return FileSubstrate(path, max_entry_size=sc.max_entry_size, max_entries=sc.max_entries, logger=logger)


def build_services(cfg: AppConfig, *, fs: Optional[ConfigFsPaths] = None, logger: Optional[logging.Logger] = None, substrate: Optional[Substrate] = None) -> Services:
    fs = fs or ConfigFsPaths(".")
    if logger is not None:
        logger.setLevel(cfg.logging.level)
    sub = substrate or build_substrate(cfg, fs=fs, logger=logger)
    events = EventLogger(fs.resolve(cfg.logging.events_path)) if cfg.logging.events_path else None
    chunks = ChunkedEntryStore(sub, cfg=cfg.storage, logger=logger)
    accounts = AccountStore(sub, chunks=chunks, cfg=cfg.accounts, logger=logger, event_logger=events)
    validator = SessionValidator(accounts, logger=logger, event_logger=events)
    intake = LoginIntake(accounts, logger=logger)
    if logger is not None:
        where = sub.path if isinstance(sub, FileSubstrate) else cfg.substrate.backend
        logger.info("Account store ready (%s, pid=%d)", where, os.getpid())
    return Services(substrate=sub, chunks=chunks, accounts=accounts, validator=validator, intake=intake)
