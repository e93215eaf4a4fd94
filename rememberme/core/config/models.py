from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    warn_threshold: int = Field(default=3000, ge=1)
    chunk_threshold: int = Field(default=3500, ge=1)
    chunk_size: int = Field(default=3000, ge=1)
    max_chunks: int = Field(default=64, ge=1)
    legacy_scan_limit: int = Field(default=10, ge=0)
    fallback_value: str = "default"

    @model_validator(mode="after")
    def _chunk_fits(self) -> "StorageConfig":
        if self.chunk_size > self.chunk_threshold:
            raise ValueError("chunk_size must not exceed chunk_threshold")
        return self


class AccountsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    roster_limit: int = Field(default=2, ge=1, le=10)
    token_ttl_days: float = Field(default=7, gt=0)
    active_ttl_days: float = Field(default=7, gt=0)
    roster_ttl_days: float = Field(default=30, gt=0)


class SubstrateConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    backend: Literal["memory", "file"] = "file"
    path: str = "state/entries.json"
    # Cookie-like limits; None disables the check.
    max_entry_size: Optional[int] = Field(default=4096, ge=1)
    max_entries: Optional[int] = Field(default=None, ge=1)


class RemoteConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    base_url: str = ""
    validate_path: str = "/api/auth/validate"
    timeout_seconds: float = Field(default=10.0, gt=0)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    log_dir: str = "logs"
    events_path: str = "logs/accounts.jsonl"
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=1, ge=1)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    accounts: AccountsConfig = Field(default_factory=AccountsConfig)
    substrate: SubstrateConfig = Field(default_factory=SubstrateConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
