from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def _iso_now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class UserRole(str, Enum):
    user = "user"
    admin = "admin"
    invalid = "invalid"


class IdentityVerdict(str, Enum):
    ok = "ok"
    missing_identifier = "missing_identifier"
    invalid_identifier = "invalid_identifier"
    role_mismatch = "role_mismatch"


class Preferences(BaseModel):
    model_config = ConfigDict(extra="allow")
    theme: str = "default"
    language: str = "zh-CN"


class UserStats(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)
    login_count: int = Field(default=0, ge=0, alias="loginCount")
    last_active_at: Optional[str] = Field(default=None, alias="lastActiveAt")


class UserProfile(BaseModel):
    """
    Profile blob as persisted under userData_<username>. Field names on the
    wire are camelCase; unknown server fields are kept.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    username: str
    email: str = ""
    is_admin: bool = Field(default=False, alias="isAdmin")
    created_at: str = Field(default_factory=_iso_now, alias="createdAt")
    last_login_at: Optional[str] = Field(default=None, alias="lastLoginAt")
    preferences: Preferences = Field(default_factory=Preferences)
    stats: UserStats = Field(default_factory=UserStats)

    def to_blob(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
