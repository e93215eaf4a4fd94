from __future__ import annotations

from rememberme.core.accounts.intake import LoginIntake
from rememberme.core.accounts.store import AccountStore
from rememberme.core.accounts.validator import SessionCheckResult, SessionValidator, ValidAccount

__all__ = ["AccountStore", "LoginIntake", "SessionCheckResult", "SessionValidator", "ValidAccount"]
