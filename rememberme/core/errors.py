from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from rememberme.core.events import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class RememberMeError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Core types ----
class ConfigError(RememberMeError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class StorageWriteError(RememberMeError):
    def __init__(self, user_message: str = "Could not write to local storage.", **ctx: Any):
        super().__init__("storage_write_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class AccountNotFoundError(RememberMeError):
    def __init__(self, user_message: str = "No remembered account with that name.", **ctx: Any):
        super().__init__("account_not_found", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class IdentityIntegrityError(RememberMeError):
    """
    The identifier carried by a user record is corrupt, or its embedded role
    disagrees with the record's own isAdmin flag. `context["reason"]` holds the
    verdict code.
    """

    def __init__(self, user_message: str = "User identity information is inconsistent.", **ctx: Any):
        super().__init__("identity_integrity_error", user_message, severity=Severity.ERROR, recoverable=False, context=ctx)

    @property
    def reason(self) -> str:
        return str(self.context.get("reason") or "")


class LoginRejectedError(RememberMeError):
    def __init__(self, user_message: str = "Login was not accepted.", **ctx: Any):
        super().__init__("login_rejected", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class ValidationError(RememberMeError):
    def __init__(self, user_message: str = "Invalid request.", **ctx: Any):
        super().__init__("validation_error", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class RemoteValidationError(RememberMeError):
    def __init__(self, user_message: str = "Could not check the session with the server.", **ctx: Any):
        super().__init__("remote_validation_error", user_message, severity=Severity.WARN, recoverable=True, context=ctx)
