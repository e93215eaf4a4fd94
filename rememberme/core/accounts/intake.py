from __future__ import annotations

"""
Turns a login/registration envelope from the auth server into a remembered
account.

Envelope shape: {"success": bool, "data": {...}, "message": str}. `data`
carries at least id, username, isAdmin and token. The identifier is checked
locally (shape, check digits, role agreement) before anything is stored.
"""

from typing import Any, Dict, Mapping, Optional

from rememberme.core.accounts.store import AccountStore
from rememberme.core.errors import IdentityIntegrityError, LoginRejectedError, ValidationError
from rememberme.core.identity.models import _iso_now
from rememberme.core.identity.records import ensure_consistent, update_login_info

DEFAULT_PREFERENCES = {"theme": "default", "language": "zh-CN"}


class LoginIntake:
    def __init__(self, store: AccountStore, *, logger=None):
        self.store = store
        self.logger = logger

    def accept_login(self, envelope: Mapping[str, Any], ttl_days: Optional[float] = None) -> Dict[str, Any]:
        data = self._unwrap(envelope)
        profile = update_login_info(data)
        return self._persist(profile, ttl_days)

    def accept_registration(self, envelope: Mapping[str, Any], ttl_days: Optional[float] = None) -> Dict[str, Any]:
        data = self._unwrap(envelope)
        now = _iso_now()
        profile = dict(data)
        profile["createdAt"] = now
        profile["lastLoginAt"] = now
        profile["preferences"] = {**DEFAULT_PREFERENCES, **dict(data.get("preferences") or {})}
        profile["stats"] = {"loginCount": 1, "lastActiveAt": now}
        return self._persist(profile, ttl_days)

    # ---------- internals ----------
    def _unwrap(self, envelope: Mapping[str, Any]) -> Dict[str, Any]:
        if not isinstance(envelope, Mapping):
            raise ValidationError("Malformed server response.")
        data = envelope.get("data")
        if not envelope.get("success") or not isinstance(data, Mapping):
            message = str(envelope.get("message") or "Login failed.")
            raise LoginRejectedError(message)
        if not data.get("username") or not data.get("token"):
            raise ValidationError("Server response is missing username or token.", fields=sorted(data.keys()))
        try:
            ensure_consistent(data)
        except IdentityIntegrityError as e:
            if self.logger:
                self.logger.error("Rejected login for %s: identity check failed (%s).", data.get("username"), e.reason)
            raise
        return dict(data)

    def _persist(self, profile: Dict[str, Any], ttl_days: Optional[float]) -> Dict[str, Any]:
        username = str(profile["username"])
        token = str(profile.pop("token"))
        self.store.set_account(username, token, profile, ttl_days=ttl_days)
        stored = self.store.get_account(username)
        return stored if stored is not None else profile
