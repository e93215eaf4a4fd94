from __future__ import annotations

"""
User record helpers on top of the identifier codec.

Profiles are plain dicts in their stored (camelCase) shape so they round-trip
through the account store untouched.
"""

import copy
import random
from typing import Any, Dict, Mapping, Optional

from rememberme.core.errors import IdentityIntegrityError
from rememberme.core.identity.codec import generate_identifier, is_admin_identifier, validate_identifier
from rememberme.core.identity.models import IdentityVerdict, UserProfile, UserRole, _iso_now

REQUIRED_FIELDS = ("id", "username", "email")


def get_user_role(identifier: Any) -> UserRole:
    if not validate_identifier(identifier):
        return UserRole.invalid
    return UserRole.admin if is_admin_identifier(identifier) else UserRole.user


def has_permission(identifier: Any, required: str) -> bool:
    role = get_user_role(identifier)
    if role == UserRole.invalid:
        return False
    if required == "admin":
        return role == UserRole.admin
    if required == "user":
        return True
    return False


def verify_identity(profile: Mapping[str, Any]) -> IdentityVerdict:
    """
    The isAdmin flag must be a real bool equal to the identifier-derived role;
    a missing flag is a mismatch, not a default.
    """
    ident = profile.get("id")
    if not ident:
        return IdentityVerdict.missing_identifier
    if not validate_identifier(ident):
        return IdentityVerdict.invalid_identifier
    flag = profile.get("isAdmin")
    if not isinstance(flag, bool) or flag != is_admin_identifier(ident):
        return IdentityVerdict.role_mismatch
    return IdentityVerdict.ok


def ensure_consistent(profile: Mapping[str, Any]) -> None:
    verdict = verify_identity(profile)
    if verdict == IdentityVerdict.ok:
        return
    messages = {
        IdentityVerdict.missing_identifier: "The server did not return a user ID.",
        IdentityVerdict.invalid_identifier: "The user ID returned by the server is invalid.",
        IdentityVerdict.role_mismatch: "User permission information is inconsistent.",
    }
    raise IdentityIntegrityError(messages[verdict], reason=verdict.value, username=profile.get("username"), id=profile.get("id"))


def validate_user_data(profile: Any) -> bool:
    if not isinstance(profile, Mapping):
        return False
    for name in REQUIRED_FIELDS:
        if not profile.get(name):
            return False
    return verify_identity(profile) == IdentityVerdict.ok


def create_user(username: str, email: str, is_admin: bool = False, *, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    return UserProfile(id=generate_identifier(is_admin, rng=rng), username=username, email=email, is_admin=is_admin).to_blob()


def update_login_info(profile: Mapping[str, Any]) -> Dict[str, Any]:
    now = _iso_now()
    out = copy.deepcopy(dict(profile))
    stats = dict(out.get("stats") or {})
    stats["loginCount"] = int(stats.get("loginCount") or 0) + 1
    stats["lastActiveAt"] = now
    out["stats"] = stats
    out["lastLoginAt"] = now
    return out


def needs_migration(profile: Any) -> bool:
    if not isinstance(profile, Mapping) or not profile.get("id"):
        return True
    return not validate_identifier(profile.get("id"))


def migrate_from_old_version(old: Mapping[str, Any], is_admin: bool = False, *, rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """
    Re-issue a structured identifier for a legacy record. The previous id is
    kept under `_oldId`; other fields carry over.
    """
    old_id = old.get("id")
    username = old.get("username") or (str(old_id).split("-")[0] if old_id else "") or "unknown"
    prefs = dict(old.get("preferences") or {})
    stats = dict(old.get("stats") or {})
    out = dict(old)
    out.update(
        {
            "id": generate_identifier(is_admin, rng=rng),
            "username": username,
            "email": old.get("email") or "",
            "isAdmin": bool(is_admin),
            "createdAt": old.get("createdAt") or _iso_now(),
            "lastLoginAt": old.get("lastLoginAt"),
            "preferences": {"theme": "default", "language": "zh-CN", **prefs},
            "stats": {"loginCount": 0, "lastActiveAt": None, **stats},
            "_migrated": True,
            "_oldId": old_id,
        }
    )
    return out


def get_display_name(profile: Optional[Mapping[str, Any]]) -> str:
    if not profile:
        return "Unknown User"
    name = str(profile.get("username") or "Unknown")
    return f"[Admin] {name}" if profile.get("isAdmin") is True else name
