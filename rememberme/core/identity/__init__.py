from __future__ import annotations

"""
Structured identifiers and user records.

The role carried by an identifier is a client-side consistency check only;
admin privilege is decided by the server.
"""

from rememberme.core.identity.codec import (
    checksum,
    format_for_display,
    generate_identifier,
    get_partition,
    get_random_part,
    is_admin_identifier,
    validate_identifier,
)
from rememberme.core.identity.models import IdentityVerdict, UserProfile, UserRole

__all__ = [
    "IdentityVerdict",
    "UserProfile",
    "UserRole",
    "checksum",
    "format_for_display",
    "generate_identifier",
    "get_partition",
    "get_random_part",
    "is_admin_identifier",
    "validate_identifier",
]
