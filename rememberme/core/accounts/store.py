from __future__ import annotations

"""
Multi-account session store.

Key layout (shared with existing clients, do not rename):

    userToken_<u>                  token
    userData_<u>                   profile JSON (without avatar)
    userAvatar_<u>                 avatar, or chunk marker / fallback sentinel
    userAvatar_<u>_chunks          chunk count
    userAvatar_<u>_chunk_<i>       avatar chunks
    activeUser                     active username
    lastUsers                      JSON array, most recently used first

The roster (`lastUsers`) is only an MRU hint. `list_all_usernames` scans token
entries and is the source of truth for which accounts exist.
"""

import json
import uuid
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from rememberme.core.config.models import AccountsConfig
from rememberme.core.errors import AccountNotFoundError, StorageWriteError, ValidationError
from rememberme.core.events import EventLogger
from rememberme.core.storage.chunked import ChunkedEntryStore
from rememberme.core.storage.substrate import Substrate

TOKEN_PREFIX = "userToken_"
DATA_PREFIX = "userData_"
AVATAR_PREFIX = "userAvatar_"
ACTIVE_KEY = "activeUser"
ROSTER_KEY = "lastUsers"
AVATAR_FIELD = "avatar"


def token_key(username: str) -> str:
    return f"{TOKEN_PREFIX}{username}"


def data_key(username: str) -> str:
    return f"{DATA_PREFIX}{username}"


def avatar_key(username: str) -> str:
    return f"{AVATAR_PREFIX}{username}"


class AccountStore:
    def __init__(
        self,
        substrate: Substrate,
        *,
        chunks: Optional[ChunkedEntryStore] = None,
        cfg: Optional[AccountsConfig] = None,
        logger=None,
        event_logger: Optional[EventLogger] = None,
    ):
        self.substrate = substrate
        self.chunks = chunks or ChunkedEntryStore(substrate, logger=logger)
        self.cfg = cfg or AccountsConfig()
        self.logger = logger
        self.event_logger = event_logger

    # ---------- accounts ----------
    def set_account(self, username: str, token: str, account_data: Mapping[str, Any], ttl_days: Optional[float] = None) -> None:
        """
        Persist a login result and make it the active account.

        `account_data["avatar"]`: a string is stored (chunked when large), None
        deletes the stored avatar, and an absent key leaves it as it is.
        Token and profile write failures raise StorageWriteError.
        """
        self._check_username(username)
        if not isinstance(token, str) or not token:
            raise ValidationError("A token is required.", username=username)
        ttl = float(ttl_days if ttl_days is not None else self.cfg.token_ttl_days)
        data = dict(account_data or {})
        existed = self.get_token(username) is not None
        previous_blob = self.substrate.raw_get(data_key(username))
        avatar_stored: Optional[bool] = None
        try:
            if AVATAR_FIELD in data:
                avatar = data.pop(AVATAR_FIELD)
                if avatar is None:
                    self.chunks.delete_large(avatar_key(username))
                else:
                    avatar_stored = self.chunks.set_large(avatar_key(username), str(avatar), ttl)
            self.substrate.raw_set(data_key(username), json.dumps(data, ensure_ascii=False, separators=(",", ":")), ttl)
            self.substrate.raw_set(token_key(username), token, ttl)
        except StorageWriteError:
            self._undo_partial_write(username, existed, previous_blob, ttl)
            raise
        self.set_active(username)
        if self.logger:
            self.logger.info("Account stored: %s", username)
        self._event("account.stored", {"username": username, "avatar_stored": avatar_stored})

    def get_account(self, username: str) -> Optional[Dict[str, Any]]:
        blob = self.substrate.raw_get(data_key(username))
        if blob is None:
            return None
        try:
            data = json.loads(blob)
        except json.JSONDecodeError:
            if self.logger:
                self.logger.error("Stored profile for %s is not valid JSON.", username)
            return None
        if not isinstance(data, dict):
            if self.logger:
                self.logger.error("Stored profile for %s is not an object.", username)
            return None
        avatar = self.chunks.get_large(avatar_key(username))
        if avatar is not None and avatar != self.chunks.fallback_value:
            data[AVATAR_FIELD] = avatar
        return data

    def get_token(self, username: str) -> Optional[str]:
        return self.substrate.raw_get(token_key(username))

    def has_account(self, username: str) -> bool:
        return self.get_token(username) is not None and self.substrate.raw_get(data_key(username)) is not None

    def delete_account(self, username: str) -> None:
        self.substrate.raw_delete(token_key(username))
        self.substrate.raw_delete(data_key(username))
        self.chunks.delete_large(avatar_key(username))
        roster = self._read_roster()
        if username in roster:
            self._write_roster([u for u in roster if u != username])
        if self.substrate.raw_get(ACTIVE_KEY) == username:
            self.substrate.raw_delete(ACTIVE_KEY)
        if self.logger:
            self.logger.info("Account deleted: %s", username)
        self._event("account.deleted", {"username": username})

    def list_all_usernames(self) -> Set[str]:
        return {k[len(TOKEN_PREFIX) :] for k in self.substrate.keys() if k.startswith(TOKEN_PREFIX) and len(k) > len(TOKEN_PREFIX)}

    def list_accounts(self) -> List[Tuple[str, str, Dict[str, Any]]]:
        """(username, token, account_data) for every account with both parts stored."""
        out: List[Tuple[str, str, Dict[str, Any]]] = []
        for username in sorted(self.list_all_usernames()):
            token = self.get_token(username)
            data = self.get_account(username)
            if token and data is not None:
                out.append((username, token, data))
        return out

    def clear_all(self) -> None:
        for username in sorted(self.list_all_usernames()):
            self.delete_account(username)
        self.substrate.raw_delete(ACTIVE_KEY)
        self.substrate.raw_delete(ROSTER_KEY)

    # ---------- active account ----------
    def set_active(self, username: str) -> None:
        if not self.has_account(username):
            raise AccountNotFoundError(username=username)
        self.substrate.raw_set(ACTIVE_KEY, username, float(self.cfg.active_ttl_days))
        self.update_roster(username)

    def get_active(self) -> Optional[str]:
        username = self.substrate.raw_get(ACTIVE_KEY)
        if not username or not self.has_account(username):
            return None
        return username

    def get_current_token(self) -> Optional[str]:
        active = self.get_active()
        return self.get_token(active) if active else None

    def get_current_account(self) -> Optional[Dict[str, Any]]:
        active = self.get_active()
        return self.get_account(active) if active else None

    # ---------- roster ----------
    def update_roster(self, username: str) -> List[str]:
        """
        Move `username` to the front of the MRU roster, capped at
        `roster_limit`. Names that fall off keep their stored data.
        """
        self._check_username(username)
        roster = [u for u in self._read_roster() if u != username]
        roster.insert(0, username)
        kept, evicted = roster[: self.cfg.roster_limit], roster[self.cfg.roster_limit :]
        self._write_roster(kept)
        if evicted:
            active = self.substrate.raw_get(ACTIVE_KEY)
            if active in evicted:
                self.substrate.raw_delete(ACTIVE_KEY)
            self._event("roster.evicted", {"usernames": evicted})
        return kept

    def get_roster(self) -> List[str]:
        return [u for u in self._read_roster() if self.has_account(u)]

    def _read_roster(self) -> List[str]:
        raw = self.substrate.raw_get(ROSTER_KEY)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError:
            if self.logger:
                self.logger.error("Stored roster is not valid JSON; ignoring it.")
            return []
        if not isinstance(items, list):
            return []
        return [u for u in items if isinstance(u, str) and u]

    def _write_roster(self, roster: List[str]) -> None:
        self.substrate.raw_set(ROSTER_KEY, json.dumps(roster, ensure_ascii=False), float(self.cfg.roster_ttl_days))

    def _undo_partial_write(self, username: str, existed: bool, previous_blob: Optional[str], ttl: float) -> None:
        # Profile and avatar keys without a token are unreachable.
        if self.logger:
            self.logger.error("Storing account %s failed; undoing partial write.", username)
        if not existed:
            self.substrate.raw_delete(data_key(username))
            self.chunks.delete_large(avatar_key(username))
            return
        if previous_blob is None:
            return
        try:
            self.substrate.raw_set(data_key(username), previous_blob, ttl)
        except StorageWriteError as e:
            if self.logger:
                self.logger.error("Could not restore previous profile for %s: %s", username, e.user_message)

    # ---------- internals ----------
    @staticmethod
    def _check_username(username: Any) -> None:
        if not isinstance(username, str) or not username.strip():
            raise ValidationError("A username is required.")
        if any(c in username for c in "=;\r\n"):
            raise ValidationError("Username contains characters the storage cannot hold.", username=username)

    def _event(self, event_type: str, details: Dict[str, Any]) -> None:
        if self.event_logger is None:
            return
        try:
            self.event_logger.log(uuid.uuid4().hex, event_type, details)
        except OSError as e:
            if self.logger:
                self.logger.warning("Event log write failed (%s): %s", event_type, e)
