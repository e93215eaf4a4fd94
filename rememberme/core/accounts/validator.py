from __future__ import annotations

import asyncio
import inspect
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from rememberme.core.accounts.store import AccountStore
from rememberme.core.events import EventLogger
from rememberme.core.identity.models import IdentityVerdict
from rememberme.core.identity.records import verify_identity

RemoteValidator = Callable[[str, str], Union[bool, Awaitable[bool]]]
SUPERSEDED = "superseded"


class SessionCheckResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str
    is_valid: bool
    account_data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class ValidAccount(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str
    account_data: Dict[str, Any]


class SessionValidator:
    """
    Re-checks remembered sessions and evicts the ones that fail.

    Accounts are processed one at a time in username order; a failing account
    is deleted before the next one is checked. Passes are serialized with an
    asyncio.Lock so a second pass never interleaves with the first.
    An account whose token changed while its check was in flight keeps the
    newer login and is reported with error "superseded".
    """

    def __init__(self, store: AccountStore, *, logger=None, event_logger: Optional[EventLogger] = None):
        self.store = store
        self.logger = logger
        self.event_logger = event_logger
        self._lock = asyncio.Lock()

    async def validate_all(self, validate_remote: RemoteValidator) -> List[SessionCheckResult]:
        trace_id = uuid.uuid4().hex
        results: List[SessionCheckResult] = []
        async with self._lock:
            for username in sorted(self.store.list_all_usernames()):
                token = self.store.get_token(username)
                data = self.store.get_account(username)
                if not token or data is None:
                    continue
                try:
                    outcome = validate_remote(username, token)
                    if inspect.isawaitable(outcome):
                        outcome = await outcome
                    if not isinstance(outcome, bool):
                        raise TypeError(f"validator returned {type(outcome).__name__}, expected bool")
                except Exception as e:  # noqa: BLE001
                    if self.logger:
                        self.logger.error("Session check failed for %s: %s", username, e)
                    results.append(self._evict(trace_id, username, token, "error", str(e) or type(e).__name__))
                    continue
                if outcome:
                    results.append(SessionCheckResult(username=username, is_valid=True, account_data=data))
                    self._event(trace_id, username, "valid")
                else:
                    if self.logger:
                        self.logger.info("Session for %s rejected by server; removing it.", username)
                    results.append(self._evict(trace_id, username, token, "invalid", None))
        return results

    def _evict(self, trace_id: str, username: str, token: str, outcome: str, error: Optional[str]) -> SessionCheckResult:
        # A login that landed while the check was awaited replaced the token;
        # the verdict applies to the old session only.
        current = self.store.get_token(username)
        if current is not None and current != token:
            if self.logger:
                self.logger.info("Session for %s was replaced during validation; keeping the new login.", username)
            self._event(trace_id, username, "superseded")
            return SessionCheckResult(username=username, is_valid=False, error=SUPERSEDED)
        self.store.delete_account(username)
        self._event(trace_id, username, outcome)
        return SessionCheckResult(username=username, is_valid=False, error=error)

    @staticmethod
    def filter_valid(results: List[SessionCheckResult]) -> List[ValidAccount]:
        return [ValidAccount(username=r.username, account_data=r.account_data or {}) for r in results if r.is_valid]

    def prune_inconsistent(self) -> List[SessionCheckResult]:
        """
        Delete stored accounts whose profile identifier is corrupt or whose
        isAdmin flag disagrees with it. Returns one result per deletion, with
        the verdict code as the error.
        """
        removed: List[SessionCheckResult] = []
        for username, _token, data in self.store.list_accounts():
            verdict = verify_identity(data)
            if verdict == IdentityVerdict.ok:
                continue
            if self.logger:
                self.logger.warning("Stored identity for %s failed integrity check (%s); removing it.", username, verdict.value)
            self.store.delete_account(username)
            removed.append(SessionCheckResult(username=username, is_valid=False, error=verdict.value))
        return removed

    def _event(self, trace_id: str, username: str, outcome: str) -> None:
        if self.event_logger is None:
            return
        try:
            self.event_logger.log(trace_id, "session.validated", {"username": username, "outcome": outcome})
        except OSError as e:
            if self.logger:
                self.logger.warning("Event log write failed: %s", e)
