from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import requests

from rememberme.core.config.models import RemoteConfig
from rememberme.core.errors import RemoteValidationError


@dataclass
class HttpTokenValidator:
    """
    Remote validation function for SessionValidator.validate_all.

    POSTs {"username": ...} with the token as a bearer credential and expects a
    {success, data, message} envelope back. 401/403 and success=false mean
    the session is no longer valid; anything else unexpected raises.
    """

    base_url: str
    validate_path: str = "/api/auth/validate"
    timeout_seconds: float = 10.0
    session: Optional[requests.Session] = None

    @classmethod
    def from_config(cls, cfg: RemoteConfig) -> "HttpTokenValidator":
        if not cfg.base_url:
            raise RemoteValidationError("No remote base URL configured.")
        return cls(base_url=cfg.base_url, validate_path=cfg.validate_path, timeout_seconds=cfg.timeout_seconds)

    def _url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.validate_path}"

    def check(self, username: str, token: str) -> bool:
        http = self.session or requests
        r = http.post(
            self._url(),
            json={"username": username},
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.timeout_seconds,
        )
        if r.status_code in (401, 403):
            return False
        if r.status_code < 200 or r.status_code >= 300:
            raise RemoteValidationError(f"Validation endpoint returned HTTP {r.status_code}.", username=username, status=r.status_code)
        try:
            body: Any = r.json()
        except ValueError as e:
            raise RemoteValidationError("Validation endpoint returned a non-JSON body.", username=username) from e
        if not isinstance(body, dict) or not isinstance(body.get("success"), bool):
            raise RemoteValidationError("Validation endpoint returned an unexpected body.", username=username)
        return body["success"]

    async def __call__(self, username: str, token: str) -> bool:
        return await asyncio.to_thread(self.check, username, token)
