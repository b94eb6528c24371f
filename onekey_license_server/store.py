from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .config import Settings

log = logging.getLogger(__name__)


@dataclass
class StoreResult:
    ok: bool
    status: Optional[int] = None
    rows: List[Dict[str, Any]] = field(default_factory=list)
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok


class KeyStore:
    """
    Thin adapter over the REST store's `keys` and `users` tables.

    - One session, bearer credentials on every request
    - Fixed timeout, no retries
    - Every outcome is a StoreResult; causes are logged, not raised
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self.base = settings.rest_base
        self.timeout = settings.store_timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": settings.store_key,
            "Authorization": f"Bearer {settings.store_key}",
            "Content-Type": "application/json",
        })

    # ---------------------------
    # keys
    # ---------------------------
    def create_key(self, record: Dict[str, Any]) -> StoreResult:
        return self._send("create_key", "POST", "keys", expect=201, json=record)

    def query_keys(self, key: Optional[str] = None) -> StoreResult:
        params = {"key": f"eq.{key}"} if key is not None else None
        return self._send("query_keys", "GET", "keys", expect=200, params=params)

    def patch_key(self, key: str, fields: Dict[str, Any]) -> StoreResult:
        return self._send("patch_key", "PATCH", "keys", expect=204,
                          params={"key": f"eq.{key}"}, json=fields)

    def delete_key(self, key: str) -> StoreResult:
        return self._send("delete_key", "DELETE", "keys", expect=204, params={"key": f"eq.{key}"})

    # ---------------------------
    # users
    # ---------------------------
    def create_user(self, record: Dict[str, Any]) -> StoreResult:
        return self._send("create_user", "POST", "users", expect=201, json=record)

    def query_users(self, user_id: Optional[str] = None) -> StoreResult:
        params = {"user_id": f"eq.{user_id}"} if user_id is not None else None
        return self._send("query_users", "GET", "users", expect=200, params=params)

    def delete_user(self, hwid: str) -> StoreResult:
        return self._send("delete_user", "DELETE", "users", expect=204, params={"hwid": f"eq.{hwid}"})

    # ---------------------------
    # HTTP helper
    # ---------------------------
    def _send(self, op: str, method: str, table: str, expect: int, **kwargs: Any) -> StoreResult:
        url = f"{self.base}/{table}"
        headers = {"Prefer": "return=minimal"} if method != "GET" else None
        try:
            r = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            log.warning("%s: store timed out after %ss", op, self.timeout)
            return StoreResult(ok=False, message="timeout")
        except requests.exceptions.RequestException as e:
            log.warning("%s: store unreachable (%s)", op, e.__class__.__name__)
            return StoreResult(ok=False, message=f"transport error: {e}")

        if r.status_code != expect:
            log.warning("%s: unexpected status %s (expected %s)", op, r.status_code, expect)
            return StoreResult(ok=False, status=r.status_code, message=r.text[:200])

        if method != "GET":
            return StoreResult(ok=True, status=r.status_code)

        try:
            rows = r.json()
        except ValueError:
            log.warning("%s: store returned a non-JSON body", op)
            return StoreResult(ok=False, status=r.status_code, message="malformed body")

        if not isinstance(rows, list):
            log.warning("%s: store returned %s instead of a list", op, type(rows).__name__)
            return StoreResult(ok=False, status=r.status_code, message="malformed body")

        return StoreResult(ok=True, status=r.status_code, rows=rows)
