from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import Settings
from .errors import UpstreamError, ValidationError
from .identity import get_user_id, validate_hwid
from .keygen import generate_key, validate_key
from .store import KeyStore

log = logging.getLogger(__name__)


class KeyState(str, Enum):
    VALID = "valid"
    USED = "used"
    EXPIRED = "expired"
    INVALID = "invalid"


@dataclass
class Registration:
    status: str  # saved | exists
    key: str
    registered_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "key": self.key, "registered_at": self.registered_at}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        ts = datetime.fromisoformat(value)
    except ValueError:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class LifecycleEngine:
    """
    Key lifecycle on top of the store:

        unsaved -> persisted(used=false) -> persisted(used=true)
                   persisted -> deleted

    Read-then-write sequences (verify, register) take no lock. Two verify
    calls racing on the same key can both come back `valid`.
    """

    def __init__(
        self,
        store: KeyStore,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.settings = settings
        self.clock = clock
        self.key_ttl = timedelta(hours=settings.key_ttl_hours)

    # ---------------------------
    # Issue
    # ---------------------------
    def issue_key(self) -> str:
        key = generate_key(self.settings.key_length)
        record = {"key": key, "created_at": self.clock().isoformat(), "used": False}

        if not self.store.create_key(record):
            raise UpstreamError("Failed to save key")

        log.info("issued key %s", key)
        return key

    # ---------------------------
    # Verify and consume
    # ---------------------------
    def verify_key(self, key: Any) -> KeyState:
        if not validate_key(key):
            return KeyState.INVALID

        found = self.store.query_keys(key=key)
        if not found:
            raise UpstreamError("error", text=True)
        if not found.rows:
            return KeyState.INVALID

        row = found.rows[0]
        if row.get("used"):
            return KeyState.USED

        created_at = parse_timestamp(row.get("created_at"))
        if created_at is None or self.clock() - created_at > self.key_ttl:
            return KeyState.EXPIRED

        if not self.store.patch_key(key, {"used": True}):
            raise UpstreamError("error", text=True)

        log.info("consumed key %s", key)
        return KeyState.VALID

    # ---------------------------
    # Register or fetch
    # ---------------------------
    def save_user(
        self,
        ip: Optional[str],
        hwid: Any,
        cookies: Any = "",
        key: Any = None,
    ) -> Registration:
        if not hwid or not validate_hwid(hwid):
            raise ValidationError("Missing or invalid HWID")

        user_id = get_user_id(ip, hwid)

        existing = self.store.query_users(user_id=user_id)
        if not existing:
            raise UpstreamError("Failed to query user")
        if existing.rows:
            row = existing.rows[0]
            return Registration(status="exists", key=row.get("key"), registered_at=row.get("registered_at"))

        key_to_save = key if key and self._key_exists(key) else self.issue_key()

        now = self.clock().isoformat()
        user = {
            "user_id": user_id,
            "cookies": cookies if cookies is not None else "",
            "hwid": hwid,
            "key": key_to_save,
            "registered_at": now,
        }
        if not self.store.create_user(user):
            raise UpstreamError("Failed to save user")

        log.info("saved user %s with key %s", user_id, key_to_save)
        return Registration(status="saved", key=key_to_save, registered_at=now)

    def _key_exists(self, key: Any) -> bool:
        if not validate_key(key):
            return False
        found = self.store.query_keys(key=key)
        return bool(found) and len(found.rows) > 0

    # ---------------------------
    # Admin operations
    # ---------------------------
    def clean_old_keys(self, days: Any = 1) -> int:
        if days is None:
            days = 1
        if isinstance(days, bool):
            raise ValidationError("days must be a non-negative number")
        try:
            days = float(days)
        except (TypeError, ValueError):
            raise ValidationError("days must be a non-negative number")
        if days < 0 or not math.isfinite(days):
            raise ValidationError("days must be a non-negative number")

        try:
            cutoff = self.clock() - timedelta(days=days)
        except OverflowError:
            raise ValidationError("days is out of range")

        listing = self.store.query_keys()
        if not listing:
            raise UpstreamError("Failed to fetch keys")

        deleted = 0
        for row in listing.rows:
            created_at = parse_timestamp(row.get("created_at"))
            key = row.get("key")
            if not isinstance(key, str) or created_at is None or not created_at < cutoff:
                continue
            if self.store.delete_key(key):
                deleted += 1

        log.info("cleanup removed %d of %d keys older than %s", deleted, len(listing.rows), cutoff.isoformat())
        return deleted

    def delete_key(self, key: Any) -> None:
        if not key or not validate_key(key):
            raise ValidationError("Missing or invalid key", text=True)
        if not self.store.delete_key(key):
            raise UpstreamError("Database request failed", text=True)
        log.info("admin deleted key %s", key)

    def delete_user(self, hwid: Any) -> None:
        if not hwid or not validate_hwid(hwid):
            raise ValidationError("Missing or invalid hwid", text=True)
        if not self.store.delete_user(hwid):
            raise UpstreamError("Database request failed", text=True)
        log.info("admin deleted user with hwid %s", hwid)

    def snapshot(self) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        keys = self.store.query_keys()
        users = self.store.query_users()
        if not keys or not users:
            raise UpstreamError("Failed to fetch data", text=True)
        return keys.rows, users.rows
