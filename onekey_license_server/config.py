from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .keygen import MIN_KEY_LENGTH


def _require(name: str) -> str:
    value = os.environ.get(name, "").strip()
    if not value:
        raise RuntimeError(f"{name} env var missing.")
    return value


def _flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration, built once at startup and passed explicitly
    to the store adapter, admin gateway and lifecycle engine.
    """
    store_url: str
    store_key: str
    admin_key: str

    store_timeout: float = 5.0
    key_ttl_hours: int = 24
    key_length: int = 16

    rate_limit_enabled: bool = True
    trust_proxy: bool = False
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.key_length < MIN_KEY_LENGTH:
            raise RuntimeError(f"KEY_LENGTH must be at least {MIN_KEY_LENGTH}, got {self.key_length}.")

    @property
    def rest_base(self) -> str:
        return self.store_url.rstrip("/") + "/rest/v1"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            store_url=_require("SUPABASE_URL"),
            store_key=_require("SUPABASE_KEY"),
            admin_key=_require("ADMIN_KEY"),
            store_timeout=float(os.environ.get("STORE_TIMEOUT", "5")),
            key_ttl_hours=int(os.environ.get("KEY_TTL_HOURS", "24")),
            key_length=int(os.environ.get("KEY_LENGTH", "16")),
            rate_limit_enabled=_flag("RATELIMIT_ENABLED", True),
            trust_proxy=_flag("TRUST_PROXY", False),
            log_level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
