from __future__ import annotations

from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .config import Settings

# per client address, sliding 60s windows
BULK_LIMIT = "20 per minute"      # verify_key + clean_old_keys, one shared counter
BULK_SCOPE = "bulk"
ISSUE_LIMIT = "10 per minute"     # get_key
REGISTER_LIMIT = "5 per minute"   # save_user


def create_limiter(app: Flask, settings: Settings) -> Limiter:
    return Limiter(
        get_remote_address,
        app=app,
        storage_uri="memory://",
        strategy="moving-window",
        enabled=settings.rate_limit_enabled,
    )
