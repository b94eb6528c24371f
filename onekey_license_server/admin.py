from __future__ import annotations

import hmac
import logging

from flask import Request

from .config import Settings
from .errors import AuthError

log = logging.getLogger(__name__)

ADMIN_HEADER = "X-Admin-Key"
ADMIN_QUERY_PARAM = "d"


class AdminGateway:
    """Single static shared secret. No per-admin identity, no rotation."""

    def __init__(self, settings: Settings) -> None:
        self._secret = settings.admin_key.encode("utf-8")

    def token_from(self, request: Request) -> str:
        return request.headers.get(ADMIN_HEADER) or request.args.get(ADMIN_QUERY_PARAM) or ""

    def is_admin(self, request: Request) -> bool:
        token = self.token_from(request)
        if not token or not self._secret:
            return False
        return hmac.compare_digest(token.encode("utf-8"), self._secret)

    def require(self, request: Request, text: bool = False) -> None:
        if not self.is_admin(request):
            log.warning("admin access denied for %s %s from %s", request.method, request.path, request.remote_addr)
            raise AuthError(text=text)
