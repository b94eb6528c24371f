import logging
import os
from datetime import datetime, timezone
from typing import Callable, Optional

from flask import Flask, Response, jsonify, request
from flask_limiter.errors import RateLimitExceeded
from werkzeug.middleware.proxy_fix import ProxyFix

from .admin import AdminGateway
from .config import Settings, configure_logging
from .dashboard import render_dashboard
from .errors import LicenseServerError, RateLimited
from .lifecycle import LifecycleEngine, utcnow
from .limits import BULK_LIMIT, BULK_SCOPE, ISSUE_LIMIT, REGISTER_LIMIT, create_limiter
from .store import KeyStore

log = logging.getLogger(__name__)


def _text(body: str, status: int = 200) -> Response:
    return Response(body, status=status, mimetype="text/plain")


def _json_body() -> dict:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[KeyStore] = None,
    clock: Callable[[], datetime] = utcnow,
) -> Flask:
    settings = settings or Settings.from_env()
    store = store or KeyStore(settings)

    app = Flask(__name__)
    if settings.trust_proxy:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1)

    engine = LifecycleEngine(store, settings, clock=clock)
    gateway = AdminGateway(settings)
    limiter = create_limiter(app, settings)

    @app.errorhandler(LicenseServerError)
    def handle_license_error(e: LicenseServerError):
        if e.text:
            return _text(e.message, e.status_code)
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limited(e: RateLimitExceeded):
        log.warning("rate limit hit on %s from %s (%s)", request.path, request.remote_addr, e.description)
        return handle_license_error(RateLimited())

    @app.get("/health")
    def health():
        return jsonify({"ok": True, "service": "onekey-license", "time": datetime.now(timezone.utc).isoformat()})

    @app.get("/api/get_key")
    @limiter.limit(ISSUE_LIMIT)
    def get_key():
        return jsonify({"key": engine.issue_key()})

    @app.get("/api/verify_key")
    @limiter.shared_limit(BULK_LIMIT, scope=BULK_SCOPE)
    def verify_key():
        state = engine.verify_key(request.args.get("key"))
        return _text(state.value)

    @app.post("/api/save_user")
    @limiter.limit(REGISTER_LIMIT)
    def save_user():
        data = _json_body()
        result = engine.save_user(
            ip=request.remote_addr,
            hwid=data.get("hwid"),
            cookies=data.get("cookies", ""),
            key=data.get("key"),
        )
        return jsonify(result.to_dict())

    @app.post("/api/clean_old_keys")
    @limiter.shared_limit(BULK_LIMIT, scope=BULK_SCOPE)
    def clean_old_keys():
        gateway.require(request)
        data = _json_body()
        deleted = engine.clean_old_keys(data.get("days"))
        return jsonify({"deleted": deleted})

    @app.post("/api/delete_key")
    def delete_key():
        gateway.require(request, text=True)
        data = _json_body()
        engine.delete_key(data.get("key"))
        return _text("Key deleted")

    @app.post("/api/delete_user")
    def delete_user():
        gateway.require(request, text=True)
        data = _json_body()
        engine.delete_user(data.get("hwid"))
        return _text("User deleted")

    @app.get("/user/admin")
    def admin_dashboard():
        gateway.require(request, text=True)
        keys, users = engine.snapshot()
        return render_dashboard(keys, users, admin_key=gateway.token_from(request))

    return app


# local dev helper
if __name__ == "__main__":
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    app = create_app(settings)
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "5000")), debug=False)
