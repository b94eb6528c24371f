# license_manager.py
from __future__ import annotations

import hashlib
import json
import os
import platform
import socket
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import requests


@dataclass
class LicenseResult:
    ok: bool
    message: str
    license_key: str
    device_id: str
    state: str = ""
    raw: Optional[Dict[str, Any]] = None


class LicenseManager:
    """
    Client side of the one-time key server:
    - Always generates device_id (the hwid) locally first
    - Always returns device_id even if the server call fails
    - Stores the bound key locally after registration
    """

    def __init__(
        self,
        api_base: Optional[str] = None,
        app_name: str = "ONEKEY",
        storage_dir: Optional[Path] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_base = (api_base or os.getenv("ONEKEY_LICENSE_API", "")).strip() or "http://127.0.0.1:5000"
        self.app_name = app_name
        self.session = session or requests.Session()

        if storage_dir is None:
            storage_dir = Path.home() / f".{app_name.lower()}"
        self.storage_dir = storage_dir
        self.storage_dir.mkdir(parents=True, exist_ok=True)

        self.state_path = self.storage_dir / "license_state.json"

        self._device_id = self._make_device_id()

    # ---------------------------
    # Device ID (stable)
    # ---------------------------
    def get_device_id(self) -> str:
        return self._device_id

    def _make_device_id(self) -> str:
        """
        Stable(ish) hardware id, hashed so raw identifiers don't leak.
        32 upper-case hex chars, which the server's hwid check accepts.
        """
        parts = [
            platform.system(),
            platform.release(),
            platform.machine(),
            socket.gethostname(),
            str(uuid.getnode()),
            self.app_name,
        ]
        raw = "|".join(parts).encode("utf-8", errors="ignore")
        return hashlib.sha256(raw).hexdigest()[:32].upper()

    # ---------------------------
    # Local state
    # ---------------------------
    def get_saved_license_key(self) -> str:
        st = self._load_state()
        return str(st.get("license_key", "") or "")

    def _load_state(self) -> Dict[str, Any]:
        if not self.state_path.exists():
            return {}
        try:
            return json.loads(self.state_path.read_text(encoding="utf-8")) or {}
        except (OSError, ValueError):
            return {}

    def _save_state(self, license_key: str, registered_at: str) -> None:
        data = {
            "app": self.app_name,
            "license_key": license_key,
            "device_id": self._device_id,
            "registered_at": registered_at,
        }
        self.state_path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    # ---------------------------
    # HTTP helpers
    # ---------------------------
    def _url(self, path: str) -> str:
        return self.api_base.rstrip("/") + "/" + path.lstrip("/")

    def _failed(self, what: str, license_key: str, e: Exception) -> LicenseResult:
        return LicenseResult(
            ok=False,
            message=f"{what} failed: {e}",
            license_key=license_key,
            device_id=self._device_id,
            state="error",
        )

    # ---------------------------
    # Public API used by UI
    # ---------------------------
    def request_key(self) -> LicenseResult:
        try:
            r = self.session.get(self._url("/api/get_key"), timeout=12)
            r.raise_for_status()
            data = r.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            return self._failed("Key request", "", e)

        key = str(data.get("key", ""))
        return LicenseResult(ok=bool(key), message="Key issued.", license_key=key,
                             device_id=self._device_id, state="issued", raw=data)

    def register(self, license_key: Optional[str] = None) -> LicenseResult:
        license_key = (license_key or "").strip()
        payload: Dict[str, Any] = {"hwid": self._device_id}
        if license_key:
            payload["key"] = license_key

        try:
            r = self.session.post(self._url("/api/save_user"), json=payload, timeout=12)
            r.raise_for_status()
            data = r.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            return self._failed("Registration", license_key, e)

        bound = str(data.get("key", "") or "")
        status = str(data.get("status", ""))
        if not bound:
            return LicenseResult(ok=False, message="Server returned no key.", license_key=license_key,
                                 device_id=self._device_id, state=status, raw=data)

        self._save_state(bound, str(data.get("registered_at", "")))
        message = "Already registered." if status == "exists" else "Registered."
        return LicenseResult(ok=True, message=message, license_key=bound,
                             device_id=self._device_id, state=status, raw=data)

    def verify(self, license_key: Optional[str] = None) -> LicenseResult:
        license_key = (license_key or self.get_saved_license_key()).strip()

        if not license_key:
            return LicenseResult(
                ok=False,
                message="Please enter a license key.",
                license_key=license_key,
                device_id=self._device_id,
                state="invalid",
            )

        try:
            r = self.session.get(self._url("/api/verify_key"), params={"key": license_key}, timeout=12)
            r.raise_for_status()
        except requests.exceptions.RequestException as e:
            return self._failed("License verification", license_key, e)

        state = r.text.strip()
        messages = {
            "valid": "License accepted.",
            "used": "This key was already used.",
            "expired": "This key has expired.",
            "invalid": "Unknown or malformed key.",
        }
        return LicenseResult(
            ok=state == "valid",
            message=messages.get(state, f"Unexpected answer: {state}"),
            license_key=license_key,
            device_id=self._device_id,
            state=state,
        )
