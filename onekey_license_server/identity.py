from __future__ import annotations

import base64
import re
from typing import Optional, Tuple

IP_REGEX = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")
HWID_REGEX = re.compile(r"^[0-9A-Fa-f\-]{5,}$")

UNKNOWN_IP = "unknown_ip"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def _b64decode(s: str) -> bytes:
    pad = "=" * (-len(s) % 4)
    return base64.b64decode(s + pad)


def validate_ip(ip: Optional[str]) -> bool:
    return isinstance(ip, str) and IP_REGEX.match(ip) is not None


def validate_hwid(hwid: Optional[str]) -> bool:
    return isinstance(hwid, str) and HWID_REGEX.match(hwid) is not None


def normalize_ip(ip: Optional[str]) -> str:
    return ip if validate_ip(ip) else UNKNOWN_IP


def get_user_id(ip: Optional[str], hwid: str) -> str:
    """
    Stable identifier for one (ip, hwid) pair.
    Same inputs always give the same id, which is what makes registration
    idempotent.
    """
    return _b64(f"{normalize_ip(ip)}_{hwid}".encode("utf-8"))


def decode_user_id(user_id: str) -> Tuple[str, str]:
    # hwid never contains "_", so the last one is the separator
    raw = _b64decode(user_id).decode("utf-8")
    ip, _, hwid = raw.rpartition("_")
    return ip, hwid
