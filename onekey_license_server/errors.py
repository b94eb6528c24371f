from __future__ import annotations


class LicenseServerError(Exception):
    """
    Base for every failure the HTTP surface turns into a response.

    `text=True` renders the message as a plain-text body instead of
    {"error": message}; the verify/delete/dashboard routes answer in text.
    """
    status_code = 500

    def __init__(self, message: str, text: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.text = text


class ValidationError(LicenseServerError):
    """Malformed key, hwid or request body."""
    status_code = 400


class AuthError(LicenseServerError):
    """Admin token absent or wrong. Never says which."""
    status_code = 403

    def __init__(self, text: bool = False) -> None:
        super().__init__("Access denied", text=text)


class UpstreamError(LicenseServerError):
    """Store unreachable, timed out or answered with an unexpected status."""
    status_code = 500


class RateLimited(LicenseServerError):
    status_code = 429

    def __init__(self) -> None:
        super().__init__("Too many requests")
