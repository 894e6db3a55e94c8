"""Custom exception classes for credential validation.

Every error raised by the validation paths derives from ``CheckdError``.
The coordinator absorbs all of them into a negative verdict, so the
status codes carried here only drive logging and the thin HTTP layer.
"""

from __future__ import annotations

from typing import Any
from typing import Optional


class CheckdError(Exception):
    """Base exception for validation errors.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code (default 401).
        detail: Optional additional context, safe to log.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 401,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.detail = detail

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a log-friendly dictionary."""
        result: dict[str, Any] = {"error": self.message}
        if self.detail:
            result["detail"] = self.detail
        return result


class MissingCredential(CheckdError):
    """Raised when no recognized credential header is present."""

    def __init__(self, message: str = "No credential presented"):
        super().__init__(message)


class SigningError(CheckdError):
    """Raised when the service assertion cannot be signed.

    Covers both an unparseable private key and a failed signature
    operation. This is a local failure and is never retried.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message, status_code=500, detail=detail)


class UpstreamTransportError(CheckdError):
    """Raised when an upstream endpoint cannot be reached."""

    def __init__(self, upstream: str, detail: Optional[str] = None):
        super().__init__(
            f"Upstream unreachable: {upstream}",
            status_code=502,
            detail=detail,
        )
        self.upstream = upstream


class UpstreamRejected(CheckdError):
    """Raised when the attestation endpoint answers with a non-200 status."""

    def __init__(self, upstream: str, status: int):
        super().__init__(
            f"Upstream rejected request with status {status}",
            detail=f"Upstream: {upstream}",
        )
        self.upstream = upstream
        self.status = status


class KeySetFetchError(CheckdError):
    """Raised when the JSON Web Key Set cannot be fetched."""

    def __init__(self, origin: str, detail: Optional[str] = None):
        super().__init__(
            f"Could not fetch key set from {origin}",
            status_code=502,
            detail=detail,
        )
        self.origin = origin


class TokenVerificationError(CheckdError):
    """Raised when a bearer token fails signature or claim checks."""

    def __init__(self, message: str, reason: str = "invalid_token"):
        super().__init__(message, detail=f"Reason: {reason}")
        self.reason = reason


class ConfigurationError(CheckdError):
    """Raised when required configuration is missing or malformed."""

    def __init__(self, config_name: str, detail: Optional[str] = None):
        super().__init__(
            f"Missing or invalid configuration: {config_name}",
            status_code=500,
            detail=detail,
        )
        self.config_name = config_name
