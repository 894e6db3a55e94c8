"""Sign short-lived service assertions for the attestation authority.

The assertion is an ES256 JWT whose header names the signing key and
whose payload carries the device claim alongside ``iat``, ``iss`` and
``exp`` (one hour after ``iat``).
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from uuid import uuid4

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from checkd.config import SigningIdentity
from checkd.exceptions import SigningError

ASSERTION_ALGORITHM = "ES256"
ASSERTION_LIFETIME_SECONDS = 3600


@dataclass(frozen=True)
class DeviceClaim:
    """Claim submitted for attestation; ``timestamp`` is epoch milliseconds."""

    device_token: str = field(repr=False)
    transaction_id: str
    timestamp: int

    @property
    def issued_at(self) -> int:
        return self.timestamp // 1000

    def to_payload(self) -> dict[str, Any]:
        return {
            "device_token": self.device_token,
            "transaction_id": self.transaction_id,
            "timestamp": self.timestamp,
        }


def new_device_claim(device_token: str, now_ms: int | None = None) -> DeviceClaim:
    """Create a fresh claim with a unique transaction id."""
    timestamp = int(time.time() * 1000) if now_ms is None else now_ms
    return DeviceClaim(
        device_token=device_token,
        transaction_id=f"trns-{timestamp}-{uuid4().hex[:12]}",
        timestamp=timestamp,
    )


def load_signing_key(pem: str) -> ec.EllipticCurvePrivateKey:
    """Parse a PKCS8 PEM private key and require a P-256 curve.

    Raises:
        SigningError: If the key cannot be parsed or is not P-256.
    """
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SigningError(
            "Could not import signing key",
            detail=type(exc).__name__,
        ) from exc

    if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(
        key.curve, ec.SECP256R1
    ):
        raise SigningError("Signing key must be a P-256 EC private key")
    return key


def sign_assertion(claim: DeviceClaim, identity: SigningIdentity) -> str:
    """Produce the signed assertion for a claim.

    Raises:
        SigningError: If the key is unusable or signing fails.
    """
    key = load_signing_key(identity.private_key)
    issued_at = claim.issued_at
    payload = {
        **claim.to_payload(),
        "iat": issued_at,
        "iss": identity.issuer,
        "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
    }
    try:
        return jwt.encode(
            payload,
            key,
            algorithm=ASSERTION_ALGORITHM,
            headers={"kid": identity.key_id},
        )
    except (jwt.PyJWTError, ValueError, TypeError) as exc:
        raise SigningError(
            "Could not sign assertion",
            detail=type(exc).__name__,
        ) from exc
