"""JWT validation for Cloudflare Access assertions.

This module verifies bearer tokens issued by the access proxy against
the team's published JSON Web Key Set.

SECURITY NOTES:
- Signatures are verified before any claim is trusted
- Audience and issuer are both required and checked
- Only asymmetric algorithms are accepted; ``none`` and HMAC never are
"""

from __future__ import annotations

import threading
from typing import Protocol

import jwt
from jwt import PyJWK
from jwt import PyJWKClient
from jwt import PyJWKClientError
from jwt import PyJWKSet

from checkd.config import DEFAULT_HTTP_TIMEOUT
from checkd.config import DEFAULT_KEY_SET_CACHE_TTL
from checkd.config import RemoteTrustConfig
from checkd.exceptions import KeySetFetchError
from checkd.exceptions import TokenVerificationError
from checkd.utils.logging import get_logger

logger = get_logger(__name__)

ALLOWED_ALGORITHMS = ("RS256", "ES256")


class KeySetProvider(Protocol):
    def fetch(self, origin: str, *, refresh: bool = False) -> PyJWKSet:
        ...


class RemoteKeySetProvider:
    """Fetch key sets over HTTPS, caching one ``PyJWKClient`` per origin.

    ``PyJWKClient`` keeps the fetched set for ``lifespan`` seconds. Two
    threads missing the cache at once may both fetch; each stores a
    complete set.
    """

    def __init__(
        self,
        lifespan: int = DEFAULT_KEY_SET_CACHE_TTL,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
    ):
        self.lifespan = lifespan
        self.timeout = timeout
        self._clients: dict[str, PyJWKClient] = {}
        self._lock = threading.Lock()

    def _client(self, origin: str) -> PyJWKClient:
        with self._lock:
            client = self._clients.get(origin)
            if client is None:
                client = PyJWKClient(
                    origin,
                    cache_jwk_set=True,
                    lifespan=self.lifespan,
                    timeout=self.timeout,
                )
                self._clients[origin] = client
            return client

    def fetch(self, origin: str, *, refresh: bool = False) -> PyJWKSet:
        try:
            return self._client(origin).get_jwk_set(refresh=refresh)
        except (PyJWKClientError, jwt.PyJWKSetError) as exc:
            raise KeySetFetchError(origin, detail=str(exc)) from exc


class StaticKeySetProvider:
    """Serve a fixed key set, e.g. in tests or air-gapped deployments."""

    def __init__(self, key_set: PyJWKSet):
        self.key_set = key_set

    def fetch(self, origin: str, *, refresh: bool = False) -> PyJWKSet:
        return self.key_set


def _find_key(key_set: PyJWKSet, kid: str) -> PyJWK | None:
    for key in key_set.keys:
        if key.key_id == kid:
            return key
    return None


def _resolve_signing_key(
    token: str,
    origin: str,
    key_sets: KeySetProvider,
) -> PyJWK:
    try:
        header = jwt.get_unverified_header(token)
    except jwt.DecodeError as exc:
        raise TokenVerificationError(
            "Failed to decode token header",
            reason="invalid_token",
        ) from exc

    kid = header.get("kid")
    if not kid:
        raise TokenVerificationError("Token has no key id", reason="invalid_token")

    key = _find_key(key_sets.fetch(origin), kid)
    if key is None:
        # Keys rotate; refetch once before giving up.
        key = _find_key(key_sets.fetch(origin, refresh=True), kid)
    if key is None:
        raise TokenVerificationError(
            "Signing key not found in key set",
            reason="unknown_key",
        )

    if key.algorithm_name not in ALLOWED_ALGORITHMS:
        raise TokenVerificationError(
            f"Unsupported key algorithm: {key.algorithm_name}",
            reason="invalid_token",
        )
    return key


def verify_access_token(
    token: str,
    trust: RemoteTrustConfig,
    key_sets: KeySetProvider,
) -> bool:
    """Verify an access assertion's signature, audience and issuer.

    Returns:
        True when every check passes.

    Raises:
        KeySetFetchError: If the key set cannot be fetched.
        TokenVerificationError: If the token fails any check.
    """
    if not token:
        raise TokenVerificationError("Empty token", reason="invalid_token")

    signing_key = _resolve_signing_key(token, trust.key_set_origin, key_sets)

    try:
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=[signing_key.algorithm_name],
            audience=trust.audience_tag,
            issuer=trust.expected_issuer,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_aud": True,
                "verify_iss": True,
                "require": ["exp", "iss", "aud"],
            },
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenVerificationError(
            "Token has expired",
            reason="token_expired",
        ) from exc
    except jwt.InvalidAudienceError as exc:
        raise TokenVerificationError(
            "Invalid token audience",
            reason="invalid_audience",
        ) from exc
    except jwt.InvalidIssuerError as exc:
        raise TokenVerificationError(
            "Invalid token issuer",
            reason="invalid_issuer",
        ) from exc
    except jwt.InvalidSignatureError as exc:
        raise TokenVerificationError(
            "Invalid token signature",
            reason="invalid_signature",
        ) from exc
    except jwt.MissingRequiredClaimError as exc:
        raise TokenVerificationError(
            f"Missing required claim: {exc.claim}",
            reason="invalid_token",
        ) from exc
    except jwt.PyJWTError as exc:
        raise TokenVerificationError(
            "Token verification failed",
            reason="invalid_token",
        ) from exc

    logger.info(
        "Access token verified",
        extra={
            "context": {
                "kid": signing_key.key_id,
                "sub": str(claims.get("sub", ""))[:8],
            }
        },
    )
    return True
