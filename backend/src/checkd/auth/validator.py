"""Validation coordinator.

Turns a header set into a single boolean verdict:

    Start -> NoCredential                         -> False
          -> AttestationPath: claim, sign, attest  -> True on HTTP 200
          -> RemoteKeyPath:   verify               -> True on valid token

Every error is logged here and collapsed into ``False``; nothing raised
by either path escapes ``check``.
"""

from __future__ import annotations

from typing import Any
from typing import Callable
from typing import Mapping
from typing import Optional

from checkd.auth.attestation import attest_device_token
from checkd.auth.classifier import AccessCredential
from checkd.auth.classifier import DeviceCredential
from checkd.auth.classifier import classify
from checkd.auth.jwt_validator import KeySetProvider
from checkd.auth.jwt_validator import RemoteKeySetProvider
from checkd.auth.jwt_validator import verify_access_token
from checkd.auth.signer import DeviceClaim
from checkd.auth.signer import new_device_claim
from checkd.auth.signer import sign_assertion
from checkd.config import CheckdConfig
from checkd.config import get_config
from checkd.exceptions import CheckdError
from checkd.exceptions import ConfigurationError
from checkd.exceptions import MissingCredential
from checkd.utils.logging import get_logger
from checkd.utils.logging import token_fingerprint

logger = get_logger(__name__)

AttestFn = Callable[[str, DeviceClaim, bool, float], bool]


class CredentialValidator:
    """Validate inbound credentials against the configured trust paths."""

    def __init__(
        self,
        config: CheckdConfig,
        key_sets: Optional[KeySetProvider] = None,
        attest: AttestFn = attest_device_token,
    ):
        self.config = config
        self.key_sets = key_sets or RemoteKeySetProvider(
            lifespan=config.key_set_cache_ttl,
            timeout=config.http_timeout,
        )
        self.attest = attest

    def check(self, headers: Optional[Mapping[str, Any]]) -> bool:
        """Return True iff the request carries a credential we trust."""
        try:
            credential = classify(headers)
            if isinstance(credential, AccessCredential):
                logger.info("Validating access assertion")
                return self._check_access(credential)
            if isinstance(credential, DeviceCredential):
                logger.info("Validating device token")
                return self._check_device(credential)
            logger.info("No credential presented")
            return False
        except Exception as exc:  # nosec B110 - verdict must always be a bool
            logger.error(
                f"Unexpected error during credential check: {type(exc).__name__}",
                exc_info=True,
            )
            return False

    def _check_access(self, credential: AccessCredential) -> bool:
        trust = self.config.access
        try:
            if trust is None:
                raise ConfigurationError("CF_TEAM_NAME/CF_AUD_TAG")
            return verify_access_token(credential.token, trust, self.key_sets)
        except CheckdError as exc:
            logger.warning(
                f"Access assertion rejected: {exc.message}",
                extra={
                    "context": {
                        "path": "remote_key",
                        "error": type(exc).__name__,
                        "reason": getattr(exc, "reason", None),
                        "upstream": trust.key_set_origin if trust else None,
                    }
                },
            )
            return False

    def _check_device(self, credential: DeviceCredential) -> bool:
        identity = self.config.signing
        context: dict[str, Any] = {
            "path": "attestation",
            "sandbox": credential.development,
            "token": token_fingerprint(credential.token),
        }
        try:
            if identity is None:
                raise ConfigurationError("APPLE_KEY_ID/APPLE_PRIVATE_KEY/APPLE_DEVELOPER_ID")
            if not credential.token:
                raise MissingCredential("Device token header is empty")
            claim = new_device_claim(credential.token)
            context["transaction_id"] = claim.transaction_id
            assertion = sign_assertion(claim, identity)
            return self.attest(
                assertion,
                claim,
                credential.development,
                self.config.http_timeout,
            )
        except CheckdError as exc:
            context.update(
                {
                    "error": type(exc).__name__,
                    "status_code": getattr(exc, "status", None),
                    "upstream": getattr(exc, "upstream", None),
                }
            )
            logger.warning(
                f"Device token rejected: {exc.message}",
                extra={"context": context},
            )
            return False


_VALIDATOR: CredentialValidator | None = None


def get_validator() -> CredentialValidator:
    """Return the process-wide validator, built from ``get_config()``.

    Raises:
        ConfigurationError: If the environment holds malformed settings.
    """
    global _VALIDATOR
    if _VALIDATOR is None:
        _VALIDATOR = CredentialValidator(get_config())
    return _VALIDATOR


def reset_validator() -> None:
    """Drop the process-wide validator (useful in tests)."""
    global _VALIDATOR
    _VALIDATOR = None
