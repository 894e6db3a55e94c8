"""Process-wide configuration for the credential validator.

Configuration is read once from the environment (and optionally from
Secrets Manager) and then shared read-only by every validation.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from dataclasses import field
from typing import Optional

from checkd.exceptions import ConfigurationError
from checkd.services.secrets import get_secret_json

ACCESS_DOMAIN = "cloudflareaccess.com"
ACCESS_CERTS_PATH = "/cdn-cgi/access/certs"

DEFAULT_HTTP_TIMEOUT = 5.0
DEFAULT_KEY_SET_CACHE_TTL = 3600


@dataclass(frozen=True)
class SigningIdentity:
    """Key material used to sign assertions for the attestation authority."""

    key_id: str
    private_key: str = field(repr=False)
    issuer: str


@dataclass(frozen=True)
class RemoteTrustConfig:
    """Trust anchors for bearer tokens issued by the access proxy."""

    team_identifier: str
    audience_tag: str
    key_set_origin: str = ""

    def __post_init__(self) -> None:
        if not self.key_set_origin:
            object.__setattr__(
                self,
                "key_set_origin",
                f"{self.team_domain}{ACCESS_CERTS_PATH}",
            )

    @property
    def team_domain(self) -> str:
        return f"https://{self.team_identifier}.{ACCESS_DOMAIN}"

    @property
    def expected_issuer(self) -> str:
        return self.team_domain


@dataclass(frozen=True)
class CheckdConfig:
    signing: Optional[SigningIdentity] = None
    access: Optional[RemoteTrustConfig] = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    key_set_cache_ttl: int = DEFAULT_KEY_SET_CACHE_TTL


def _env(name: str) -> str:
    return os.getenv(name, "").strip()


def _normalize_pem(value: str) -> str:
    """Unescape PEM material stored with literal ``\\n`` sequences."""
    return value.replace("\\n", "\n").strip()


def _load_signing_identity() -> Optional[SigningIdentity]:
    secret_arn = _env("CHECKD_SIGNING_SECRET_ARN")
    if secret_arn:
        payload = get_secret_json(secret_arn)
        key_id = str(payload.get("key_id") or "").strip()
        private_key = str(payload.get("private_key") or "")
        issuer = str(payload.get("issuer") or "").strip()
        if not key_id or not private_key or not issuer:
            raise ConfigurationError(
                "CHECKD_SIGNING_SECRET_ARN",
                detail="Secret must define key_id, private_key and issuer",
            )
    else:
        key_id = _env("APPLE_KEY_ID")
        private_key = os.getenv("APPLE_PRIVATE_KEY", "")
        issuer = _env("APPLE_DEVELOPER_ID")
        if not key_id or not private_key.strip() or not issuer:
            return None

    return SigningIdentity(
        key_id=key_id,
        private_key=_normalize_pem(private_key),
        issuer=issuer,
    )


def _load_access_config() -> Optional[RemoteTrustConfig]:
    team = _env("CF_TEAM_NAME")
    audience = _env("CF_AUD_TAG")
    if not team or not audience:
        return None
    return RemoteTrustConfig(
        team_identifier=team,
        audience_tag=audience,
        key_set_origin=_env("CF_CERTS_URL"),
    )


def _positive_number(name: str, default: float) -> float:
    raw = _env(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(name, detail=f"Not a number: {raw}") from exc
    if value <= 0:
        raise ConfigurationError(name, detail="Must be positive")
    return value


def load_config() -> CheckdConfig:
    """Build configuration from the environment.

    A path whose settings are absent is left as ``None`` and will
    always produce a negative verdict.

    Raises:
        ConfigurationError: If a setting is present but malformed.
    """
    return CheckdConfig(
        signing=_load_signing_identity(),
        access=_load_access_config(),
        http_timeout=_positive_number("CHECKD_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        key_set_cache_ttl=int(
            _positive_number("CHECKD_JWKS_CACHE_TTL", DEFAULT_KEY_SET_CACHE_TTL)
        ),
    )


_CONFIG: CheckdConfig | None = None


def get_config() -> CheckdConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config()
    return _CONFIG


def clear_config_cache() -> None:
    """Forget the loaded configuration (useful in tests)."""
    global _CONFIG
    _CONFIG = None
