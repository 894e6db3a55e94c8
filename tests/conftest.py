"""Pytest configuration and fixtures for backend tests.

This module provides throwaway key material, trust configuration and
token factories so that no test touches real credentials or the network.
"""

from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Any
from typing import Callable

import pytest

# Add backend source to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

import jwt  # noqa: E402
from cryptography.hazmat.primitives import serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import ec  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import rsa  # noqa: E402
from jwt import PyJWKSet  # noqa: E402
from jwt.algorithms import RSAAlgorithm  # noqa: E402

ACCESS_KID = 'access-kid-1'
TEAM = 'acme'
AUDIENCE = 'aud-tag-123'
ISSUER = f'https://{TEAM}.cloudflareaccess.com'

_CONFIG_ENV_VARS = (
    'APPLE_KEY_ID',
    'APPLE_PRIVATE_KEY',
    'APPLE_DEVELOPER_ID',
    'CHECKD_SIGNING_SECRET_ARN',
    'CF_TEAM_NAME',
    'CF_AUD_TAG',
    'CF_CERTS_URL',
    'CHECKD_HTTP_TIMEOUT',
    'CHECKD_JWKS_CACHE_TTL',
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    """Start every test without ambient configuration or cached state."""
    from checkd.auth.validator import reset_validator
    from checkd.config import clear_config_cache
    from checkd.services.secrets import clear_secret_cache

    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    clear_config_cache()
    clear_secret_cache()
    reset_validator()
    yield
    clear_config_cache()
    clear_secret_cache()
    reset_validator()


# --- Signing Fixtures ---


def _pkcs8_pem(private_key: Any) -> str:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode('utf-8')


@pytest.fixture(scope='session')
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope='session')
def ec_private_pem(ec_private_key) -> str:
    return _pkcs8_pem(ec_private_key)


@pytest.fixture(scope='session')
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope='session')
def rsa_private_pem(rsa_private_key) -> str:
    return _pkcs8_pem(rsa_private_key)


@pytest.fixture
def signing_identity(ec_private_pem):
    from checkd.config import SigningIdentity

    return SigningIdentity(
        key_id='ABC123DEFG',
        private_key=ec_private_pem,
        issuer='TEAM123456',
    )


# --- Access Fixtures ---


@pytest.fixture
def trust_config():
    from checkd.config import RemoteTrustConfig

    return RemoteTrustConfig(team_identifier=TEAM, audience_tag=AUDIENCE)


@pytest.fixture(scope='session')
def access_key_set(rsa_private_key) -> PyJWKSet:
    """Key set publishing the public half of ``rsa_private_key``."""
    jwk = json.loads(RSAAlgorithm.to_jwk(rsa_private_key.public_key()))
    jwk.update({'kid': ACCESS_KID, 'alg': 'RS256', 'use': 'sig'})
    return PyJWKSet.from_dict({'keys': [jwk]})


@pytest.fixture
def static_key_sets(access_key_set):
    from checkd.auth.jwt_validator import StaticKeySetProvider

    return StaticKeySetProvider(access_key_set)


@pytest.fixture
def make_access_token(rsa_private_key) -> Callable[..., str]:
    """Build an RS256 access assertion; keyword overrides replace claims."""

    def _make(
        key: Any = None,
        kid: str | None = ACCESS_KID,
        algorithm: str = 'RS256',
        **overrides: Any,
    ) -> str:
        now = int(time.time())
        claims: dict[str, Any] = {
            'aud': [AUDIENCE],
            'iss': ISSUER,
            'sub': 'user-7f3a9c',
            'email': 'someone@example.com',
            'iat': now,
            'exp': now + 300,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        headers = {'kid': kid} if kid else None
        return jwt.encode(
            claims,
            key if key is not None else rsa_private_key,
            algorithm=algorithm,
            headers=headers,
        )

    return _make


# --- Config Fixtures ---


@pytest.fixture
def checkd_config(signing_identity, trust_config):
    from checkd.config import CheckdConfig

    return CheckdConfig(
        signing=signing_identity,
        access=trust_config,
        http_timeout=2.5,
        key_set_cache_ttl=600,
    )


# --- Mock Fixtures ---


@pytest.fixture
def mock_boto3_client(mocker):
    """Mock boto3 client for AWS service calls."""
    return mocker.patch('boto3.client')


def http_response(status: int, body: bytes = b'') -> Any:
    """Stand-in for the object returned by ``urllib.request.urlopen``."""
    from unittest.mock import MagicMock

    response = MagicMock()
    response.status = status
    response.read.return_value = body
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response
