"""Secrets Manager helpers with caching."""

from __future__ import annotations

import base64
import json
from typing import Any

import boto3

_CLIENT_CACHE: dict[str | None, Any] = {}
_SECRET_CACHE: dict[str, dict[str, Any]] = {}


def get_secretsmanager_client(region_name: str | None = None) -> Any:
    """Return a cached Secrets Manager client."""
    if region_name in _CLIENT_CACHE:
        return _CLIENT_CACHE[region_name]
    client = boto3.client(  # type: ignore[call-overload]
        "secretsmanager",
        region_name=region_name,
    )
    _CLIENT_CACHE[region_name] = client
    return client


def get_secret_json(secret_arn: str) -> dict[str, Any]:
    """Fetch a secret from AWS Secrets Manager and parse JSON."""
    if secret_arn in _SECRET_CACHE:
        return _SECRET_CACHE[secret_arn]

    response = get_secretsmanager_client().get_secret_value(SecretId=secret_arn)
    secret_str = response.get("SecretString")
    if not secret_str and response.get("SecretBinary"):
        secret_str = base64.b64decode(response["SecretBinary"]).decode("utf-8")
    if not secret_str:
        raise RuntimeError("Secret value is empty")

    secret_payload = json.loads(secret_str)
    if not isinstance(secret_payload, dict):
        raise RuntimeError("Secret value is not a JSON object")
    _SECRET_CACHE[secret_arn] = secret_payload
    return secret_payload


def clear_secret_cache() -> None:
    """Clear cached secrets and clients (useful in tests)."""
    _SECRET_CACHE.clear()
    _CLIENT_CACHE.clear()
