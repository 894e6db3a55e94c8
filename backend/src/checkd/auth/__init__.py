"""Credential validation for device tokens and access assertions."""

from checkd.auth.classifier import (
    AccessCredential,
    Credential,
    DeviceCredential,
    NO_CREDENTIAL,
    classify,
)
from checkd.auth.validator import CredentialValidator

__all__ = [
    "AccessCredential",
    "Credential",
    "CredentialValidator",
    "DeviceCredential",
    "NO_CREDENTIAL",
    "classify",
]
