"""Credential-validation gateway for device tokens and access assertions."""

__version__ = "0.1.0"
