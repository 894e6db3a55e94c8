"""API Gateway request authorizer backed by the credential validator.

Allows a request when it carries a verified access assertion or a
device token accepted by DeviceCheck.

SECURITY NOTES:
- Denials carry a single generic reason; the cause is only logged
- The authorizer fails closed when configuration cannot be loaded
"""

from __future__ import annotations

from typing import Any

from checkd.auth.classifier import AccessCredential
from checkd.auth.classifier import classify
from checkd.auth.validator import get_validator
from checkd.utils.logging import configure_logging
from checkd.utils.logging import get_logger
from checkd.utils.responses import iam_policy

configure_logging()
logger = get_logger(__name__)


def lambda_handler(event: dict[str, Any], _context: Any) -> dict[str, Any]:
    """Authorize a request from its credential headers."""
    headers = event.get("headers") or {}
    method_arn = event.get("methodArn", "")

    try:
        validator = get_validator()
    except Exception as exc:
        logger.warning(f"Authorizer misconfigured: {type(exc).__name__}")
        return iam_policy("Deny", method_arn, "unconfigured", {"reason": "not_configured"})

    if not validator.check(headers):
        return iam_policy("Deny", method_arn, "invalid", {"reason": "verification_failed"})

    principal = "access" if isinstance(classify(headers), AccessCredential) else "device"
    return iam_policy("Allow", method_arn, principal, {"credential": principal})
