"""Device token attestation against Apple DeviceCheck.

SECURITY NOTES:
- The signed assertion and device token are sent only to the
  DeviceCheck hosts below and are never logged
- Upstream error bodies are logged (truncated) but never returned
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request

from checkd.auth.signer import DeviceClaim
from checkd.config import DEFAULT_HTTP_TIMEOUT
from checkd.exceptions import UpstreamRejected
from checkd.exceptions import UpstreamTransportError
from checkd.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTION_HOST = "api.devicecheck.apple.com"
SANDBOX_HOST = "api.development.devicecheck.apple.com"
VALIDATE_PATH = "/v1/validate_device_token"

_MAX_LOGGED_BODY = 512


def attestation_endpoint(use_sandbox: bool) -> str:
    """Return the validation URL for the sandbox or production host."""
    host = SANDBOX_HOST if use_sandbox else PRODUCTION_HOST
    return f"https://{host}{VALIDATE_PATH}"


def _read_body(response) -> str:
    try:
        return response.read().decode("utf-8", errors="replace")
    except (OSError, ValueError) as exc:
        logger.debug(f"Could not read upstream body: {type(exc).__name__}")
        return ""


def attest_device_token(
    assertion: str,
    claim: DeviceClaim,
    use_sandbox: bool,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> bool:
    """Submit a claim for validation; one attempt, no retry.

    Returns:
        True when the upstream answers with status 200.

    Raises:
        UpstreamRejected: On any other status.
        UpstreamTransportError: On connection, DNS or timeout failures.
    """
    url = attestation_endpoint(use_sandbox)
    request = urllib.request.Request(
        url,
        data=json.dumps(claim.to_payload()).encode("utf-8"),
        headers={
            "Authorization": f"Bearer {assertion}",
            "Content-Type": "application/json",
        },
        method="POST",
    )

    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            status = response.status
            body = _read_body(response)
    except urllib.error.HTTPError as exc:
        status = exc.code
        body = _read_body(exc)
    except (urllib.error.URLError, TimeoutError, OSError) as exc:
        raise UpstreamTransportError(
            url,
            detail=f"{type(exc).__name__}: {getattr(exc, 'reason', exc)}",
        ) from exc

    if status != 200:
        logger.warning(
            f"DeviceCheck rejected transaction {claim.transaction_id}",
            extra={
                "context": {
                    "upstream": url,
                    "status_code": status,
                    "body": body[:_MAX_LOGGED_BODY],
                }
            },
        )
        raise UpstreamRejected(url, status)

    logger.info(f"DeviceCheck accepted transaction {claim.transaction_id}")
    return True
