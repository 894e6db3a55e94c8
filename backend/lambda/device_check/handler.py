"""Lambda entrypoint for the device check endpoint.

Answers 200 when the request carries a trusted credential and 401
otherwise. Failure detail is only written to the logs.
"""

from __future__ import annotations

from typing import Any
from typing import Mapping

from checkd.auth.validator import get_validator
from checkd.utils.logging import clear_request_context
from checkd.utils.logging import configure_logging
from checkd.utils.logging import get_logger
from checkd.utils.logging import set_request_context
from checkd.utils.responses import json_response

configure_logging()
logger = get_logger(__name__)

HEALTH_PATH = "/health"


def _is_valid(headers: Mapping[str, Any]) -> bool:
    try:
        validator = get_validator()
    except Exception as exc:
        logger.error(f"Validator unavailable: {type(exc).__name__}")
        return False
    return validator.check(headers)


def lambda_handler(event: Mapping[str, Any], context: Any) -> dict[str, Any]:
    """Run the credential check for an API Gateway proxy event."""
    set_request_context(req_id=getattr(context, "aws_request_id", None))
    try:
        if event.get("path") == HEALTH_PATH:
            return json_response(200, {"status": "Checkd is running!"})

        headers = event.get("headers") or {}
        if _is_valid(headers):
            return json_response(200, {"message": "Device Check Succeeded!"})
        return json_response(401, {"error": "Device Check Failed"})
    finally:
        clear_request_context()
