"""Shared response utilities for Lambda handlers."""

from __future__ import annotations

import json
from typing import Any
from typing import Optional


def get_security_headers() -> dict[str, str]:
    """Get security headers for all responses.

    Verdicts must never be cached by intermediaries, since the same URL
    answers differently per credential.
    """
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Cache-Control": "no-store, no-cache, must-revalidate",
        "Pragma": "no-cache",
    }


def json_response(
    status_code: int,
    body: Any,
    headers: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    """Create a JSON API Gateway proxy response."""
    response_headers = {"Content-Type": "application/json"}
    response_headers.update(get_security_headers())
    if headers:
        response_headers.update(headers)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(body, default=str),
    }


def iam_policy(
    effect: str,
    method_arn: str,
    principal_id: str,
    context: dict[str, Any],
) -> dict[str, Any]:
    """Build an IAM policy document for an API Gateway authorizer.

    Allow policies are broadened to every method of the stage so that
    API Gateway can cache them across endpoints.
    """
    resource = method_arn
    if effect == "Allow":
        parts = method_arn.split("/")
        if len(parts) >= 2:
            resource = "/".join(parts[:2]) + "/*"

    return {
        "principalId": principal_id,
        "policyDocument": {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Action": "execute-api:Invoke",
                    "Effect": effect,
                    "Resource": resource,
                }
            ],
        },
        "context": context,
    }
