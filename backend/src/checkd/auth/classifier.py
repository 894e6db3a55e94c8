"""Select which credential a request presents.

The access-proxy assertion is checked before the device token. A
request carrying both is always validated on the access path.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Union

ACCESS_ASSERTION_HEADER = "Cf-Access-Jwt-Assertion"
DEVICE_TOKEN_HEADER = "X-Apple-Device-Token"
DEVICE_DEVELOPMENT_HEADER = "X-Apple-Device-Development"


@dataclass(frozen=True)
class AccessCredential:
    token: str = field(repr=False)


@dataclass(frozen=True)
class DeviceCredential:
    token: str = field(repr=False)
    development: bool = False


@dataclass(frozen=True)
class NoCredential:
    pass


NO_CREDENTIAL = NoCredential()

Credential = Union[AccessCredential, DeviceCredential, NoCredential]


def find_header(headers: Optional[Mapping[str, Any]], name: str) -> Optional[str]:
    """Get a header value case-insensitively, or None when absent."""
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if str(key).lower() == wanted:
            return "" if value is None else str(value)
    return None


def classify(headers: Optional[Mapping[str, Any]]) -> Credential:
    """Decide which validation path applies to a header set."""
    access_token = find_header(headers, ACCESS_ASSERTION_HEADER)
    if access_token is not None:
        return AccessCredential(token=access_token)

    device_token = find_header(headers, DEVICE_TOKEN_HEADER)
    if device_token is not None:
        development = find_header(headers, DEVICE_DEVELOPMENT_HEADER) == "true"
        return DeviceCredential(token=device_token, development=development)

    return NO_CREDENTIAL
