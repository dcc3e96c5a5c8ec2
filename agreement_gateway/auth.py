"""Access-code gate for the agreement gateway.

The browser client sends a shared access code in the X-Access-Code header.
The expected code is read from the environment and compared by SHA-256
digest in constant time.
"""

import hashlib
import hmac
from typing import Optional


class AuthenticationError(Exception):
    """Raised when the access code is missing or wrong."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(detail)


def hash_access_code(raw_code: str) -> str:
    """Compute the hex SHA-256 digest of an access code."""
    return hashlib.sha256(raw_code.encode("utf-8")).hexdigest()


def verify_access_code(header_value: Optional[str], expected: Optional[str]) -> None:
    """Check a supplied access code against the configured one.

    Args:
        header_value: The value from the X-Access-Code header (may be None).
        expected: The configured access code. When unset, every request is
            rejected rather than the gate being left open.

    Raises:
        AuthenticationError: If the code is missing, unconfigured, or wrong.
    """
    if not header_value:
        raise AuthenticationError("Missing access code.")

    if not expected:
        raise AuthenticationError("Invalid access code.")

    if not hmac.compare_digest(
        hash_access_code(header_value), hash_access_code(expected)
    ):
        raise AuthenticationError("Invalid access code.")
