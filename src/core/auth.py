"""Shared-secret admin gate.

The admin surface is protected by one pre-shared token sent in a
request header. This module only answers pass or fail.
"""

from __future__ import annotations

import hmac

from core.constants import ADMIN_TOKEN_HEADER
from core.errors import AuthorizationError


def is_authorized(provided_token: str | None, expected_token: str | None) -> bool:
    """Return whether the provided token matches the expected secret."""
    provided = (provided_token or "").strip()
    expected = (expected_token or "").strip()
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def require_authorized(provided_token: str | None, expected_token: str | None) -> None:
    """Raise when the provided token does not match the expected secret.

    Raises:
        AuthorizationError: If the token is missing or wrong.
    """
    if not is_authorized(provided_token, expected_token):
        raise AuthorizationError(
            "Unauthorized: missing or invalid admin token. "
            f"Send the shared secret in the {ADMIN_TOKEN_HEADER} header."
        )
