"""
Identity gateway session token verification.

Tokens are issued by the hosted auth provider, never by this service. We only
check the signature, expiry and (optionally) issuer, then hand the ``sub``
claim to the rest of the app as an opaque external subject id.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jwt

from teenskill.config import get_settings

_verification_key: str | None = None


def _load_key() -> str:
    """Load the verification key (cached after first call).

    HS* algorithms use the shared secret from settings; everything else reads
    the provider's public key from disk.
    """
    global _verification_key  # noqa: PLW0603
    if _verification_key is None:
        settings = get_settings()
        if settings.identity_jwt_algorithm.upper().startswith("HS"):
            if not settings.identity_jwt_secret:
                msg = "identity_jwt_secret must be set for HS* algorithms"
                raise jwt.InvalidTokenError(msg)
            _verification_key = settings.identity_jwt_secret
        else:
            _verification_key = Path(settings.identity_jwt_public_key_path).read_text()
    return _verification_key


def reset_keys() -> None:
    """Reset the cached key (useful for testing)."""
    global _verification_key  # noqa: PLW0603
    _verification_key = None


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an identity session token.

    Args:
        token: The encoded JWT string from the Authorization header.

    Returns:
        Decoded payload dictionary. ``sub`` is guaranteed to be a non-empty string.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no subject.
    """
    settings = get_settings()
    options: dict[str, Any] = {"require": ["exp", "sub"]}
    kwargs: dict[str, Any] = {}
    if settings.identity_jwt_issuer:
        kwargs["issuer"] = settings.identity_jwt_issuer

    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _load_key(),
            algorithms=[settings.identity_jwt_algorithm],
            options=options,
            **kwargs,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)

    return payload
