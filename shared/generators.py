"""
Random token generators: pure, side-effect-free functions.

All generators use the ``secrets`` module (OS CSPRNG).
"""

from __future__ import annotations

import secrets

# 32 random bytes = 256 bits of entropy before base64 encoding
OPAQUE_TOKEN_BYTES = 32


def generate_secure_token(length: int = OPAQUE_TOKEN_BYTES) -> str:
    """Generate a cryptographically secure URL-safe random token.

    Args:
        length: Number of random bytes before base64 encoding (default 32).
            The resulting string will be longer than *length* characters.

    Returns:
        URL-safe base64-encoded token string.
    """
    return secrets.token_urlsafe(length)
