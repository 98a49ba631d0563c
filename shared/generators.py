"""
Identifier generators: pure, side-effect-free functions.

Uses the ``secrets`` module so generated ids are unpredictable as well as
unique in practice.
"""

from __future__ import annotations

import secrets

CLICK_ID_BYTES = 12


def generate_click_id(length: int = CLICK_ID_BYTES) -> str:
    """Generate a URL-safe click id.

    Args:
        length: Number of random bytes before base64 encoding (default 12,
            giving a 16-character id with 96 bits of entropy).

    Returns:
        URL-safe base64-encoded string without padding.
    """
    return secrets.token_urlsafe(length)
