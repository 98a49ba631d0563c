"""
Visitor identity tokens.

The token is the dedup key for click recording. It is a SHA-256 digest over
the client IP and the user-agent string, so the same browser on the same
network maps to the same token while the raw address never leaves this
module.
"""

from __future__ import annotations

import hashlib
from typing import Any

from shared.ip_utils import get_client_ip

ANONYMOUS_SIGNAL = "anonymous"


def hash_identity(ip_address: str, user_agent: str = "") -> str:
    """Return the hex SHA-256 digest of *ip_address* and *user_agent*.

    An empty address is replaced with a fixed marker so that visitors
    without a usable signal share one stable token instead of raising.
    """
    signal = f"{ip_address or ANONYMOUS_SIGNAL}{user_agent or ''}"
    return hashlib.sha256(signal.encode("utf-8")).hexdigest()


def resolve_identity(request: Any) -> str:
    """Derive the identity token for *request*."""
    return hash_identity(
        get_client_ip(request), request.headers.get("user-agent") or ""
    )
