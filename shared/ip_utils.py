"""
Client IP resolution for inbound requests.

Takes the request explicitly so the function is testable without a running
server; anything with ``headers`` and ``client`` attributes (a Starlette
``Request`` or a mock) is accepted.
"""

from __future__ import annotations

from typing import Any

# Checked in priority order before falling back to the socket peer
PROXY_IP_HEADERS: tuple[str, ...] = (
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Vercel-Forwarded-For",
    "X-Forwarded-For",
    "X-Real-IP",
    "X-Client-IP",
)


def get_client_ip(request: Any) -> str:
    """Extract the real client IP from *request*.

    Returns:
        The resolved client IP string, or ``""`` if none can be found.
    """
    for header in PROXY_IP_HEADERS:
        ip_value: str | None = request.headers.get(header)
        if ip_value:
            client_ip: str = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip

    client = getattr(request, "client", None)
    return client.host if client and client.host else ""
