"""
Referer normalization.

The click event stores two referer fields: the bare host (``www.`` stripped)
and the full header value. Both collapse to ``(direct)`` when the header is
missing or the host cannot be recovered.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

DIRECT = "(direct)"


def get_domain_without_www(url: Optional[str]) -> Optional[str]:
    """Return the host of *url* without a leading ``www.``.

    Scheme-less values with a dot, such as ``example.com/page``, are retried with an
    ``https://`` prefix. Returns ``None`` when no host can be extracted.
    """
    if not url:
        return None
    candidate = url.strip()
    attempts = [candidate]
    if "." in candidate and " " not in candidate:
        attempts.append(f"https://{candidate}")
    for attempt in attempts:
        try:
            host = urlsplit(attempt).hostname
        except ValueError:
            host = None
        if host and not any(ch.isspace() for ch in host):
            return host[4:] if host.startswith("www.") else host
    return None


def normalize_referer(referer: Optional[str]) -> tuple[str, str]:
    """Return ``(referer_domain, referer_url)`` for a raw Referer header."""
    if not referer:
        return DIRECT, DIRECT
    return get_domain_without_www(referer) or DIRECT, referer
