"""
Logger factory and logging helpers.

Provides:
- get_logger(): a structlog logger bound to the calling module
- should_sample(): probabilistic sampling for per-click events
- hash_ip(): short SHA-256 digest so raw addresses never reach log output
"""

from __future__ import annotations

import hashlib
import random
from typing import Optional

import structlog
from structlog.stdlib import BoundLogger

from shared.logging_config import SAMPLING_RATES, configure_structlog, setup_logging


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("click_recorded", resource_id="link_123")
    """
    return structlog.get_logger(name)


def should_sample(event_type: str) -> bool:
    """Return True if an event of *event_type* should be logged.

    Events without a configured rate are always logged.
    """
    sample_rate = SAMPLING_RATES.get(event_type, 1.0)
    if sample_rate >= 1.0:
        return True
    if sample_rate <= 0.0:
        return False
    return random.random() < sample_rate


def hash_ip(ip_address: Optional[str]) -> Optional[str]:
    """Return the first 16 hex chars of the SHA-256 of *ip_address*."""
    if not ip_address:
        return ip_address
    return hashlib.sha256(ip_address.encode()).hexdigest()[:16]


__all__ = [
    "get_logger",
    "hash_ip",
    "should_sample",
    "SAMPLING_RATES",
    "configure_structlog",
    "setup_logging",
]
