"""
Bot filter: framework-agnostic.

Combines two detection methods:
1. ``crawlerdetect`` library (signature-based)
2. Extra regex patterns loaded lazily from a ``bot_user_agents.txt`` file

The pattern file is loaded once per path via ``functools.lru_cache`` so there
is no import-time I/O. Detection never raises: a request that cannot be
classified is treated as human.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Optional

from crawlerdetect import CrawlerDetect

DEFAULT_PATTERNS_FILE = "bot_user_agents.txt"

_crawler_detect = CrawlerDetect()


@lru_cache(maxsize=8)
def _load_bot_user_agents(path: str) -> tuple[re.Pattern, ...]:
    """Load and compile bot UA patterns from *path*.

    Returns an empty tuple if the file cannot be read.
    """
    try:
        with open(path, "r") as fh:
            lines = [line.strip() for line in fh]
    except OSError:
        return ()
    patterns = []
    for line in lines:
        if not line or line.startswith("#"):
            continue
        try:
            patterns.append(re.compile(line, re.IGNORECASE))
        except re.error:
            continue
    return tuple(patterns)


def is_bot_request(
    user_agent: Optional[str], patterns_file: str = DEFAULT_PATTERNS_FILE
) -> bool:
    """Return True if *user_agent* looks like an automated crawler or bot."""
    if not user_agent:
        return False
    if _crawler_detect.isCrawler(user_agent):
        return True
    return any(p.search(user_agent) for p in _load_bot_user_agents(patterns_file))


class BotFilter:
    """Side-effect-free ``is_bot(request)`` gate over request headers."""

    def __init__(self, patterns_file: str = DEFAULT_PATTERNS_FILE) -> None:
        self._patterns_file = patterns_file

    def is_bot(self, request: Any) -> bool:
        return is_bot_request(
            request.headers.get("user-agent"), patterns_file=self._patterns_file
        )
