"""User-agent parsing.

``ua_parser`` supplies browser, OS and device family/brand/model. It does not
classify device type, rendering engine or CPU architecture, so those are
derived here from the raw string with a few well-known tokens. Anything
unresolved keeps the model's sentinel.
"""

from __future__ import annotations

import re
from typing import Optional

from ua_parser import parse

from schemas.models.click import DeviceInfo, SoftwareInfo, UserAgentInfo

_ENGINE_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("EdgeHTML", re.compile(r"Edge/([\d.]+)")),
    ("Trident", re.compile(r"Trident/([\d.]+)")),
    ("Presto", re.compile(r"Presto/([\d.]+)")),
    ("Blink", re.compile(r"(?:Chrome|Chromium)/([\d.]+)")),
    ("Gecko", re.compile(r"rv:([\d.]+)\) Gecko/")),
    ("WebKit", re.compile(r"AppleWebKit/([\d.]+)")),
)

_CPU_PATTERNS: tuple[tuple[str, re.Pattern], ...] = (
    ("amd64", re.compile(r"\b(?:x86_64|x86-64|x64|amd64|Win64|WOW64)\b", re.I)),
    ("arm64", re.compile(r"\b(?:aarch64|arm64)\b", re.I)),
    ("arm", re.compile(r"\barm(?:v\d+\w*)?\b", re.I)),
    ("ia32", re.compile(r"\b(?:i[3-6]86|x86)\b", re.I)),
)

_TABLET_FAMILIES = ("iPad", "Kindle", "Generic Tablet")
_CRAWLER_FAMILIES = ("Spider",)


def _version(*parts: Optional[str]) -> Optional[str]:
    present = []
    for part in parts:
        if part is None:
            break
        present.append(part)
    return ".".join(present) or None


def _software(name: Optional[str], version: Optional[str]) -> SoftwareInfo:
    fields = {"name": name if name and name != "Other" else None, "version": version}
    return SoftwareInfo(**{k: v for k, v in fields.items() if v})


def detect_engine(ua_string: str) -> SoftwareInfo:
    for name, pattern in _ENGINE_PATTERNS:
        match = pattern.search(ua_string)
        if match:
            # Chromium-based engines report the Chrome version
            return SoftwareInfo(name=name, version=match.group(1))
    return SoftwareInfo()


def detect_cpu(ua_string: str) -> Optional[str]:
    for arch, pattern in _CPU_PATTERNS:
        if pattern.search(ua_string):
            return arch
    return None


def detect_device_type(
    ua_string: str, device_family: Optional[str], os_family: Optional[str]
) -> str:
    family = device_family or ""
    if family in _CRAWLER_FAMILIES:
        return "Bot"
    if family in _TABLET_FAMILIES or "Tablet" in family:
        return "Tablet"
    if os_family == "Android" and "Mobile" not in ua_string:
        return "Tablet"
    if family == "iPhone" or os_family in ("iOS", "Android") or "Mobile" in ua_string:
        return "Mobile"
    return "Desktop"


def parse_user_agent(ua_string: Optional[str]) -> UserAgentInfo:
    """Parse *ua_string* into device, browser, engine, OS and CPU fields."""
    if not ua_string:
        return UserAgentInfo()

    result = parse(ua_string)
    browser = result.user_agent
    os_ = result.os
    device = result.device

    device_family = device.family if device else None
    os_family = os_.family if os_ else None

    device_fields = {
        "type": detect_device_type(ua_string, device_family, os_family),
        "vendor": device.brand if device else None,
        "model": device.model if device and device.model != "Other" else None,
    }

    fields = {
        "device": DeviceInfo(**{k: v for k, v in device_fields.items() if v}),
        "browser": _software(
            browser.family if browser else None,
            _version(browser.major, browser.minor, browser.patch) if browser else None,
        ),
        "engine": detect_engine(ua_string),
        "os": _software(
            os_family,
            _version(os_.major, os_.minor, os_.patch) if os_ else None,
        ),
        "cpu_architecture": detect_cpu(ua_string),
        "ua": ua_string,
        "is_bot": device_family in _CRAWLER_FAMILIES,
    }
    return UserAgentInfo(**{k: v for k, v in fields.items() if v is not None})
