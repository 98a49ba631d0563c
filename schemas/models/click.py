"""
Click event model.

One record per served redirect. Nested value objects group the enrichment
data; to_wire() flattens them into the column layout of the click-events
stream. Every optional field carries a sentinel default so the emitted record
never has an unset column.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from schemas.models.base import UNKNOWN, EventBaseModel, FrozenModel
from shared.datetime_utils import to_iso_timestamp
from shared.referer import DIRECT


class GeoData(FrozenModel):
    country: str = UNKNOWN
    city: str = UNKNOWN
    region: str = UNKNOWN
    latitude: str = UNKNOWN
    longitude: str = UNKNOWN


class DeviceInfo(FrozenModel):
    type: str = "Desktop"
    vendor: str = UNKNOWN
    model: str = UNKNOWN


class SoftwareInfo(FrozenModel):
    """Name/version pair used for browser, engine and OS."""

    name: str = UNKNOWN
    version: str = UNKNOWN


class UserAgentInfo(FrozenModel):
    device: DeviceInfo = Field(default_factory=DeviceInfo)
    browser: SoftwareInfo = Field(default_factory=SoftwareInfo)
    engine: SoftwareInfo = Field(default_factory=SoftwareInfo)
    os: SoftwareInfo = Field(default_factory=SoftwareInfo)
    cpu_architecture: str = UNKNOWN
    ua: str = UNKNOWN
    is_bot: bool = False


class RefererInfo(FrozenModel):
    domain: str = DIRECT
    url: str = DIRECT


class Enrichment(FrozenModel):
    """Everything the request enricher extracts from one request."""

    geo: GeoData = Field(default_factory=GeoData)
    user_agent: UserAgentInfo = Field(default_factory=UserAgentInfo)
    referer: RefererInfo = Field(default_factory=RefererInfo)


class ClickEvent(EventBaseModel):
    identity_hash: str
    click_id: str
    link_id: str
    affiliate_id: str = ""
    url: str = ""
    geo: GeoData = Field(default_factory=GeoData)
    user_agent: UserAgentInfo = Field(default_factory=UserAgentInfo)
    referer: RefererInfo = Field(default_factory=RefererInfo)

    def to_wire(self) -> dict[str, Any]:
        ua = self.user_agent
        return {
            "timestamp": to_iso_timestamp(self.timestamp),
            "identity_hash": self.identity_hash,
            "click_id": self.click_id,
            "link_id": self.link_id,
            "alias_link_id": "",
            "affiliate_id": self.affiliate_id,
            "url": self.url,
            "country": self.geo.country,
            "city": self.geo.city,
            "region": self.geo.region,
            "latitude": self.geo.latitude,
            "longitude": self.geo.longitude,
            "device": ua.device.type,
            "device_vendor": ua.device.vendor,
            "device_model": ua.device.model,
            "browser": ua.browser.name,
            "browser_version": ua.browser.version,
            "engine": ua.engine.name,
            "engine_version": ua.engine.version,
            "os": ua.os.name,
            "os_version": ua.os.version,
            "cpu_architecture": ua.cpu_architecture,
            "ua": ua.ua,
            "bot": ua.is_bot,
            "referer": self.referer.domain,
            "referer_url": self.referer.url,
        }
