"""
Request enrichment: geography, user agent and referer for a click.

Hosted deployments take geography from the configured resolver (platform
headers or GeoIP); local deployments always get a fixed loopback fixture so
development traffic produces realistic-looking rows. Resolution problems are
absorbed here and never reach the caller: the affected fields keep their
"Unknown" sentinels.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, Protocol

from config import DeploymentContext
from infrastructure.user_agent import parse_user_agent
from schemas.models.click import Enrichment, GeoData, RefererInfo, UserAgentInfo
from shared.logging import get_logger
from shared.referer import normalize_referer

log = get_logger(__name__)

LOCALHOST_GEO = GeoData(
    country="US",
    city="San Francisco",
    region="CA",
    latitude="37.7695",
    longitude="-122.385",
)


class GeoResolver(Protocol):
    async def resolve(self, request: Any) -> GeoData: ...


class RequestEnricher:
    def __init__(
        self,
        deployment: DeploymentContext,
        geo_resolver: Optional[GeoResolver] = None,
        ua_parser: Callable[[Optional[str]], UserAgentInfo] = parse_user_agent,
    ) -> None:
        self._deployment = deployment
        self._geo_resolver = geo_resolver
        self._ua_parser = ua_parser

    async def resolve_geo(self, request: Any) -> GeoData:
        if self._deployment is not DeploymentContext.HOSTED:
            return LOCALHOST_GEO
        if self._geo_resolver is None:
            return GeoData()
        try:
            return await self._geo_resolver.resolve(request)
        except Exception as e:
            log.warning(
                "geo_resolution_failed", error=str(e), error_type=type(e).__name__
            )
            return GeoData()

    def parse_user_agent(self, ua_string: Optional[str]) -> UserAgentInfo:
        try:
            return self._ua_parser(ua_string)
        except Exception as e:
            log.warning(
                "user_agent_parse_failed", error=str(e), error_type=type(e).__name__
            )
            return UserAgentInfo(ua=ua_string) if ua_string else UserAgentInfo()

    async def enrich(self, request: Any) -> Enrichment:
        headers = request.headers
        domain, url = normalize_referer(headers.get("referer"))
        return Enrichment(
            geo=await self.resolve_geo(request),
            user_agent=self.parse_user_agent(headers.get("user-agent")),
            referer=RefererInfo(domain=domain, url=url),
        )
