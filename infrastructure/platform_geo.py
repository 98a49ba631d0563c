"""Geography from hosting-platform request headers.

Edge platforms annotate each request with the visitor's location. Vercel's
``x-vercel-ip-*`` headers carry the full set; Cloudflare's ``cf-ipcountry``
(and ``cf-ipcity`` etc. when "visitor location headers" are enabled) are read
as a fallback. City names arrive URL-encoded.
"""

from typing import Any, Optional
from urllib.parse import unquote

from schemas.models.click import GeoData

HEADER_MAP: dict[str, tuple[str, ...]] = {
    "country": ("x-vercel-ip-country", "cf-ipcountry"),
    "city": ("x-vercel-ip-city", "cf-ipcity"),
    "region": ("x-vercel-ip-country-region", "cf-region-code"),
    "latitude": ("x-vercel-ip-latitude", "cf-iplatitude"),
    "longitude": ("x-vercel-ip-longitude", "cf-iplongitude"),
}

# Cloudflare sends these for unknown or Tor traffic
_UNRESOLVED = {"", "XX", "T1"}


def _first_header(headers: Any, names: tuple[str, ...]) -> Optional[str]:
    for name in names:
        value = headers.get(name)
        if value is not None:
            value = unquote(value).strip()
            if value not in _UNRESOLVED:
                return value
    return None


def geo_from_headers(headers: Any) -> GeoData:
    fields = {key: _first_header(headers, names) for key, names in HEADER_MAP.items()}
    return GeoData(**{k: v for k, v in fields.items() if v})


class PlatformGeoResolver:
    async def resolve(self, request: Any) -> GeoData:
        return geo_from_headers(request.headers)
