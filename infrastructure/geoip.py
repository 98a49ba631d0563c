"""Async GeoIP resolver around the synchronous geoip2 library.

geoip2 reads from a local .mmdb file and is blocking, so calls are wrapped
in asyncio.to_thread() to keep the event loop free.

Fallback behaviour:
- Returns an all-"Unknown" GeoData when the database file is missing or the
  lookup fails.
- Lazy-loads the reader on first use (double-checked locking with asyncio.Lock).
"""

import asyncio
from typing import Any, Optional

import geoip2.database
import geoip2.errors
import maxminddb

from schemas.models.click import GeoData
from shared.ip_utils import get_client_ip
from shared.logging import get_logger

log = get_logger(__name__)


def _coordinate(value: Optional[float]) -> Optional[str]:
    return None if value is None else str(value)


class GeoIPService:
    def __init__(self, city_db_path: str) -> None:
        self._city_db_path = city_db_path
        self._city_reader: Optional[geoip2.database.Reader] = None
        self._city_loaded = False
        self._lock = asyncio.Lock()

    async def _get_city_reader(self) -> Optional[geoip2.database.Reader]:
        if not self._city_loaded:
            async with self._lock:
                if not self._city_loaded:
                    try:
                        self._city_reader = await asyncio.to_thread(
                            geoip2.database.Reader, self._city_db_path
                        )
                    except (OSError, maxminddb.InvalidDatabaseError) as e:
                        log.warning(
                            "geoip_city_db_unavailable",
                            error=str(e),
                            error_type=type(e).__name__,
                        )
                        self._city_reader = None
                    self._city_loaded = True
        return self._city_reader

    async def lookup(self, ip_address: str) -> GeoData:
        if not ip_address:
            return GeoData()
        reader = await self._get_city_reader()
        if reader is None:
            return GeoData()
        try:
            result = await asyncio.to_thread(reader.city, ip_address)
        except (
            geoip2.errors.AddressNotFoundError,
            ValueError,
            maxminddb.InvalidDatabaseError,
        ) as e:
            log.debug("geoip_lookup_failed", error_type=type(e).__name__)
            return GeoData()

        fields = {
            "country": result.country.iso_code,
            "city": result.city.name,
            "region": result.subdivisions.most_specific.iso_code,
            "latitude": _coordinate(result.location.latitude),
            "longitude": _coordinate(result.location.longitude),
        }
        return GeoData(**{k: v for k, v in fields.items() if v})

    async def resolve(self, request: Any) -> GeoData:
        return await self.lookup(get_client_ip(request))

    async def aclose(self) -> None:
        if self._city_reader is not None:
            await asyncio.to_thread(self._city_reader.close)
