"""HTTP events-API implementation of EventStore.

Posts one JSON record per call to ``/v0/events?name=<stream>&wait=true``
with bearer auth, so the call returns only after the store has ingested the
row. Unlike a best-effort webhook, failures raise EventStoreError: the caller
decides what a failed write means.
"""

from typing import Any

import httpx

from errors import EventStoreError
from infrastructure.http_client import HttpClient
from shared.logging import get_logger

log = get_logger(__name__)

EVENTS_PATH = "/v0/events"


class HttpEventStore:
    def __init__(self, http_client: HttpClient) -> None:
        self._http = http_client

    @classmethod
    def from_settings(cls, base_url: str, token: str, timeout: float) -> "HttpEventStore":
        return cls(
            HttpClient(
                timeout=timeout,
                base_url=base_url.rstrip("/"),
                headers={"Authorization": f"Bearer {token}"},
            )
        )

    async def ingest(self, stream: str, record: dict[str, Any]) -> Any:
        try:
            response = await self._http.post(
                EVENTS_PATH,
                params={"name": stream, "wait": "true"},
                json=record,
            )
        except httpx.HTTPError as e:
            raise EventStoreError(
                f"event store request failed: {e}",
                details={"stream": stream, "error_type": type(e).__name__},
            ) from e

        if response.status_code >= 400:
            raise EventStoreError(
                f"event store rejected record with status {response.status_code}",
                details={
                    "stream": stream,
                    "status_code": response.status_code,
                    "response_text": response.text[:200],
                },
            )

        try:
            ack = response.json()
        except ValueError:
            ack = {}
        if isinstance(ack, dict) and ack.get("quarantined_rows"):
            log.warning(
                "event_store_row_quarantined",
                stream=stream,
                quarantined_rows=ack.get("quarantined_rows"),
            )
        return ack

    async def aclose(self) -> None:
        await self._http.aclose()
