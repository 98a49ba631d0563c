"""EventStore protocol: the analytics recorder depends on this, not the HTTP client."""

from typing import Any, Protocol


class EventStore(Protocol):
    async def ingest(self, stream: str, record: dict[str, Any]) -> Any: ...
