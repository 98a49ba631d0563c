"""
Analytics recorder: turns served redirects and link/conversion changes into
events and fans them out to the event store and the counter store.

Click pipeline:
    bot filter -> dedup gate -> enrichment -> build -> concurrent writes

Writes for one event are started together and awaited jointly. Every
destination settles on its own; a failure is captured in that destination's
DestinationOutcome and never cancels or rolls back a sibling. Nothing is
retried here.

The joined writes run shielded from the caller: if the awaiting task is
cancelled (a caller-side timeout, say) the writes already issued still run
to completion.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any, Optional

from config import EventStoreSettings
from infrastructure.counter_store.protocol import CounterStore
from infrastructure.event_store.protocol import EventStore
from schemas.models.link import LinkSnapshot
from services.dedup import DedupGate
from services.enrichment import RequestEnricher
from services.event_builder import (
    build_click_event,
    build_conversion_event,
    build_link_metadata_event,
    require,
)
from shared.bot_detection import BotFilter
from shared.identity import resolve_identity
from shared.logging import get_logger, should_sample

log = get_logger(__name__)

EVENT_STORE = "event_store"
DOMAIN_CLICKS = "domain_clicks"
LINK_CLICKS = "link_clicks"
PROJECT_USAGE = "project_usage"


@dataclass(frozen=True)
class DestinationOutcome:
    """Terminal state of one destination write: a value or an error."""

    destination: str
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class EventStreams:
    clicks: str = "click_events"
    link_metadata: str = "links_metadata"
    conversions: str = "conversion_events"

    @classmethod
    def from_settings(cls, settings: EventStoreSettings) -> "EventStreams":
        return cls(
            clicks=settings.click_events_stream,
            link_metadata=settings.link_metadata_stream,
            conversions=settings.conversion_events_stream,
        )


class AnalyticsRecorder:
    def __init__(
        self,
        event_store: EventStore,
        counter_store: CounterStore,
        dedup_gate: DedupGate,
        enricher: RequestEnricher,
        bot_filter: Optional[BotFilter] = None,
        streams: Optional[EventStreams] = None,
    ) -> None:
        self._event_store = event_store
        self._counter_store = counter_store
        self._dedup_gate = dedup_gate
        self._enricher = enricher
        self._bot_filter = bot_filter or BotFilter()
        self._streams = streams or EventStreams()
        self._in_flight: set[asyncio.Task] = set()

    async def _dispatch(
        self, writes: list[tuple[str, Awaitable[Any]]]
    ) -> list[DestinationOutcome]:
        tasks = []
        for _, write in writes:
            task = asyncio.ensure_future(write)
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)
            tasks.append(task)

        results = await asyncio.shield(asyncio.gather(*tasks, return_exceptions=True))

        outcomes = []
        for (destination, _), result in zip(writes, results):
            if isinstance(result, BaseException):
                log.error(
                    "destination_write_failed",
                    destination=destination,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                outcomes.append(DestinationOutcome(destination, error=result))
            else:
                outcomes.append(DestinationOutcome(destination, value=result))
        return outcomes

    async def drain(self) -> None:
        """Wait for writes whose callers stopped waiting (used on shutdown)."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def record_click(
        self,
        request: Any,
        resource_id: str,
        url: Optional[str] = None,
        click_id: Optional[str] = None,
        root: bool = False,
        affiliate_id: Optional[str] = None,
    ) -> Optional[list[DestinationOutcome]]:
        """Record one served redirect.

        Args:
            request: The inbound request (headers + client address).
            resource_id: Link id, or domain id when *root* is True.
            url: Destination URL the visitor was sent to.
            click_id: Caller-supplied click id; generated when absent.
            root: True when the click hit a domain's root rather than a link.
            affiliate_id: Optional affiliate attribution.

        Returns:
            One DestinationOutcome per write, or ``None`` when the request was
            dropped as a bot or suppressed as a duplicate.
        """
        require(resource_id, "resource_id")

        if self._bot_filter.is_bot(request):
            log.debug("click_dropped_bot", resource_id=resource_id)
            return None

        identity_hash = resolve_identity(request)
        decision = await self._dedup_gate.admit(identity_hash, resource_id)
        if not decision.admitted:
            if should_sample("click_suppressed"):
                log.info("click_suppressed", resource_id=resource_id)
            return None

        enrichment = await self._enricher.enrich(request)
        event = build_click_event(
            identity_hash=identity_hash,
            resource_id=resource_id,
            enrichment=enrichment,
            url=url,
            click_id=click_id,
            affiliate_id=affiliate_id,
        )

        writes: list[tuple[str, Awaitable[Any]]] = [
            (EVENT_STORE, self._event_store.ingest(self._streams.clicks, event.to_wire())),
        ]
        if root:
            writes.append(
                (DOMAIN_CLICKS, self._counter_store.increment_domain_clicks(resource_id))
            )
        else:
            writes.append(
                (LINK_CLICKS, self._counter_store.increment_link_clicks(resource_id))
            )
            writes.append(
                (PROJECT_USAGE, self._counter_store.increment_project_usage(resource_id))
            )

        outcomes = await self._dispatch(writes)
        if should_sample("click_recorded"):
            log.info(
                "click_recorded",
                resource_id=resource_id,
                click_id=event.click_id,
                root=root,
                failed=[o.destination for o in outcomes if not o.ok],
            )
        return outcomes

    async def record_link(
        self, link: LinkSnapshot | Mapping[str, Any], deleted: bool = False
    ) -> DestinationOutcome:
        """Write a full link snapshot to the link-metadata stream."""
        if not isinstance(link, LinkSnapshot):
            link = LinkSnapshot.from_mapping(link)
        event = build_link_metadata_event(link, deleted=deleted)
        (outcome,) = await self._dispatch(
            [(EVENT_STORE, self._event_store.ingest(self._streams.link_metadata, event.to_wire()))]
        )
        return outcome

    async def record_conversion(
        self,
        event_name: str,
        properties: Optional[Mapping[str, Any]],
        click_id: str,
        affiliate_id: Optional[str] = None,
    ) -> DestinationOutcome:
        """Write a conversion event attributed to *click_id*."""
        event = build_conversion_event(
            event_name=event_name,
            properties=properties,
            click_id=click_id,
            affiliate_id=affiliate_id,
        )
        (outcome,) = await self._dispatch(
            [(EVENT_STORE, self._event_store.ingest(self._streams.conversions, event.to_wire()))]
        )
        return outcome
