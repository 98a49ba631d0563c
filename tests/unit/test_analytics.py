"""Unit tests for AnalyticsRecorder: gating, routing and fan-out semantics."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from config import DeploymentContext
from errors import CounterStoreError, EventStoreError, ValidationError
from schemas.models.link import LinkSnapshot
from services.analytics import (
    DOMAIN_CLICKS,
    EVENT_STORE,
    LINK_CLICKS,
    PROJECT_USAGE,
    AnalyticsRecorder,
    DestinationOutcome,
    EventStreams,
)
from services.dedup import DedupGate
from services.enrichment import RequestEnricher

from click_fakes import CHROME_UA, GOOGLEBOT_UA, FakeWindowCounter, make_request

ACK = {"successful_rows": 1, "quarantined_rows": 0}


# ── Helpers ───────────────────────────────────────────────────────────────────


def _event_store(side_effect=None):
    store = MagicMock()
    store.ingest = AsyncMock(return_value=ACK, side_effect=side_effect)
    return store


def _counter_store():
    store = MagicMock()
    store.increment_domain_clicks = AsyncMock(return_value=1)
    store.increment_link_clicks = AsyncMock(return_value=1)
    store.increment_project_usage = AsyncMock(return_value=1)
    return store


def _recorder(
    event_store=None,
    counter_store=None,
    counter=None,
    deployment=DeploymentContext.HOSTED,
):
    event_store = event_store or _event_store()
    counter_store = counter_store or _counter_store()
    counter = counter or FakeWindowCounter()
    recorder = AnalyticsRecorder(
        event_store=event_store,
        counter_store=counter_store,
        dedup_gate=DedupGate(counter, deployment),
        enricher=RequestEnricher(DeploymentContext.LOCAL),
    )
    return recorder, event_store, counter_store, counter


def _destinations(outcomes):
    return [o.destination for o in outcomes]


# ── Bot filter ────────────────────────────────────────────────────────────────


class TestBotFiltering:
    async def test_bot_is_dropped_without_writes(self):
        recorder, events, counters, counter = _recorder()
        result = await recorder.record_click(make_request({"User-Agent": GOOGLEBOT_UA}), "l1")
        assert result is None
        events.ingest.assert_not_awaited()
        counters.increment_link_clicks.assert_not_awaited()
        counters.increment_project_usage.assert_not_awaited()
        assert counter.calls == 0


# ── Dedup gate ────────────────────────────────────────────────────────────────


class TestDedupInRecorder:
    async def test_third_click_in_window_is_suppressed(self):
        recorder, events, _, _ = _recorder()
        req = make_request()
        assert await recorder.record_click(req, "l1") is not None
        assert await recorder.record_click(req, "l1") is not None
        assert await recorder.record_click(req, "l1") is None
        assert events.ingest.await_count == 2

    async def test_local_deployment_never_suppresses(self):
        recorder, events, _, _ = _recorder(deployment=DeploymentContext.LOCAL)
        req = make_request()
        for _ in range(4):
            assert await recorder.record_click(req, "l1") is not None
        assert events.ingest.await_count == 4

    async def test_dedup_store_failure_admits(self):
        counter = MagicMock()
        counter.increment_and_check = AsyncMock(side_effect=TimeoutError("redis slow"))
        recorder, events, _, _ = _recorder(counter=counter)
        outcomes = await recorder.record_click(make_request(), "l1")
        assert outcomes is not None
        events.ingest.assert_awaited_once()


# ── Routing ───────────────────────────────────────────────────────────────────


class TestDestinationRouting:
    async def test_root_domain_updates_domain_only(self):
        recorder, events, counters, _ = _recorder()
        outcomes = await recorder.record_click(make_request(), "d1", root=True)
        assert _destinations(outcomes) == [EVENT_STORE, DOMAIN_CLICKS]
        counters.increment_domain_clicks.assert_awaited_once_with("d1")
        counters.increment_link_clicks.assert_not_awaited()
        counters.increment_project_usage.assert_not_awaited()
        events.ingest.assert_awaited_once()

    async def test_link_updates_link_and_project(self):
        recorder, events, counters, _ = _recorder()
        outcomes = await recorder.record_click(make_request(), "l1")
        assert _destinations(outcomes) == [EVENT_STORE, LINK_CLICKS, PROJECT_USAGE]
        counters.increment_link_clicks.assert_awaited_once_with("l1")
        counters.increment_project_usage.assert_awaited_once_with("l1")
        counters.increment_domain_clicks.assert_not_awaited()
        events.ingest.assert_awaited_once()
        assert all(o.ok for o in outcomes)
        assert outcomes[0].value == ACK


# ── Click record contents ─────────────────────────────────────────────────────


class TestClickRecord:
    async def test_record_written_to_click_stream_with_all_fields(self):
        recorder, events, _, _ = _recorder()
        req = make_request({"User-Agent": CHROME_UA, "X-Forwarded-For": "198.51.100.4"})
        await recorder.record_click(req, "l1", url="https://dest.example")
        stream, record = events.ingest.await_args.args
        assert stream == "click_events"
        assert record["link_id"] == "l1"
        assert record["url"] == "https://dest.example"
        assert record["referer"] == "(direct)"
        assert record["referer_url"] == "(direct)"
        assert record["country"] == "US"
        assert "198.51.100.4" not in record["identity_hash"]
        assert all(value is not None for value in record.values())
        optional_empty = {"alias_link_id", "affiliate_id", "url"}
        assert all(
            value != "" for key, value in record.items() if key not in optional_empty
        )

    async def test_supplied_ids_are_kept(self):
        recorder, events, _, _ = _recorder()
        await recorder.record_click(make_request(), "l1", click_id="ck_1", affiliate_id="aff")
        record = events.ingest.await_args.args[1]
        assert record["click_id"] == "ck_1"
        assert record["affiliate_id"] == "aff"

    async def test_missing_resource_id_rejected_before_side_effects(self):
        recorder, events, counters, counter = _recorder()
        with pytest.raises(ValidationError):
            await recorder.record_click(make_request(), "")
        events.ingest.assert_not_awaited()
        counters.increment_link_clicks.assert_not_awaited()
        assert counter.calls == 0

    @pytest.mark.parametrize("resource_id", [42, ["l1"]], ids=["int", "list"])
    async def test_non_string_resource_id_rejected_before_side_effects(self, resource_id):
        recorder, events, counters, counter = _recorder()
        with pytest.raises(ValidationError) as exc_info:
            await recorder.record_click(make_request(), resource_id)
        assert exc_info.value.field == "resource_id"
        events.ingest.assert_not_awaited()
        counters.increment_link_clicks.assert_not_awaited()
        assert counter.calls == 0


# ── Partial failure ───────────────────────────────────────────────────────────


class TestPartialFailure:
    async def test_event_store_fails_counters_succeed(self):
        events = _event_store(side_effect=EventStoreError("store down"))
        recorder, _, counters, _ = _recorder(event_store=events)
        outcomes = await recorder.record_click(make_request(), "l1")
        by_dest = {o.destination: o for o in outcomes}
        assert not by_dest[EVENT_STORE].ok
        assert isinstance(by_dest[EVENT_STORE].error, EventStoreError)
        assert by_dest[LINK_CLICKS].ok and by_dest[LINK_CLICKS].value == 1
        assert by_dest[PROJECT_USAGE].ok
        counters.increment_link_clicks.assert_awaited_once()

    async def test_counter_fails_event_store_succeeds(self):
        counters = _counter_store()
        counters.increment_link_clicks.side_effect = CounterStoreError("mongo down")
        recorder, events, _, _ = _recorder(counter_store=counters)
        outcomes = await recorder.record_click(make_request(), "l1")
        by_dest = {o.destination: o for o in outcomes}
        assert by_dest[EVENT_STORE].ok
        assert by_dest[EVENT_STORE].value == ACK
        assert isinstance(by_dest[LINK_CLICKS].error, CounterStoreError)
        assert by_dest[PROJECT_USAGE].ok
        events.ingest.assert_awaited_once()

    async def test_unexpected_exception_is_captured(self):
        counters = _counter_store()
        counters.increment_domain_clicks.side_effect = RuntimeError("boom")
        recorder, _, _, _ = _recorder(counter_store=counters)
        outcomes = await recorder.record_click(make_request(), "d1", root=True)
        assert [o.ok for o in outcomes] == [True, False]


# ── Concurrency ───────────────────────────────────────────────────────────────


class TestConcurrency:
    async def test_writes_are_issued_concurrently(self):
        counter_started = asyncio.Event()

        async def slow_ingest(stream, record):
            # Only completes if the counter write has started alongside it
            await asyncio.wait_for(counter_started.wait(), timeout=1)
            return ACK

        async def increment(_id):
            counter_started.set()
            return 1

        events = MagicMock()
        events.ingest = slow_ingest
        counters = _counter_store()
        counters.increment_link_clicks = increment
        recorder, _, _, _ = _recorder(event_store=events, counter_store=counters)
        outcomes = await recorder.record_click(make_request(), "l1")
        assert all(o.ok for o in outcomes)

    async def test_caller_cancellation_does_not_abort_writes(self):
        release = asyncio.Event()
        started = asyncio.Event()
        completed = []

        async def gated_ingest(stream, record):
            started.set()
            await release.wait()
            completed.append(stream)
            return ACK

        events = MagicMock()
        events.ingest = gated_ingest
        recorder, _, _, _ = _recorder(event_store=events)

        task = asyncio.create_task(recorder.record_click(make_request(), "l1"))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        release.set()
        await recorder.drain()
        assert completed == ["click_events"]


# ── Link metadata and conversions ─────────────────────────────────────────────


class TestRecordLink:
    async def test_each_emission_is_written(self):
        recorder, events, _, counter = _recorder()
        link = LinkSnapshot(id="l1", domain="d.sh", key="abc", url="https://x")
        first = await recorder.record_link(link)
        second = await recorder.record_link(link)
        assert first.ok and second.ok
        assert events.ingest.await_count == 2
        assert counter.calls == 0
        stream, record = events.ingest.await_args.args
        assert stream == "links_metadata"
        assert record["deleted"] == 0

    async def test_accepts_mapping_and_deleted_flag(self):
        recorder, events, _, _ = _recorder()
        outcome = await recorder.record_link(
            {"id": "l1", "domain": "d.sh", "key": "abc", "project_id": "p1", "clicks": 9},
            deleted=True,
        )
        assert outcome.destination == EVENT_STORE
        record = events.ingest.await_args.args[1]
        assert record["deleted"] == 1
        assert record["project_id"] == "p1"

    async def test_accepts_camel_case_project_id(self):
        recorder, events, _, _ = _recorder()
        await recorder.record_link(
            {"id": "l1", "domain": "d.sh", "key": "abc", "projectId": "p9", "userId": "u1"}
        )
        record = events.ingest.await_args.args[1]
        assert record["project_id"] == "p9"

    async def test_failure_is_returned_not_raised(self):
        recorder, _, _, _ = _recorder(event_store=_event_store(EventStoreError("down")))
        outcome = await recorder.record_link(LinkSnapshot(id="l1", domain="d.sh", key="abc"))
        assert isinstance(outcome, DestinationOutcome)
        assert not outcome.ok

    async def test_invalid_link_rejected(self):
        recorder, events, _, _ = _recorder()
        with pytest.raises(ValidationError):
            await recorder.record_link(LinkSnapshot(id="l1"))
        events.ingest.assert_not_awaited()


class TestRecordConversion:
    async def test_writes_to_conversion_stream(self):
        recorder, events, _, _ = _recorder()
        outcome = await recorder.record_conversion(
            "purchase", {"amount": 10, "currency": "EUR"}, "ck_1", affiliate_id="aff"
        )
        assert outcome.ok and outcome.value == ACK
        stream, record = events.ingest.await_args.args
        assert stream == "conversion_events"
        assert record["event_name"] == "purchase"
        assert record["properties"] == {"amount": 10, "currency": "EUR"}
        assert record["click_id"] == "ck_1"
        assert record["affiliate_id"] == "aff"

    async def test_not_deduplicated(self):
        recorder, events, _, _ = _recorder()
        for _ in range(3):
            await recorder.record_conversion("signup", {}, "ck_1")
        assert events.ingest.await_count == 3

    async def test_failure_is_returned_not_raised(self):
        recorder, _, _, _ = _recorder(event_store=_event_store(EventStoreError("down")))
        outcome = await recorder.record_conversion("signup", {}, "ck_1")
        assert isinstance(outcome.error, EventStoreError)

    async def test_custom_stream_names(self):
        events = _event_store()
        recorder = AnalyticsRecorder(
            event_store=events,
            counter_store=_counter_store(),
            dedup_gate=DedupGate(FakeWindowCounter(), DeploymentContext.LOCAL),
            enricher=RequestEnricher(DeploymentContext.LOCAL),
            streams=EventStreams(conversions="conv_v2"),
        )
        await recorder.record_conversion("signup", {}, "ck_1")
        assert events.ingest.await_args.args[0] == "conv_v2"
