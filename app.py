"""
FastAPI application factory.
create_app() is the single entry point for building the app.

The redirect routes that call into the analytics recorder live outside this
service; the app here owns the recorder's lifecycle and exposes /health.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as aioredis
import sentry_sdk
from fastapi import FastAPI
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings, GeoSource
from errors import register_error_handlers
from infrastructure.cache.redis_client import create_redis_client
from infrastructure.cache.window_counter import RedisWindowCounter
from infrastructure.counter_store.mongo import MongoCounterStore
from infrastructure.event_store.http_events import HttpEventStore
from infrastructure.geoip import GeoIPService
from infrastructure.platform_geo import PlatformGeoResolver
from routes.health_routes import router as health_router
from services.analytics import AnalyticsRecorder, EventStreams
from services.dedup import DedupGate
from services.enrichment import GeoResolver, RequestEnricher
from shared.bot_detection import BotFilter
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def create_geo_resolver(settings: AppSettings) -> GeoResolver:
    if settings.geo_source is GeoSource.GEOIP:
        return GeoIPService(settings.geoip_city_db)
    return PlatformGeoResolver()


def create_recorder(
    settings: AppSettings,
    db: AsyncDatabase,
    redis_client: Optional[aioredis.Redis],
    event_store: HttpEventStore,
    geo_resolver: Optional[GeoResolver] = None,
) -> AnalyticsRecorder:
    """Assemble the analytics recorder from already-connected clients."""
    dedup_gate = DedupGate(
        RedisWindowCounter(redis_client),
        deployment=settings.deployment,
        window_seconds=settings.redis.dedup_window_seconds,
        max_clicks=settings.redis.dedup_max_clicks,
        key_prefix=settings.redis.dedup_key_prefix,
    )
    enricher = RequestEnricher(
        deployment=settings.deployment,
        geo_resolver=geo_resolver or create_geo_resolver(settings),
    )
    return AnalyticsRecorder(
        event_store=event_store,
        counter_store=MongoCounterStore(db),
        dedup_gate=dedup_gate,
        enricher=enricher,
        bot_filter=BotFilter(settings.bot_patterns_file),
        streams=EventStreams.from_settings(settings.event_store),
    )


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            environment=settings.env,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(settings.db.mongodb_uri)
        app.state.mongo_client = mongo_client
        app.state.db = mongo_client[settings.db.db_name]
        app.state.settings = settings

        # Redis is optional; without it the dedup gate admits everything
        redis_client = await create_redis_client(settings.redis.redis_uri)
        app.state.redis = redis_client

        if not settings.event_store.is_configured:
            log.warning("event_store_not_configured")
        event_store = HttpEventStore.from_settings(
            settings.event_store.event_store_url,
            settings.event_store.event_store_token,
            settings.event_store.event_store_timeout,
        )
        geo_resolver = create_geo_resolver(settings)
        app.state.recorder = create_recorder(
            settings, app.state.db, redis_client, event_store, geo_resolver
        )
        log.info(
            "analytics_recorder_ready",
            deployment=settings.deployment.value,
            geo_source=settings.geo_source.value,
            dedup_enabled=settings.is_hosted and redis_client is not None,
        )

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await app.state.recorder.drain()
        await event_store.aclose()
        if isinstance(geo_resolver, GeoIPService):
            await geo_resolver.aclose()
        await mongo_client.close()
        if redis_client is not None:
            await redis_client.aclose()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    register_error_handlers(app)
    app.include_router(health_router)

    return app
