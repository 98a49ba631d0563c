"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

The deployment context is an explicit setting rather than something sniffed
from the host: the dedup gate and the request enricher receive it through
their constructors, so both modes are testable in-process.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DeploymentContext(str, Enum):
    LOCAL = "local"
    HOSTED = "hosted"


class GeoSource(str, Enum):
    HEADERS = "headers"
    GEOIP = "geoip"


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "link-analytics"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without Redis the dedup gate fails open
    redis_uri: Optional[str] = None
    dedup_window_seconds: int = 3600
    dedup_max_clicks: int = 2
    dedup_key_prefix: str = "recordClick"


class EventStoreSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    event_store_url: str = "https://api.tinybird.co"
    event_store_token: str = ""
    event_store_timeout: float = 5.0

    click_events_stream: str = "click_events"
    link_metadata_stream: str = "links_metadata"
    conversion_events_stream: str = "conversion_events"

    @property
    def is_configured(self) -> bool:
        return bool(self.event_store_url and self.event_store_token)


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production

    # Sampling rates (0.0–1.0)
    sample_rate_click: float = 0.05
    sample_rate_suppressed: float = 0.10


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "development"
    app_name: str = "link-analytics"
    deployment: DeploymentContext = DeploymentContext.LOCAL

    # Where hosted deployments read geography from
    geo_source: GeoSource = GeoSource.HEADERS
    geoip_city_db: str = "misc/GeoLite2-City.mmdb"

    bot_patterns_file: str = "bot_user_agents.txt"

    docs_url: Optional[str] = None

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    event_store: Optional[EventStoreSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.event_store is None:
            self.event_store = EventStoreSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def is_hosted(self) -> bool:
        return self.deployment is DeploymentContext.HOSTED
