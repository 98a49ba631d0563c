"""
Unit test configuration.

Settings must come from monkeypatch.setenv() only: the dotenv reader used by
pydantic-settings is stubbed out, and the env vars that select deployment
mode or stream names are cleared so a developer's shell cannot flip the
dedup gate or the enricher into hosted mode mid-suite.
"""

import pytest

_ISOLATED_ENV = (
    "DEPLOYMENT",
    "GEO_SOURCE",
    "ENV",
    "EVENT_STORE_TOKEN",
    "CLICK_EVENTS_STREAM",
    "LINK_METADATA_STREAM",
    "CONVERSION_EVENTS_STREAM",
)


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})
    for var in _ISOLATED_ENV:
        monkeypatch.delenv(var, raising=False)
