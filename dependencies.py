"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Redirect handlers take the recorder with
``recorder: AnalyticsRecorder = Depends(get_recorder)``.
"""

from __future__ import annotations

from fastapi import Request

from config import AppSettings
from services.analytics import AnalyticsRecorder


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_recorder(request: Request) -> AnalyticsRecorder:
    """Return the AnalyticsRecorder built during app startup."""
    return request.app.state.recorder


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


async def get_redis(request: Request):
    """Return the async Redis client from app.state (may be None if not configured)."""
    return request.app.state.redis
