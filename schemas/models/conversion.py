"""
Conversion event model.

A business event attributed to an earlier click. click_id is a soft
reference to a ClickEvent; nothing here checks that the click exists.
properties is passed through untouched.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from schemas.models.base import EventBaseModel


class ConversionEvent(EventBaseModel):
    click_id: str
    affiliate_id: str = ""
    event_name: str
    properties: dict[str, Any] = Field(default_factory=dict)
