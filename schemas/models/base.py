"""
Base model for all analytics event records.

Events are immutable value objects: every model is frozen once built.
EventBaseModel provides to_wire() for the JSON body sent to the event store,
where the timestamp is rendered as an ISO 8601 UTC string.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer

from shared.datetime_utils import to_iso_timestamp

# Sentinel for any enrichment field that could not be resolved
UNKNOWN = "Unknown"


class FrozenModel(BaseModel):
    """Immutable model with no extra fields allowed."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class EventBaseModel(FrozenModel):
    """
    Base for all event records.

    Subclasses declare their fields; to_wire() is overridden where the
    record's wire shape differs from its field layout.
    """

    timestamp: datetime

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return to_iso_timestamp(value)

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready dict sent to the event store."""
        return self.model_dump(mode="json")
