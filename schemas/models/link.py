"""
Link metadata models.

LinkSnapshot is the caller-side view of a link (what the link service hands
over on create/update/delete). LinkMetadataEvent is the full snapshot written
to the links-metadata stream; consumers upsert by latest timestamp.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import AliasChoices, Field

from schemas.models.base import EventBaseModel, FrozenModel


class LinkSnapshot(FrozenModel):
    id: Optional[str] = None
    domain: Optional[str] = None
    key: Optional[str] = None
    url: Optional[str] = None
    project_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LinkSnapshot":
        """Build a snapshot from a link record, ignoring unrelated keys.

        Accepts ``projectId`` as well as ``project_id``.
        """
        known = {"id", "domain", "key", "url", "project_id", "projectId"}
        return cls.model_validate({k: v for k, v in data.items() if k in known})


class LinkMetadataEvent(EventBaseModel):
    link_id: str
    domain: str
    key: str
    url: str
    project_id: str = ""
    deleted: bool = False

    def to_wire(self) -> dict[str, Any]:
        data = super().to_wire()
        data["deleted"] = 1 if self.deleted else 0
        return data
