"""
Event constructors.

Each builder validates its required inputs, stamps the current UTC instant
(the moment of the triggering action, not of transmission) and returns a
frozen event record. Missing required input raises ValidationError before
anything is written anywhere.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from errors import ValidationError
from schemas.models.click import ClickEvent, Enrichment
from schemas.models.conversion import ConversionEvent
from schemas.models.link import LinkMetadataEvent, LinkSnapshot
from shared.datetime_utils import utc_now
from shared.generators import generate_click_id


def require(value: Optional[str], field: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required", field=field)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    return value


def build_click_event(
    *,
    identity_hash: str,
    resource_id: str,
    enrichment: Enrichment,
    url: Optional[str] = None,
    click_id: Optional[str] = None,
    affiliate_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> ClickEvent:
    return ClickEvent(
        timestamp=timestamp or utc_now(),
        identity_hash=identity_hash,
        click_id=click_id or generate_click_id(),
        link_id=require(resource_id, "resource_id"),
        affiliate_id=affiliate_id or "",
        url=url or "",
        geo=enrichment.geo,
        user_agent=enrichment.user_agent,
        referer=enrichment.referer,
    )


def build_link_metadata_event(
    link: LinkSnapshot,
    deleted: bool = False,
    timestamp: Optional[datetime] = None,
) -> LinkMetadataEvent:
    return LinkMetadataEvent(
        timestamp=timestamp or utc_now(),
        link_id=require(link.id, "id"),
        domain=require(link.domain, "domain"),
        key=require(link.key, "key"),
        url=link.url or "",
        project_id=link.project_id or "",
        deleted=bool(deleted),
    )


def build_conversion_event(
    *,
    event_name: str,
    properties: Optional[Mapping[str, Any]],
    click_id: str,
    affiliate_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> ConversionEvent:
    if properties is None:
        properties = {}
    if not isinstance(properties, Mapping):
        raise ValidationError("properties must be a mapping", field="properties")
    return ConversionEvent(
        timestamp=timestamp or utc_now(),
        click_id=require(click_id, "click_id"),
        affiliate_id=affiliate_id or "",
        event_name=require(event_name, "event_name"),
        properties=dict(properties),
    )
