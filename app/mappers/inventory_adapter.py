"""
Boundary adapter: inventory wire payload -> canonical InventorySnapshot.

Alternate field spellings sent by site agents are resolved here, once, so the
reconciliation engine only ever sees the canonical shape.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from app.domain.inventory import ExtensionRecord, InventorySnapshot, StateType
from app.errors import ValidationError


class PluginWire(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    version: str = Field(validation_alias=AliasChoices("version", "current_version"))
    active: bool = False
    update_available: bool = Field(
        default=False,
        validation_alias=AliasChoices("update_available", "updateAvailable"),
    )
    new_version: str | None = Field(
        default=None,
        validation_alias=AliasChoices("new_version", "newVersion"),
    )
    file: str | None = None
    author: str | None = None
    description: str | None = None


class ThemeWire(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = "Unknown Theme"
    version: str = Field(
        default="0.0.0",
        validation_alias=AliasChoices("version", "current_version"),
    )
    active: bool = False
    update_available: bool = Field(
        default=False,
        validation_alias=AliasChoices("update_available", "updateAvailable"),
    )
    new_version: str | None = Field(
        default=None,
        validation_alias=AliasChoices("new_version", "newVersion"),
    )
    slug: str | None = None
    author: str | None = None
    description: str | None = None


class InventoryWire(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    state_type: str | None = Field(
        default=None,
        validation_alias=AliasChoices("state_type", "stateType"),
    )
    job_id: uuid.UUID | None = Field(
        default=None,
        validation_alias=AliasChoices("job_id", "automation_id", "automationId"),
    )
    site_url: str = Field(min_length=1)
    site_name: str | None = None
    plugins: list[PluginWire] = Field(default_factory=list)
    themes: list[ThemeWire] = Field(default_factory=list)
    wordpress_version: str | None = None
    php_version: str | None = None
    is_multisite: bool = False
    timestamp: datetime | None = None


def _format_errors(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


def _plugin_record(plugin: PluginWire) -> ExtensionRecord:
    return ExtensionRecord(
        name=plugin.name,
        version=plugin.version,
        active=plugin.active,
        update_available=plugin.update_available,
        available_version=plugin.new_version,
        identifier=plugin.file,
        author=plugin.author,
        description=plugin.description,
    )


def _theme_record(theme: ThemeWire) -> ExtensionRecord:
    return ExtensionRecord(
        name=theme.name,
        version=theme.version,
        active=theme.active,
        update_available=theme.update_available,
        available_version=theme.new_version,
        identifier=theme.slug,
        author=theme.author,
        description=theme.description,
    )


def snapshot_from_payload(payload: dict[str, Any]) -> InventorySnapshot:
    """
    Validate an inventory payload and map it to the canonical snapshot.

    Raises ValidationError for a missing or unknown state type and for any
    schema violation.
    """

    try:
        wire = InventoryWire.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid inventory payload: {_format_errors(exc)}") from exc

    if not wire.state_type:
        raise ValidationError('Missing required field: state_type (must be "before" or "after")')
    state_type = wire.state_type.lower()
    if state_type not in StateType.ALL:
        raise ValidationError('Invalid state_type. Must be "before" or "after"')

    site_name = wire.site_name or urlparse(wire.site_url).hostname or wire.site_url
    captured_at = wire.timestamp or datetime.now(timezone.utc)
    if captured_at.tzinfo is None:
        captured_at = captured_at.replace(tzinfo=timezone.utc)

    return InventorySnapshot(
        state_type=state_type,
        site_url=wire.site_url,
        site_name=site_name,
        captured_at=captured_at,
        plugins=tuple(_plugin_record(item) for item in wire.plugins),
        themes=tuple(_theme_record(item) for item in wire.themes),
        wordpress_version=wire.wordpress_version,
        php_version=wire.php_version,
        is_multisite=wire.is_multisite,
        job_id=wire.job_id,
    )
