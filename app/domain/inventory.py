"""
app/domain/inventory.py

Canonical inventory snapshot of installed plugins and themes.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime


class StateType:
    BEFORE = "before"
    AFTER = "after"

    ALL = frozenset({BEFORE, AFTER})


@dataclass(frozen=True)
class ExtensionRecord:
    """
    One installed plugin or theme. `name` is the natural key within a snapshot.
    """

    name: str
    version: str
    active: bool = False
    update_available: bool = False
    available_version: str | None = None
    identifier: str | None = None
    author: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class InventorySnapshot:
    """
    Point-in-time record of a site's installed extensions.
    """

    state_type: str
    site_url: str
    site_name: str
    captured_at: datetime
    plugins: tuple[ExtensionRecord, ...] = field(default_factory=tuple)
    themes: tuple[ExtensionRecord, ...] = field(default_factory=tuple)
    wordpress_version: str | None = None
    php_version: str | None = None
    is_multisite: bool = False
    job_id: uuid.UUID | None = None
    snapshot_id: uuid.UUID | None = None

    @property
    def active_theme(self) -> str | None:
        for theme in self.themes:
            if theme.active:
                return theme.name
        return None

    @property
    def plugin_update_count(self) -> int:
        return sum(1 for plugin in self.plugins if plugin.update_available)

    @property
    def theme_update_count(self) -> int:
        return sum(1 for theme in self.themes if theme.update_available)
