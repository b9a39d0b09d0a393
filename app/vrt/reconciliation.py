"""
Inventory reconciliation between before and after snapshots.
"""

from __future__ import annotations

from collections.abc import Sequence

from app.domain.inventory import ExtensionRecord, InventorySnapshot
from app.domain.report import (
    ExtensionUpdates,
    ReconciliationResult,
    StateChanges,
    UnchangedExtension,
    UpdatedExtension,
)


def _by_name(records: Sequence[ExtensionRecord]) -> dict[str, ExtensionRecord]:
    # Later duplicates win, matching map construction over the stored list.
    return {record.name: record for record in records}


def _compare(
    before: Sequence[ExtensionRecord],
    after: Sequence[ExtensionRecord],
) -> tuple[ExtensionUpdates, int, int, int]:
    before_map = _by_name(before)
    after_map = _by_name(after)

    updated: list[UpdatedExtension] = []
    not_updated: list[UnchangedExtension] = []
    removed = 0
    for name, previous in before_map.items():
        current = after_map.get(name)
        if current is None:
            removed += 1
        elif previous.version != current.version:
            updated.append(
                UpdatedExtension(
                    name=name,
                    old_version=previous.version,
                    new_version=current.version,
                )
            )
        else:
            not_updated.append(
                UnchangedExtension(
                    name=name,
                    current_version=previous.version,
                    has_update=previous.update_available,
                    available_version=previous.available_version if previous.update_available else None,
                )
            )

    added = sum(1 for name in after_map if name not in before_map)
    return (
        ExtensionUpdates(updated=tuple(updated), not_updated=tuple(not_updated)),
        len(updated),
        added,
        removed,
    )


def reconcile(
    before: InventorySnapshot | None,
    after: InventorySnapshot | None,
) -> ReconciliationResult:
    """
    Name-keyed diff of plugins and themes. Versions compare by exact string.

    A missing snapshot on either side yields an all-zero result.
    """

    if before is None or after is None:
        return ReconciliationResult()

    plugin_updates, plugins_updated, plugins_added, plugins_removed = _compare(
        before.plugins, after.plugins
    )
    theme_updates, themes_updated, themes_added, themes_removed = _compare(
        before.themes, after.themes
    )
    return ReconciliationResult(
        state_changes=StateChanges(
            plugins_updated=plugins_updated,
            themes_updated=themes_updated,
            plugins_added=plugins_added,
            plugins_removed=plugins_removed,
            themes_added=themes_added,
            themes_removed=themes_removed,
        ),
        plugin_updates=plugin_updates,
        theme_updates=theme_updates,
    )
