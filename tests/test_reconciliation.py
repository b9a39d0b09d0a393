"""
tests/test_reconciliation.py

Pytest unit tests for inventory reconciliation.

Coverage
--------
- updated / added / removed counts for plugins and themes
- unchanged extensions keep their pending-update hint
- version comparison is exact string equality
- a missing snapshot yields an all-zero result
"""

from __future__ import annotations

from datetime import datetime, timezone

from app.domain.inventory import ExtensionRecord, InventorySnapshot, StateType
from app.domain.report import StateChanges, UpdatedExtension
from app.vrt.reconciliation import reconcile

CAPTURED_AT = datetime(2026, 10, 18, 2, 0, tzinfo=timezone.utc)


def _snapshot(state_type: str, plugins=(), themes=()) -> InventorySnapshot:
    return InventorySnapshot(
        state_type=state_type,
        site_url="https://example.com",
        site_name="example.com",
        captured_at=CAPTURED_AT,
        plugins=tuple(plugins),
        themes=tuple(themes),
    )


class TestReconcile:
    def test_plugin_deltas(self) -> None:
        before = _snapshot(
            StateType.BEFORE,
            plugins=[ExtensionRecord("A", "1.0"), ExtensionRecord("B", "2.0")],
        )
        after = _snapshot(
            StateType.AFTER,
            plugins=[ExtensionRecord("A", "1.1"), ExtensionRecord("C", "1.0")],
        )

        result = reconcile(before, after)

        changes = result.state_changes
        assert (changes.plugins_updated, changes.plugins_added, changes.plugins_removed) == (1, 1, 1)
        assert result.plugin_updates.updated == (
            UpdatedExtension(name="A", old_version="1.0", new_version="1.1"),
        )
        assert result.plugin_updates.not_updated == ()

    def test_unchanged_extension_keeps_update_hint(self) -> None:
        before = _snapshot(
            StateType.BEFORE,
            themes=[
                ExtensionRecord("Astra", "4.0", active=True, update_available=True, available_version="4.1"),
                ExtensionRecord("Twenty", "1.0"),
            ],
        )
        after = _snapshot(
            StateType.AFTER,
            themes=[ExtensionRecord("Astra", "4.0", active=True), ExtensionRecord("Twenty", "1.0")],
        )

        result = reconcile(before, after)

        astra, twenty = result.theme_updates.not_updated
        assert astra.has_update is True
        assert astra.available_version == "4.1"
        assert twenty.has_update is False
        assert twenty.available_version is None
        assert result.state_changes.themes_updated == 0

    def test_versions_compare_as_exact_strings(self) -> None:
        before = _snapshot(StateType.BEFORE, plugins=[ExtensionRecord("A", "1.0")])
        after = _snapshot(StateType.AFTER, plugins=[ExtensionRecord("A", "1.0.0")])
        assert reconcile(before, after).state_changes.plugins_updated == 1

    def test_identical_snapshots_have_no_changes(self) -> None:
        plugins = [ExtensionRecord("A", "1.0"), ExtensionRecord("B", "2.0")]
        result = reconcile(_snapshot(StateType.BEFORE, plugins), _snapshot(StateType.AFTER, plugins))
        assert result.state_changes == StateChanges()
        assert len(result.plugin_updates.not_updated) == 2

    def test_missing_snapshot_yields_zero_result(self) -> None:
        before = _snapshot(StateType.BEFORE, plugins=[ExtensionRecord("A", "1.0")])
        assert reconcile(before, None).state_changes == StateChanges()
        assert reconcile(None, before).plugin_updates.updated == ()
