"""Tests for MarkerClusterManager with the recording FakeMapProvider.

Covers full rebuild per sync, difficulty colors, graceful degradation when
clustering or the map itself fails, external selection and click wiring.
"""

import pytest

from trail_explorer.constants import MapConfig, StyleConfig
from trail_explorer.model.trail_record import TrailRecord
from trail_explorer.ui.map_provider import hex_to_rgba
from trail_explorer.ui.marker_manager import MarkerClusterManager, marker_color
from trail_explorer.ui.pages import build_detail_map

from conftest import FakeMapProvider


@pytest.fixture
def manager(fake_provider: FakeMapProvider, sm_and_model) -> MarkerClusterManager:
    sm, _ = sm_and_model
    return MarkerClusterManager(provider=fake_provider, selection=sm)


class TestMarkerColor:
    """Fill color by difficulty label."""

    @pytest.mark.parametrize("label", list(StyleConfig.DIFFICULTY_COLORS))
    def test_known_labels(self, label: str) -> None:
        assert marker_color(label) == StyleConfig.DIFFICULTY_COLORS[label]

    @pytest.mark.parametrize("label", [None, "", "unknown", "Easy"])
    def test_unknown_labels_fallback(self, label: str | None) -> None:
        assert marker_color(label) == StyleConfig.FALLBACK_COLOR


class TestSync:
    """Markers follow the result set exactly."""

    def test_empty_results(self, manager: MarkerClusterManager, fake_provider: FakeMapProvider) -> None:
        """Zero results: no markers, no clusterer, no error."""
        manager.sync([])
        assert manager.marker_count == 0
        assert manager.clusterer is None
        assert fake_provider.clusterers_created == 0
        assert not manager.is_clustering_degraded

    def test_one_marker_per_record(self, manager: MarkerClusterManager, records: list[TrailRecord]) -> None:
        manager.sync(records)
        assert [m.trail_id for m in manager.markers] == [r.id for r in records]
        assert manager.clusterer is not None
        assert len(manager.clusterer.markers) == len(records)

    def test_marker_colors_follow_difficulty(self, manager: MarkerClusterManager, records: list[TrailRecord]) -> None:
        manager.sync(records)
        for marker, record in zip(manager.markers, records):
            assert marker.style.fill_color == StyleConfig.DIFFICULTY_COLORS[record.difficulty_label]

    def test_resync_replaces_previous_markers(
        self, manager: MarkerClusterManager, fake_provider: FakeMapProvider, records: list[TrailRecord]
    ) -> None:
        manager.sync(records)
        manager.sync(records[:3])
        assert manager.marker_count == 3
        assert len(fake_provider.live_markers) == 3
        assert sorted(fake_provider.removed) == sorted(r.id for r in records)

    def test_sync_is_idempotent(self, manager: MarkerClusterManager, records: list[TrailRecord]) -> None:
        manager.sync(records)
        first = [(m.trail_id, m.position) for m in manager.markers]
        manager.sync(records)
        assert [(m.trail_id, m.position) for m in manager.markers] == first

    def test_removed_markers_lose_listeners(self, manager: MarkerClusterManager, records: list[TrailRecord]) -> None:
        manager.sync(records[:1])
        old_marker = manager.markers[0]
        assert old_marker.listener_count == 1
        manager.sync(records[1:2])
        assert old_marker.listener_count == 0


class TestDegradation:
    """Provider failures never escape sync()."""

    def test_clustering_unavailable_renders_unclustered(self, sm_and_model, records: list[TrailRecord]) -> None:
        sm, _ = sm_and_model
        provider = FakeMapProvider(clustering_available=False)
        manager = MarkerClusterManager(provider=provider, selection=sm)
        manager.sync(records)
        assert manager.marker_count == len(records)
        assert manager.clusterer is None
        assert manager.is_clustering_degraded
        assert all(state.cluster_id is None for state in manager.marker_states())

    def test_map_unavailable(self, sm_and_model, records: list[TrailRecord]) -> None:
        sm, _ = sm_and_model
        provider = FakeMapProvider(fail_markers=True)
        manager = MarkerClusterManager(provider=provider, selection=sm)
        manager.sync(records)
        assert manager.marker_count == 0
        assert not manager.is_map_available
        assert manager.clusterer is None

    def test_recovers_on_next_sync(self, sm_and_model, records: list[TrailRecord]) -> None:
        sm, _ = sm_and_model
        provider = FakeMapProvider(fail_markers=True)
        manager = MarkerClusterManager(provider=provider, selection=sm)
        manager.sync(records)
        provider.fail_markers = False
        manager.sync(records)
        assert manager.is_map_available
        assert manager.marker_count == len(records)


class TestExternalSelection:
    """selected_trail passed to sync()."""

    def test_anchor_and_detail_zoom(
        self, manager: MarkerClusterManager, sm_and_model, fake_provider: FakeMapProvider, record_t123: TrailRecord
    ) -> None:
        sm, model = sm_and_model
        manager.sync([record_t123], selected_trail=record_t123)
        assert sm.is_selected
        assert model.active_trail_id == "T123"
        assert model.overlay.anchor == (37.5, -119.0)
        assert model.viewport.zoom == MapConfig.DETAIL_ZOOM
        assert fake_provider.zoom == MapConfig.DETAIL_ZOOM

    def test_selected_trail_outside_results(
        self, manager: MarkerClusterManager, sm_and_model, records: list[TrailRecord], record_t123: TrailRecord
    ) -> None:
        sm, model = sm_and_model
        others = [r for r in records if r.id != "T123"]
        manager.sync(others, selected_trail=record_t123)
        assert model.active_trail_id == "T123"
        assert model.overlay.anchor == (37.5, -119.0)

    def test_filtering_out_marker_selection_unanchors(
        self, manager: MarkerClusterManager, sm_and_model, records: list[TrailRecord]
    ) -> None:
        sm, model = sm_and_model
        manager.sync(records)
        manager.handle_marker_click(records[0].id)
        manager.sync(records[1:])
        assert sm.is_selected
        assert model.overlay.anchor is None


class TestClicks:
    """Marker clicks drive the selection machine, then the host callback."""

    def test_click_selects(self, manager: MarkerClusterManager, sm_and_model, records: list[TrailRecord]) -> None:
        sm, model = sm_and_model
        manager.sync(records)
        assert manager.handle_marker_click(records[2].id) is True
        assert model.active_trail_id == records[2].id
        assert model.overlay.anchor == records[2].lat_lon

    def test_unknown_click_ignored(self, manager: MarkerClusterManager, sm_and_model, records: list[TrailRecord]) -> None:
        sm, _ = sm_and_model
        manager.sync(records[:2])
        assert manager.handle_marker_click("T999") is False
        assert sm.is_idle

    def test_callback_runs_after_transition(self, fake_provider: FakeMapProvider, sm_and_model, records) -> None:
        """Host callback observes the already-updated selection."""
        sm, model = sm_and_model
        seen: list[tuple[str, str | None]] = []
        manager = MarkerClusterManager(
            provider=fake_provider,
            selection=sm,
            on_marker_selected=lambda record: seen.append((record.id, model.active_trail_id)),
        )
        manager.sync(records)
        manager.handle_marker_click(records[4].id)
        assert seen == [(records[4].id, records[4].id)]

    def test_second_click_replaces_selection(self, manager: MarkerClusterManager, sm_and_model, records) -> None:
        sm, model = sm_and_model
        manager.sync(records)
        manager.handle_marker_click(records[0].id)
        manager.handle_marker_click(records[1].id)
        assert sm.is_selected
        assert model.active_trail_id == records[1].id


class TestMarkerStates:
    """Derived per-marker state."""

    def test_nearby_markers_share_cluster_at_overview(self, manager: MarkerClusterManager, records) -> None:
        """Yosemite trails are a few km apart: one cluster at zoom 6, separate at zoom 16."""
        manager.sync(records)
        yosemite = {"T100", "T101", "T102", "T103"}

        overview = {s.trail_id: s.cluster_id for s in manager.marker_states(zoom=6)}
        assert len({overview[t] for t in yosemite}) == 1
        assert overview["T100"] is not None

        detail = {s.trail_id: s.cluster_id for s in manager.marker_states(zoom=16)}
        assert all(detail[t] is None for t in yosemite)

    def test_record_lookup(self, manager: MarkerClusterManager, records) -> None:
        manager.sync(records)
        assert manager.record_for("T123") is not None
        assert manager.record_for("missing") is None


class TestDetailMap:
    """Single-trail map embedded in the details page."""

    def test_trail_selected_and_anchored(self, record_t123: TrailRecord) -> None:
        provider, sm = build_detail_map(record_t123)
        assert sm.is_selected
        assert sm.active_trail_id == "T123"
        assert sm.context.overlay.anchor == (37.5, -119.0)
        assert provider.center == (37.5, -119.0)
        assert provider.zoom == MapConfig.DETAIL_ZOOM

    def test_marker_highlighted(self, record_t123: TrailRecord) -> None:
        provider, sm = build_detail_map(record_t123)
        deck = provider.render(selected_trail_id=sm.active_trail_id)
        rows = deck.layers[-1].data
        assert [row["id"] for row in rows] == ["T123"]
        assert rows[0]["color"] == hex_to_rgba(StyleConfig.SELECTED_COLOR)
