"""Tests for GeoCalculator, GridClusterer and DeckMapProvider.

Projection checks use values that are easy to verify by hand:
at zoom 0 the world is 256 px wide, (0, 0) projects to the center (128, 128).
"""

import pydeck as pdk
import pytest
from hypothesis import given, settings, strategies as st

from trail_explorer.constants import ClusterConfig, StyleConfig
from trail_explorer.core.geo_calculator import MAX_MERCATOR_LAT, GeoCalculator
from trail_explorer.errors import ClusteringUnavailableError, MapProviderError
from trail_explorer.ui.map_provider import (
    TYPE_CLUSTER,
    TYPE_TRAIL,
    DeckMapProvider,
    GridClusterer,
    MapMarker,
    MarkerStyle,
    hex_to_rgba,
    make_cluster,
)


def make_marker(trail_id: str, lat: float, lon: float) -> MapMarker:
    return MapMarker(trail_id=trail_id, position=(lat, lon), title=trail_id, style=MarkerStyle())


# =============================================================================
# GEO CALCULATOR
# =============================================================================


class TestGeoCalculator:
    """Web Mercator world-pixel projection."""

    def test_world_size_doubles_per_zoom(self) -> None:
        assert GeoCalculator.world_size_px(0) == 256
        assert GeoCalculator.world_size_px(1) == 512
        assert GeoCalculator.world_size_px(10) == 256 * 1024

    def test_origin_projects_to_center(self) -> None:
        x, y = GeoCalculator.to_world_px(lat=0.0, lon=0.0, zoom=0)
        assert x == pytest.approx(128.0)
        assert y == pytest.approx(128.0)

    def test_north_is_up(self) -> None:
        _, y_north = GeoCalculator.to_world_px(lat=45.0, lon=0.0, zoom=3)
        _, y_south = GeoCalculator.to_world_px(lat=-45.0, lon=0.0, zoom=3)
        assert y_north < y_south

    def test_poles_clamped(self) -> None:
        """Latitudes beyond the Mercator limit land on the world edge."""
        _, y = GeoCalculator.to_world_px(lat=90.0, lon=0.0, zoom=0)
        assert y == pytest.approx(0.0, abs=1e-6)
        assert GeoCalculator.to_world_px(lat=90.0, lon=0.0, zoom=0) == GeoCalculator.to_world_px(
            lat=MAX_MERCATOR_LAT, lon=0.0, zoom=0
        )

    @given(
        lat=st.floats(min_value=-85.0, max_value=85.0),
        lon=st.floats(min_value=-180.0, max_value=180.0),
        zoom=st.integers(min_value=0, max_value=18),
    )
    @settings(max_examples=50)
    def test_inverse(self, lat: float, lon: float, zoom: int) -> None:
        x, y = GeoCalculator.to_world_px(lat=lat, lon=lon, zoom=zoom)
        back_lat, back_lon = GeoCalculator.from_world_px(x, y, zoom=zoom)
        assert back_lat == pytest.approx(lat, abs=1e-6)
        assert back_lon == pytest.approx(lon, abs=1e-6)

    def test_pixel_distance_doubles_per_zoom(self) -> None:
        a, b = (37.0, -119.0), (37.1, -119.1)
        d5 = GeoCalculator.pixel_distance(a, b, zoom=5)
        d6 = GeoCalculator.pixel_distance(a, b, zoom=6)
        assert d6 == pytest.approx(2 * d5)


# =============================================================================
# GRID CLUSTERER
# =============================================================================


class TestGridClusterer:
    """Greedy pixel-radius clustering."""

    def test_invalid_radius(self) -> None:
        with pytest.raises(ValueError):
            GridClusterer(markers=[], radius_px=0)

    def test_empty(self) -> None:
        assert GridClusterer(markers=[]).clusters(zoom=6) == []

    def test_close_markers_merge(self) -> None:
        markers = [make_marker("A", 37.0, -119.0), make_marker("B", 37.01, -119.01)]
        clusters = GridClusterer(markers=markers, radius_px=50).clusters(zoom=6)
        assert len(clusters) == 1
        assert clusters[0].size == 2
        assert clusters[0].cluster_id == "z6:A"
        assert clusters[0].centroid == pytest.approx((37.005, -119.005))

    def test_far_markers_stay_apart(self) -> None:
        markers = [make_marker("A", 37.0, -119.0), make_marker("B", 34.0, -118.0)]
        clusters = GridClusterer(markers=markers, radius_px=50).clusters(zoom=8)
        assert len(clusters) == 2
        assert all(c.is_single for c in clusters)

    def test_above_max_zoom_all_single(self) -> None:
        markers = [make_marker("A", 37.0, -119.0), make_marker("B", 37.0, -119.0)]
        clusterer = GridClusterer(markers=markers, radius_px=100, max_zoom=ClusterConfig.MAX_ZOOM)
        assert len(clusterer.clusters(zoom=ClusterConfig.MAX_ZOOM + 1)) == 2
        assert len(clusterer.clusters(zoom=ClusterConfig.MAX_ZOOM)) == 1

    @given(
        points=st.lists(
            st.tuples(st.floats(min_value=32.0, max_value=42.0), st.floats(min_value=-124.0, max_value=-114.0)),
            max_size=40,
        ),
        zoom=st.integers(min_value=0, max_value=17),
    )
    @settings(max_examples=50)
    def test_every_marker_in_exactly_one_cluster(self, points: list[tuple[float, float]], zoom: int) -> None:
        markers = [make_marker(f"T{i}", lat, lon) for i, (lat, lon) in enumerate(points)]
        clusters = GridClusterer(markers=markers, radius_px=60).clusters(zoom=zoom)
        member_ids = [m.trail_id for c in clusters for m in c.members]
        assert sorted(member_ids) == sorted(m.trail_id for m in markers)

    def test_clear_markers(self) -> None:
        clusterer = GridClusterer(markers=[make_marker("A", 37.0, -119.0)])
        clusterer.clear_markers()
        assert clusterer.markers == []
        assert clusterer.clusters(zoom=6) == []

    def test_make_cluster_single(self) -> None:
        cluster = make_cluster(zoom=10, members=[make_marker("A", 1.0, 2.0)])
        assert cluster.is_single
        assert cluster.centroid == (1.0, 2.0)


# =============================================================================
# DECK MAP PROVIDER
# =============================================================================


class TestDeckMapProvider:
    """pydeck-backed provider."""

    def test_create_and_remove_marker(self) -> None:
        provider = DeckMapProvider()
        marker = provider.create_marker(trail_id="A", position=(37.0, -119.0), title="A", style=MarkerStyle())
        assert provider.find_marker("A") is marker
        provider.remove_marker(marker)
        assert provider.find_marker("A") is None
        assert provider.markers == []

    def test_invalid_position_raises(self) -> None:
        provider = DeckMapProvider()
        with pytest.raises(MapProviderError):
            provider.create_marker(trail_id="A", position=(137.0, -119.0), title="A", style=MarkerStyle())

    def test_clustering_disabled(self) -> None:
        provider = DeckMapProvider(clustering_enabled=False)
        with pytest.raises(ClusteringUnavailableError):
            provider.create_clusterer(markers=[], radius_px=100, max_zoom=15)

    def test_viewport(self) -> None:
        provider = DeckMapProvider()
        provider.pan_to((36.0, -118.0))
        provider.set_zoom(12)
        assert provider.center == (36.0, -118.0)
        assert provider.zoom == 12
        view_state = provider.get_view_state()
        assert view_state.latitude == 36.0
        assert view_state.zoom == 12

    def test_render_unclustered(self) -> None:
        provider = DeckMapProvider()
        provider.create_marker(trail_id="A", position=(37.0, -119.0), title="Alpha", style=MarkerStyle())
        deck = provider.render(selected_trail_id="A")
        assert isinstance(deck, pdk.Deck)
        assert [layer.id for layer in deck.layers] == ["trails"]
        row = deck.layers[0].data[0]
        assert row["type"] == TYPE_TRAIL
        assert row["position"] == [-119.0, 37.0]
        assert row["color"] == hex_to_rgba(StyleConfig.SELECTED_COLOR)

    def test_render_with_clusters(self) -> None:
        provider = DeckMapProvider(zoom=6)
        markers = [
            provider.create_marker(trail_id=t, position=(37.0 + i * 0.01, -119.0), title=t, style=MarkerStyle())
            for i, t in enumerate(["A", "B", "C"])
        ]
        clusterer = provider.create_clusterer(markers=markers, radius_px=100, max_zoom=15)
        deck = provider.render(clusterer=clusterer)
        assert [layer.id for layer in deck.layers] == ["clusters", "cluster_counts", "trails"]
        cluster_row = deck.layers[0].data[0]
        assert cluster_row["type"] == TYPE_CLUSTER
        assert cluster_row["count"] == "3"
        assert deck.layers[2].data == []

    def test_hex_to_rgba(self) -> None:
        assert hex_to_rgba("#FF8000", alpha=0.5) == [255, 128, 0, 128]
