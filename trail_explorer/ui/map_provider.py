"""Map provider contract and the pydeck-backed implementation.

The marker manager talks only to the abstract MapProvider, so the rendering
backend can be swapped (tests use a recording fake). Markers carry their own
click listeners; clustering is a separate capability created on demand and
allowed to fail.

Key points for the deck.gl implementation:
- Uses [lon, lat] coordinate order in layer data (GeoJSON standard)
- Colors as RGBA lists [R, G, B, A] (0-255)
- Clusters are recomputed for the current zoom in render()
- Layer data carries "type" and "id" so click events resolve to a trail

Basemap: OpenStreetMap raster tiles through a Mapbox GL style dict, no API key.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

import pydeck as pdk

from trail_explorer.constants import ClusterConfig, MapConfig, StyleConfig
from trail_explorer.core.geo_calculator import GeoCalculator
from trail_explorer.errors import ClusteringUnavailableError, MapProviderError

logger = logging.getLogger(__name__)

# (lat, lon) order everywhere outside of deck.gl layer data
LatLon = tuple[float, float]

# Click event "type" values carried in layer data
TYPE_TRAIL = "trail"
TYPE_CLUSTER = "cluster"

OSM_TILES_ABC = [
    "https://a.tile.openstreetmap.org/{z}/{x}/{y}.png",
    "https://b.tile.openstreetmap.org/{z}/{x}/{y}.png",
    "https://c.tile.openstreetmap.org/{z}/{x}/{y}.png",
]

OSM_STYLE: dict[str, object] = {
    "version": 8,
    "sources": {
        "osm": {
            "type": "raster",
            "tiles": OSM_TILES_ABC,
            "tileSize": ClusterConfig.TILE_SIZE_PX,
            "attribution": '© <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors',
        }
    },
    "layers": [
        {
            "id": "osm",
            "type": "raster",
            "source": "osm",
            "minzoom": 0,
            "maxzoom": 19,
        }
    ],
}


def hex_to_rgba(hex_color: str, alpha: float = 1.0) -> list[int]:
    """Convert '#RRGGBB' to a deck.gl RGBA list."""
    hex_color = hex_color.lstrip("#")
    r = int(hex_color[0:2], 16)
    g = int(hex_color[2:4], 16)
    b = int(hex_color[4:6], 16)
    return [r, g, b, int(round(alpha * 255))]


# =============================================================================
# MARKERS
# =============================================================================


@dataclass(frozen=True)
class MarkerStyle:
    """Visual style of one trail marker."""

    fill_color: str = StyleConfig.FALLBACK_COLOR
    radius_px: int = StyleConfig.MARKER_RADIUS_PX
    fill_opacity: float = StyleConfig.MARKER_FILL_OPACITY
    stroke_color: str = StyleConfig.MARKER_STROKE_COLOR
    stroke_width_px: int = StyleConfig.MARKER_STROKE_WIDTH_PX


class MapMarker:
    """A live marker on the map, owned by whoever created it.

    Click listeners receive the marker itself.
    """

    def __init__(self, trail_id: str, position: LatLon, title: str, style: MarkerStyle) -> None:
        self.trail_id = trail_id
        self.position = position
        self.title = title
        self.style = style
        self._listeners: list[Callable[["MapMarker"], None]] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_click_listener(self, listener: Callable[["MapMarker"], None]) -> None:
        self._listeners.append(listener)

    def clear_listeners(self) -> None:
        self._listeners = []

    def click(self) -> None:
        """Dispatch a click to every registered listener."""
        for listener in list(self._listeners):
            listener(self)

    def __repr__(self) -> str:
        return f"MapMarker(trail_id={self.trail_id!r}, position={self.position})"


# =============================================================================
# CLUSTERING
# =============================================================================


@dataclass(frozen=True)
class Cluster:
    """Markers grouped together at one zoom level.

    Attributes:
        cluster_id: Stable id for this zoom (derived from the seed marker)
        members: Markers in the group, seed first
        centroid: Mean (lat, lon) of the members
    """

    cluster_id: str
    members: tuple[MapMarker, ...]
    centroid: LatLon

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def is_single(self) -> bool:
        return len(self.members) == 1


def make_cluster(zoom: float, members: list[MapMarker]) -> Cluster:
    """Group members at their mean position; id is derived from the first member."""
    lat = sum(m.position[0] for m in members) / len(members)
    lon = sum(m.position[1] for m in members) / len(members)
    return Cluster(
        cluster_id=f"z{zoom:g}:{members[0].trail_id}",
        members=tuple(members),
        centroid=(lat, lon),
    )


class MarkerClusterer(ABC):
    """Groups markers that would overlap on screen."""

    @property
    @abstractmethod
    def markers(self) -> list[MapMarker]:
        raise NotImplementedError

    @abstractmethod
    def clusters(self, zoom: float) -> list[Cluster]:
        """Groups for one zoom level; every marker appears in exactly one group."""
        raise NotImplementedError

    @abstractmethod
    def clear_markers(self) -> None:
        raise NotImplementedError


class GridClusterer(MarkerClusterer):
    """Greedy pixel-radius clustering in Web Mercator space.

    Markers are bucketed into a grid of radius-sized cells; each unassigned
    marker (in insertion order) seeds a cluster and absorbs every unassigned
    marker within radius_px in the 3x3 neighbouring cells. Above max_zoom
    every marker is its own cluster.

    Example:
        clusterer = GridClusterer(markers=markers, radius_px=100, max_zoom=15)
        for cluster in clusterer.clusters(zoom=6):
            print(cluster.size, cluster.centroid)
    """

    def __init__(
        self,
        markers: list[MapMarker],
        radius_px: float = ClusterConfig.RADIUS_PX,
        max_zoom: int = ClusterConfig.MAX_ZOOM,
    ) -> None:
        if radius_px <= 0:
            raise ValueError(f"radius_px must be positive, got {radius_px}")
        self._markers = list(markers)
        self.radius_px = radius_px
        self.max_zoom = max_zoom

    @property
    def markers(self) -> list[MapMarker]:
        return list(self._markers)

    def clear_markers(self) -> None:
        self._markers = []

    def clusters(self, zoom: float) -> list[Cluster]:
        if zoom > self.max_zoom:
            return [make_cluster(zoom=zoom, members=[m]) for m in self._markers]

        projected = [GeoCalculator.to_world_px(lat=m.position[0], lon=m.position[1], zoom=zoom) for m in self._markers]

        grid: dict[tuple[int, int], list[int]] = {}
        for idx, (x, y) in enumerate(projected):
            cell = (int(x // self.radius_px), int(y // self.radius_px))
            grid.setdefault(cell, []).append(idx)

        assigned = [False] * len(self._markers)
        result = []
        for seed_idx, (sx, sy) in enumerate(projected):
            if assigned[seed_idx]:
                continue
            assigned[seed_idx] = True
            members = [seed_idx]
            cx, cy = int(sx // self.radius_px), int(sy // self.radius_px)
            for dx in (-1, 0, 1):
                for dy in (-1, 0, 1):
                    for idx in grid.get((cx + dx, cy + dy), []):
                        if assigned[idx]:
                            continue
                        x, y = projected[idx]
                        if (x - sx) ** 2 + (y - sy) ** 2 <= self.radius_px**2:
                            assigned[idx] = True
                            members.append(idx)
            result.append(make_cluster(zoom=zoom, members=[self._markers[i] for i in members]))

        logger.debug(f"Clustered {len(self._markers)} markers into {len(result)} groups at zoom {zoom}")
        return result


# =============================================================================
# PROVIDERS
# =============================================================================


class MapProvider(ABC):
    """Abstract map surface: markers, viewport and clustering capability."""

    @property
    @abstractmethod
    def center(self) -> LatLon:
        raise NotImplementedError

    @property
    @abstractmethod
    def zoom(self) -> float:
        raise NotImplementedError

    @abstractmethod
    def create_marker(self, trail_id: str, position: LatLon, title: str, style: MarkerStyle) -> MapMarker:
        """Place a marker on the map.

        Raises:
            MapProviderError: If the marker cannot be created.
        """
        raise NotImplementedError

    @abstractmethod
    def remove_marker(self, marker: MapMarker) -> None:
        """Take a marker off the map (unknown markers are ignored)."""
        raise NotImplementedError

    @abstractmethod
    def pan_to(self, position: LatLon) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_zoom(self, zoom: float) -> None:
        raise NotImplementedError

    @abstractmethod
    def create_clusterer(self, markers: list[MapMarker], radius_px: float, max_zoom: int) -> MarkerClusterer:
        """Create a clusterer over markers.

        Raises:
            ClusteringUnavailableError: If clustering cannot be provided.
        """
        raise NotImplementedError


@dataclass
class _Viewport:
    center: LatLon = (MapConfig.START_CENTER_LAT, MapConfig.START_CENTER_LON)
    zoom: float = MapConfig.OVERVIEW_ZOOM


class DeckMapProvider(MapProvider):
    """MapProvider rendering to a pydeck.Deck.

    Markers live in memory until render() turns them into layers. One
    instance per session (kept in st.session_state with the manager).

    Example:
        provider = DeckMapProvider()
        manager = MarkerClusterManager(provider=provider, selection=sm)
        manager.sync(results=records)
        deck = provider.render(clusterer=manager.clusterer, selected_trail_id=sm.context.selection.trail_id)
    """

    def __init__(
        self,
        center: LatLon = (MapConfig.START_CENTER_LAT, MapConfig.START_CENTER_LON),
        zoom: float = MapConfig.OVERVIEW_ZOOM,
        clustering_enabled: bool = True,
    ) -> None:
        """Initialize provider.

        Args:
            center: Initial (lat, lon) view center
            zoom: Initial zoom level
            clustering_enabled: If False, create_clusterer raises (unclustered rendering)
        """
        self._viewport = _Viewport(center=center, zoom=zoom)
        self._markers: list[MapMarker] = []
        self.clustering_enabled = clustering_enabled

    @property
    def center(self) -> LatLon:
        return self._viewport.center

    @property
    def zoom(self) -> float:
        return self._viewport.zoom

    @property
    def markers(self) -> list[MapMarker]:
        return list(self._markers)

    def create_marker(self, trail_id: str, position: LatLon, title: str, style: MarkerStyle) -> MapMarker:
        lat, lon = position
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            raise MapProviderError(f"Marker {trail_id} has invalid position {position}")
        marker = MapMarker(trail_id=trail_id, position=(float(lat), float(lon)), title=title, style=style)
        self._markers.append(marker)
        return marker

    def remove_marker(self, marker: MapMarker) -> None:
        marker.clear_listeners()
        self._markers = [m for m in self._markers if m is not marker]

    def pan_to(self, position: LatLon) -> None:
        self._viewport.center = (float(position[0]), float(position[1]))

    def set_zoom(self, zoom: float) -> None:
        self._viewport.zoom = zoom

    def create_clusterer(self, markers: list[MapMarker], radius_px: float, max_zoom: int) -> MarkerClusterer:
        if not self.clustering_enabled:
            raise ClusteringUnavailableError("Clustering disabled for this map")
        return GridClusterer(markers=markers, radius_px=radius_px, max_zoom=max_zoom)

    def find_marker(self, trail_id: str) -> MapMarker | None:
        for marker in self._markers:
            if marker.trail_id == trail_id:
                return marker
        return None

    # =========================================================================
    # RENDERING
    # =========================================================================

    def get_view_state(self) -> pdk.ViewState:
        lat, lon = self._viewport.center
        return pdk.ViewState(latitude=lat, longitude=lon, zoom=self._viewport.zoom, pitch=0, bearing=0)

    def render(
        self,
        clusterer: MarkerClusterer | None = None,
        selected_trail_id: str | None = None,
    ) -> pdk.Deck:
        """Render markers (and clusters at the current zoom) to a Deck.

        Args:
            clusterer: Clusterer from the manager, None renders every marker
            selected_trail_id: Trail drawn with the highlight color

        Returns:
            pdk.Deck object ready for display.
        """
        if clusterer is not None:
            groups = clusterer.clusters(zoom=self._viewport.zoom)
        else:
            groups = [make_cluster(zoom=self._viewport.zoom, members=[m]) for m in self._markers]

        singles = [g.members[0] for g in groups if g.is_single]
        multi = [g for g in groups if not g.is_single]

        # Z-order (back to front): clusters → cluster counts → markers
        layers = []
        if multi:
            layers.extend(self._create_cluster_layers(multi))
        layers.append(self._create_marker_layer(singles, selected_trail_id=selected_trail_id))

        return pdk.Deck(
            map_style=OSM_STYLE,
            map_provider="mapbox",  # Required when map_style is a dict
            initial_view_state=self.get_view_state(),
            layers=layers,
            tooltip=self._create_tooltip_config(),
        )

    @staticmethod
    def _create_marker_layer(markers: list[MapMarker], selected_trail_id: str | None) -> pdk.Layer:
        data = []
        for marker in markers:
            is_selected = marker.trail_id == selected_trail_id
            color = StyleConfig.SELECTED_COLOR if is_selected else marker.style.fill_color
            data.append(
                {
                    "type": TYPE_TRAIL,
                    "id": marker.trail_id,
                    "name": marker.title,
                    "position": [marker.position[1], marker.position[0]],
                    "color": hex_to_rgba(hex_color=color, alpha=1.0 if is_selected else marker.style.fill_opacity),
                    "radius": marker.style.radius_px * (1.5 if is_selected else 1.0),
                }
            )

        return pdk.Layer(
            "ScatterplotLayer",
            data,
            get_position="position",
            get_fill_color="color",
            get_radius="radius",
            radius_units="pixels",
            get_line_color=hex_to_rgba(StyleConfig.MARKER_STROKE_COLOR),
            line_width_min_pixels=StyleConfig.MARKER_STROKE_WIDTH_PX,
            stroked=True,
            pickable=True,
            auto_highlight=True,
            id="trails",
        )

    @staticmethod
    def _create_cluster_layers(clusters: list[Cluster]) -> list[pdk.Layer]:
        largest = max(c.size for c in clusters)
        data = []
        for cluster in clusters:
            # Radius grows with the share of the largest cluster
            share = cluster.size / largest
            radius = StyleConfig.CLUSTER_MIN_RADIUS_PX + share * (
                StyleConfig.CLUSTER_MAX_RADIUS_PX - StyleConfig.CLUSTER_MIN_RADIUS_PX
            )
            data.append(
                {
                    "type": TYPE_CLUSTER,
                    "id": cluster.cluster_id,
                    "name": f"{cluster.size} trails",
                    "count": str(cluster.size),
                    "position": [cluster.centroid[1], cluster.centroid[0]],
                    "radius": radius,
                }
            )

        circles = pdk.Layer(
            "ScatterplotLayer",
            data,
            get_position="position",
            get_fill_color=hex_to_rgba(StyleConfig.CLUSTER_COLOR, alpha=0.85),
            get_radius="radius",
            radius_units="pixels",
            pickable=True,
            id="clusters",
        )
        counts = pdk.Layer(
            "TextLayer",
            data,
            get_position="position",
            get_text="count",
            get_color=hex_to_rgba(StyleConfig.CLUSTER_TEXT_COLOR),
            get_size=14,
            get_alignment_baseline="'center'",
            id="cluster_counts",
        )
        return [circles, counts]

    @staticmethod
    def _create_tooltip_config() -> dict[str, str | dict[str, str]]:
        """Tooltip shows the name only; details live in the overlay panel."""
        return {
            "html": "<b>{name}</b>",
            "style": {
                "backgroundColor": "rgba(255, 255, 255, 0.95)",
                "color": "#333",
                "padding": "6px 10px",
                "borderRadius": "4px",
            },
        }
