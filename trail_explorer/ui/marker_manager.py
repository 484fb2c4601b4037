"""MarkerClusterManager - Keeps map markers in step with the current results.

Every sync() is a full rebuild:
1. Remove every marker and the clusterer from the previous sync
2. Create one marker per record, colored by difficulty
3. Wire each marker's click to the selection machine, then the host callback
4. Cluster the new markers (degrade to unclustered if clustering fails)
5. Apply an external selection, or re-anchor the current one

The manager is the only owner of markers and clusterer. MarkerState values
are derived from the live markers on demand and never stored.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from trail_explorer.constants import ClusterConfig, StyleConfig
from trail_explorer.errors import MapProviderError
from trail_explorer.model.trail_record import TrailRecord
from trail_explorer.ui.map_provider import LatLon, MapMarker, MapProvider, MarkerClusterer, MarkerStyle
from trail_explorer.ui.state_machine import SelectionStateMachine

logger = logging.getLogger(__name__)


def marker_color(difficulty_label: str | None) -> str:
    """Fill color for a difficulty label; unknown or missing labels get the fallback."""
    if difficulty_label is None:
        return StyleConfig.FALLBACK_COLOR
    return StyleConfig.DIFFICULTY_COLORS.get(difficulty_label, StyleConfig.FALLBACK_COLOR)


@dataclass(frozen=True)
class MarkerState:
    """Snapshot of one live marker.

    Attributes:
        trail_id: Trail the marker stands for
        position: (lat, lon)
        cluster_id: Cluster the marker is grouped into at the queried zoom, None if alone
        visual_category: Fill color derived from difficulty
    """

    trail_id: str
    position: LatLon
    cluster_id: str | None
    visual_category: str


class MarkerClusterManager:
    """Owns the markers and clusterer for one map.

    Example:
        sm, _ = SelectionStateMachine.create(add_ui_listener=False)
        manager = MarkerClusterManager(provider=DeckMapProvider(), selection=sm)
        manager.sync(results=records)
        manager.handle_marker_click(trail_id=records[0].id)
        assert sm.active_trail_id == records[0].id
    """

    def __init__(
        self,
        provider: MapProvider,
        selection: SelectionStateMachine,
        on_marker_selected: Callable[[TrailRecord], None] | None = None,
        radius_px: float = ClusterConfig.RADIUS_PX,
        max_zoom: int = ClusterConfig.MAX_ZOOM,
    ) -> None:
        """Initialize manager.

        Args:
            provider: Map surface markers are created on
            selection: Selection machine driven by marker clicks
            on_marker_selected: Host callback run after a marker click was applied
            radius_px: Cluster radius in screen pixels
            max_zoom: Highest zoom at which markers still cluster
        """
        self.provider = provider
        self.selection = selection
        self.on_marker_selected = on_marker_selected
        self.radius_px = radius_px
        self.max_zoom = max_zoom

        self._markers: list[MapMarker] = []
        self._records: dict[str, TrailRecord] = {}
        self._clusterer: MarkerClusterer | None = None
        self.is_clustering_degraded = False
        self.is_map_available = True

    @property
    def markers(self) -> list[MapMarker]:
        return list(self._markers)

    @property
    def clusterer(self) -> MarkerClusterer | None:
        return self._clusterer

    @property
    def marker_count(self) -> int:
        return len(self._markers)

    # =========================================================================
    # SYNC
    # =========================================================================

    def sync(self, results: Sequence[TrailRecord], selected_trail: TrailRecord | None = None) -> None:
        """Rebuild markers for results (idempotent).

        Args:
            results: Records to show, one marker each
            selected_trail: Trail selected outside the map (URL, list, detail page)
        """
        self._clear()
        self.is_map_available = True
        self.is_clustering_degraded = False

        if results:
            self._create_markers(results)
        if self._markers:
            self._create_clusterer()

        logger.info(
            f"Synced {len(self._markers)} markers "
            f"(clustered={self._clusterer is not None}, map_available={self.is_map_available})"
        )

        if selected_trail is not None:
            self.selection.try_transition("programmatic_select", record=selected_trail)
        else:
            self.selection.reconcile(self._markers)

    def _clear(self) -> None:
        if self._clusterer is not None:
            self._clusterer.clear_markers()
            self._clusterer = None
        for marker in self._markers:
            self.provider.remove_marker(marker)
        self._markers = []
        self._records = {}

    def _create_markers(self, results: Sequence[TrailRecord]) -> None:
        for record in results:
            try:
                marker = self.provider.create_marker(
                    trail_id=record.id,
                    position=record.lat_lon,
                    title=record.name,
                    style=MarkerStyle(fill_color=marker_color(record.difficulty_label)),
                )
            except MapProviderError as e:
                logger.error(f"Map unavailable, dropping markers: {e}")
                self._clear()
                self.is_map_available = False
                return
            marker.add_click_listener(self._on_marker_click)
            self._markers.append(marker)
            self._records[record.id] = record

    def _create_clusterer(self) -> None:
        try:
            self._clusterer = self.provider.create_clusterer(
                markers=self._markers,
                radius_px=self.radius_px,
                max_zoom=self.max_zoom,
            )
        except MapProviderError as e:
            logger.warning(f"Clustering unavailable, rendering markers individually: {e}")
            self._clusterer = None
            self.is_clustering_degraded = True

    # =========================================================================
    # CLICKS
    # =========================================================================

    def _on_marker_click(self, marker: MapMarker) -> None:
        record = self._records.get(marker.trail_id)
        if record is None:
            logger.warning(f"Click on stale marker {marker.trail_id} ignored")
            return
        self.selection.try_transition("click_marker", record=record, position=marker.position)
        if self.on_marker_selected is not None:
            self.on_marker_selected(record)

    def handle_marker_click(self, trail_id: str) -> bool:
        """Dispatch a click reported by the map widget to the live marker.

        Returns:
            True if a live marker for trail_id handled the click.
        """
        for marker in self._markers:
            if marker.trail_id == trail_id:
                marker.click()
                return True
        logger.info(f"Click for trail {trail_id} has no live marker")
        return False

    # =========================================================================
    # DERIVED STATE
    # =========================================================================

    def record_for(self, trail_id: str) -> TrailRecord | None:
        return self._records.get(trail_id)

    def marker_states(self, zoom: float | None = None) -> list[MarkerState]:
        """Derive per-marker state at a zoom level (defaults to the map's zoom)."""
        zoom = self.provider.zoom if zoom is None else zoom
        cluster_of: dict[str, str] = {}
        if self._clusterer is not None:
            for cluster in self._clusterer.clusters(zoom=zoom):
                if cluster.is_single:
                    continue
                for member in cluster.members:
                    cluster_of[member.trail_id] = cluster.cluster_id

        return [
            MarkerState(
                trail_id=marker.trail_id,
                position=marker.position,
                cluster_id=cluster_of.get(marker.trail_id),
                visual_category=marker.style.fill_color,
            )
            for marker in self._markers
        ]
