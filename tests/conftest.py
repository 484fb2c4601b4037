"""Shared pytest fixtures for trail_explorer tests.

Provides a small on-disk SQLite dataset, a recording fake map provider and
a selection machine without Streamlit side effects.

FIXTURE DATASET:
    Eleven trails in four California areas. Ratings contain deliberate ties
    (three trails at 4.6, two at 4.9/4.8/4.5) so sort stability is visible:
    ties are ordered by Unique_Id ascending.

    Trail T123 sits at exactly (37.5, -119.0) for external-selection tests.
"""

import sqlite3
from pathlib import Path
from typing import Any

import pytest

from trail_explorer.core.dataset_service import DatasetService
from trail_explorer.core.trail_repository import TrailRepository
from trail_explorer.errors import ClusteringUnavailableError, MapProviderError
from trail_explorer.model.trail_record import TrailRecord
from trail_explorer.ui.map_provider import (
    GridClusterer,
    LatLon,
    MapMarker,
    MapProvider,
    MarkerClusterer,
    MarkerStyle,
)
from trail_explorer.ui.state_machine import SelectionModel, SelectionStateMachine


# =============================================================================
# FIXTURE DATASET
# =============================================================================

COLUMNS = (
    "Unique_Id",
    "Trail_Name",
    "Area",
    "Latitude",
    "Longitude",
    "Distance",
    "Elevation_Gain",
    "Rating",
    "Review_Count",
    "Difficulty_Category",
    "Difficulty",
    "Trail_Type_Category",
    "Length_Category",
    "Cover_Photo",
    "Url",
    "Trail_Type",
    "Est_Hike_Duration",
    "Highest_Point",
    "Permits",
    "Source",
    "State",
    "Country",
)

SUMMARY_COLUMNS = COLUMNS[:15]

YOSEMITE = "Yosemite National Park"
TAM = "Mount Tamalpais State Park"
TORREY = "Torrey Pines State Reserve"
ANZA = "Anza-Borrego Desert State Park"
SIERRA = "Sierra National Forest"


def trail_row(
    trail_id: str,
    name: str,
    area: str,
    lat: float | None,
    lon: float | None,
    distance: float,
    elevation: float,
    rating: float,
    reviews: int,
    difficulty: str,
    code: int,
    trail_type: str,
    length: str,
) -> dict[str, Any]:
    """One dataset row with detail columns filled in consistently."""
    return {
        "Unique_Id": trail_id,
        "Trail_Name": name,
        "Area": area,
        "Latitude": lat,
        "Longitude": lon,
        "Distance": distance,
        "Elevation_Gain": elevation,
        "Rating": rating,
        "Review_Count": reviews,
        "Difficulty_Category": difficulty,
        "Difficulty": code,
        "Trail_Type_Category": trail_type,
        "Length_Category": length,
        "Cover_Photo": f"https://example.org/photos/{trail_id}.jpg",
        "Url": f"https://example.org/trails/{trail_id}",
        "Trail_Type": trail_type.lower(),
        "Est_Hike_Duration": distance * 30,
        "Highest_Point": 1000 + elevation,
        "Permits": 1 if area == YOSEMITE else 0,
        "Source": "example.org",
        "State": "California",
        "Country": "United States",
    }


SHORT = "短距离 (<3英里)"
MEDIUM = "中等距离 (3-7英里)"
LONG = "长距离 (7-15英里)"
VERY_LONG = "超长距离 (>15英里)"

TRAIL_ROWS: list[dict[str, Any]] = [
    trail_row("T100", "Half Dome", YOSEMITE, 37.746, -119.533, 14.2, 4800, 4.9, 5200, "困难", 5, "Out & Back", LONG),
    trail_row("T101", "Mist Trail", YOSEMITE, 37.727, -119.558, 3.5, 1000, 4.8, 3100, "中等", 3, "Out & Back", MEDIUM),
    trail_row("T102", "Mirror Lake", YOSEMITE, 37.750, -119.552, 4.5, 150, 4.3, 800, "简单", 1, "Loop", MEDIUM),
    trail_row("T103", "Clouds Rest", YOSEMITE, 37.766, -119.489, 19.0, 5100, 4.9, 900, "极难", 7, "Out & Back", VERY_LONG),
    trail_row("T110", "Matt Davis Loop", TAM, 37.904, -122.604, 6.5, 1600, 4.6, 1500, "中等", 3, "Loop", MEDIUM),
    trail_row("T111", "Steep Ravine", TAM, 37.893, -122.629, 3.8, 1100, 4.8, 2100, "中等", 3, "Loop", MEDIUM),
    trail_row("T120", "Beach Trail", TORREY, 32.923, -117.254, 2.0, 300, 4.6, 1200, "简单", 1, "Loop", SHORT),
    trail_row("T121", "Razor Point", TORREY, 32.927, -117.251, 1.2, 150, 4.5, 400, "简单", 1, "Out & Back", SHORT),
    trail_row("T123", "Kaiser Peak", SIERRA, 37.5, -119.0, 10.6, 3200, 4.6, 250, "困难", 5, "Out & Back", LONG),
    trail_row("T130", "Desert Path", ANZA, 33.25, -116.40, 5.0, 500, 0.0, 0, "简单", 1, "Point to Point", MEDIUM),
    trail_row("T131", "Palm Canyon", ANZA, 33.27, -116.42, 3.0, 600, 4.5, 700, "中等", 3, "Out & Back", MEDIUM),
]

TRAIL_IDS = [row["Unique_Id"] for row in TRAIL_ROWS]


def write_dataset(path: Path, rows: list[dict[str, Any]], with_summary: bool = True) -> Path:
    """Create a SQLite dataset file with a trails table and trail_summary view."""
    connection = sqlite3.connect(path)
    try:
        connection.execute(
            "CREATE TABLE trails ("
            "Unique_Id TEXT, Trail_Name TEXT, Area TEXT, Latitude REAL, Longitude REAL, "
            "Distance REAL, Elevation_Gain REAL, Rating REAL, Review_Count INTEGER, "
            "Difficulty_Category TEXT, Difficulty INTEGER, Trail_Type_Category TEXT, "
            "Length_Category TEXT, Cover_Photo TEXT, Url TEXT, Trail_Type TEXT, "
            "Est_Hike_Duration REAL, Highest_Point REAL, Permits INTEGER, Source TEXT, "
            "State TEXT, Country TEXT)"
        )
        placeholders = ", ".join("?" for _ in COLUMNS)
        connection.executemany(
            f"INSERT INTO trails ({', '.join(COLUMNS)}) VALUES ({placeholders})",
            [tuple(row[c] for c in COLUMNS) for row in rows],
        )
        if with_summary:
            connection.execute(f"CREATE VIEW trail_summary AS SELECT {', '.join(SUMMARY_COLUMNS)} FROM trails")
        connection.commit()
    finally:
        connection.close()
    return path


@pytest.fixture
def dataset_path(tmp_path: Path) -> Path:
    """Fixture dataset file with all eleven trails."""
    return write_dataset(tmp_path / "trails.db", TRAIL_ROWS)


@pytest.fixture
def ready_dataset(dataset_path: Path):
    """Loaded dataset handle, closed after the test."""
    dataset = DatasetService(db_path=dataset_path, download_url="")
    dataset.init()
    yield dataset
    dataset.close()


@pytest.fixture
def repository(ready_dataset: DatasetService) -> TrailRepository:
    return TrailRepository(dataset=ready_dataset)


@pytest.fixture
def unloaded_repository(tmp_path: Path) -> TrailRepository:
    """Repository over a handle that was never initialized."""
    return TrailRepository(dataset=DatasetService(db_path=tmp_path / "missing.db", download_url=""))


@pytest.fixture
def records() -> list[TrailRecord]:
    """All fixture rows as TrailRecords, in dataset order."""
    return [TrailRecord.from_row(row) for row in TRAIL_ROWS]


@pytest.fixture
def record_t123(records: list[TrailRecord]) -> TrailRecord:
    return next(r for r in records if r.id == "T123")


# =============================================================================
# FAKE MAP PROVIDER
# =============================================================================


class FakeMapProvider(MapProvider):
    """In-memory MapProvider that records every call.

    Args:
        clustering_available: If False, create_clusterer raises ClusteringUnavailableError
        fail_markers: If True, create_marker raises MapProviderError
    """

    def __init__(self, clustering_available: bool = True, fail_markers: bool = False) -> None:
        self.clustering_available = clustering_available
        self.fail_markers = fail_markers
        self.live_markers: list[MapMarker] = []
        self.created: list[str] = []
        self.removed: list[str] = []
        self.clusterers_created = 0
        self._center: LatLon = (0.0, 0.0)
        self._zoom: float = 6

    @property
    def center(self) -> LatLon:
        return self._center

    @property
    def zoom(self) -> float:
        return self._zoom

    def create_marker(self, trail_id: str, position: LatLon, title: str, style: MarkerStyle) -> MapMarker:
        if self.fail_markers:
            raise MapProviderError("map surface not ready")
        marker = MapMarker(trail_id=trail_id, position=position, title=title, style=style)
        self.live_markers.append(marker)
        self.created.append(trail_id)
        return marker

    def remove_marker(self, marker: MapMarker) -> None:
        marker.clear_listeners()
        self.live_markers = [m for m in self.live_markers if m is not marker]
        self.removed.append(marker.trail_id)

    def pan_to(self, position: LatLon) -> None:
        self._center = position

    def set_zoom(self, zoom: float) -> None:
        self._zoom = zoom

    def create_clusterer(self, markers: list[MapMarker], radius_px: float, max_zoom: int) -> MarkerClusterer:
        if not self.clustering_available:
            raise ClusteringUnavailableError("clustering plugin missing")
        self.clusterers_created += 1
        return GridClusterer(markers=markers, radius_px=radius_px, max_zoom=max_zoom)


@pytest.fixture
def fake_provider() -> FakeMapProvider:
    return FakeMapProvider()


@pytest.fixture
def sm_and_model(fake_provider: FakeMapProvider) -> tuple[SelectionStateMachine, SelectionModel]:
    """Selection machine bound to the fake provider, without the Streamlit listener."""
    return SelectionStateMachine.create(add_ui_listener=False, map_provider=fake_provider)
