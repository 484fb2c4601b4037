"""Configuration constants for Trail Explorer.

All configurable parameters are centralized here for easy tuning.

Classes:
    AppConfig: UI application settings
    DatasetConfig: Dataset file location and relation names
    QueryConfig: Filter defaults, sort allow-list, paging and row caps
    MapConfig: Default map view parameters
    ClusterConfig: Marker clustering parameters
    StyleConfig: Visual colors and marker styling
    StatsConfig: Featured/similar trail thresholds and chart sample sizes
    ChartConfig: Chart rendering dimensions
"""

from pathlib import Path

# Package root directory (where trail_explorer/ lives)
PACKAGE_DIR = Path(__file__).parent

# Project root directory (parent of trail_explorer/)
PROJECT_ROOT = PACKAGE_DIR.parent

# Data directory outside package (dataset file is bundled with the client, not the wheel)
DATA_DIR = PROJECT_ROOT / "data"


class AppConfig:
    """UI application settings."""

    TITLE = "Trail Explorer - California Hiking Trails"
    ICON = "🥾"
    LAYOUT = "wide"


class DatasetConfig:
    """Dataset file location and expected relations."""

    DB_PATH = DATA_DIR / "california_trails.db"

    # Optional remote copy, fetched once when the local file is missing
    DOWNLOAD_URL: str | None = None
    DOWNLOAD_TIMEOUT_S = 180
    DOWNLOAD_CHUNK_BYTES = 8192

    # Full record set (aggregates, detail lookups)
    TRAILS_TABLE = "trails"
    # Projection used by list and map views
    SUMMARY_TABLE = "trail_summary"
    REQUIRED_RELATIONS = (TRAILS_TABLE, SUMMARY_TABLE)


class QueryConfig:
    """Filter defaults, sort allow-list, paging and row caps."""

    # Sort fields permitted in ORDER BY (column names in trail_summary)
    SORT_FIELDS = ("Rating", "Distance", "Elevation_Gain", "Review_Count", "Trail_Name")
    SORT_DIRECTIONS = ("ASC", "DESC")
    DEFAULT_SORT_FIELD = "Rating"
    DEFAULT_SORT_DIRECTION = "DESC"
    assert DEFAULT_SORT_FIELD in SORT_FIELDS
    assert DEFAULT_SORT_DIRECTION in SORT_DIRECTIONS

    # Column used to break ties so repeated queries return ties in the same order
    TIEBREAK_FIELD = "Unique_Id"

    # Range filter defaults span the full slider domain
    DISTANCE_RANGE_MI = (0.0, 100.0)
    ELEVATION_RANGE_FT = (0.0, 10000.0)
    RATING_MIN = 0.0
    RATING_MAX = 5.0

    # Paging
    DEFAULT_PAGE_SIZE = 12
    MAX_ROWS = 1000  # Hard cap on any single data query
    MAP_ROW_LIMIT = 1000  # Markers rendered on the map page
    assert DEFAULT_PAGE_SIZE <= MAX_ROWS
    assert MAP_ROW_LIMIT <= MAX_ROWS

    # Area filter options shown in the sidebar
    AREA_OPTION_LIMIT = 50

    # Longest accepted search term (characters)
    MAX_SEARCH_LENGTH = 100


class MapConfig:
    """Default map view parameters."""

    # Initial center: central California
    START_CENTER_LAT = 37.8
    START_CENTER_LON = -119.5

    # Higher number = more zoomed in
    OVERVIEW_ZOOM = 6  # Whole state visible
    DETAIL_ZOOM = 14  # Single trail after programmatic selection
    assert DETAIL_ZOOM > OVERVIEW_ZOOM

    MAP_HEIGHT_PX = 600
    DETAIL_MAP_HEIGHT_PX = 400


class ClusterConfig:
    """Marker clustering parameters."""

    RADIUS_PX = 100  # Markers closer than this (screen pixels) merge
    MAX_ZOOM = 15  # Above this zoom markers render unclustered
    TILE_SIZE_PX = 256  # Web Mercator world size at zoom 0
    assert MAX_ZOOM > MapConfig.OVERVIEW_ZOOM


class DifficultyLabels:
    """Difficulty category labels as stored in the dataset."""

    EASY = "简单"
    MODERATE = "中等"
    HARD = "困难"
    VERY_HARD = "极难"

    ALL = [EASY, MODERATE, HARD, VERY_HARD]

    # Numeric difficulty code used for ordering and chart bucketing
    CODES = {EASY: 1, MODERATE: 3, HARD: 5, VERY_HARD: 7}
    assert set(CODES.keys()) == set(ALL)

    DISPLAY_NAMES = {EASY: "Easy", MODERATE: "Moderate", HARD: "Hard", VERY_HARD: "Very Hard"}
    assert set(DISPLAY_NAMES.keys()) == set(ALL)


class TrailTypeLabels:
    """Trail type category labels as stored in the dataset."""

    LOOP = "Loop"
    OUT_AND_BACK = "Out & Back"
    POINT_TO_POINT = "Point to Point"

    ALL = [LOOP, OUT_AND_BACK, POINT_TO_POINT]


class LengthLabels:
    """Length bucket labels in display order."""

    ALL = [
        "短距离 (<3英里)",
        "中等距离 (3-7英里)",
        "长距离 (7-15英里)",
        "超长距离 (>15英里)",
    ]


class StyleConfig:
    """Visual colors and styling."""

    # Marker fill color by difficulty (Material palette)
    DIFFICULTY_COLORS = {
        DifficultyLabels.EASY: "#4CAF50",  # Green
        DifficultyLabels.MODERATE: "#2196F3",  # Blue
        DifficultyLabels.HARD: "#FF9800",  # Orange
        DifficultyLabels.VERY_HARD: "#F44336",  # Red
    }
    assert set(DIFFICULTY_COLORS.keys()) == set(DifficultyLabels.ALL)
    FALLBACK_COLOR = "#9C27B0"  # Purple for unknown categories

    MARKER_RADIUS_PX = 8
    MARKER_FILL_OPACITY = 0.7
    MARKER_STROKE_COLOR = "#FFFFFF"
    MARKER_STROKE_WIDTH_PX = 1

    CLUSTER_COLOR = "#37474F"
    CLUSTER_TEXT_COLOR = "#FFFFFF"
    CLUSTER_MIN_RADIUS_PX = 14
    CLUSTER_MAX_RADIUS_PX = 40

    SELECTED_COLOR = "#FFEB3B"


class StatsConfig:
    """Thresholds for featured/similar trails and chart sample sizes."""

    FEATURED_MIN_RATING = 4.7
    FEATURED_MIN_REVIEWS = 1000
    FEATURED_LIMIT = 6

    SIMILAR_DIFFICULTY_WINDOW = 2  # Max |code difference| for "similar" trails
    SIMILAR_LIMIT = 4

    TOP_AREAS_LIMIT = 10
    RATING_BIN_WIDTH = 0.5

    SCATTER_SAMPLE_LIMIT = 1000
    SCATTER_MAX_DISTANCE_MI = 50
    SCATTER_MAX_ELEVATION_FT = 10000
    SCATTER_MAX_REVIEWS = 5000


class ChartConfig:
    """Chart rendering dimensions and settings."""

    DEFAULT_HEIGHT = 360
    SCATTER_HEIGHT = 420
    DEFAULT_WIDTH = 800
