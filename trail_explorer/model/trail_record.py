"""TrailRecord - Typed, immutable view of one dataset row.

Rows come out of the embedded engine as plain dicts keyed by column name.
TrailRecord.from_row() is the single mapping/validation step at the dataset
boundary: malformed rows are rejected, soft problems are defaulted, so
rendering code never sees untyped data.

Columns (trail_summary / trails):
    Unique_Id, Trail_Name, Area, Latitude, Longitude, Distance, Elevation_Gain,
    Rating, Review_Count, Difficulty_Category, Difficulty, Trail_Type_Category,
    Length_Category, Cover_Photo, Url

Detail-only columns (trails):
    Trail_Type, Est_Hike_Duration, Highest_Point, Permits, Source, State, Country
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from trail_explorer.constants import DifficultyLabels, QueryConfig, TrailTypeLabels
from trail_explorer.errors import InvalidTrailRowError

logger = logging.getLogger(__name__)


class DifficultyCategory(Enum):
    """Difficulty category; values are the dataset labels."""

    EASY = DifficultyLabels.EASY
    MODERATE = DifficultyLabels.MODERATE
    HARD = DifficultyLabels.HARD
    VERY_HARD = DifficultyLabels.VERY_HARD

    @property
    def code(self) -> int:
        """Numeric difficulty code (1/3/5/7) used for ordering and bucketing."""
        return DifficultyLabels.CODES[self.value]

    @property
    def display_name(self) -> str:
        return DifficultyLabels.DISPLAY_NAMES[self.value]

    @classmethod
    def from_label(cls, label: str | None) -> "DifficultyCategory | None":
        """Look up a category by dataset label, None if unrecognized."""
        if label is None:
            return None
        try:
            return cls(str(label).strip())
        except ValueError:
            return None

    @classmethod
    def from_code(cls, code: int | None) -> "DifficultyCategory | None":
        """Look up a category by numeric code, None if unrecognized."""
        for category in cls:
            if category.code == code:
                return category
        return None


class TrailTypeCategory(Enum):
    """Trail type category; values are the dataset labels."""

    LOOP = TrailTypeLabels.LOOP
    OUT_AND_BACK = TrailTypeLabels.OUT_AND_BACK
    POINT_TO_POINT = TrailTypeLabels.POINT_TO_POINT

    @classmethod
    def from_label(cls, label: str | None) -> "TrailTypeCategory | None":
        if label is None:
            return None
        try:
            return cls(str(label).strip())
        except ValueError:
            return None


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _non_negative_float(value: Any, column: str, trail_id: str) -> float:
    """Coerce to a finite float >= 0, defaulting bad values to 0."""
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        if value is not None:
            logger.warning(f"Trail {trail_id}: non-numeric {column}={value!r}, using 0")
        return 0.0
    if not math.isfinite(number) or number < 0:
        logger.warning(f"Trail {trail_id}: invalid {column}={value!r}, using 0")
        return 0.0
    return number


def _required_coordinate(value: Any, column: str, low: float, high: float, trail_id: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidTrailRowError(f"Trail {trail_id}: {column} is not a number ({value!r})") from e
    if math.isnan(number) or not low <= number <= high:
        raise InvalidTrailRowError(f"Trail {trail_id}: {column}={number} outside [{low}, {high}]")
    return number


@dataclass(frozen=True)
class TrailRecord:
    """One hiking trail, immutable for the dataset's lifetime.

    Attributes:
        id: Unique trail identifier (dataset Unique_Id, normalized to str)
        name: Trail name
        area: Park/region free text
        lat: Latitude in decimal degrees (WGS84)
        lon: Longitude in decimal degrees (WGS84)
        distance_mi: Trail length in miles (>= 0)
        elevation_gain_ft: Total elevation gain in feet (>= 0)
        rating: Average rating, clamped to 0.0-5.0
        review_count: Number of reviews (>= 0)
        difficulty_label: Raw difficulty category label from the dataset
        difficulty_code: Numeric difficulty code (1/3/5/7), None if unknown
        trail_type_label: Raw trail type category label from the dataset
        length_category: Derived length bucket label
        cover_photo_url: Optional cover photo
        source_url: Optional source attribution link

    Example:
        record = TrailRecord.from_row({"Unique_Id": "T1", "Latitude": 37.5, "Longitude": -119.0})
        print(record.lat_lon)  # (37.5, -119.0)
    """

    id: str
    name: str
    area: str
    lat: float
    lon: float
    distance_mi: float = 0.0
    elevation_gain_ft: float = 0.0
    rating: float = 0.0
    review_count: int = 0
    difficulty_label: str | None = None
    difficulty_code: int | None = None
    trail_type_label: str | None = None
    length_category: str | None = None
    cover_photo_url: str | None = None
    source_url: str | None = None

    # Detail-only fields (present on rows from the full trails relation)
    trail_type_raw: str | None = None
    est_duration_min: float | None = None
    highest_point_ft: float | None = None
    permits_required: bool | None = None
    source_name: str | None = None
    state: str | None = None
    country: str | None = None

    @property
    def difficulty(self) -> DifficultyCategory | None:
        """Parsed difficulty category, None for unknown labels."""
        category = DifficultyCategory.from_label(self.difficulty_label)
        if category is None:
            category = DifficultyCategory.from_code(self.difficulty_code)
        return category

    @property
    def trail_type(self) -> TrailTypeCategory | None:
        return TrailTypeCategory.from_label(self.trail_type_label)

    @property
    def lat_lon(self) -> tuple[float, float]:
        """Return (lat, lon) tuple - standard geographic order."""
        return (self.lat, self.lon)

    @property
    def lon_lat(self) -> tuple[float, float]:
        """Return (lon, lat) tuple - GeoJSON/Pydeck order."""
        return (self.lon, self.lat)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "TrailRecord":
        """Map a dataset row to a TrailRecord.

        Args:
            row: Column-name keyed dict as returned by DatasetService.query()

        Returns:
            Validated TrailRecord.

        Raises:
            InvalidTrailRowError: If the id is missing or coordinates are invalid.
        """
        raw_id = row.get("Unique_Id")
        if raw_id is None or str(raw_id).strip() == "":
            raise InvalidTrailRowError(f"Row without Unique_Id: {sorted(row.keys())}")
        trail_id = str(raw_id).strip()

        lat = _required_coordinate(row.get("Latitude"), "Latitude", -90.0, 90.0, trail_id)
        lon = _required_coordinate(row.get("Longitude"), "Longitude", -180.0, 180.0, trail_id)

        rating = _non_negative_float(row.get("Rating"), "Rating", trail_id)
        rating = min(rating, QueryConfig.RATING_MAX)

        difficulty_label = _optional_str(row.get("Difficulty_Category"))
        difficulty_code: int | None
        try:
            difficulty_code = int(row["Difficulty"]) if row.get("Difficulty") is not None else None
        except (TypeError, ValueError, OverflowError):
            difficulty_code = None
        if difficulty_code is None:
            category = DifficultyCategory.from_label(difficulty_label)
            difficulty_code = category.code if category else None

        permits = row.get("Permits")

        return cls(
            id=trail_id,
            name=_optional_str(row.get("Trail_Name")) or "Unnamed trail",
            area=_optional_str(row.get("Area")) or "",
            lat=lat,
            lon=lon,
            distance_mi=_non_negative_float(row.get("Distance"), "Distance", trail_id),
            elevation_gain_ft=_non_negative_float(row.get("Elevation_Gain"), "Elevation_Gain", trail_id),
            rating=rating,
            review_count=int(_non_negative_float(row.get("Review_Count"), "Review_Count", trail_id)),
            difficulty_label=difficulty_label,
            difficulty_code=difficulty_code,
            trail_type_label=_optional_str(row.get("Trail_Type_Category")),
            length_category=_optional_str(row.get("Length_Category")),
            cover_photo_url=_optional_str(row.get("Cover_Photo")),
            source_url=_optional_str(row.get("Url")),
            trail_type_raw=_optional_str(row.get("Trail_Type")),
            est_duration_min=(
                _non_negative_float(row["Est_Hike_Duration"], "Est_Hike_Duration", trail_id)
                if row.get("Est_Hike_Duration") is not None
                else None
            ),
            highest_point_ft=(
                _non_negative_float(row["Highest_Point"], "Highest_Point", trail_id)
                if row.get("Highest_Point") is not None
                else None
            ),
            permits_required=bool(permits) if permits is not None else None,
            source_name=_optional_str(row.get("Source")),
            state=_optional_str(row.get("State")),
            country=_optional_str(row.get("Country")),
        )

    def format_duration(self) -> str:
        """Estimated hike duration as 'Xh Ym', or 'Unknown'."""
        if not self.est_duration_min or not math.isfinite(self.est_duration_min):
            return "Unknown"
        total = int(round(self.est_duration_min))
        hours, minutes = divmod(total, 60)
        if hours == 0:
            return f"{minutes}m"
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
