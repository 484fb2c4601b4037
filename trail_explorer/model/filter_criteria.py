"""FilterCriteria and SortSpec - the complete set of active list/map constraints.

All criteria fields are independently optional and combine with logical AND.
Set-valued fields are stored as ordered, duplicate-free tuples: the order in
which values were selected defines the order of bound query parameters.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable

from trail_explorer.constants import QueryConfig

logger = logging.getLogger(__name__)

# Fields that hold a set of accepted labels
SET_FIELDS = ("difficulties", "trail_types", "areas")


def _ordered_unique(values: Iterable) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        label = value.value if isinstance(value, Enum) else str(value)
        seen.setdefault(label, None)
    return tuple(seen)


@dataclass(frozen=True)
class FilterCriteria:
    """Active filter constraints.

    Attributes:
        search_term: Case-insensitive substring matched against name OR area ("" = none)
        difficulties: Accepted difficulty category labels (empty = no restriction)
        distance_range: Inclusive (min, max) miles
        elevation_range: Inclusive (min, max) feet
        min_rating: Minimum rating (0 = unrestricted)
        trail_types: Accepted trail type labels (empty = no restriction)
        areas: Accepted areas (empty = no restriction)
    """

    search_term: str = ""
    difficulties: tuple[str, ...] = ()
    distance_range: tuple[float, float] = QueryConfig.DISTANCE_RANGE_MI
    elevation_range: tuple[float, float] = QueryConfig.ELEVATION_RANGE_FT
    min_rating: float = 0.0
    trail_types: tuple[str, ...] = ()
    areas: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Frozen dataclass: normalize through object.__setattr__
        for name in SET_FIELDS:
            object.__setattr__(self, name, _ordered_unique(getattr(self, name)))
        object.__setattr__(self, "search_term", (self.search_term or "").strip())

        for name in ("distance_range", "elevation_range"):
            low, high = getattr(self, name)
            if low > high:
                raise ValueError(f"{name} minimum {low} exceeds maximum {high}")
            object.__setattr__(self, name, (float(low), float(high)))

        if not QueryConfig.RATING_MIN <= self.min_rating <= QueryConfig.RATING_MAX:
            raise ValueError(
                f"min_rating {self.min_rating} outside [{QueryConfig.RATING_MIN}, {QueryConfig.RATING_MAX}]"
            )

    def with_changes(self, **changes: object) -> "FilterCriteria":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def toggled(self, field_name: str, value: str) -> "FilterCriteria":
        """Return a copy with value added to / removed from a set-valued field.

        Args:
            field_name: One of "difficulties", "trail_types", "areas"
            value: Label to toggle
        """
        if field_name not in SET_FIELDS:
            raise ValueError(f"Cannot toggle non-set field '{field_name}'")
        label = value.value if isinstance(value, Enum) else str(value)
        current = getattr(self, field_name)
        if label in current:
            updated = tuple(v for v in current if v != label)
        else:
            updated = current + (label,)
        return replace(self, **{field_name: updated})

    def is_default(self) -> bool:
        """True if no filter narrows the full dataset."""
        return self == FilterCriteria()


class SortField(str, Enum):
    """Allow-listed sort fields (values are trail_summary column names)."""

    RATING = "Rating"
    DISTANCE = "Distance"
    ELEVATION_GAIN = "Elevation_Gain"
    REVIEW_COUNT = "Review_Count"
    TRAIL_NAME = "Trail_Name"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"

    def flipped(self) -> "SortDirection":
        return SortDirection.ASC if self is SortDirection.DESC else SortDirection.DESC


assert {f.value for f in SortField} == set(QueryConfig.SORT_FIELDS)
assert {d.value for d in SortDirection} == set(QueryConfig.SORT_DIRECTIONS)


@dataclass(frozen=True)
class SortSpec:
    """Sort order for data queries: allow-listed field + direction."""

    field: SortField = SortField(QueryConfig.DEFAULT_SORT_FIELD)
    direction: SortDirection = SortDirection(QueryConfig.DEFAULT_SORT_DIRECTION)

    def __post_init__(self) -> None:
        # Coerce plain strings; anything outside the allow-list raises ValueError
        object.__setattr__(self, "field", SortField(self.field))
        direction = self.direction
        if not isinstance(direction, SortDirection):
            direction = SortDirection(str(direction).upper())
        object.__setattr__(self, "direction", direction)

    @classmethod
    def parse(cls, field_name: str | None, direction: str | None = None) -> "SortSpec":
        """Build a SortSpec from untrusted strings, falling back to the default.

        Non-allow-listed fields or directions are logged and ignored.
        """
        default = cls()
        try:
            sort_field = SortField(field_name) if field_name else default.field
        except ValueError:
            logger.warning(f"Rejected sort field {field_name!r}, using {default.field.value}")
            return default
        try:
            sort_direction = SortDirection(direction.upper()) if direction else default.direction
        except ValueError:
            logger.warning(f"Rejected sort direction {direction!r}, using {default.direction.value}")
            sort_direction = default.direction
        return cls(field=sort_field, direction=sort_direction)

    def toggled_by(self, field_name: SortField | str) -> "SortSpec":
        """Sort-menu semantics: same field flips direction, new field starts DESC."""
        sort_field = SortField(field_name)
        if sort_field == self.field:
            return SortSpec(field=self.field, direction=self.direction.flipped())
        return SortSpec(field=sort_field, direction=SortDirection.DESC)

    @property
    def sql(self) -> str:
        """ORDER BY fragment built only from enum values."""
        return f"{self.field.value} {self.direction.value}"


# Empty defaults shared by callers that need "no filters"
DEFAULT_CRITERIA = FilterCriteria()
DEFAULT_SORT = SortSpec()
