"""Data model classes for trail exploration.

- TrailRecord: Typed, immutable trail row (mapped at the dataset boundary)
- DifficultyCategory / TrailTypeCategory: Category enums with dataset labels
- FilterCriteria: Composable filter constraints (logical AND)
- SortSpec: Allow-listed sort field + direction
- PageResult: One page of records plus total match count
"""

from trail_explorer.model.filter_criteria import (
    DEFAULT_CRITERIA,
    DEFAULT_SORT,
    FilterCriteria,
    SortDirection,
    SortField,
    SortSpec,
)
from trail_explorer.model.page_result import PageResult, compute_total_pages
from trail_explorer.model.trail_record import (
    DifficultyCategory,
    TrailRecord,
    TrailTypeCategory,
)

__all__ = [
    "TrailRecord",
    "DifficultyCategory",
    "TrailTypeCategory",
    "FilterCriteria",
    "SortField",
    "SortDirection",
    "SortSpec",
    "DEFAULT_CRITERIA",
    "DEFAULT_SORT",
    "PageResult",
    "compute_total_pages",
]
