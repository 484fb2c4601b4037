"""Core data access for the trail explorer.

- DatasetService: Read-only SQLite dataset handle (load once per session)
- QueryBuilder: FilterCriteria → matched count/data SQL with bound params
- TrailRepository: Soft-failing typed queries (search, lookups, statistics)
- GeoCalculator: Web Mercator projection for screen-space clustering
"""

from trail_explorer.core.dataset_service import DatasetService, DatasetState
from trail_explorer.core.geo_calculator import GeoCalculator
from trail_explorer.core.query_builder import BuiltQuery, Clause, ClauseTag, Predicate, QueryBuilder
from trail_explorer.core.trail_repository import Distribution, TrailRepository, TrailStatistics

__all__ = [
    # Dataset
    "DatasetService",
    "DatasetState",
    # Query builder
    "QueryBuilder",
    "BuiltQuery",
    "Predicate",
    "Clause",
    "ClauseTag",
    # Repository
    "TrailRepository",
    "TrailStatistics",
    "Distribution",
    # Geo
    "GeoCalculator",
]
