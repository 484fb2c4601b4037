"""TrailRepository - Query boundary between the UI and the dataset handle.

Executes QueryBuilder output through DatasetService and maps rows to typed
TrailRecords. This is where per-query errors stop:

- DatasetQueryError / DatasetNotReadyError → logged, empty result returned
- InvalidTrailRowError → row logged and skipped

Load errors never reach here; they belong to DatasetService.init().
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from trail_explorer.constants import (
    DatasetConfig,
    DifficultyLabels,
    LengthLabels,
    QueryConfig,
    StatsConfig,
)
from trail_explorer.core.dataset_service import DatasetService
from trail_explorer.core.query_builder import QueryBuilder
from trail_explorer.errors import DatasetError, InvalidTrailRowError
from trail_explorer.model.filter_criteria import FilterCriteria, SortSpec
from trail_explorer.model.page_result import PageResult
from trail_explorer.model.trail_record import TrailRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Distribution:
    """Labelled counts for one bar/pie chart."""

    labels: list[str] = field(default_factory=list)
    counts: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.counts)


@dataclass(frozen=True)
class TrailStatistics:
    """Aggregate figures over the full trails relation.

    Attributes:
        total_trails: Number of trails
        avg_rating: Mean rating
        avg_distance_mi: Mean length in miles
        avg_elevation_gain_ft: Mean elevation gain in feet
        difficulty: Counts per difficulty category, easy → very hard
        trail_type: Counts per trail type, most common first
        length: Counts per length bucket, short → very long
        rating: Counts per 0.5-wide rating bin (rated trails only)
        top_areas: Ten areas with the most trails
        length_vs_elevation: (distance, elevation gain, difficulty code) samples
        rating_vs_reviews: (review count, rating) samples
    """

    total_trails: int = 0
    avg_rating: float = 0.0
    avg_distance_mi: float = 0.0
    avg_elevation_gain_ft: float = 0.0
    difficulty: Distribution = field(default_factory=Distribution)
    trail_type: Distribution = field(default_factory=Distribution)
    length: Distribution = field(default_factory=Distribution)
    rating: Distribution = field(default_factory=Distribution)
    top_areas: Distribution = field(default_factory=Distribution)
    length_vs_elevation: list[tuple[float, float, int | None]] = field(default_factory=list)
    rating_vs_reviews: list[tuple[int, float]] = field(default_factory=list)


def _category_order_sql(column: str, labels: list[str]) -> str:
    """CASE expression ordering rows by a fixed label list (labels are trusted constants)."""
    cases = " ".join(f"WHEN {column} = '{label}' THEN {i}" for i, label in enumerate(labels, start=1))
    return f"CASE {cases} ELSE {len(labels) + 1} END"


class TrailRepository:
    """Typed, soft-failing access to trail records.

    Example:
        repo = TrailRepository(dataset=dataset)
        page = repo.search(criteria=FilterCriteria(), sort=SortSpec(), page=1, page_size=12)
        for record in page.records:
            print(record.name)
    """

    def __init__(self, dataset: DatasetService, builder: QueryBuilder | None = None) -> None:
        """Initialize repository.

        Args:
            dataset: Session dataset handle (may not be ready yet)
            builder: Query builder (default targets trail_summary)
        """
        self.dataset = dataset
        self.builder = builder or QueryBuilder()

    # =========================================================================
    # LOW-LEVEL EXECUTION
    # =========================================================================

    def _run(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]] | None:
        """Execute a query; None signals a soft failure (already logged)."""
        try:
            return self.dataset.query(sql, params)
        except DatasetError as e:
            logger.error(f"Query failed, returning no results: {e} | sql={sql!r} params={list(params)!r}")
            return None

    @staticmethod
    def _to_records(rows: list[dict[str, Any]]) -> list[TrailRecord]:
        records = []
        for row in rows:
            try:
                records.append(TrailRecord.from_row(row))
            except InvalidTrailRowError as e:
                logger.warning(f"Skipping malformed trail row: {e}")
        return records

    def _records(self, sql: str, params: Sequence[Any] = ()) -> list[TrailRecord]:
        rows = self._run(sql, params)
        return self._to_records(rows) if rows else []

    def _scalar(self, sql: str, key: str, default: float = 0.0) -> float:
        rows = self._run(sql)
        if not rows or rows[0].get(key) is None:
            return default
        return float(rows[0][key])

    # =========================================================================
    # LIST / MAP QUERIES
    # =========================================================================

    def search(self, criteria: FilterCriteria, sort: SortSpec, page: int, page_size: int) -> PageResult:
        """One page of matching trails plus the total match count.

        Count and data queries are built from one predicate, so total_count
        always describes the rows the data query can reach.

        Returns:
            PageResult; on query failure an empty result with error set.
        """
        built = self.builder.build(criteria=criteria, sort=sort, page=page, page_size=page_size)

        count_rows = self._run(built.count_query, built.count_params)
        if count_rows is None:
            return PageResult.empty(page=page, page_size=page_size, error="Count query failed")
        total_count = int(count_rows[0]["count"]) if count_rows else 0

        data_rows = self._run(built.data_query, built.data_params)
        if data_rows is None:
            return PageResult.empty(page=page, page_size=page_size, error="Data query failed")

        records = self._to_records(data_rows)
        logger.info(
            f"Search page={page} size={page_size} sort={sort.sql}: {len(records)} of {total_count} trails"
        )
        return PageResult(records=records, total_count=total_count, page=page, page_size=page_size)

    def map_results(
        self,
        criteria: FilterCriteria,
        limit: int = QueryConfig.MAP_ROW_LIMIT,
    ) -> list[TrailRecord]:
        """Matching trails for the map, capped at limit rows (empty on failure)."""
        built = self.builder.build_map_query(criteria=criteria, limit=limit)
        records = self._records(built.data_query, built.data_params)
        logger.info(f"Map query: {len(records)} trails (limit {built.limit})")
        return records

    # =========================================================================
    # DETAIL / HOME LOOKUPS
    # =========================================================================

    def get_trail(self, trail_id: str) -> TrailRecord | None:
        """Resolve a trail id (e.g. from the URL) to a record, None if unknown."""
        records = self._records(QueryBuilder.trail_by_id(), (str(trail_id),))
        if not records:
            logger.info(f"Trail {trail_id!r} not found")
            return None
        return records[0]

    def similar_trails(self, record: TrailRecord, limit: int = StatsConfig.SIMILAR_LIMIT) -> list[TrailRecord]:
        """Trails in the same area with a similar difficulty, best rated first."""
        if record.difficulty_code is None:
            return []
        sql, params = self.builder.similar_trails(
            area=record.area,
            exclude_id=record.id,
            difficulty_code=record.difficulty_code,
            window=StatsConfig.SIMILAR_DIFFICULTY_WINDOW,
            limit=limit,
        )
        return self._records(sql, params)

    def featured_trails(self, limit: int = StatsConfig.FEATURED_LIMIT) -> list[TrailRecord]:
        """Highly rated, heavily reviewed trails for the landing page."""
        sql, params = self.builder.featured_trails(
            min_rating=StatsConfig.FEATURED_MIN_RATING,
            min_reviews=StatsConfig.FEATURED_MIN_REVIEWS,
            limit=limit,
        )
        return self._records(sql, params)

    def top_areas(self, limit: int = QueryConfig.AREA_OPTION_LIMIT) -> list[str]:
        """Areas with the most trails, used as area filter options."""
        rows = self._run(
            f"SELECT Area, COUNT(*) AS count FROM {DatasetConfig.TRAILS_TABLE} "
            f"WHERE Area IS NOT NULL GROUP BY Area ORDER BY count DESC, Area ASC LIMIT {int(limit)}"
        )
        return [str(row["Area"]) for row in rows or []]

    # =========================================================================
    # AGGREGATES (analysis page)
    # =========================================================================

    def _distribution(self, sql: str) -> Distribution:
        rows = self._run(sql) or []
        return Distribution(
            labels=[str(row["label"]) for row in rows],
            counts=[int(row["count"]) for row in rows],
        )

    def statistics(self) -> TrailStatistics:
        """Totals, averages, distributions and scatter samples over all trails."""
        table = DatasetConfig.TRAILS_TABLE
        limit = StatsConfig.SCATTER_SAMPLE_LIMIT

        rating_rows = self._run(
            f"SELECT ROUND(Rating / {StatsConfig.RATING_BIN_WIDTH}) * {StatsConfig.RATING_BIN_WIDTH} AS label, "
            f"COUNT(*) AS count FROM {table} WHERE Rating > 0 GROUP BY label ORDER BY label"
        ) or []

        scatter_rows = self._run(
            f"SELECT Distance AS x, Elevation_Gain AS y, Difficulty AS code FROM {table} "
            f"WHERE Distance <= {StatsConfig.SCATTER_MAX_DISTANCE_MI} "
            f"AND Elevation_Gain <= {StatsConfig.SCATTER_MAX_ELEVATION_FT} LIMIT {limit}"
        ) or []

        review_rows = self._run(
            f"SELECT Review_Count AS x, Rating AS y FROM {table} "
            f"WHERE Rating > 0 AND Review_Count > 0 AND Review_Count <= {StatsConfig.SCATTER_MAX_REVIEWS} "
            f"LIMIT {limit}"
        ) or []

        return TrailStatistics(
            total_trails=int(self._scalar(f"SELECT COUNT(*) AS value FROM {table}", "value")),
            avg_rating=self._scalar(f"SELECT AVG(Rating) AS value FROM {table}", "value"),
            avg_distance_mi=self._scalar(f"SELECT AVG(Distance) AS value FROM {table}", "value"),
            avg_elevation_gain_ft=self._scalar(f"SELECT AVG(Elevation_Gain) AS value FROM {table}", "value"),
            difficulty=self._distribution(
                f"SELECT Difficulty_Category AS label, COUNT(*) AS count FROM {table} "
                f"GROUP BY Difficulty_Category "
                f"ORDER BY {_category_order_sql('Difficulty_Category', DifficultyLabels.ALL)}"
            ),
            trail_type=self._distribution(
                f"SELECT Trail_Type_Category AS label, COUNT(*) AS count FROM {table} "
                f"GROUP BY Trail_Type_Category ORDER BY count DESC"
            ),
            length=self._distribution(
                f"SELECT Length_Category AS label, COUNT(*) AS count FROM {table} "
                f"GROUP BY Length_Category ORDER BY {_category_order_sql('Length_Category', LengthLabels.ALL)}"
            ),
            rating=Distribution(
                labels=[f"{float(row['label']):.1f}" for row in rating_rows],
                counts=[int(row["count"]) for row in rating_rows],
            ),
            top_areas=self._distribution(
                f"SELECT Area AS label, COUNT(*) AS count FROM {table} "
                f"GROUP BY Area ORDER BY count DESC, Area ASC LIMIT {StatsConfig.TOP_AREAS_LIMIT}"
            ),
            length_vs_elevation=[
                (float(row["x"] or 0), float(row["y"] or 0), int(row["code"]) if row["code"] is not None else None)
                for row in scatter_rows
            ],
            rating_vs_reviews=[(int(row["x"]), float(row["y"])) for row in review_rows],
        )
