"""QueryBuilder - Compile FilterCriteria into matched count/data SQL.

The filter is represented as a Predicate: an ordered list of tagged Clauses,
each carrying its own SQL fragment and bound parameters. Count and data
queries are rendered from the same Predicate, so their parameter lists are
identical by construction.

Clause order (fixed):
    search → difficulty → distance → elevation → rating → trail type → area

Rules:
- Values are always bound as '?' parameters, never interpolated
- Empty set-valued criteria are omitted (no always-false "IN ()")
- Range criteria always apply (defaults span the full domain)
- Minimum rating applies only when > 0
- ORDER BY uses allow-listed enum values only, with a Unique_Id tiebreaker
- LIMIT/OFFSET are validated integers, capped at QueryConfig.MAX_ROWS
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from trail_explorer.constants import DatasetConfig, QueryConfig
from trail_explorer.model.filter_criteria import FilterCriteria, SortSpec

logger = logging.getLogger(__name__)


class ClauseTag(Enum):
    """What a clause filters on."""

    SEARCH = "search"
    DIFFICULTY = "difficulty"
    DISTANCE = "distance"
    ELEVATION = "elevation"
    RATING = "rating"
    TRAIL_TYPE = "trail_type"
    AREA = "area"
    EXCLUDE_ID = "exclude_id"
    DIFFICULTY_NEAR = "difficulty_near"
    REVIEWS = "reviews"


@dataclass(frozen=True)
class Clause:
    """One parameterized WHERE fragment.

    Attributes:
        tag: What the clause filters on
        sql: Fragment with '?' placeholders (no leading AND)
        params: Values for the placeholders, in order
    """

    tag: ClauseTag
    sql: str
    params: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        placeholders = self.sql.count("?")
        if placeholders != len(self.params):
            raise ValueError(
                f"Clause {self.tag.value}: {placeholders} placeholders but {len(self.params)} params"
            )


@dataclass
class Predicate:
    """Conjunction of clauses on top of an always-true base."""

    clauses: list[Clause] = field(default_factory=list)

    def add(self, clause: Clause) -> "Predicate":
        self.clauses.append(clause)
        return self

    @property
    def tags(self) -> list[ClauseTag]:
        return [c.tag for c in self.clauses]

    @property
    def params(self) -> tuple[Any, ...]:
        """All bound parameters in clause order."""
        return tuple(p for c in self.clauses for p in c.params)

    def where_sql(self) -> str:
        """WHERE body: '1=1' followed by one 'AND <clause>' per clause."""
        return " AND ".join(["1=1"] + [c.sql for c in self.clauses])

    def get(self, tag: ClauseTag) -> Clause | None:
        for clause in self.clauses:
            if clause.tag is tag:
                return clause
        return None


@dataclass(frozen=True)
class BuiltQuery:
    """Matched count and data queries for one filter state.

    Attributes:
        count_query: SELECT COUNT(*) with the filter predicate only
        data_query: Same predicate plus ORDER BY and LIMIT/OFFSET
        count_params: Bound parameters for count_query
        data_params: Bound parameters for data_query (identical to count_params)
        predicate: The structured predicate both were rendered from
        limit: Row cap used in data_query
        offset: Offset used in data_query
    """

    count_query: str
    data_query: str
    count_params: tuple[Any, ...]
    data_params: tuple[Any, ...]
    predicate: Predicate
    limit: int
    offset: int

    @property
    def params(self) -> tuple[Any, ...]:
        return self.data_params


def _in_clause(tag: ClauseTag, column: str, values: tuple[str, ...]) -> Clause:
    placeholders = ", ".join("?" for _ in values)
    return Clause(tag=tag, sql=f"{column} IN ({placeholders})", params=tuple(values))


def build_predicate(criteria: FilterCriteria) -> Predicate:
    """Compile criteria into a Predicate.

    Args:
        criteria: Active filter constraints

    Returns:
        Predicate with one clause per non-empty criterion.
    """
    predicate = Predicate()

    if criteria.search_term:
        pattern = f"%{criteria.search_term}%"
        predicate.add(
            Clause(
                tag=ClauseTag.SEARCH,
                sql="(Trail_Name LIKE ? OR Area LIKE ?)",
                params=(pattern, pattern),
            )
        )

    if criteria.difficulties:
        predicate.add(_in_clause(ClauseTag.DIFFICULTY, "Difficulty_Category", criteria.difficulties))

    predicate.add(Clause(tag=ClauseTag.DISTANCE, sql="Distance BETWEEN ? AND ?", params=criteria.distance_range))
    predicate.add(
        Clause(tag=ClauseTag.ELEVATION, sql="Elevation_Gain BETWEEN ? AND ?", params=criteria.elevation_range)
    )

    if criteria.min_rating > 0:
        predicate.add(Clause(tag=ClauseTag.RATING, sql="Rating >= ?", params=(criteria.min_rating,)))

    if criteria.trail_types:
        predicate.add(_in_clause(ClauseTag.TRAIL_TYPE, "Trail_Type_Category", criteria.trail_types))

    if criteria.areas:
        predicate.add(_in_clause(ClauseTag.AREA, "Area", criteria.areas))

    return predicate


def order_by_sql(sort: SortSpec) -> str:
    """ORDER BY body from allow-listed values plus the stable tiebreaker."""
    # SortSpec coerces to enums, so only allow-listed names reach here
    return f"{sort.sql}, {QueryConfig.TIEBREAK_FIELD} ASC"


class QueryBuilder:
    """Builds count/data query pairs against the trail_summary projection.

    Example:
        builder = QueryBuilder()
        built = builder.build(criteria=FilterCriteria(min_rating=4.0), sort=SortSpec(), page=1, page_size=12)
        rows = dataset.query(built.data_query, built.data_params)
    """

    def __init__(self, table: str = DatasetConfig.SUMMARY_TABLE, max_rows: int = QueryConfig.MAX_ROWS) -> None:
        """Initialize query builder.

        Args:
            table: Relation to query (trusted constant, never user input)
            max_rows: Hard cap on rows returned by any data query
        """
        self.table = table
        self.max_rows = max_rows

    def build(
        self,
        criteria: FilterCriteria,
        sort: SortSpec,
        page: int,
        page_size: int,
    ) -> BuiltQuery:
        """Build matched count and data queries for one page.

        Args:
            criteria: Active filter constraints
            sort: Allow-listed sort spec
            page: 1-based page number
            page_size: Records per page (1..max_rows)

        Returns:
            BuiltQuery whose count and data queries share one parameter list.

        Raises:
            ValueError: If page < 1 or page_size outside 1..max_rows.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if not 1 <= page_size <= self.max_rows:
            raise ValueError(f"page_size must be in 1..{self.max_rows}, got {page_size}")
        # Re-validate against the allow-list
        sort = SortSpec(field=sort.field, direction=sort.direction)

        predicate = build_predicate(criteria)
        where = predicate.where_sql()
        offset = (int(page) - 1) * int(page_size)
        limit = int(page_size)

        count_query = f"SELECT COUNT(*) AS count FROM {self.table} WHERE {where}"
        data_query = (
            f"SELECT * FROM {self.table} WHERE {where} ORDER BY {order_by_sql(sort)} LIMIT {limit} OFFSET {offset}"
        )
        params = predicate.params

        logger.debug(f"Built query: clauses={[t.value for t in predicate.tags]} limit={limit} offset={offset}")
        return BuiltQuery(
            count_query=count_query,
            data_query=data_query,
            count_params=params,
            data_params=params,
            predicate=predicate,
            limit=limit,
            offset=offset,
        )

    def build_map_query(
        self,
        criteria: FilterCriteria,
        limit: int = QueryConfig.MAP_ROW_LIMIT,
        sort: SortSpec | None = None,
    ) -> BuiltQuery:
        """Build the unpaged query used for map markers.

        Same predicate as the list view, capped at limit rows.
        """
        limit = min(int(limit), self.max_rows)
        return self.build(criteria=criteria, sort=sort or SortSpec(), page=1, page_size=limit)

    # =========================================================================
    # FIXED LOOKUPS (detail view, home page, filter options, analysis)
    # =========================================================================

    @staticmethod
    def trail_by_id() -> str:
        """SQL for a detail lookup in the full trails relation."""
        return f"SELECT * FROM {DatasetConfig.TRAILS_TABLE} WHERE Unique_Id = ?"

    def similar_trails(
        self, area: str, exclude_id: str, difficulty_code: int, window: int, limit: int
    ) -> tuple[str, tuple]:
        """Same area, different id, difficulty code within window, best rated first."""
        predicate = Predicate()
        predicate.add(Clause(tag=ClauseTag.AREA, sql="Area = ?", params=(area,)))
        predicate.add(Clause(tag=ClauseTag.EXCLUDE_ID, sql="Unique_Id != ?", params=(exclude_id,)))
        predicate.add(
            Clause(tag=ClauseTag.DIFFICULTY_NEAR, sql="ABS(Difficulty - ?) <= ?", params=(difficulty_code, window))
        )
        limit = min(int(limit), self.max_rows)
        sql = (
            f"SELECT * FROM {self.table} WHERE {predicate.where_sql()} "
            f"ORDER BY Rating DESC, {QueryConfig.TIEBREAK_FIELD} ASC LIMIT {limit}"
        )
        return sql, predicate.params

    def featured_trails(self, min_rating: float, min_reviews: int, limit: int) -> tuple[str, tuple]:
        """Highly rated, heavily reviewed trails, most reviewed first."""
        predicate = Predicate()
        predicate.add(Clause(tag=ClauseTag.RATING, sql="Rating >= ?", params=(min_rating,)))
        predicate.add(Clause(tag=ClauseTag.REVIEWS, sql="Review_Count > ?", params=(min_reviews,)))
        limit = min(int(limit), self.max_rows)
        sql = (
            f"SELECT * FROM {self.table} WHERE {predicate.where_sql()} "
            f"ORDER BY Review_Count DESC, {QueryConfig.TIEBREAK_FIELD} ASC LIMIT {limit}"
        )
        return sql, predicate.params
