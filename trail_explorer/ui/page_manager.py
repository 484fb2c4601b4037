"""ResultPageManager - Pagination, sorting and filter state for the trail list.

Owns {criteria, sort, page, page_size} and the last PageResult. Every change
re-queries through the repository.

Rules:
- Criteria, sort or page size change → page resets to 1
- Page change alone → criteria and sort untouched
- Requested pages are clamped to [1, total_pages]
- After every refresh, page <= total_pages
"""

import logging

from trail_explorer.constants import QueryConfig
from trail_explorer.core.trail_repository import TrailRepository
from trail_explorer.model.filter_criteria import DEFAULT_CRITERIA, DEFAULT_SORT, FilterCriteria, SortField, SortSpec
from trail_explorer.model.page_result import PageResult

logger = logging.getLogger(__name__)


class ResultPageManager:
    """Paged view over the trails matching the current filters.

    One instance per session (kept in st.session_state).

    Example:
        pages = ResultPageManager(repository=repo)
        pages.set_criteria(FilterCriteria(min_rating=4.0))
        pages.next_page()
        for record in pages.result.records:
            print(record.name)
    """

    def __init__(
        self,
        repository: TrailRepository,
        page_size: int = QueryConfig.DEFAULT_PAGE_SIZE,
        criteria: FilterCriteria = DEFAULT_CRITERIA,
        sort: SortSpec = DEFAULT_SORT,
    ) -> None:
        """Initialize page manager (no query runs until refresh() or a setter).

        Args:
            repository: Soft-failing query boundary
            page_size: Records per page (1..QueryConfig.MAX_ROWS)
            criteria: Initial filters
            sort: Initial sort
        """
        self._validate_page_size(page_size)
        self.repository = repository
        self.criteria = criteria
        self.sort = sort
        self.page = 1
        self.page_size = page_size
        self.result = PageResult.empty(page=1, page_size=page_size)
        self.has_run = False

    @staticmethod
    def _validate_page_size(page_size: int) -> None:
        if not 1 <= page_size <= QueryConfig.MAX_ROWS:
            raise ValueError(f"page_size must be in 1..{QueryConfig.MAX_ROWS}, got {page_size}")

    # =========================================================================
    # DERIVED STATE
    # =========================================================================

    @property
    def total_count(self) -> int:
        return self.result.total_count

    @property
    def total_pages(self) -> int:
        return self.result.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    # =========================================================================
    # QUERY
    # =========================================================================

    def refresh(self) -> PageResult:
        """Re-run the current page; clamps page if the result set shrank."""
        self.has_run = True
        self.result = self.repository.search(
            criteria=self.criteria, sort=self.sort, page=self.page, page_size=self.page_size
        )
        if self.page > self.result.total_pages:
            clamped = self.result.total_pages
            logger.info(f"Page {self.page} beyond last page {clamped}, clamping")
            self.page = clamped
            self.result = self.repository.search(
                criteria=self.criteria, sort=self.sort, page=self.page, page_size=self.page_size
            )
        return self.result

    # =========================================================================
    # SETTERS (each one re-queries)
    # =========================================================================

    def set_criteria(self, criteria: FilterCriteria) -> PageResult:
        self.criteria = criteria
        self.page = 1
        return self.refresh()

    def reset_filters(self) -> PageResult:
        return self.set_criteria(DEFAULT_CRITERIA)

    def set_sort(self, sort: SortSpec) -> PageResult:
        self.sort = sort
        self.page = 1
        return self.refresh()

    def toggle_sort(self, field_name: SortField | str) -> PageResult:
        """Same field flips direction; a new field starts descending."""
        return self.set_sort(self.sort.toggled_by(field_name))

    def set_page_size(self, page_size: int) -> PageResult:
        self._validate_page_size(page_size)
        self.page_size = page_size
        self.page = 1
        return self.refresh()

    def set_page(self, page: int) -> PageResult:
        """Go to a page, clamped to [1, total_pages] of the last known result."""
        self.page = max(1, min(int(page), self.total_pages))
        return self.refresh()

    def next_page(self) -> PageResult:
        return self.set_page(self.page + 1)

    def previous_page(self) -> PageResult:
        return self.set_page(self.page - 1)

    def __repr__(self) -> str:
        return (
            f"ResultPageManager(page={self.page}/{self.total_pages}, size={self.page_size}, "
            f"sort={self.sort.sql}, total={self.total_count})"
        )
