"""PageResult - One page of trail records plus the total match count."""

import math
from dataclasses import dataclass, field

from trail_explorer.model.trail_record import TrailRecord


def compute_total_pages(total_count: int, page_size: int) -> int:
    """Number of pages for a result set, never less than 1.

    Args:
        total_count: Total matching records (>= 0)
        page_size: Records per page (>= 1)

    Returns:
        max(1, ceil(total_count / page_size))
    """
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")
    if total_count < 0:
        raise ValueError(f"total_count must be >= 0, got {total_count}")
    return max(1, math.ceil(total_count / page_size))


@dataclass(frozen=True)
class PageResult:
    """Records for one page and the count of all matches.

    Attributes:
        records: Records on this page (len <= page_size)
        total_count: Number of records matching the criteria across all pages
        page: 1-based page number these records belong to
        page_size: Requested page size
        error: Loggable error text when the query soft-failed, else None
    """

    records: list[TrailRecord] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 1
    error: str | None = None

    @property
    def total_pages(self) -> int:
        return compute_total_pages(total_count=self.total_count, page_size=self.page_size)

    @property
    def is_empty(self) -> bool:
        return not self.records

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def first_index(self) -> int:
        """1-based index of the first record on this page (0 when empty)."""
        if not self.records:
            return 0
        return (self.page - 1) * self.page_size + 1

    @property
    def last_index(self) -> int:
        if not self.records:
            return 0
        return self.first_index + len(self.records) - 1

    @staticmethod
    def empty(page: int, page_size: int, error: str | None = None) -> "PageResult":
        """Factory for the soft-failure / no-match result."""
        return PageResult(records=[], total_count=0, page=page, page_size=page_size, error=error)
