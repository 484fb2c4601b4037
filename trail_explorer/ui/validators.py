"""Validators - Filter input validation for the trail explorer.

Validators return Optional[Message]:
- None if valid
- A ToastMessage if invalid (caller displays it and keeps the old filter)

Expected bad input never raises here.
"""

from trail_explorer.constants import QueryConfig
from trail_explorer.model.message import InvalidRangeMessage, SearchTermTooLongMessage, ToastMessage


def validate_range(label: str, low: float, high: float) -> ToastMessage | None:
    """Validate that a range slider's lower bound does not exceed its upper bound.

    Returns:
        None if valid, InvalidRangeMessage if low > high.
    """
    if low > high:
        return InvalidRangeMessage(label=label, low=low, high=high)
    return None


def validate_search_term(term: str, max_length: int = QueryConfig.MAX_SEARCH_LENGTH) -> ToastMessage | None:
    """Validate the free-text search length (after stripping whitespace).

    Returns:
        None if valid, SearchTermTooLongMessage if too long.
    """
    length = len(term.strip())
    if length > max_length:
        return SearchTermTooLongMessage(length=length, max_length=max_length)
    return None
