"""Message - User-facing messages for the trail explorer UI.

Architecture:
- CENTER (main area): loading / load-failure / not-found / no-results blocks
- MAP: textual fallback when the map provider cannot render
- TOAST: transient feedback for rejected filter input

Design Principles:
- Errors that are recovered locally (query failures, clustering failures)
  become messages, never exceptions in the page
- Messages know their own display level; callers decide when to display
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class MessageLevel(Enum):
    """Display level for UI messages."""

    INFO = "info"  # Blue - context/status/loading
    WARNING = "warning"  # Yellow - degraded but usable
    ERROR = "error"  # Red - failures


@dataclass(frozen=True)
class Message(ABC):
    """Abstract base class for user-facing messages displayed inline.

    Rendered as st.info/st.warning/st.error blocks that persist in the UI
    until replaced.
    """

    @property
    @abstractmethod
    def message(self) -> str:
        """Formatted message for display in Streamlit."""
        raise NotImplementedError

    @property
    @abstractmethod
    def level(self) -> MessageLevel:
        """Display level."""
        raise NotImplementedError

    def display(self) -> None:
        """Render this message using the appropriate Streamlit function."""
        import streamlit as st

        render_fn = {
            MessageLevel.INFO: st.info,
            MessageLevel.WARNING: st.warning,
            MessageLevel.ERROR: st.error,
        }[self.level]
        render_fn(self.message)


@dataclass(frozen=True)
class ToastMessage(ABC):
    """Abstract base class for transient popup notifications."""

    @property
    @abstractmethod
    def message(self) -> str:
        """Formatted message for the toast notification."""
        raise NotImplementedError

    @property
    @abstractmethod
    def icon(self) -> str:
        """Icon to show in toast. Override in subclasses."""
        raise NotImplementedError

    def display(self) -> None:
        """Show this message as a toast notification and log it."""
        import streamlit as st

        logger = logging.getLogger(__name__)
        logger.info(f"[TOAST] {self.icon} {self.message}")
        st.toast(f"{self.icon} {self.message}")


# =============================================================================
# TOAST MESSAGES - Filter input feedback
# =============================================================================


@dataclass(frozen=True)
class InvalidRangeMessage(ToastMessage):
    """Range slider produced min > max."""

    label: str
    low: float
    high: float

    @property
    def icon(self) -> str:
        return "↔️"

    @property
    def message(self) -> str:
        return f"Invalid {self.label} range — {self.low:g} is above {self.high:g}"


@dataclass(frozen=True)
class SearchTermTooLongMessage(ToastMessage):
    """Search term exceeds the accepted length."""

    length: int
    max_length: int

    @property
    def icon(self) -> str:
        return "🔎"

    @property
    def message(self) -> str:
        return f"Search Too Long — {self.length} characters (max: {self.max_length})"


# =============================================================================
# INLINE MESSAGES - Session and page states
# =============================================================================


@dataclass(frozen=True)
class DatasetLoadingMessage(Message):
    """Shown once per session while the dataset loads."""

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.INFO

    @property
    def message(self) -> str:
        return "🗺️ **Loading trail dataset...**\n\nThis happens once per session."


@dataclass(frozen=True)
class DatasetLoadErrorMessage(Message):
    """Dataset could not be loaded; data features are unavailable."""

    error: str

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.ERROR

    @property
    def message(self) -> str:
        return f"❌ **Dataset failed to load**\n\n{self.error}\n\nUse **Retry** to try again."


@dataclass(frozen=True)
class TrailNotFoundMessage(Message):
    """Detail lookup for an id that does not exist."""

    trail_id: str

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.WARNING

    @property
    def message(self) -> str:
        return f"🔍 **Trail not found** — no trail with id `{self.trail_id}`."


@dataclass(frozen=True)
class NoResultsMessage(Message):
    """Query succeeded (or soft-failed) with zero matches."""

    query_failed: bool = False

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.WARNING if self.query_failed else MessageLevel.INFO

    @property
    def message(self) -> str:
        if self.query_failed:
            return "⚠️ **Search unavailable** — the query could not run. Showing no results."
        return "🥾 **No trails match these filters.** Try widening the ranges or clearing a filter."


@dataclass(frozen=True)
class MapUnavailableMessage(Message):
    """Map provider could not initialize; textual fallback."""

    result_count: int

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.WARNING

    @property
    def message(self) -> str:
        return f"🗺️ **Map unavailable** — {self.result_count} matching trails are listed below instead."


@dataclass(frozen=True)
class ClusteringDegradedMessage(Message):
    """Clustering failed to load; markers shown individually."""

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.INFO

    @property
    def message(self) -> str:
        return "ℹ️ Marker clustering is unavailable — showing every trail individually."


@dataclass(frozen=True)
class ResultSummaryMessage(Message):
    """Context line above the trail list."""

    first_index: int
    last_index: int
    total_count: int

    @property
    def level(self) -> MessageLevel:
        return MessageLevel.INFO

    @property
    def message(self) -> str:
        return f"Showing **{self.first_index}–{self.last_index}** of **{self.total_count:,}** trails"
