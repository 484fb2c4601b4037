"""Sidebar filter panel for the trail explorer.

Renders the filter and sort controls and turns widget values into a
FilterCriteria / SortSpec pair:
- Free-text search (name or area)
- Difficulty, trail type and area multiselects
- Distance and elevation range sliders, minimum rating slider
- Sort field and direction
- Reset button

Invalid input (inverted range, overlong search) shows a toast and keeps the
previous criteria; nothing raises into the page.
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence

import streamlit as st

from trail_explorer.constants import DifficultyLabels, QueryConfig, TrailTypeLabels
from trail_explorer.model.filter_criteria import FilterCriteria, SortDirection, SortField, SortSpec
from trail_explorer.model.message import ToastMessage
from trail_explorer.model.trail_record import DifficultyCategory
from trail_explorer.ui.validators import validate_range, validate_search_term

logger = logging.getLogger(__name__)

SORT_LABELS = {
    SortField.RATING: "Rating",
    SortField.DISTANCE: "Distance",
    SortField.ELEVATION_GAIN: "Elevation gain",
    SortField.REVIEW_COUNT: "Review count",
    SortField.TRAIL_NAME: "Name",
}
assert set(SORT_LABELS.keys()) == set(SortField)


@dataclass
class FilterPanelResult:
    """What the sidebar produced this run."""

    criteria: FilterCriteria
    sort: SortSpec
    reset_requested: bool = False
    messages: list[ToastMessage] = field(default_factory=list)


def build_criteria(
    previous: FilterCriteria,
    search_term: str,
    difficulties: Sequence[str],
    distance_range: tuple[float, float],
    elevation_range: tuple[float, float],
    min_rating: float,
    trail_types: Sequence[str],
    areas: Sequence[str],
) -> tuple[FilterCriteria, list[ToastMessage]]:
    """Validate widget values and build criteria.

    Returns:
        (criteria, messages). On any validation message the previous
        criteria are returned unchanged.
    """
    messages = [
        m
        for m in (
            validate_search_term(search_term),
            validate_range("distance", *distance_range),
            validate_range("elevation gain", *elevation_range),
        )
        if m is not None
    ]
    if messages:
        return previous, messages

    criteria = FilterCriteria(
        search_term=search_term,
        difficulties=tuple(difficulties),
        distance_range=distance_range,
        elevation_range=elevation_range,
        min_rating=min_rating,
        trail_types=tuple(trail_types),
        areas=tuple(areas),
    )
    return criteria, []


def _difficulty_name(label: str) -> str:
    category = DifficultyCategory.from_label(label)
    return category.display_name if category else label


class FilterPanel:
    """Renders the sidebar filters and returns the resulting criteria.

    Example:
        panel = FilterPanel(current=pages.criteria, sort=pages.sort, area_options=repo.top_areas())
        result = panel.render()
        if result.criteria != pages.criteria:
            pages.set_criteria(result.criteria)
    """

    def __init__(self, current: FilterCriteria, sort: SortSpec, area_options: list[str]) -> None:
        """Initialize panel with the criteria currently applied."""
        self.current = current
        self.sort = sort
        # Keep selected areas selectable even if they dropped out of the top list
        self.area_options = list(dict.fromkeys(list(area_options) + list(current.areas)))

    def render(self) -> FilterPanelResult:
        """Render all controls into st.sidebar."""
        with st.sidebar:
            st.header("🔎 Filters")

            search_term = st.text_input(
                "Search name or area",
                value=self.current.search_term,
                placeholder="e.g. Yosemite",
            )
            difficulties = st.multiselect(
                "Difficulty",
                options=DifficultyLabels.ALL,
                default=list(self.current.difficulties),
                format_func=_difficulty_name,
            )
            trail_types = st.multiselect(
                "Trail type",
                options=TrailTypeLabels.ALL,
                default=list(self.current.trail_types),
            )
            areas = st.multiselect(
                "Area",
                options=self.area_options,
                default=list(self.current.areas),
            )
            distance_range = st.slider(
                "Distance (mi)",
                min_value=QueryConfig.DISTANCE_RANGE_MI[0],
                max_value=QueryConfig.DISTANCE_RANGE_MI[1],
                value=self.current.distance_range,
                step=0.5,
            )
            elevation_range = st.slider(
                "Elevation gain (ft)",
                min_value=QueryConfig.ELEVATION_RANGE_FT[0],
                max_value=QueryConfig.ELEVATION_RANGE_FT[1],
                value=self.current.elevation_range,
                step=100.0,
            )
            min_rating = st.slider(
                "Minimum rating",
                min_value=QueryConfig.RATING_MIN,
                max_value=QueryConfig.RATING_MAX,
                value=self.current.min_rating,
                step=0.5,
            )

            st.divider()
            st.subheader("↕️ Sort")
            sort_field = st.selectbox(
                "Sort by",
                options=list(SortField),
                index=list(SortField).index(self.sort.field),
                format_func=lambda f: SORT_LABELS[f],
            )
            descending = st.toggle("Descending", value=self.sort.direction == SortDirection.DESC)

            reset_requested = st.button("Reset filters", use_container_width=True)

        criteria, messages = build_criteria(
            previous=self.current,
            search_term=search_term,
            difficulties=difficulties,
            distance_range=tuple(distance_range),
            elevation_range=tuple(elevation_range),
            min_rating=float(min_rating),
            trail_types=trail_types,
            areas=areas,
        )
        for message in messages:
            message.display()

        sort = SortSpec(field=sort_field, direction=SortDirection.DESC if descending else SortDirection.ASC)
        return FilterPanelResult(criteria=criteria, sort=sort, reset_requested=reset_requested, messages=messages)
