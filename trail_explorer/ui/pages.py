"""Page renderers for the trail explorer.

Views (selected through the "view" query parameter):
- home: featured trails
- map: clustered markers with the selection overlay
- list: paged, sorted trail cards
- analysis: statistics charts
- details: one trail, resolved from the "trail" query parameter

Navigation goes through the Navigator protocol so pages never touch the URL
directly; QueryParamsNavigator implements it with st.query_params, which
keeps detail pages linkable.
"""

import logging
from typing import Protocol

import streamlit as st

from trail_explorer.constants import MapConfig, QueryConfig
from trail_explorer.core.trail_repository import TrailRepository
from trail_explorer.model.message import (
    ClusteringDegradedMessage,
    MapUnavailableMessage,
    NoResultsMessage,
    ResultSummaryMessage,
    TrailNotFoundMessage,
)
from trail_explorer.model.trail_record import TrailRecord
from trail_explorer.ui.charts import StatisticsChart
from trail_explorer.ui.map_provider import DeckMapProvider
from trail_explorer.ui.marker_manager import MarkerClusterManager
from trail_explorer.ui.page_manager import ResultPageManager
from trail_explorer.ui.pydeck_click_handler import render_pydeck_map
from trail_explorer.ui.state_machine import SelectionStateMachine, rerun_if_requested

logger = logging.getLogger(__name__)


class View:
    """Page identifiers used in the "view" query parameter."""

    HOME = "home"
    MAP = "map"
    LIST = "list"
    ANALYSIS = "analysis"
    DETAILS = "details"

    NAV = [HOME, MAP, LIST, ANALYSIS]
    LABELS = {
        HOME: "🏠 Home",
        MAP: "🗺️ Map",
        LIST: "📋 Trails",
        ANALYSIS: "📊 Analysis",
        DETAILS: "🥾 Details",
    }


# =============================================================================
# NAVIGATION
# =============================================================================


class Navigator(Protocol):
    """Where the host sends the user when a trail is opened."""

    def open_details(self, trail_id: str) -> None: ...

    def current_trail_id(self) -> str | None: ...


class QueryParamsNavigator:
    """Navigator backed by st.query_params.

    URL shape: ?view=details&trail=<id>, ?view=map&focus=<id>
    """

    VIEW_PARAM = "view"
    TRAIL_PARAM = "trail"
    FOCUS_PARAM = "focus"

    def current_view(self) -> str:
        view = st.query_params.get(self.VIEW_PARAM, View.HOME)
        if view not in View.LABELS:
            logger.warning(f"Unknown view {view!r} in URL, showing home")
            return View.HOME
        return view

    def go_to(self, view: str) -> None:
        st.query_params.clear()
        st.query_params[self.VIEW_PARAM] = view

    def open_details(self, trail_id: str) -> None:
        logger.info(f"Opening details for trail {trail_id}")
        st.query_params.clear()
        st.query_params[self.VIEW_PARAM] = View.DETAILS
        st.query_params[self.TRAIL_PARAM] = str(trail_id)

    def current_trail_id(self) -> str | None:
        return st.query_params.get(self.TRAIL_PARAM)

    def show_on_map(self, trail_id: str) -> None:
        st.query_params.clear()
        st.query_params[self.VIEW_PARAM] = View.MAP
        st.query_params[self.FOCUS_PARAM] = str(trail_id)

    def pop_focus_trail_id(self) -> str | None:
        """Trail to select on the map, consumed so it applies once."""
        trail_id = st.query_params.get(self.FOCUS_PARAM)
        if trail_id is not None:
            del st.query_params[self.FOCUS_PARAM]
        return trail_id


# =============================================================================
# SHARED WIDGETS
# =============================================================================


def render_trail_card(record: TrailRecord, navigator: QueryParamsNavigator, key_prefix: str) -> None:
    """Compact trail summary with details / map buttons."""
    with st.container(border=True):
        if record.cover_photo_url:
            st.image(record.cover_photo_url, use_container_width=True)
        difficulty = record.difficulty
        badge = difficulty.display_name if difficulty else (record.difficulty_label or "Unknown")
        st.markdown(f"**{record.name}**")
        st.caption(f"{record.area} · {badge} · {record.trail_type_label or '—'}")
        st.markdown(
            f"⭐ {record.rating:.1f} ({record.review_count:,}) · "
            f"{record.distance_mi:.1f} mi · ↗ {record.elevation_gain_ft:,.0f} ft"
        )
        col_details, col_map = st.columns(2)
        with col_details:
            if st.button("Details", key=f"{key_prefix}_details_{record.id}", use_container_width=True):
                navigator.open_details(record.id)
                st.rerun()
        with col_map:
            if st.button("On map", key=f"{key_prefix}_map_{record.id}", use_container_width=True):
                navigator.show_on_map(record.id)
                st.rerun()


def render_card_grid(records: list[TrailRecord], navigator: QueryParamsNavigator, key_prefix: str, columns: int = 3) -> None:
    for row_start in range(0, len(records), columns):
        cols = st.columns(columns)
        for col, record in zip(cols, records[row_start : row_start + columns]):
            with col:
                render_trail_card(record=record, navigator=navigator, key_prefix=key_prefix)


def render_selection_overlay(sm: SelectionStateMachine, navigator: QueryParamsNavigator) -> None:
    """Info panel for the active trail (shown next to the map)."""
    if not sm.is_selected or sm.context.selection.record is None:
        st.caption("Click a trail marker to see its summary.")
        return

    record = sm.context.selection.record
    anchor = sm.context.overlay.anchor
    with st.container(border=True):
        st.subheader(record.name)
        st.caption(record.area)
        if anchor is None:
            st.caption("📍 Not on the map with the current filters")
        else:
            st.caption(f"📍 {anchor[0]:.4f}, {anchor[1]:.4f}")
        st.markdown(
            f"⭐ **{record.rating:.1f}** ({record.review_count:,} reviews)  \n"
            f"📏 {record.distance_mi:.1f} mi · ↗ {record.elevation_gain_ft:,.0f} ft"
        )
        col_details, col_close = st.columns(2)
        with col_details:
            if st.button("View details", key="overlay_details", type="primary", use_container_width=True):
                navigator.open_details(record.id)
                st.rerun()
        with col_close:
            if st.button("Close", key="overlay_close", use_container_width=True):
                sm.try_transition("dismiss")
                rerun_if_requested()


# =============================================================================
# PAGES
# =============================================================================


def render_home_page(repo: TrailRepository, navigator: QueryParamsNavigator) -> None:
    st.header("Featured trails")
    st.caption("Highly rated trails with more than a thousand reviews.")
    featured = repo.featured_trails()
    if not featured:
        NoResultsMessage().display()
        return
    render_card_grid(records=featured, navigator=navigator, key_prefix="featured")


def render_map_page(
    repo: TrailRepository,
    pages: ResultPageManager,
    manager: MarkerClusterManager,
    sm: SelectionStateMachine,
    provider: DeckMapProvider,
    navigator: QueryParamsNavigator,
) -> None:
    """Map of all trails matching the current filters."""
    records = repo.map_results(criteria=pages.criteria)

    selected_trail = None
    focus_id = navigator.pop_focus_trail_id()
    if focus_id is not None:
        selected_trail = repo.get_trail(focus_id)
        if selected_trail is None:
            TrailNotFoundMessage(trail_id=focus_id).display()

    manager.sync(results=records, selected_trail=selected_trail)

    st.caption(f"{manager.marker_count:,} trails on the map (limit {QueryConfig.MAP_ROW_LIMIT:,})")
    if not records:
        NoResultsMessage().display()

    if not manager.is_map_available:
        MapUnavailableMessage(result_count=len(records)).display()
        render_card_grid(records=records[: QueryConfig.DEFAULT_PAGE_SIZE], navigator=navigator, key_prefix="fallback")
        return
    if manager.is_clustering_degraded:
        ClusteringDegradedMessage().display()

    col_map, col_overlay = st.columns([3, 1])
    with col_map:
        col_in, col_out, col_reset = st.columns(3)
        with col_in:
            if st.button("➕ Zoom in", use_container_width=True):
                provider.set_zoom(min(provider.zoom + 1, MapConfig.DETAIL_ZOOM + 4))
        with col_out:
            if st.button("➖ Zoom out", use_container_width=True):
                provider.set_zoom(max(provider.zoom - 1, 1))
        with col_reset:
            if st.button("🔄 Reset view", use_container_width=True):
                provider.pan_to((MapConfig.START_CENTER_LAT, MapConfig.START_CENTER_LON))
                provider.set_zoom(MapConfig.OVERVIEW_ZOOM)

        deck = provider.render(clusterer=manager.clusterer, selected_trail_id=sm.active_trail_id)
        click = render_pydeck_map(deck=deck, key="trail_map", height=MapConfig.MAP_HEIGHT_PX)

    if click.is_trail_click:
        manager.handle_marker_click(trail_id=click.object_id)
        rerun_if_requested()
    elif click.is_cluster_click and click.coordinate is not None:
        # Zoom into the clicked cluster
        provider.pan_to(click.coordinate)
        provider.set_zoom(provider.zoom + 2)
        st.rerun()

    with col_overlay:
        render_selection_overlay(sm=sm, navigator=navigator)


def render_list_page(pages: ResultPageManager, navigator: QueryParamsNavigator) -> None:
    """Paged trail cards with pagination controls."""
    result = pages.result
    if result.is_empty:
        NoResultsMessage(query_failed=result.failed).display()
        return

    ResultSummaryMessage(
        first_index=result.first_index,
        last_index=result.last_index,
        total_count=result.total_count,
    ).display()
    render_card_grid(records=result.records, navigator=navigator, key_prefix="list")

    col_prev, col_info, col_next = st.columns([1, 2, 1])
    with col_prev:
        if st.button("← Previous", disabled=not pages.has_previous, use_container_width=True):
            pages.previous_page()
            st.rerun()
    with col_info:
        st.markdown(f"<div style='text-align:center'>Page {pages.page} of {pages.total_pages}</div>", unsafe_allow_html=True)
    with col_next:
        if st.button("Next →", disabled=not pages.has_next, use_container_width=True):
            pages.next_page()
            st.rerun()


def build_detail_map(record: TrailRecord) -> tuple[DeckMapProvider, SelectionStateMachine]:
    """Single-trail map for the details page, with the trail selected.

    Uses its own provider and machine so the main map selection is untouched.
    """
    provider = DeckMapProvider(center=record.lat_lon, zoom=MapConfig.DETAIL_ZOOM)
    sm, _ = SelectionStateMachine.create(add_ui_listener=False, map_provider=provider)
    manager = MarkerClusterManager(provider=provider, selection=sm)
    manager.sync(results=[record], selected_trail=record)
    return provider, sm


def render_details_page(repo: TrailRepository, navigator: QueryParamsNavigator) -> None:
    """Full record for the trail in the URL plus similar trails."""
    trail_id = navigator.current_trail_id()
    if trail_id is None:
        TrailNotFoundMessage(trail_id="").display()
        return
    record = repo.get_trail(trail_id)
    if record is None:
        TrailNotFoundMessage(trail_id=trail_id).display()
        return

    st.header(record.name)
    st.caption(" · ".join(part for part in (record.area, record.state, record.country) if part))

    col_info, col_map = st.columns([1, 1])
    with col_info:
        if record.cover_photo_url:
            st.image(record.cover_photo_url, use_container_width=True)
        difficulty = record.difficulty
        m1, m2, m3 = st.columns(3)
        m1.metric("Rating", f"{record.rating:.1f}", f"{record.review_count:,} reviews", delta_color="off")
        m2.metric("Distance", f"{record.distance_mi:.1f} mi")
        m3.metric("Elevation gain", f"{record.elevation_gain_ft:,.0f} ft")
        st.markdown(
            f"**Difficulty:** {difficulty.display_name if difficulty else (record.difficulty_label or 'Unknown')}  \n"
            f"**Type:** {record.trail_type_raw or record.trail_type_label or 'Unknown'}  \n"
            f"**Length:** {record.length_category or 'Unknown'}  \n"
            f"**Estimated duration:** {record.format_duration()}"
        )
        if record.highest_point_ft is not None:
            st.markdown(f"**Highest point:** {record.highest_point_ft:,.0f} ft")
        if record.permits_required is not None:
            st.markdown(f"**Permit required:** {'Yes' if record.permits_required else 'No'}")
        if record.source_url:
            st.markdown(f"[View on {record.source_name or 'source'}]({record.source_url})")

    with col_map:
        provider, sm = build_detail_map(record)
        st.pydeck_chart(
            provider.render(selected_trail_id=sm.active_trail_id),
            height=MapConfig.DETAIL_MAP_HEIGHT_PX,
        )
        anchor = sm.context.overlay.anchor
        if anchor is not None:
            st.caption(f"📍 {record.name} · {anchor[0]:.4f}, {anchor[1]:.4f}")
        if st.button("Show on main map", use_container_width=True):
            navigator.show_on_map(record.id)
            st.rerun()

    similar = repo.similar_trails(record)
    if similar:
        st.subheader("Similar trails nearby")
        render_card_grid(records=similar, navigator=navigator, key_prefix="similar", columns=4)


def render_analysis_page(repo: TrailRepository) -> None:
    """Dataset-wide statistics (independent of the sidebar filters)."""
    stats = repo.statistics()
    if stats.total_trails == 0:
        NoResultsMessage(query_failed=True).display()
        return

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Trails", f"{stats.total_trails:,}")
    m2.metric("Average rating", f"{stats.avg_rating:.2f}")
    m3.metric("Average distance", f"{stats.avg_distance_mi:.1f} mi")
    m4.metric("Average elevation gain", f"{stats.avg_elevation_gain_ft:,.0f} ft")

    chart = StatisticsChart()
    col_a, col_b = st.columns(2)
    with col_a:
        st.plotly_chart(chart.render_difficulty(stats.difficulty), use_container_width=True, key="chart_difficulty")
        st.plotly_chart(chart.render_length(stats.length), use_container_width=True, key="chart_length")
    with col_b:
        st.plotly_chart(chart.render_trail_type(stats.trail_type), use_container_width=True, key="chart_type")
        st.plotly_chart(chart.render_rating(stats.rating), use_container_width=True, key="chart_rating")

    st.plotly_chart(chart.render_top_areas(stats.top_areas), use_container_width=True, key="chart_areas")
    col_c, col_d = st.columns(2)
    with col_c:
        st.plotly_chart(
            chart.render_length_vs_elevation(stats.length_vs_elevation), use_container_width=True, key="chart_scatter_len"
        )
    with col_d:
        st.plotly_chart(
            chart.render_rating_vs_reviews(stats.rating_vs_reviews), use_container_width=True, key="chart_scatter_rev"
        )
