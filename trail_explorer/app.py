"""Trail Explorer - Browse California hiking trails.

Filter, sort and page through a bundled SQLite trail dataset, see matching
trails as clustered map markers, open trail details and dataset statistics.

Run: streamlit run trail_explorer/app.py
"""

import logging
import traceback

import streamlit as st

from trail_explorer.constants import AppConfig
from trail_explorer.core.dataset_service import DatasetService, DatasetState
from trail_explorer.core.trail_repository import TrailRepository
from trail_explorer.errors import DatasetError
from trail_explorer.model.message import DatasetLoadErrorMessage, DatasetLoadingMessage
from trail_explorer.model.trail_record import TrailRecord
from trail_explorer.ui.filter_panel import FilterPanel
from trail_explorer.ui.map_provider import DeckMapProvider
from trail_explorer.ui.marker_manager import MarkerClusterManager
from trail_explorer.ui.page_manager import ResultPageManager
from trail_explorer.ui.pages import (
    QueryParamsNavigator,
    View,
    render_analysis_page,
    render_details_page,
    render_home_page,
    render_list_page,
    render_map_page,
)
from trail_explorer.ui.state_machine import SelectionStateMachine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# SESSION STATE
# =============================================================================


def _on_marker_selected(record: TrailRecord) -> None:
    """Host callback after a marker click was applied to the selection."""
    logger.info(f"Marker selected: {record.id} ({record.name})")
    st.session_state.last_selected_trail_id = record.id


def init_session_state() -> None:
    """Create per-session components once (dataset handle is not loaded here)."""
    if "dataset" not in st.session_state:
        st.session_state.dataset = DatasetService()

    if "repository" not in st.session_state:
        st.session_state.repository = TrailRepository(dataset=st.session_state.dataset)

    if "page_manager" not in st.session_state:
        st.session_state.page_manager = ResultPageManager(repository=st.session_state.repository)

    if "map_provider" not in st.session_state:
        st.session_state.map_provider = DeckMapProvider()

    if "state_machine" not in st.session_state:
        sm, model = SelectionStateMachine.create(map_provider=st.session_state.map_provider)
        st.session_state.state_machine = sm
        st.session_state.selection_model = model

    if "marker_manager" not in st.session_state:
        st.session_state.marker_manager = MarkerClusterManager(
            provider=st.session_state.map_provider,
            selection=st.session_state.state_machine,
            on_marker_selected=_on_marker_selected,
        )


def reset_ui_state() -> None:
    """Reset selection and paging after an error while keeping the dataset open."""
    logger.info("Resetting UI state due to error recovery")
    provider = st.session_state.map_provider
    sm, model = SelectionStateMachine.create(map_provider=provider)
    st.session_state.state_machine = sm
    st.session_state.selection_model = model
    st.session_state.marker_manager = MarkerClusterManager(
        provider=provider,
        selection=sm,
        on_marker_selected=_on_marker_selected,
    )
    st.session_state.page_manager = ResultPageManager(repository=st.session_state.repository)
    logger.info("UI state reset complete - dataset preserved")


def load_dataset() -> bool:
    """Load the dataset once per session. Returns True when queryable.

    A failed load shows the error with a Retry button and returns False.
    """
    dataset: DatasetService = st.session_state.dataset
    if dataset.is_loaded:
        return True

    if dataset.state is DatasetState.FAILED:
        DatasetLoadErrorMessage(error=dataset.error or "Unknown error").display()
        if st.button("🔄 Retry", type="primary"):
            try:
                dataset.retry()
            except DatasetError as e:
                logger.error(f"Dataset retry failed: {e}")
            st.rerun()
        return False

    DatasetLoadingMessage().display()
    progress_bar = st.progress(0, text="Preparing dataset...")

    def update_progress(progress: float) -> None:
        progress_bar.progress(progress, text=f"Downloading... {progress * 100:.0f}%")

    dataset.set_progress_callback(update_progress)
    with st.spinner("Loading trail dataset..."):
        try:
            dataset.init()
        except DatasetError as e:
            logger.error(f"Dataset unavailable: {e}")
    st.rerun()  # Raises StopExecution, never returns


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Application entry point."""
    st.set_page_config(page_title=AppConfig.TITLE, page_icon=AppConfig.ICON, layout=AppConfig.LAYOUT)
    init_session_state()

    st.title(AppConfig.TITLE)

    # Block until the dataset is loaded - data features are unavailable before that
    if not load_dataset():
        return

    try:
        _run_app_ui()
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        full_traceback = traceback.format_exc()
        logger.error(f"[UI] UI error caught: {error_msg}\n{full_traceback}")

        st.error(f"⚠️ [UI] Something went wrong: {error_msg}")
        reset_ui_state()

        if st.button("🔄 Reset and Continue", type="primary"):
            st.rerun()


def _run_app_ui() -> None:
    """Run the main application UI. Separated for error handling wrapper."""
    repo: TrailRepository = st.session_state.repository
    pages: ResultPageManager = st.session_state.page_manager
    sm: SelectionStateMachine = st.session_state.state_machine
    navigator = QueryParamsNavigator()

    view = navigator.current_view()
    logger.info(f"[MAIN] Render cycle starting: view={view}, selection={sm.get_state_name()}")

    # Sidebar filters apply to the map and list views
    if "area_options" not in st.session_state:
        st.session_state.area_options = repo.top_areas()
    panel = FilterPanel(current=pages.criteria, sort=pages.sort, area_options=st.session_state.area_options)
    filters = panel.render()
    if filters.reset_requested:
        pages.reset_filters()
        st.rerun()
    if filters.criteria != pages.criteria:
        pages.set_criteria(filters.criteria)
    if filters.sort != pages.sort:
        pages.set_sort(filters.sort)
    if not pages.has_run:
        pages.refresh()

    # Top navigation
    nav_views = View.NAV + ([View.DETAILS] if view == View.DETAILS else [])
    chosen = st.radio(
        "Navigation",
        options=nav_views,
        index=nav_views.index(view),
        format_func=lambda v: View.LABELS[v],
        horizontal=True,
        label_visibility="collapsed",
    )
    if chosen != view:
        navigator.go_to(chosen)
        st.rerun()

    if view == View.HOME:
        render_home_page(repo=repo, navigator=navigator)
    elif view == View.MAP:
        render_map_page(
            repo=repo,
            pages=pages,
            manager=st.session_state.marker_manager,
            sm=sm,
            provider=st.session_state.map_provider,
            navigator=navigator,
        )
    elif view == View.LIST:
        render_list_page(pages=pages, navigator=navigator)
    elif view == View.ANALYSIS:
        render_analysis_page(repo=repo)
    else:
        render_details_page(repo=repo, navigator=navigator)


if __name__ == "__main__":
    main()
