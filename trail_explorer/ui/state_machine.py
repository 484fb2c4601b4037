"""Selection state machine for the trail explorer map.

Uses python-statemachine for explicit, event-driven selection handling:
- Clear state definitions (at most one active trail)
- before_* hooks carry the event payload into the shared model
- Entry hooks for overlay/viewport side effects

Architecture Overview
---------------------
The machine owns the SelectionModel (selection, overlay, viewport). Map
markers call click_marker from their click listeners; the host calls
programmatic_select when a trail is chosen outside the map (URL, list,
detail page). The marker manager calls reconcile() after every rebuild so
the overlay never points at a marker that no longer exists.

StreamlitUIListener logs every transition and triggers st.rerun() for
user-driven events only. Programmatic selection runs during rendering, so
it must not request another run.

States (2 states):
    IDLE: No active trail, overlay hidden
    SELECTED: Exactly one active trail, overlay visible (anchored or floating)

Transitions:
    IDLE -> SELECTED: click_marker, programmatic_select
    SELECTED -> SELECTED: click_marker, programmatic_select (direct replace)
    SELECTED -> IDLE: dismiss

Viewport:
    click_marker leaves the viewport alone; programmatic_select pans to the
    record and zooms to MapConfig.DETAIL_ZOOM; dismiss leaves it alone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable

import streamlit as st
from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from trail_explorer.constants import MapConfig
from trail_explorer.model.trail_record import TrailRecord
from trail_explorer.ui.map_provider import LatLon, MapMarker

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from trail_explorer.ui.map_provider import MapProvider


class SelectionSource:
    """How the active trail was chosen."""

    MARKER = "marker"
    PROGRAMMATIC = "programmatic"


@dataclass
class SelectionContext:
    """Active trail state."""

    trail_id: str | None = None
    record: TrailRecord | None = None
    source: str | None = None  # One of SelectionSource values

    def clear(self) -> None:
        self.trail_id = None
        self.record = None
        self.source = None

    def set(self, record: TrailRecord, source: str) -> None:
        self.trail_id = record.id
        self.record = record
        self.source = source

    def has_selection(self) -> bool:
        return self.trail_id is not None


@dataclass
class OverlayContext:
    """Info overlay state.

    anchor is None while visible when the active trail has no live marker
    (e.g. it was filtered out); the overlay then renders unanchored.
    """

    anchor: LatLon | None = None
    visible: bool = False

    def show(self, anchor: LatLon | None) -> None:
        self.anchor = anchor
        self.visible = True

    def hide(self) -> None:
        self.anchor = None
        self.visible = False

    def clear_anchor(self) -> None:
        self.anchor = None


@dataclass
class ViewportContext:
    """Map viewport mirrored from the last viewport change."""

    center: LatLon = (MapConfig.START_CENTER_LAT, MapConfig.START_CENTER_LON)
    zoom: float = MapConfig.OVERVIEW_ZOOM


@dataclass
class SelectionModel:
    """Shared model for the selection machine.

    Note: The 'state' field is managed by python-statemachine when this
    object is passed as the model.
    """

    state: str | None = None

    selection: SelectionContext = field(default_factory=SelectionContext)
    overlay: OverlayContext = field(default_factory=OverlayContext)
    viewport: ViewportContext = field(default_factory=ViewportContext)

    @property
    def active_trail_id(self) -> str | None:
        return self.selection.trail_id

    def __repr__(self) -> str:
        return (
            f"SelectionModel(state={self.state}, trail={self.selection.trail_id}, "
            f"anchor={self.overlay.anchor}, zoom={self.viewport.zoom})"
        )


RERUN_REQUEST_KEY = "_selection_rerun_requested"


class StreamlitUIListener:
    """Listener that handles Streamlit side effects after transitions.

    The rerun is requested, not performed: marker click handlers still have
    to run the host callback after the transition. The host calls
    rerun_if_requested() once the click has been fully handled.

    Usage:
        sm = SelectionStateMachine(model=model)
        sm.add_listener(StreamlitUIListener())
    """

    # Events triggered by user input; programmatic selection happens mid-render
    RERUN_EVENTS = ("click_marker", "dismiss")

    def after_transition(self, event: str, source: State, target: State) -> None:
        logger.info(f"[STATE] {source.name} --({event})--> {target.name}")
        if event in self.RERUN_EVENTS:
            st.session_state[RERUN_REQUEST_KEY] = True


def rerun_if_requested() -> None:
    """Trigger st.rerun() if a user-driven transition asked for one."""
    if st.session_state.pop(RERUN_REQUEST_KEY, False):
        st.rerun()


class SelectionStateMachine(StateMachine):
    """State machine for trail selection on the map.

    States:
        idle: Nothing selected
        selected: One active trail with overlay

    A second marker click while selected replaces the selection directly
    (selected -> selected), never passing through idle.
    """

    # ==========================================================================
    # State Definitions
    # ==========================================================================

    idle = State("Idle", initial=True)
    selected = State("Selected")

    # ==========================================================================
    # Transitions
    # ==========================================================================

    # Marker click: anchor overlay at the clicked marker
    click_marker = idle.to(selected) | selected.to(selected)
    # Selection from outside the map: pan + zoom to the record
    programmatic_select = idle.to(selected) | selected.to(selected)
    # Close overlay
    dismiss = selected.to(idle)

    # ==========================================================================
    # State Check Properties
    # ==========================================================================

    @property
    def is_idle(self) -> bool:
        return self.idle.is_active

    @property
    def is_selected(self) -> bool:
        return self.selected.is_active

    @property
    def active_trail_id(self) -> str | None:
        return self.context.selection.trail_id

    # ==========================================================================
    # Entry Hooks
    # ==========================================================================

    def on_enter_idle(self) -> None:
        """Hook: nothing selected, overlay hidden. Viewport stays where it is."""
        self.context.selection.clear()
        self.context.overlay.hide()

    # ==========================================================================
    # Transition Actions (before_* hooks)
    # ==========================================================================

    def before_click_marker(self, record: TrailRecord, position: LatLon) -> None:
        """Action before a marker click: activate trail, anchor overlay at the marker."""
        self.context.selection.set(record=record, source=SelectionSource.MARKER)
        self.context.overlay.show(anchor=(float(position[0]), float(position[1])))

    def before_programmatic_select(self, record: TrailRecord) -> None:
        """Action before an external selection: activate, pan/zoom, anchor at the record."""
        self.context.selection.set(record=record, source=SelectionSource.PROGRAMMATIC)
        self.context.overlay.show(anchor=record.lat_lon)
        self._move_viewport(center=record.lat_lon, zoom=MapConfig.DETAIL_ZOOM)

    # ==========================================================================
    # Initialization
    # ==========================================================================

    def __init__(
        self,
        model: SelectionModel | None = None,
        map_provider: MapProvider | None = None,
        start_value: str | None = None,
    ) -> None:
        """Initialize state machine with model pattern.

        Args:
            model: Shared model (creates new if None)
            map_provider: Map whose viewport follows programmatic selection
            start_value: Optional initial state value (for restoring state)
        """
        # Set before super().__init__ because the initial state hooks run there
        self.map_provider = map_provider
        super().__init__(model=model or SelectionModel(), start_value=start_value)

    @property
    def context(self) -> SelectionModel:
        """Alias for model."""
        return self.model

    # ==========================================================================
    # Viewport + overlay maintenance (not transitions)
    # ==========================================================================

    def attach_map(self, map_provider: MapProvider) -> None:
        """Bind the map whose viewport this machine drives."""
        self.map_provider = map_provider

    def _move_viewport(self, center: LatLon, zoom: float) -> None:
        self.context.viewport.center = center
        self.context.viewport.zoom = zoom
        if self.map_provider is not None:
            self.map_provider.pan_to(center)
            self.map_provider.set_zoom(zoom)

    def reconcile(self, live_markers: Iterable[MapMarker]) -> None:
        """Re-anchor the overlay after the marker set was rebuilt.

        Marker-anchored selections follow the live marker for the active id,
        or lose their anchor when no such marker exists. The state stays
        selected either way. Programmatic selections keep their record anchor.
        """
        if not self.is_selected:
            return
        selection = self.context.selection
        if selection.source == SelectionSource.PROGRAMMATIC and selection.record is not None:
            self.context.overlay.show(anchor=selection.record.lat_lon)
            return

        for marker in live_markers:
            if marker.trail_id == selection.trail_id:
                self.context.overlay.show(anchor=marker.position)
                return

        logger.info(f"Active trail {selection.trail_id} has no live marker; overlay unanchored")
        self.context.overlay.clear_anchor()

    # ==========================================================================
    # Utility Methods
    # ==========================================================================

    def get_state_name(self) -> str:
        return self.current_state.name

    def get_available_actions(self) -> list[str]:
        """Get list of available transition names (for UI display only)."""
        return [t.event for t in self.current_state.transitions]

    def __repr__(self) -> str:
        return f"SelectionStateMachine(state={self.get_state_name()}, model={self.context!r})"

    def try_transition(self, event: str, **kwargs: Any) -> bool:
        """Attempt a transition, returning success/failure.

        Args:
            event: Transition event name
            **kwargs: Arguments for transition

        Returns:
            True if transition succeeded, False otherwise.
        """
        try:
            self.send(event, **kwargs)
            return True
        except TransitionNotAllowed:
            logger.warning(f"Transition '{event}' not allowed from {self.get_state_name()}")
            return False

    @staticmethod
    def create(
        add_ui_listener: bool = True,
        map_provider: MapProvider | None = None,
    ) -> tuple["SelectionStateMachine", SelectionModel]:
        """Factory method to create state machine with model and optional UI listener.

        Args:
            add_ui_listener: If True, adds StreamlitUIListener for st.rerun().
                             Set to False for testing or non-Streamlit usage.
            map_provider: Map whose viewport follows programmatic selection

        Returns:
            Tuple of (SelectionStateMachine, SelectionModel)
        """
        model = SelectionModel()
        sm = SelectionStateMachine(model=model, map_provider=map_provider)
        if add_ui_listener:
            sm.add_listener(StreamlitUIListener())
            logger.info("Created SelectionStateMachine with StreamlitUIListener")
        else:
            logger.info("Created SelectionStateMachine without UI listener")
        return sm, model
