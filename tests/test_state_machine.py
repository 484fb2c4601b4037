"""Selection State Machine - transition matrix and model side effects.

Truth table (2 states × 3 events):
    click_marker:        idle → selected, selected → selected
    programmatic_select: idle → selected, selected → selected
    dismiss:             selected → idle, idle → (not allowed)
"""

import pytest
from statemachine.exceptions import TransitionNotAllowed

from trail_explorer.constants import MapConfig
from trail_explorer.model.trail_record import TrailRecord
from trail_explorer.ui.map_provider import MapMarker, MarkerStyle
from trail_explorer.ui.state_machine import (
    RERUN_REQUEST_KEY,
    SelectionModel,
    SelectionSource,
    SelectionStateMachine,
    StreamlitUIListener,
)


class TransitionRecorder:
    """Listener collecting (event, source, target) ids."""

    def __init__(self) -> None:
        self.transitions: list[tuple[str, str, str]] = []

    def after_transition(self, event: str, source, target) -> None:
        self.transitions.append((event, source.id, target.id))


def _click(sm: SelectionStateMachine, record: TrailRecord) -> None:
    sm.click_marker(record=record, position=record.lat_lon)


# =============================================================================
# TRUTH TABLE
# =============================================================================

VALID_TRANSITIONS: list[tuple[str, str, str]] = [
    ("click_marker", "idle", "selected"),
    ("click_marker", "selected", "selected"),
    ("programmatic_select", "idle", "selected"),
    ("programmatic_select", "selected", "selected"),
    ("dismiss", "selected", "idle"),
]

INVALID_TRANSITIONS: list[tuple[str, str]] = [
    ("dismiss", "idle"),
]


class TestTransitionMatrix:
    """Every event from every state."""

    @staticmethod
    def _bring_to(sm: SelectionStateMachine, state: str, record: TrailRecord) -> None:
        if state == "selected":
            _click(sm, record)
        assert sm.current_state.id == state

    @staticmethod
    def _kwargs(event: str, record: TrailRecord) -> dict:
        if event == "click_marker":
            return {"record": record, "position": record.lat_lon}
        if event == "programmatic_select":
            return {"record": record}
        return {}

    @pytest.mark.parametrize("event,source,target", VALID_TRANSITIONS)
    def test_valid_transitions(self, sm_and_model, records, event: str, source: str, target: str) -> None:
        sm, _ = sm_and_model
        self._bring_to(sm, source, records[0])
        sm.send(event, **self._kwargs(event, records[1]))
        assert sm.current_state.id == target

    @pytest.mark.parametrize("event,source", INVALID_TRANSITIONS)
    def test_invalid_transitions_raise(self, sm_and_model, records, event: str, source: str) -> None:
        sm, _ = sm_and_model
        self._bring_to(sm, source, records[0])
        with pytest.raises(TransitionNotAllowed):
            sm.send(event, **self._kwargs(event, records[1]))

    @pytest.mark.parametrize("event,source", INVALID_TRANSITIONS)
    def test_try_transition_returns_false(self, sm_and_model, records, event: str, source: str) -> None:
        sm, _ = sm_and_model
        self._bring_to(sm, source, records[0])
        assert sm.try_transition(event) is False
        assert sm.current_state.id == source

    def test_available_actions(self, sm_and_model, records) -> None:
        sm, _ = sm_and_model
        assert set(sm.get_available_actions()) == {"click_marker", "programmatic_select"}
        _click(sm, records[0])
        assert set(sm.get_available_actions()) == {"click_marker", "programmatic_select", "dismiss"}


class TestMarkerSelection:
    """click_marker side effects."""

    def test_click_sets_selection_and_anchor(self, sm_and_model, records) -> None:
        sm, model = sm_and_model
        record = records[0]
        sm.click_marker(record=record, position=(37.0, -119.0))
        assert sm.is_selected
        assert model.active_trail_id == record.id
        assert model.selection.source == SelectionSource.MARKER
        assert model.overlay.visible
        assert model.overlay.anchor == (37.0, -119.0)

    def test_click_leaves_viewport(self, sm_and_model, fake_provider, records) -> None:
        sm, model = sm_and_model
        _click(sm, records[0])
        assert model.viewport.zoom == MapConfig.OVERVIEW_ZOOM
        assert fake_provider.zoom == 6

    def test_a_then_b_never_passes_through_idle(self, sm_and_model, records) -> None:
        """Selected(A) → Selected(B) directly."""
        sm, model = sm_and_model
        recorder = TransitionRecorder()
        sm.add_listener(recorder)
        a, b = records[0], records[1]

        _click(sm, a)
        _click(sm, b)

        assert recorder.transitions == [
            ("click_marker", "idle", "selected"),
            ("click_marker", "selected", "selected"),
        ]
        assert model.active_trail_id == b.id
        assert model.overlay.anchor == b.lat_lon

    def test_click_same_marker_keeps_selection(self, sm_and_model, records) -> None:
        sm, model = sm_and_model
        _click(sm, records[0])
        _click(sm, records[0])
        assert sm.is_selected
        assert model.active_trail_id == records[0].id


class TestProgrammaticSelection:
    """programmatic_select pans and zooms to the record."""

    def test_anchor_and_zoom(self, sm_and_model, fake_provider, record_t123) -> None:
        sm, model = sm_and_model
        sm.programmatic_select(record=record_t123)
        assert model.overlay.anchor == (37.5, -119.0)
        assert model.viewport.zoom == MapConfig.DETAIL_ZOOM
        assert model.viewport.center == (37.5, -119.0)
        assert model.selection.source == SelectionSource.PROGRAMMATIC

    def test_provider_follows_viewport(self, sm_and_model, fake_provider, record_t123) -> None:
        sm, _ = sm_and_model
        sm.programmatic_select(record=record_t123)
        assert fake_provider.center == (37.5, -119.0)
        assert fake_provider.zoom == MapConfig.DETAIL_ZOOM

    def test_without_provider(self, record_t123) -> None:
        sm = SelectionStateMachine()
        sm.programmatic_select(record=record_t123)
        assert sm.context.viewport.zoom == MapConfig.DETAIL_ZOOM


class TestDismiss:
    """dismiss clears selection, hides overlay, keeps viewport."""

    def test_dismiss_clears(self, sm_and_model, record_t123) -> None:
        sm, model = sm_and_model
        sm.programmatic_select(record=record_t123)
        sm.dismiss()
        assert sm.is_idle
        assert model.active_trail_id is None
        assert model.selection.record is None
        assert not model.overlay.visible
        assert model.overlay.anchor is None
        assert model.viewport.zoom == MapConfig.DETAIL_ZOOM


class TestReconcile:
    """Overlay anchoring after the marker set is rebuilt."""

    @staticmethod
    def _marker(record: TrailRecord, position=None) -> MapMarker:
        return MapMarker(trail_id=record.id, position=position or record.lat_lon, title=record.name, style=MarkerStyle())

    def test_idle_is_untouched(self, sm_and_model, records) -> None:
        sm, model = sm_and_model
        sm.reconcile([self._marker(records[0])])
        assert sm.is_idle
        assert not model.overlay.visible

    def test_follows_live_marker(self, sm_and_model, records) -> None:
        sm, model = sm_and_model
        _click(sm, records[0])
        sm.reconcile([self._marker(records[1]), self._marker(records[0], position=(1.0, 2.0))])
        assert model.overlay.anchor == (1.0, 2.0)

    def test_missing_marker_clears_anchor_keeps_selection(self, sm_and_model, records) -> None:
        """Filtered-out trail stays selected; overlay renders unanchored."""
        sm, model = sm_and_model
        _click(sm, records[0])
        sm.reconcile([self._marker(records[1])])
        assert sm.is_selected
        assert model.active_trail_id == records[0].id
        assert model.overlay.visible
        assert model.overlay.anchor is None

    def test_programmatic_keeps_record_anchor(self, sm_and_model, record_t123) -> None:
        sm, model = sm_and_model
        sm.programmatic_select(record=record_t123)
        sm.reconcile([])
        assert model.overlay.anchor == (37.5, -119.0)


class TestStreamlitUIListener:
    """Rerun requests for user-driven events only."""

    @pytest.fixture
    def session_state(self, monkeypatch: pytest.MonkeyPatch) -> dict:
        from trail_explorer.ui import state_machine

        state: dict = {}
        monkeypatch.setattr(state_machine.st, "session_state", state)
        return state

    def test_click_requests_rerun(self, session_state: dict, records) -> None:
        sm = SelectionStateMachine(model=SelectionModel())
        sm.add_listener(StreamlitUIListener())
        _click(sm, records[0])
        assert session_state.get(RERUN_REQUEST_KEY) is True

    def test_programmatic_does_not_request_rerun(self, session_state: dict, record_t123) -> None:
        sm = SelectionStateMachine(model=SelectionModel())
        sm.add_listener(StreamlitUIListener())
        sm.programmatic_select(record=record_t123)
        assert RERUN_REQUEST_KEY not in session_state
