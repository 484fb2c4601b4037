"""Pydeck click handling using streamlit-deckgl.

st_deckgl returns the full deck.gl onClick event, including clicks on empty
map space. Picked object properties are spread into the event dict (there is
no "object" key), so trail and cluster clicks are recognised by the "type"
field our layers put into their data.
"""

import logging
from dataclasses import dataclass
from typing import Any

import pydeck as pdk
import streamlit as st
from streamlit_deckgl import st_deckgl  # type: ignore[import-untyped]

from trail_explorer.constants import MapConfig
from trail_explorer.ui.map_provider import TYPE_CLUSTER, TYPE_TRAIL

logger = logging.getLogger(__name__)


@dataclass
class MapClickResult:
    """Result of one map click.

    Attributes:
        object_type: TYPE_TRAIL, TYPE_CLUSTER, or None for empty space / no click
        object_id: Trail id or cluster id
        coordinate: (lat, lon) of the click, if reported
    """

    object_type: str | None
    object_id: str | None
    coordinate: tuple[float, float] | None

    @property
    def is_trail_click(self) -> bool:
        return self.object_type == TYPE_TRAIL and self.object_id is not None

    @property
    def is_cluster_click(self) -> bool:
        return self.object_type == TYPE_CLUSTER and self.object_id is not None

    @staticmethod
    def empty() -> "MapClickResult":
        """Return empty result (no click detected)."""
        return MapClickResult(object_type=None, object_id=None, coordinate=None)


def parse_click_event(event: Any) -> MapClickResult:
    """Turn an st_deckgl event dict into a MapClickResult.

    Event structure:
    - Empty space: {coordinate: [lon, lat], eventType: "click"}
    - Object: {type: "trail", id: "...", position: [...], coordinate: [lon, lat], eventType: "click"}
    """
    if not event or not isinstance(event, dict):
        return MapClickResult.empty()

    coordinate = None
    coord = event.get("coordinate")
    if isinstance(coord, (list, tuple)) and len(coord) >= 2:
        # deck.gl reports [lon, lat]
        coordinate = (float(coord[1]), float(coord[0]))

    object_type = event.get("type")
    object_id = event.get("id")
    if object_type in (TYPE_TRAIL, TYPE_CLUSTER) and object_id is not None:
        logger.debug(f"Object click detected: type={object_type}, id={object_id}")
        return MapClickResult(object_type=object_type, object_id=str(object_id), coordinate=coordinate)

    if coordinate is None:
        return MapClickResult.empty()
    return MapClickResult(object_type=None, object_id=None, coordinate=coordinate)


def _get_click_id(result: MapClickResult) -> str:
    """Generate unique ID for click deduplication."""
    parts = []
    if result.object_type and result.object_id:
        parts.append(f"{result.object_type}_{result.object_id}")
    if result.coordinate:
        # Round coordinates for dedup tolerance
        parts.append(f"coord_{result.coordinate[0]:.5f}_{result.coordinate[1]:.5f}")
    return "_".join(parts)


def render_pydeck_map(deck: pdk.Deck, key: str, height: int = MapConfig.MAP_HEIGHT_PX) -> MapClickResult:
    """Render the map and return the click that triggered this run, if any.

    The last event is kept by the component across reruns, so an event equal
    to the previous one is reported as no click.

    Args:
        deck: Configured pydeck.Deck object
        key: Unique key for this component instance
        height: Height in pixels

    Returns:
        MapClickResult for a new click, else MapClickResult.empty().
    """
    last_click_key = f"_deckgl_last_click_{key}"
    if last_click_key not in st.session_state:
        st.session_state[last_click_key] = None

    # events=['click'] is required for click detection
    event = st_deckgl(deck, key=key, height=height, events=["click"])
    result = parse_click_event(event)
    if result.object_type is None and result.coordinate is None:
        return MapClickResult.empty()

    click_id = _get_click_id(result)
    if click_id == st.session_state.get(last_click_key):
        return MapClickResult.empty()
    st.session_state[last_click_key] = click_id

    logger.debug(f"Click detected: type={result.object_type}, id={result.object_id}")
    return result
