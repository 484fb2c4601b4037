"""User interface components for the trail explorer.

File Structure:
- filter_panel.py: Sidebar filters and sort controls
- pages.py: Home, map, list, details and analysis page renderers + navigation
- charts.py: Plotly statistics charts
- pydeck_click_handler.py: st_deckgl rendering with click detection

Core Components:
- state_machine.py: SelectionStateMachine (2 states) + SelectionModel
- marker_manager.py: MarkerClusterManager (markers, clusterer, click wiring)
- map_provider.py: MapProvider contract, GridClusterer, DeckMapProvider
- page_manager.py: ResultPageManager (criteria, sort, paging)
- validators.py: Filter input validation with Optional[Message] returns
"""

from trail_explorer.ui.charts import StatisticsChart
from trail_explorer.ui.map_provider import (
    Cluster,
    DeckMapProvider,
    GridClusterer,
    MapMarker,
    MapProvider,
    MarkerClusterer,
    MarkerStyle,
)
from trail_explorer.ui.marker_manager import MarkerClusterManager, MarkerState, marker_color
from trail_explorer.ui.page_manager import ResultPageManager
from trail_explorer.ui.state_machine import (
    SelectionModel,
    SelectionStateMachine,
    StreamlitUIListener,
)

__all__ = [
    "SelectionStateMachine",
    "SelectionModel",
    "StreamlitUIListener",
    "MarkerClusterManager",
    "MarkerState",
    "marker_color",
    "MapProvider",
    "MapMarker",
    "MarkerStyle",
    "MarkerClusterer",
    "GridClusterer",
    "Cluster",
    "DeckMapProvider",
    "ResultPageManager",
    "StatisticsChart",
]
