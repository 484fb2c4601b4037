"""StatisticsChart - Plotly charts for the analysis page.

Renders the aggregate figures from TrailRepository.statistics():
- Difficulty distribution (bar, difficulty colors)
- Trail type share (donut)
- Length bucket distribution (bar)
- Rating histogram (0.5 bins)
- Top areas by trail count (horizontal bar)
- Length vs elevation gain and rating vs review count (scatter)

Empty inputs produce an empty figure with a "No data" annotation.
"""

import logging

import plotly.graph_objects as go

from trail_explorer.constants import ChartConfig, DifficultyLabels, StyleConfig
from trail_explorer.core.trail_repository import Distribution
from trail_explorer.model.trail_record import DifficultyCategory

logger = logging.getLogger(__name__)

GRID_COLOR = "rgba(200, 200, 200, 0.3)"
NEUTRAL_COLOR = "#607D8B"


class StatisticsChart:
    """Builds Plotly figures for trail statistics.

    Example:
        chart = StatisticsChart()
        fig = chart.render_difficulty(stats.difficulty)
        st.plotly_chart(fig)
    """

    def __init__(
        self,
        width: int = ChartConfig.DEFAULT_WIDTH,
        height: int = ChartConfig.DEFAULT_HEIGHT,
    ) -> None:
        """Initialize chart renderer.

        Args:
            width: Chart width in pixels
            height: Chart height in pixels
        """
        self.width = width
        self.height = height

    def _layout(
        self, fig: go.Figure, title: str, x_title: str = "", y_title: str = "", height: int | None = None
    ) -> go.Figure:
        fig.update_layout(
            title=dict(text=title, x=0.5),
            xaxis=dict(title=x_title, showgrid=True, gridcolor=GRID_COLOR),
            yaxis=dict(title=y_title, showgrid=True, gridcolor=GRID_COLOR),
            showlegend=False,
            width=self.width,
            height=height or self.height,
            margin=dict(l=50, r=30, t=50, b=50),
            plot_bgcolor="white",
        )
        return fig

    def _empty(self, title: str) -> go.Figure:
        fig = go.Figure()
        fig.add_annotation(text="No data", x=0.5, y=0.5, xref="paper", yref="paper", showarrow=False)
        return self._layout(fig=fig, title=title)

    # =========================================================================
    # DISTRIBUTIONS
    # =========================================================================

    def render_difficulty(self, distribution: Distribution) -> go.Figure:
        """Trail count per difficulty, easy → very hard, in marker colors."""
        title = "Trails by Difficulty"
        if not distribution.labels:
            return self._empty(title)

        names = []
        colors = []
        for label in distribution.labels:
            category = DifficultyCategory.from_label(label)
            names.append(category.display_name if category else label)
            colors.append(StyleConfig.DIFFICULTY_COLORS.get(label, StyleConfig.FALLBACK_COLOR))

        fig = go.Figure(
            go.Bar(
                x=names,
                y=distribution.counts,
                marker_color=colors,
                hovertemplate="%{x}: %{y:,} trails<extra></extra>",
            )
        )
        return self._layout(fig=fig, title=title, y_title="Trails")

    def render_trail_type(self, distribution: Distribution) -> go.Figure:
        """Share of loop / out & back / point to point trails."""
        title = "Trails by Type"
        if not distribution.labels:
            return self._empty(title)

        fig = go.Figure(
            go.Pie(
                labels=distribution.labels,
                values=distribution.counts,
                hole=0.4,
                hovertemplate="%{label}: %{value:,} (%{percent})<extra></extra>",
            )
        )
        fig.update_layout(
            title=dict(text=title, x=0.5),
            width=self.width,
            height=self.height,
            margin=dict(l=30, r=30, t=50, b=30),
        )
        return fig

    def render_length(self, distribution: Distribution) -> go.Figure:
        title = "Trails by Length"
        if not distribution.labels:
            return self._empty(title)
        fig = go.Figure(go.Bar(x=distribution.labels, y=distribution.counts, marker_color=NEUTRAL_COLOR))
        return self._layout(fig=fig, title=title, y_title="Trails")

    def render_rating(self, distribution: Distribution) -> go.Figure:
        """Histogram of rated trails in 0.5-star bins."""
        title = "Rating Distribution"
        if not distribution.labels:
            return self._empty(title)
        fig = go.Figure(
            go.Bar(
                x=distribution.labels,
                y=distribution.counts,
                marker_color=StyleConfig.DIFFICULTY_COLORS[DifficultyLabels.HARD],
                hovertemplate="★ %{x}: %{y:,} trails<extra></extra>",
            )
        )
        return self._layout(fig=fig, title=title, x_title="Rating", y_title="Trails")

    def render_top_areas(self, distribution: Distribution) -> go.Figure:
        """Areas with the most trails, largest on top."""
        title = "Top Areas"
        if not distribution.labels:
            return self._empty(title)
        fig = go.Figure(
            go.Bar(
                x=list(reversed(distribution.counts)),
                y=list(reversed(distribution.labels)),
                orientation="h",
                marker_color=NEUTRAL_COLOR,
            )
        )
        return self._layout(fig=fig, title=title, x_title="Trails")

    # =========================================================================
    # SCATTER SAMPLES
    # =========================================================================

    def render_length_vs_elevation(self, samples: list[tuple[float, float, int | None]]) -> go.Figure:
        """Distance vs elevation gain, colored by difficulty code."""
        title = "Length vs Elevation Gain"
        if not samples:
            return self._empty(title)

        colors = []
        for _, _, code in samples:
            category = DifficultyCategory.from_code(code)
            colors.append(StyleConfig.DIFFICULTY_COLORS[category.value] if category else StyleConfig.FALLBACK_COLOR)

        fig = go.Figure(
            go.Scattergl(
                x=[s[0] for s in samples],
                y=[s[1] for s in samples],
                mode="markers",
                marker=dict(color=colors, size=5, opacity=0.6),
                hovertemplate="%{x:.1f} mi<br>%{y:,.0f} ft<extra></extra>",
            )
        )
        return self._layout(
            fig=fig,
            title=title,
            x_title="Distance (mi)",
            y_title="Elevation gain (ft)",
            height=ChartConfig.SCATTER_HEIGHT,
        )

    def render_rating_vs_reviews(self, samples: list[tuple[int, float]]) -> go.Figure:
        title = "Rating vs Review Count"
        if not samples:
            return self._empty(title)
        fig = go.Figure(
            go.Scattergl(
                x=[s[0] for s in samples],
                y=[s[1] for s in samples],
                mode="markers",
                marker=dict(color=NEUTRAL_COLOR, size=5, opacity=0.5),
                hovertemplate="%{x:,} reviews<br>★ %{y:.1f}<extra></extra>",
            )
        )
        return self._layout(
            fig=fig,
            title=title,
            x_title="Reviews",
            y_title="Rating",
            height=ChartConfig.SCATTER_HEIGHT,
        )
