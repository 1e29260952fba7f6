"""
Plotly figures for the dashboard tabs, built from process_data() output.
"""
from typing import Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from flowdash import config

CHART_HEIGHT = 320
CHART_MARGIN = dict(l=40, r=20, t=50, b=40)


def _layout(fig: go.Figure, title: str) -> go.Figure:
    fig.update_layout(
        title=title,
        height=CHART_HEIGHT,
        margin=CHART_MARGIN,
        template="plotly_white",
        legend=dict(orientation="h", yanchor="top", y=-0.1),
    )
    return fig


def _empty(title: str) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(text="No data", showarrow=False, font=dict(size=14, color="#64748b"))
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    return _layout(fig, title)


def donut(rows: list, value: str, title: str) -> go.Figure:
    if not rows:
        return _empty(title)
    fig = px.pie(pd.DataFrame(rows), names="name", values=value, hole=0.4,
                 color_discrete_sequence=config.CHART_COLORS)
    fig.update_traces(textinfo="percent+label", marker=dict(line=dict(color="#fff", width=2)))
    return _layout(fig, title)


def bar(rows: list, value: str, title: str, limit: Optional[int] = None, horizontal: bool = False) -> go.Figure:
    if not rows:
        return _empty(title)
    df = pd.DataFrame(rows[:limit] if limit else rows)
    if horizontal:
        fig = px.bar(df, x=value, y="name", orientation="h", color="name",
                     color_discrete_sequence=config.CHART_COLORS)
        fig.update_yaxes(autorange="reversed", title=None)
    else:
        fig = px.bar(df, x="name", y=value, color="name",
                     color_discrete_sequence=config.CHART_COLORS)
        fig.update_xaxes(tickangle=-30, title=None)
    fig.update_layout(showlegend=False)
    return _layout(fig, title)


# chart id -> figure builder
CHARTS = {
    "channels": lambda d: donut(d["channels"], "value", "Sales Channel Distribution"),
    "customer-types": lambda d: bar(d["customer_types"], "value", "Top Customer Types", limit=6),
    "segments": lambda d: donut(d["segments"], "value", "Segment Distribution"),
    "visitor-segments": lambda d: bar(d["visitor_segments"], "visitors", "Visitors by Segment"),
    "top-destinations": lambda d: bar(d["top_destinations"], "visitors", "Top Destinations", horizontal=True),
    "visitors-by-type": lambda d: donut(d["visitors_by_type"], "visitors", "Visitors by Customer Type"),
}


def build_figure(chart: str, data: dict) -> go.Figure:
    try:
        builder = CHARTS[chart]
    except KeyError:
        raise KeyError(f"unknown chart {chart!r}") from None
    return builder(data)
