"""
Plotly chart factory functions with consistent styling for the dashboard.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from crm_dashboard.ui.components.formatting import format_compact_currency


DEFAULT_TEMPLATE = "plotly_white"
DEFAULT_COLOR_SEQUENCE = [
    "#16a34a",  # brand green
    "#2563eb",  # planned / discovery
    "#7c3aed",  # negotiation / in progress
    "#64748b",  # on hold
    "#dc2626",  # lost / at risk
    "#0d9488",
]

STAGE_COLORS: Dict[str, str] = {
    "Lead": "#64748b",
    "Discovery": "#3b82f6",
    "Proposal": "#6366f1",
    "Negotiation": "#a855f7",
    "Awarded": "#22c55e",
    "Lost": "#ef4444",
}

HEALTH_COLORS: Dict[str, str] = {
    "Planned": "#2563eb",
    "In Progress": "#d97706",
    "On Hold": "#64748b",
    "Complete": "#16a34a",
}


def _configure_layout(
    fig: go.Figure,
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    yaxis_tickformat: Optional[str] = None,
    legend_title: Optional[str] = None,
) -> go.Figure:
    fig.update_layout(
        template=DEFAULT_TEMPLATE,
        colorway=DEFAULT_COLOR_SEQUENCE,
        title=title,
        legend_title=legend_title,
        margin=dict(l=40, r=20, t=60, b=40),
    )
    if yaxis_title:
        fig.update_yaxes(title=yaxis_title)
    if yaxis_tickformat:
        fig.update_yaxes(tickformat=yaxis_tickformat)
    fig.update_xaxes(showgrid=False)
    fig.update_yaxes(showgrid=True, zeroline=True)
    return fig


def render_plotly(fig: go.Figure) -> None:
    st.plotly_chart(fig, width="stretch", config={"displayModeBar": False})


def bar_chart(
    df: pd.DataFrame,
    x: str,
    y: str,
    color: Optional[str] = None,
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    yaxis_tickformat: Optional[str] = None,
    category_orders: Optional[Dict[str, List[str]]] = None,
    color_discrete_map: Optional[Dict[str, str]] = None,
    text: Optional[str] = None,
    hover_data: Optional[List[str]] = None,
) -> go.Figure:
    fig = px.bar(
        df,
        x=x,
        y=y,
        color=color,
        category_orders=category_orders,
        color_discrete_map=color_discrete_map,
        text=text,
        hover_data=hover_data,
    )
    fig = _configure_layout(fig, title, yaxis_title, yaxis_tickformat)
    if text:
        fig.update_traces(textposition="outside", cliponaxis=False)
    fig.update_layout(showlegend=False)
    return fig


def pipeline_chart(stages: pd.DataFrame) -> go.Figure:
    """Pipeline value per stage, labelled with the opportunity count."""
    working = stages.copy()
    working["label"] = working["count"].astype(str) + " opps"
    return bar_chart(
        working,
        x="stage",
        y="value",
        color="stage",
        title="Pipeline by Stage",
        yaxis_title="Estimated Value (USD)",
        yaxis_tickformat="$,.2s",
        category_orders={"stage": working["stage"].tolist()},
        color_discrete_map=STAGE_COLORS,
        text="label",
    )


def engagement_health_chart(health: pd.DataFrame) -> go.Figure:
    return bar_chart(
        health,
        x="status",
        y="count",
        color="status",
        title="Engagement Health",
        yaxis_title="Engagements",
        category_orders={"status": health["status"].tolist()},
        color_discrete_map=HEALTH_COLORS,
        text="count",
        hover_data=["at_risk"],
    )


def theme_heatmap(heat: pd.DataFrame, color_scale: str = "Greens") -> go.Figure:
    """One-row heat map of initiative counts per innovation theme."""
    matrix = [heat["count"].tolist()]
    labels = [
        [f"{count} · {format_compact_currency(spend)}" for count, spend in zip(heat["count"], heat["spend"])]
    ]
    fig = px.imshow(
        matrix,
        x=heat["theme"].tolist(),
        y=["Initiatives"],
        color_continuous_scale=color_scale,
        aspect="auto",
    )
    fig = _configure_layout(fig, "Innovation Heat Map")
    fig.update_traces(text=labels, texttemplate="%{text}", textfont_size=13)
    fig.update_coloraxes(showscale=False)
    fig.update_yaxes(showgrid=False, zeroline=False)
    return fig
