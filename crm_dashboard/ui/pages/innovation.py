"""
Executive view of innovation spend, funding, and cost avoidance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

import pandas as pd
import streamlit as st

from crm_dashboard.data import metrics
from crm_dashboard.data.loader import fetch_rows
from crm_dashboard.data.models import InnovationEngagement
from crm_dashboard.ui.components.badges import badge
from crm_dashboard.ui.components.charts import render_plotly, theme_heatmap
from crm_dashboard.ui.components.formatting import (
    format_compact_currency,
    format_currency,
    format_date_relative,
    format_percent,
)
from crm_dashboard.ui.components.kpi import KpiCard, render_kpi_cards
from crm_dashboard.ui.pages.context import PageContext, get_view_model
from crm_dashboard.ui.view_model import ViewModel

PROJECTION = (
    "id, name, innovation_theme, lifecycle_stage, budget, estimated_savings, funding_source, "
    "funding_stage, grant_deadline, grant_probability_pct, existing_tool_owned, "
    "redundant_purchase_risk, annual_license_cost"
)


@dataclass
class InnovationData:
    totals: metrics.InnovationTotals = field(default_factory=metrics.InnovationTotals)
    heat: pd.DataFrame = field(default_factory=lambda: metrics.innovation_heat_map([]))
    cost_avoidance: List[InnovationEngagement] = field(default_factory=list)
    funding: List[InnovationEngagement] = field(default_factory=list)


def combine(results: Dict[str, Any]) -> InnovationData:
    engagements = results["engagements"]
    return InnovationData(
        totals=metrics.innovation_totals(engagements),
        heat=metrics.innovation_heat_map(engagements),
        cost_avoidance=metrics.cost_avoidance_items(engagements),
        funding=metrics.funding_items(engagements),
    )


def build_view_model(context: PageContext) -> ViewModel[InnovationData]:
    client = context.client
    return ViewModel(
        "innovation portfolio",
        fetchers={
            "engagements": lambda: fetch_rows(
                client, "engagements", columns=PROJECTION, model=InnovationEngagement
            )
        },
        combine=combine,
        empty=InnovationData,
        max_workers=context.settings.fetch_workers,
    )


def kpi_cards(totals: metrics.InnovationTotals) -> List[KpiCard]:
    return [
        KpiCard("Total Innovation Spend", format_compact_currency(totals.spend)),
        KpiCard("Active Initiatives", str(totals.active)),
        KpiCard("Estimated Cost Avoidance", format_compact_currency(totals.savings)),
        KpiCard("External Funding Leveraged", format_compact_currency(totals.funding)),
    ]


def _render_cost_avoidance(items: List[InnovationEngagement]) -> None:
    st.markdown("#### Cost Avoidance Watchlist")
    if not items:
        st.caption("No flagged initiatives yet.")
        return
    for item in items:
        with st.container(border=True):
            flags = []
            if item.existing_tool_owned:
                flags.append(badge("Owned Tool", tone="orange"))
            if item.redundant_purchase_risk:
                flags.append(badge("Duplicate Risk", tone="red"))
            st.markdown(f"**{item.name}** " + " ".join(flags))
            st.caption(
                f"License Cost: {format_currency(item.annual_license_cost)} · "
                f"Est. Savings: {format_currency(item.estimated_savings)}"
            )


def _render_funding(items: List[InnovationEngagement]) -> None:
    st.markdown("#### Grant and Funding Tracker")
    if not items:
        st.caption("No funding-linked initiatives yet.")
        return
    for item in items:
        with st.container(border=True):
            st.markdown(f"**{item.name}** {badge(item.funding_stage, 'Unstaged', tone='gray')}")
            st.caption(
                f"Source: {item.funding_source or 'N/A'} · "
                f"Deadline: {format_date_relative(item.grant_deadline)} · "
                f"Probability: {format_percent(item.grant_probability_pct)}"
            )


def render(context: PageContext) -> None:
    st.subheader("Innovation Portfolio")
    st.caption("Executive view of innovation, funding, and cost avoidance.")

    vm = get_view_model("innovation", lambda: build_view_model(context))
    with st.spinner("Loading..."):
        vm.ensure_loaded()
    data = vm.data

    render_kpi_cards(kpi_cards(data.totals), columns=4)
    render_plotly(theme_heatmap(data.heat))

    left, right = st.columns(2)
    with left:
        _render_cost_avoidance(data.cost_avoidance)
    with right:
        _render_funding(data.funding)
