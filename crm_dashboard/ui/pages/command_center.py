from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

import pandas as pd
import streamlit as st

from crm_dashboard.data import metrics
from crm_dashboard.data.loader import fetch_rows
from crm_dashboard.data.models import Activity, Engagement, Opportunity
from crm_dashboard.ui.components.charts import engagement_health_chart, pipeline_chart, render_plotly
from crm_dashboard.ui.components.data_table import Column, DataTable, render_data_table
from crm_dashboard.ui.components.formatting import (
    format_compact_currency,
    format_currency,
    format_date_relative,
    format_datetime,
)
from crm_dashboard.ui.components.kpi import KpiCard, render_kpi_cards
from crm_dashboard.ui.pages.context import PageContext, get_view_model
from crm_dashboard.ui.view_model import ViewModel

RECENT_ACTIVITY_LIMIT = 5


@dataclass
class CommandCenterData:
    stats: metrics.DashboardStats = field(default_factory=metrics.DashboardStats)
    pipeline: pd.DataFrame = field(default_factory=lambda: metrics.pipeline_by_stage([]))
    health: pd.DataFrame = field(default_factory=lambda: metrics.engagement_health([]))
    top_opportunities: List[Opportunity] = field(default_factory=list)
    upcoming_tasks: List[Activity] = field(default_factory=list)
    recent_activities: List[Activity] = field(default_factory=list)


def combine(results: Dict[str, Any]) -> CommandCenterData:
    opportunities = results["opportunities"]
    engagements = results["engagements"]
    activities = results["activities"]
    return CommandCenterData(
        stats=metrics.dashboard_stats(opportunities, engagements, activities),
        pipeline=metrics.pipeline_by_stage(opportunities),
        health=metrics.engagement_health(engagements),
        top_opportunities=metrics.top_opportunities(opportunities),
        upcoming_tasks=metrics.upcoming_tasks(activities),
        recent_activities=list(activities[:RECENT_ACTIVITY_LIMIT]),
    )


def build_view_model(context: PageContext) -> ViewModel[CommandCenterData]:
    client = context.client
    return ViewModel(
        "command center",
        fetchers={
            "opportunities": lambda: fetch_rows(
                client, "opportunities", columns="*, accounts(name)", model=Opportunity
            ),
            "engagements": lambda: fetch_rows(client, "engagements", model=Engagement),
            "activities": lambda: fetch_rows(
                client, "activities", columns="*, accounts(name)", order_by="date_time", model=Activity
            ),
        },
        combine=combine,
        empty=CommandCenterData,
        max_workers=context.settings.fetch_workers,
    )


def kpi_cards(stats: metrics.DashboardStats) -> List[KpiCard]:
    return [
        KpiCard(
            "Total Pipeline",
            format_compact_currency(stats.total_pipeline),
            description=f"{stats.open_opportunities} open opportunities",
        ),
        KpiCard(
            "Weighted Pipeline",
            format_compact_currency(stats.weighted_pipeline),
            description="Probability-adjusted value",
        ),
        KpiCard(
            "Active Engagements",
            str(stats.active_engagements),
            change=f"{stats.at_risk_engagements} at risk" if stats.at_risk_engagements else "On track",
            change_type="negative" if stats.at_risk_engagements else "neutral",
        ),
        KpiCard(
            "Activities This Week",
            str(stats.activities_this_week),
            description="Meetings, calls, emails",
        ),
    ]


def _account(row: Any) -> str:
    return row.accounts.name if row.accounts and row.accounts.name else "No Account"


TOP_OPPORTUNITY_COLUMNS: List[Column[Opportunity]] = [
    Column("Opportunity", "name"),
    Column("Account", "account_id", cell=_account),
    Column("Stage", "stage"),
    Column("Weighted", "weighted_value", cell=lambda o: format_currency(o.weighted_value)),
    Column("Next Step", "next_step"),
]

TASK_COLUMNS: List[Column[Activity]] = [
    Column("Next Action", "next_action"),
    Column("Account", "account_id", cell=_account),
    Column("Due", "next_action_due", cell=lambda a: format_date_relative(a.next_action_due)),
]

ACTIVITY_COLUMNS: List[Column[Activity]] = [
    Column("Type", "activity_type"),
    Column("Account", "account_id", cell=_account),
    Column("Summary", "summary"),
    Column("Outcome", "outcome"),
    Column("When", "date_time", cell=lambda a: format_datetime(a.date_time)),
]


def render(context: PageContext) -> None:
    vm = get_view_model("command_center", lambda: build_view_model(context))
    with st.spinner("Loading..."):
        vm.ensure_loaded()
    data = vm.data

    st.subheader("Your business portfolio at a glance")
    st.caption(
        f"You have {data.stats.open_opportunities} open opportunities and "
        f"{data.stats.active_engagements} active engagements."
    )
    render_kpi_cards(kpi_cards(data.stats), columns=4)

    left, right = st.columns(2)
    with left:
        render_plotly(pipeline_chart(data.pipeline))
    with right:
        render_plotly(engagement_health_chart(data.health))

    st.markdown("#### Top Opportunities")
    render_data_table(
        DataTable(TOP_OPPORTUNITY_COLUMNS, data.top_opportunities, row_type=Opportunity),
        key="top-opportunities-table",
    )

    tasks_col, activity_col = st.columns(2)
    with tasks_col:
        st.markdown("#### Upcoming Tasks")
        render_data_table(
            DataTable(TASK_COLUMNS, data.upcoming_tasks, row_type=Activity, placeholder="No upcoming tasks."),
            key="upcoming-tasks-table",
        )
    with activity_col:
        st.markdown("#### Recent Activity")
        render_data_table(
            DataTable(ACTIVITY_COLUMNS, data.recent_activities, row_type=Activity),
            key="recent-activity-table",
        )
