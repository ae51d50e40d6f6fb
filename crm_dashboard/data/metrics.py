"""
Derived metrics behind the dashboard widgets (KPI cards, pipeline chart,
engagement health, innovation heat map, watchlists).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import pandas as pd
from pydantic import BaseModel

from crm_dashboard.constants import (
    ACTIVE_STATUS,
    AT_RISK_STATUS,
    CLOSED_STAGES,
    ENGAGEMENT_STATUSES,
    INNOVATION_THEMES,
    PIPELINE_STAGES,
)
from crm_dashboard.data.models import Activity, Engagement, InnovationEngagement, Opportunity


@dataclass(frozen=True)
class DashboardStats:
    total_pipeline: float = 0.0
    weighted_pipeline: float = 0.0
    active_engagements: int = 0
    at_risk_engagements: int = 0
    open_opportunities: int = 0
    activities_this_week: int = 0


@dataclass(frozen=True)
class InnovationTotals:
    spend: float = 0.0
    active: int = 0
    savings: float = 0.0
    funding: float = 0.0


def to_frame(rows: Sequence[Any], columns: Sequence[str]) -> pd.DataFrame:
    """Build a DataFrame with at least ``columns`` from records or mappings."""
    records = [row.model_dump() if isinstance(row, BaseModel) else dict(row) for row in rows]
    df = pd.DataFrame.from_records(records) if records else pd.DataFrame()
    for column in columns:
        if column not in df.columns:
            df[column] = None
    return df


def safe_sum(series: pd.Series) -> float:
    cleaned = pd.to_numeric(series, errors="coerce").dropna()
    if cleaned.empty:
        return 0.0
    return float(cleaned.sum())


def _now(now: Optional[pd.Timestamp]) -> pd.Timestamp:
    if now is None:
        return pd.Timestamp.now(tz="UTC")
    ts = pd.Timestamp(now)
    return ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")


def _open_mask(df: pd.DataFrame) -> pd.Series:
    return ~df["stage"].isin(CLOSED_STAGES)


def dashboard_stats(
    opportunities: Sequence[Opportunity],
    engagements: Sequence[Engagement],
    activities: Sequence[Activity],
    now: Optional[pd.Timestamp] = None,
) -> DashboardStats:
    opps = to_frame(opportunities, ["stage", "estimated_value", "weighted_value"])
    engs = to_frame(engagements, ["status"])
    acts = to_frame(activities, ["date_time"])

    week_ago = _now(now) - pd.Timedelta(days=7)
    activity_times = pd.to_datetime(acts["date_time"], errors="coerce", utc=True, format="ISO8601")

    return DashboardStats(
        total_pipeline=safe_sum(opps["estimated_value"]),
        weighted_pipeline=safe_sum(opps["weighted_value"]),
        active_engagements=int((engs["status"] == ACTIVE_STATUS).sum()),
        at_risk_engagements=int((engs["status"] == AT_RISK_STATUS).sum()),
        open_opportunities=int(_open_mask(opps).sum()),
        activities_this_week=int((activity_times >= week_ago).sum()),
    )


def pipeline_by_stage(opportunities: Sequence[Opportunity]) -> pd.DataFrame:
    opps = to_frame(opportunities, ["stage", "estimated_value"])
    opps["estimated_value"] = pd.to_numeric(opps["estimated_value"], errors="coerce").fillna(0.0)
    grouped = opps.groupby("stage")["estimated_value"].agg(["size", "sum"])
    out = grouped.reindex(PIPELINE_STAGES, fill_value=0).reset_index()
    out.columns = ["stage", "count", "value"]
    out["count"] = out["count"].astype(int)
    out["value"] = out["value"].astype(float)
    return out


def engagement_health(engagements: Sequence[Engagement]) -> pd.DataFrame:
    engs = to_frame(engagements, ["status"])
    counts = engs["status"].value_counts().reindex(ENGAGEMENT_STATUSES, fill_value=0)
    out = counts.rename_axis("status").reset_index(name="count")
    out["count"] = out["count"].astype(int)
    out["at_risk"] = out["count"].where(out["status"] == AT_RISK_STATUS, 0)
    return out


def top_opportunities(opportunities: Sequence[Opportunity], limit: int = 6) -> List[Opportunity]:
    open_opps = [opp for opp in opportunities if opp.stage not in CLOSED_STAGES]
    return sorted(open_opps, key=lambda opp: opp.weighted_value or 0, reverse=True)[:limit]


def upcoming_tasks(
    activities: Sequence[Activity],
    now: Optional[pd.Timestamp] = None,
    limit: int = 5,
) -> List[Activity]:
    current = _now(now)
    dated = []
    for activity in activities:
        due = pd.to_datetime(activity.next_action_due, errors="coerce", utc=True)
        if pd.isna(due) or due < current:
            continue
        dated.append((due, activity))
    dated.sort(key=lambda pair: pair[0])
    return [activity for _, activity in dated[:limit]]


def innovation_totals(engagements: Sequence[InnovationEngagement]) -> InnovationTotals:
    df = to_frame(
        engagements,
        ["innovation_theme", "lifecycle_stage", "budget", "estimated_savings", "funding_source"],
    )
    budget = pd.to_numeric(df["budget"], errors="coerce").fillna(0.0)
    themed = df["innovation_theme"].fillna("").astype(str) != ""
    staged = df["lifecycle_stage"].fillna("").astype(str) != ""
    funded = df["funding_source"].fillna("").astype(str) != ""
    return InnovationTotals(
        spend=float(budget[themed].sum()),
        active=int(staged.sum()),
        savings=safe_sum(df["estimated_savings"]),
        funding=float(budget[funded].sum()),
    )


def innovation_heat_map(
    engagements: Sequence[InnovationEngagement],
    themes: Sequence[str] = INNOVATION_THEMES,
) -> pd.DataFrame:
    df = to_frame(engagements, ["innovation_theme", "budget"])
    df["budget"] = pd.to_numeric(df["budget"], errors="coerce").fillna(0.0)
    grouped = df.groupby("innovation_theme")["budget"].agg(["size", "sum"])
    out = grouped.reindex(list(themes), fill_value=0).reset_index()
    out.columns = ["theme", "count", "spend"]
    out["count"] = out["count"].astype(int)
    out["spend"] = out["spend"].astype(float)
    return out


def cost_avoidance_items(engagements: Sequence[InnovationEngagement]) -> List[InnovationEngagement]:
    return [e for e in engagements if e.redundant_purchase_risk or e.existing_tool_owned]


def funding_items(engagements: Sequence[InnovationEngagement]) -> List[InnovationEngagement]:
    return [e for e in engagements if e.funding_source]
