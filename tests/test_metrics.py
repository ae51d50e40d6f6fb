import pandas as pd

from crm_dashboard.constants import ENGAGEMENT_STATUSES, INNOVATION_THEMES, PIPELINE_STAGES
from crm_dashboard.data import metrics
from crm_dashboard.data.models import Activity, Engagement, InnovationEngagement, Opportunity

NOW = pd.Timestamp("2025-06-15T12:00:00Z")


def opp(i, stage, value=None, weighted=None):
    return Opportunity(id=f"o{i}", name=f"Opp {i}", stage=stage, estimated_value=value, weighted_value=weighted)


def eng(i, status):
    return Engagement(id=f"e{i}", name=f"Eng {i}", status=status)


OPPS = [
    opp(1, "Lead", 100_000, 10_000),
    opp(2, "Proposal", 250_000, 125_000),
    opp(3, "Awarded", 500_000, 500_000),
    opp(4, "Lost", 50_000, None),
    opp(5, "Proposal", None, 40_000),
]
ENGS = [eng(1, "In Progress"), eng(2, "In Progress"), eng(3, "On Hold"), eng(4, "Complete")]
ACTS = [
    Activity(id="a1", date_time="2025-06-14T09:00:00Z", next_action_due="2025-06-20"),
    Activity(id="a2", date_time="2025-06-01T09:00:00Z", next_action_due="2025-06-10"),
    Activity(id="a3", date_time="2025-06-12T09:00:00+00:00", next_action_due="2025-06-16"),
    Activity(id="a4", date_time=None),
]


def test_dashboard_stats():
    stats = metrics.dashboard_stats(OPPS, ENGS, ACTS, now=NOW)

    assert stats.total_pipeline == 900_000
    assert stats.weighted_pipeline == 675_000
    assert stats.active_engagements == 2
    assert stats.at_risk_engagements == 1
    assert stats.open_opportunities == 3
    assert stats.activities_this_week == 2


def test_dashboard_stats_on_empty_collections():
    assert metrics.dashboard_stats([], [], [], now=NOW) == metrics.DashboardStats()


def test_pipeline_by_stage_covers_every_stage_in_order():
    out = metrics.pipeline_by_stage(OPPS)

    assert out["stage"].tolist() == PIPELINE_STAGES
    proposal = out.set_index("stage").loc["Proposal"]
    assert proposal["count"] == 2
    assert proposal["value"] == 250_000
    assert out.set_index("stage").loc["Negotiation", "count"] == 0


def test_engagement_health_flags_on_hold_as_at_risk():
    out = metrics.engagement_health(ENGS).set_index("status")

    assert list(out.index) == ENGAGEMENT_STATUSES
    assert out.loc["In Progress", "count"] == 2
    assert out.loc["On Hold", "at_risk"] == 1
    assert out.loc["In Progress", "at_risk"] == 0
    assert metrics.engagement_health([])["count"].sum() == 0


def test_top_opportunities_are_open_and_sorted_by_weighted_value():
    top = metrics.top_opportunities(OPPS, limit=2)
    assert [o.id for o in top] == ["o2", "o5"]


def test_upcoming_tasks_skip_past_due_and_sort_soonest_first():
    tasks = metrics.upcoming_tasks(ACTS, now=NOW)
    assert [a.id for a in tasks] == ["a3", "a1"]


def _initiative(i, **kwargs):
    return InnovationEngagement(id=f"i{i}", name=f"Init {i}", **kwargs)


INITIATIVES = [
    _initiative(1, innovation_theme=INNOVATION_THEMES[0], lifecycle_stage="Pilot", budget=100.0, estimated_savings=30.0),
    _initiative(2, innovation_theme=INNOVATION_THEMES[0], budget=50.0, funding_source="State grant", existing_tool_owned=True),
    _initiative(3, lifecycle_stage="Scale", budget=70.0, funding_source="Federal", redundant_purchase_risk=True),
    _initiative(4, innovation_theme=INNOVATION_THEMES[2], estimated_savings=5.0),
]


def test_innovation_totals():
    totals = metrics.innovation_totals(INITIATIVES)
    assert totals == metrics.InnovationTotals(spend=150.0, active=2, savings=35.0, funding=120.0)


def test_heat_map_lists_every_theme():
    heat = metrics.innovation_heat_map(INITIATIVES).set_index("theme")

    assert list(heat.index) == INNOVATION_THEMES
    assert heat.loc[INNOVATION_THEMES[0], "count"] == 2
    assert heat.loc[INNOVATION_THEMES[0], "spend"] == 150.0
    assert heat.loc[INNOVATION_THEMES[2], "spend"] == 0.0
    assert heat.loc[INNOVATION_THEMES[1], "count"] == 0


def test_watchlists():
    assert [i.id for i in metrics.cost_avoidance_items(INITIATIVES)] == ["i2", "i3"]
    assert [i.id for i in metrics.funding_items(INITIATIVES)] == ["i2", "i3"]
