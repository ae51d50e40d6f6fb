from crm_dashboard.constants import INNOVATION_THEMES, PIPELINE_STAGES
from crm_dashboard.data import metrics
from crm_dashboard.data.models import InnovationEngagement, Opportunity
from crm_dashboard.ui.components.charts import engagement_health_chart, pipeline_chart, theme_heatmap


def test_pipeline_chart_keeps_stage_order():
    stages = metrics.pipeline_by_stage([Opportunity(id="1", name="A", stage="Proposal", estimated_value=10)])
    fig = pipeline_chart(stages)

    assert fig.layout.title.text == "Pipeline by Stage"
    assert [trace.name for trace in fig.data] == PIPELINE_STAGES


def test_health_chart_on_empty_data():
    fig = engagement_health_chart(metrics.engagement_health([]))
    assert fig.layout.title.text == "Engagement Health"


def test_heatmap_labels_every_theme():
    heat = metrics.innovation_heat_map(
        [InnovationEngagement(id="1", name="A", innovation_theme=INNOVATION_THEMES[0], budget=1500)]
    )
    fig = theme_heatmap(heat)

    assert list(fig.data[0].x) == INNOVATION_THEMES
    assert fig.data[0].text[0][0] == "1 · $1.5K"
