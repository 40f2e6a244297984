from ledger.aggregate import compute_dashboard
from ledger.charts import CHART_BUILDERS, dashboard_charts, heatmap_frame


def test_dashboard_charts_are_vega_lite_dicts(sample_rows):
    specs = dashboard_charts(compute_dashboard(sample_rows))
    assert set(specs) == set(CHART_BUILDERS)
    for spec in specs.values():
        assert isinstance(spec, dict)
        assert "$schema" in spec


def test_charts_render_for_empty_payload():
    specs = dashboard_charts(compute_dashboard([]))
    assert set(specs) == set(CHART_BUILDERS)


def test_heatmap_quadrants_derived_at_render_time(sample_rows):
    df = heatmap_frame(compute_dashboard(sample_rows))
    assert list(df["quadrant"]) == ["High loss / low completion", "Well advanced"]
