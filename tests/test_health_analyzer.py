"""Tests for dashboard health analysis."""

import json

import pytest

from kbgraph_cli.errors import AnalysisError, KibanaError
from kbgraph_cli.health_analyzer import HealthAnalyzer, parse_panels, score_dashboard


class TestParsePanels:
    """Tests for panel layout decoding."""

    def test_json_string(self):
        raw = json.dumps([
            {"panelIndex": "1", "panelRefName": "panel_0", "type": "lens", "gridData": {"w": 24, "h": 15}},
        ])

        panels = parse_panels(raw)

        assert len(panels) == 1
        assert panels[0].ref_name == "panel_0"
        assert panels[0].panel_id == "1"
        assert panels[0].panel_type == "lens"
        assert panels[0].area == 360

    def test_decoded_list_and_fallbacks(self):
        panels = parse_panels([
            {"id": "abc", "embeddableConfig": {"title": "Nested"}},
            "not a panel",
        ])

        assert len(panels) == 1
        assert panels[0].ref_name == "abc"
        assert panels[0].panel_id == "abc"
        assert panels[0].title == "Nested"
        assert panels[0].panel_type is None
        assert panels[0].area == 0

    @pytest.mark.parametrize("raw", [None, "", "[]", []])
    def test_empty_layouts(self, raw):
        assert parse_panels(raw) == []

    @pytest.mark.parametrize("raw", ["{not json", '{"a": 1}'])
    def test_invalid_layouts(self, raw):
        with pytest.raises(ValueError):
            parse_panels(raw)


class TestScore:
    def test_penalties(self):
        assert score_dashboard(0, 0, 0) == 100
        assert score_dashboard(1, 0, 0) == 80
        assert score_dashboard(0, 1, 0) == 95
        assert score_dashboard(0, 0, 1) == 90
        assert score_dashboard(1, 2, 1) == 60

    def test_clamped(self):
        assert score_dashboard(50, 0, 0) == 0
        assert score_dashboard(0, 100, 100) == 0

    def test_monotonic(self):
        scores = [score_dashboard(n, 0, 0) for n in range(10)]
        assert scores == sorted(scores, reverse=True)
        scores = [score_dashboard(1, n, 0) for n in range(30)]
        assert scores == sorted(scores, reverse=True)
        scores = [score_dashboard(0, 1, n) for n in range(15)]
        assert scores == sorted(scores, reverse=True)


class TestAnalyzeDashboard:
    """Tests for HealthAnalyzer.analyze_dashboard."""

    def test_all_panels_healthy(self, source, add_dashboard):
        add_dashboard("d1", [{}, {}, {}], title="Ops")

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        assert health.title == "Ops"
        assert health.overall_status == "healthy"
        assert health.overall_score == 100
        assert health.panel_count == 3
        assert health.summary.healthy_panels == 3
        assert health.summary.total_issues == 0
        assert health.global_issues == []

    def test_panel_missing_reference_entry(self, source, add_dashboard):
        add_dashboard("d1", [{}, {"target": None}, {}])

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        broken = health.panels[1]
        assert broken.status == "unhealthy"
        assert [(i.severity, i.category) for i in broken.issues] == [("error", "broken_reference")]
        assert health.overall_status == "unhealthy"
        assert health.overall_score == 80
        assert health.summary.unhealthy_panels == 1
        assert health.summary.healthy_panels == 2

    def test_dangling_reference_is_critical(self, source, add_dashboard):
        add_dashboard("d1", [{"create": False}])

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        issue = health.panels[0].issues[0]
        assert issue.severity == "critical"
        assert issue.category == "broken_reference"
        assert issue.details["reference_id"] == "d1-vis-0"
        assert health.panels[0].status == "unhealthy"
        assert health.overall_score == 80

    def test_unverifiable_reference_is_warning(self, source, add_dashboard):
        add_dashboard("d1", [{}])
        source.fail_get("visualization", "d1-vis-0", KibanaError("Kibana returned HTTP 500", status_code=500))

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        issue = health.panels[0].issues[0]
        assert (issue.severity, issue.category) == ("warning", "broken_reference")
        assert health.panels[0].status == "warning"
        assert health.overall_status == "warning"
        assert health.overall_score == 95

    def test_oversized_panel(self, source, add_dashboard):
        add_dashboard("d1", [{"w": 10, "h": 5}, {"w": 8, "h": 6}])

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        big, exact = health.panels
        assert [(i.severity, i.category) for i in big.issues] == [("warning", "performance")]
        assert big.issues[0].details == {"width": 10, "height": 5}
        # 48 grid units is still acceptable
        assert exact.issues == []
        assert health.overall_status == "warning"
        assert health.overall_score == 95

    def test_panel_without_type(self, source, add_dashboard):
        add_dashboard("d1", [{"type": None}])

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        panel = health.panels[0]
        assert panel.panel_type == "unknown"
        assert [(i.severity, i.category) for i in panel.issues] == [("error", "configuration")]
        assert panel.status == "unhealthy"

    def test_multiple_issues_on_one_panel(self, source, add_dashboard):
        add_dashboard("d1", [{"target": None, "type": None, "w": 48, "h": 48}])

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        categories = sorted(i.category for i in health.panels[0].issues)
        assert categories == ["broken_reference", "configuration", "performance"]
        assert health.summary.total_issues == 3
        assert health.overall_score == 80

    def test_too_many_panels(self, source, add_dashboard):
        add_dashboard("d1", [{} for _ in range(25)])

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        assert health.summary.healthy_panels == 25
        assert len(health.global_issues) == 1
        assert (health.global_issues[0].severity, health.global_issues[0].category) == ("warning", "performance")
        assert health.overall_score == 90
        assert health.overall_status == "warning"

    def test_twenty_panels_is_fine(self, source, add_dashboard):
        add_dashboard("d1", [{} for _ in range(20)])

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        assert health.global_issues == []
        assert health.overall_status == "healthy"

    @pytest.mark.parametrize("layout", [None, "", "[]"])
    def test_no_panels(self, source, layout):
        attributes = {} if layout is None else {"panelsJSON": layout}
        source.add("dashboard", "empty", title="Empty", **attributes)

        health = HealthAnalyzer(source).analyze_dashboard("empty")

        assert health.overall_score == 0
        assert health.overall_status == "unhealthy"
        assert health.panel_count == 0
        assert health.panels == []
        assert len(health.global_issues) == 1
        assert (health.global_issues[0].severity, health.global_issues[0].category) == ("error", "configuration")
        assert health.summary.total_issues == 1

    def test_unreadable_layout(self, source):
        source.add("dashboard", "bad", panelsJSON="[{broken")

        health = HealthAnalyzer(source).analyze_dashboard("bad")

        assert health.overall_score == 0
        assert health.title == "bad"
        assert "could not be parsed" in health.global_issues[0].message

    def test_missing_dashboard_fails(self, source):
        with pytest.raises(AnalysisError, match="Health analysis failed"):
            HealthAnalyzer(source).analyze_dashboard("ghost")

    def test_shared_reference_fetched_once(self, source, add_dashboard):
        shared = ("lens", "kpi")
        add_dashboard("d1", [{"target": shared}, {"target": shared}, {"target": shared}])
        source.get_calls.clear()

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        assert health.overall_score == 100
        assert source.gets_of_type("lens") == ["kpi"]


class TestIndexPatternCheck:
    """Tests for the opt-in index pattern resolution."""

    def test_disabled_by_default(self, source, add_dashboard):
        add_dashboard("d1", [{}], extra_refs=[("index-pattern", "missing-ip", "kibanaSavedObjectMeta")])

        health = HealthAnalyzer(source).analyze_dashboard("d1")

        assert source.gets_of_type("index-pattern") == []
        assert health.overall_status == "healthy"

    def test_missing_index_pattern(self, source, add_dashboard):
        source.add("index-pattern", "ok-ip")
        add_dashboard(
            "d1",
            [{}],
            extra_refs=[("index-pattern", "missing-ip", "a"), ("index-pattern", "ok-ip", "b")],
        )

        health = HealthAnalyzer(source).analyze_dashboard("d1", check_indices=True)

        assert len(health.global_issues) == 1
        issue = health.global_issues[0]
        assert (issue.severity, issue.category) == ("critical", "broken_reference")
        assert "missing-ip" in issue.message
        assert health.overall_status == "unhealthy"
        assert health.overall_score == 90
        assert sorted(source.gets_of_type("index-pattern")) == ["missing-ip", "ok-ip"]

    def test_unverifiable_index_pattern(self, source, add_dashboard):
        add_dashboard("d1", [{}], extra_refs=[("index-pattern", "flaky-ip", "meta")])
        source.fail_get("index-pattern", "flaky-ip", KibanaError("Kibana returned HTTP 500", status_code=500))

        health = HealthAnalyzer(source).analyze_dashboard("d1", check_indices=True)

        assert len(health.global_issues) == 1
        issue = health.global_issues[0]
        assert (issue.severity, issue.category) == ("warning", "broken_reference")
        assert "flaky-ip" in issue.message
        assert health.overall_status == "warning"
        assert health.overall_score == 90


class TestScanDashboards:
    """Tests for HealthAnalyzer.scan_dashboards."""

    def test_one_failure_is_skipped(self, source, add_dashboard):
        for i in range(10):
            add_dashboard(f"d{i}", [{}])
        source.fail_get("dashboard", "d4")

        report = HealthAnalyzer(source).scan_dashboards()

        assert len(report.dashboards) == 9
        assert report.summary.total_dashboards == 9
        assert report.summary.healthy == 9
        assert report.skipped == ["d4"]
        assert "d4" not in [d.id for d in report.dashboards]

    def test_unexpected_error_is_skipped(self, source, add_dashboard):
        add_dashboard("d0", [{}])
        add_dashboard("d1", [{}])
        source.fail_get("dashboard", "d1", RuntimeError("unexpected"))

        report = HealthAnalyzer(source).scan_dashboards()

        assert [d.id for d in report.dashboards] == ["d0"]
        assert report.skipped == ["d1"]

    def test_summary_counts(self, source, add_dashboard):
        add_dashboard("healthy", [{}])
        add_dashboard("warn", [{"w": 12, "h": 12}])
        add_dashboard("dangling", [{"create": False}, {"create": False}])
        source.add("dashboard", "empty")

        report = HealthAnalyzer(source).scan_dashboards()

        summary = report.summary
        assert summary.total_dashboards == 4
        assert (summary.healthy, summary.warning, summary.unhealthy) == (1, 1, 2)
        assert summary.critical_issues == 2

    def test_listing_request(self, source, add_dashboard):
        for i in range(5):
            add_dashboard(f"d{i}", [{}])
        source.add("index-pattern", "ip")

        report = HealthAnalyzer(source).scan_dashboards(space="ops", max_dashboards=3)

        assert report.summary.total_dashboards == 3
        listing = source.find_calls[0]
        assert listing["types"] == ("dashboard",)
        assert listing["per_page"] == 3
        assert listing["fields"] == ("title",)
        assert listing["space"] == "ops"
        assert source.gets_of_type("index-pattern") == []

    def test_listing_failure_fails_scan(self, source):
        source.find_error = KibanaError("Kibana returned HTTP 401", status_code=401)

        with pytest.raises(AnalysisError, match="Batch health analysis failed"):
            HealthAnalyzer(source).scan_dashboards()
