"""Markdown renderers for analysis results."""

from __future__ import annotations

from typing import Dict, FrozenSet, List, Tuple, Union

from .models import (
    CRITICAL,
    ERROR,
    HEALTHY,
    INFO,
    RISK_CRITICAL,
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    UNHEALTHY,
    WARNING,
    BatchHealthReport,
    DashboardHealth,
    DependencyNode,
    DependencyTree,
    ImpactAnalysis,
    ObjectKey,
    Reference,
)

RISK_ICONS = {RISK_LOW: "✅", RISK_MEDIUM: "⚠️", RISK_HIGH: "🔥", RISK_CRITICAL: "🚨"}
STATUS_ICONS = {HEALTHY: "✅", WARNING: "⚠️", UNHEALTHY: "🔴"}
SEVERITY_ICONS = {INFO: "ℹ️", WARNING: "⚠️", ERROR: "❌", CRITICAL: "🚨"}


# ── Dependency tree ──────────────────────────────────────────


def format_dependency_tree(tree: DependencyTree) -> str:
    summary = tree.summary
    lines = [
        "# Dependency Analysis",
        "",
        "## 📊 Statistics Summary",
        f"- Total Objects: {summary.total_objects}",
        f"- Max Dependency Depth: {summary.max_depth}",
        f"- Orphan Objects: {summary.orphan_count}",
        "",
    ]

    if summary.top_referenced:
        lines.append("## 🔥 Most Referenced Objects")
        for index, item in enumerate(summary.top_referenced, 1):
            lines.append(f"{index}. **{item.title or item.id}** ({item.type}) - Referenced {item.count} times")
        lines.append("")

    if summary.orphans:
        lines.append("## 🔍 Orphan Objects (Not Referenced)")
        for item in summary.orphans:
            lines.append(f"- {item.title or item.id} ({item.type})")
        if summary.orphan_count > len(summary.orphans):
            lines.append(f"- ... and {summary.orphan_count - len(summary.orphans)} more")
        lines.append("")

    lines.append("## 🌳 Dependency Tree")
    lines.extend(_tree_lines(tree.root, tree.all_nodes))
    return "\n".join(lines) + "\n"


def _tree_lines(root: DependencyNode, all_nodes: Dict[ObjectKey, DependencyNode]) -> List[str]:
    lines: List[str] = []
    # (node or unfetched reference, lead, indent, keys on the path above it)
    stack: List[Tuple[Union[DependencyNode, Reference], str, str, FrozenSet[ObjectKey]]] = [
        (root, "", "", frozenset()),
    ]
    while stack:
        item, lead, indent, path = stack.pop()
        if isinstance(item, Reference):
            lines.append(f"{lead}📄 {item.name or item.id} ({item.type})")
            continue

        suffix = " ⚠️ (unavailable)" if item.error else ""
        lines.append(f"{lead}📦 **{item.label}** ({item.type}){suffix}")
        if item.key in path:
            lines.append(f"{indent}  ↻ (Circular Reference)")
            continue

        path = path | {item.key}
        children = []
        for index, ref in enumerate(item.references):
            last = index == len(item.references) - 1
            branch = indent + ("  └─ " if last else "  ├─ ")
            child_indent = indent + ("     " if last else "  │  ")
            child = all_nodes.get(ref.key)
            children.append((ref if child is None else child, branch, child_indent, path))
        stack.extend(reversed(children))
    return lines


# ── Impact ───────────────────────────────────────────────────


def format_impact_analysis(analysis: ImpactAnalysis) -> str:
    target = analysis.target
    lines = [
        "# Impact Analysis",
        "",
        "## 🎯 Target Object",
        f"- **Name**: {target.title or target.id}",
        f"- **Type**: {target.type}",
        f"- **ID**: {target.id}",
        "",
        "## 📈 Dependency Statistics",
        f"- Direct Dependencies: {analysis.direct_dependencies} objects",
        f"- Indirect Dependencies: {analysis.indirect_dependencies} objects",
        f"- Affected Dashboards: {len(analysis.affected_dashboards)}",
        "",
        f"## {RISK_ICONS.get(analysis.risk_level, '')} Risk Assessment: {analysis.risk_level}",
        analysis.recommendation,
        "",
    ]

    if analysis.affected_dashboards:
        lines.append("## 📊 Affected Dashboard List")
        for index, dashboard in enumerate(analysis.affected_dashboards, 1):
            lines.append(f"{index}. {dashboard.name} (ID: {dashboard.id})")

    return "\n".join(lines) + "\n"


# ── Health ───────────────────────────────────────────────────


def format_health_report(health: DashboardHealth) -> str:
    summary = health.summary
    lines = [
        "# Dashboard Health Report",
        "",
        f"## {STATUS_ICONS[health.overall_status]} Overall Status: {health.overall_status.upper()}",
        f"- **Dashboard**: {health.title}",
        f"- **Health Score**: {health.overall_score}/100",
        f"- **Panels**: {health.panel_count}",
        "",
        "## 📊 Panel Statistics",
        f"- ✅ Healthy: {summary.healthy_panels}",
        f"- ⚠️ Warning: {summary.warning_panels}",
        f"- 🔴 Unhealthy: {summary.unhealthy_panels}",
        f"- 🐛 Total Issues: {summary.total_issues}",
        "",
    ]

    if health.global_issues:
        lines.append("## 🚨 Global Issues")
        for index, issue in enumerate(health.global_issues, 1):
            icon = SEVERITY_ICONS.get(issue.severity, "")
            lines.append(f"{index}. {icon} **[{issue.severity.upper()}]** {issue.message}")
            if issue.suggestion:
                lines.append(f"   💡 {issue.suggestion}")
        lines.append("")

    unhealthy = [panel for panel in health.panels if panel.status == UNHEALTHY]
    if unhealthy:
        lines.append("## 🔴 Unhealthy Panels")
        for panel in unhealthy:
            lines.append(f"### Panel: {panel.title or panel.panel_id} ({panel.panel_type})")
            for issue in panel.issues:
                lines.append(f"- {SEVERITY_ICONS.get(issue.severity, '')} {issue.message}")
                if issue.suggestion:
                    lines.append(f"  💡 {issue.suggestion}")
            lines.append("")

    warnings = [panel for panel in health.panels if panel.status == WARNING]
    if warnings:
        lines.append("## ⚠️ Warning Panels (first 5)")
        for panel in warnings[:5]:
            lines.append(f"- **{panel.title or panel.panel_id}**: {panel.issues[0].message}")

    return "\n".join(lines) + "\n"


def _percent(part: int, total: int) -> int:
    return round(part / total * 100) if total else 0


def format_batch_report(report: BatchHealthReport) -> str:
    summary = report.summary
    total = summary.total_dashboards
    lines = [
        "# Dashboard Batch Health Report",
        "",
        "## 📊 Overview",
        f"- Dashboards Scanned: {total}",
        f"- ✅ Healthy: {summary.healthy} ({_percent(summary.healthy, total)}%)",
        f"- ⚠️ Warning: {summary.warning} ({_percent(summary.warning, total)}%)",
        f"- 🔴 Unhealthy: {summary.unhealthy} ({_percent(summary.unhealthy, total)}%)",
        f"- 🚨 Critical Issues: {summary.critical_issues}",
        "",
    ]

    ranked = sorted(report.dashboards, key=lambda d: d.overall_score)

    if summary.unhealthy:
        lines.append("## 🔴 Dashboards Needing Urgent Fixes")
        for index, dashboard in enumerate([d for d in ranked if d.overall_status == UNHEALTHY][:10], 1):
            lines.append(f"{index}. **{dashboard.title}** (score: {dashboard.overall_score}/100)")
            lines.append(f"   - Unhealthy panels: {dashboard.summary.unhealthy_panels}/{dashboard.panel_count}")
            lines.append(f"   - Issues: {dashboard.summary.total_issues}")
        lines.append("")

    if summary.warning:
        lines.append("## ⚠️ Dashboards Worth Optimizing (first 5)")
        for index, dashboard in enumerate([d for d in ranked if d.overall_status == WARNING][:5], 1):
            lines.append(f"{index}. **{dashboard.title}** (score: {dashboard.overall_score}/100)")
        lines.append("")

    if report.skipped:
        lines.append("## ⏭️ Skipped (analysis failed)")
        for dashboard_id in report.skipped:
            lines.append(f"- {dashboard_id}")

    return "\n".join(lines) + "\n"
