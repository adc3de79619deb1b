"""Dashboard health analysis.

Cross-checks every panel of a dashboard against the dashboard's declared
references and against the objects those references point at, then folds
the findings into a 0-100 score.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .client import SavedObjectSource
from .errors import AnalysisError, KibanaError, ObjectNotFoundError
from .models import (
    BROKEN_REFERENCE,
    CONFIGURATION,
    CRITICAL,
    ERROR,
    HEALTHY,
    PERFORMANCE,
    UNHEALTHY,
    WARNING,
    BatchHealthReport,
    BatchSummary,
    DashboardHealth,
    HealthIssue,
    HealthSummary,
    ObjectKey,
    PanelHealth,
    Reference,
)

logger = logging.getLogger(__name__)

# Grid units (w * h) above which a single panel is considered too heavy.
MAX_PANEL_AREA = 48
MAX_PANEL_COUNT = 20

UNHEALTHY_PANEL_PENALTY = 20
WARNING_PANEL_PENALTY = 5
GLOBAL_ISSUE_PENALTY = 10


@dataclass
class PanelDescriptor:
    """One entry of a dashboard's panel layout."""

    panel_id: str
    ref_name: str
    panel_type: Optional[str]
    title: Optional[str]
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height


def _grid_value(grid: Dict[str, Any], name: str) -> float:
    value = grid.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def parse_panels(raw: Any) -> List[PanelDescriptor]:
    """Decode a ``panelsJSON`` attribute into panel descriptors.

    ``raw`` may be the JSON string Kibana stores or an already decoded list.
    Entries that are not objects are skipped.

    Raises:
        ValueError: ``raw`` is not valid JSON or does not decode to a list
    """
    if raw is None or raw == "":
        return []
    decoded = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(decoded, list):
        raise ValueError("panel layout is not a list")

    panels = []
    for position, entry in enumerate(decoded):
        if not isinstance(entry, dict):
            continue
        embeddable = entry.get("embeddableConfig") or {}
        grid = entry.get("gridData") or {}
        panel_id = entry.get("id") or entry.get("panelIndex") or str(position)
        panels.append(
            PanelDescriptor(
                panel_id=str(panel_id),
                ref_name=str(entry.get("panelRefName") or entry.get("id") or entry.get("panelIndex") or ""),
                panel_type=entry.get("type") or None,
                title=entry.get("title") or (embeddable.get("title") if isinstance(embeddable, dict) else None),
                width=_grid_value(grid, "w") if isinstance(grid, dict) else 0,
                height=_grid_value(grid, "h") if isinstance(grid, dict) else 0,
            )
        )
    return panels


def score_dashboard(unhealthy_panels: int, warning_panels: int, global_issues: int) -> int:
    """Linear penalty score clamped to [0, 100]."""
    score = (
        100
        - unhealthy_panels * UNHEALTHY_PANEL_PENALTY
        - warning_panels * WARNING_PANEL_PENALTY
        - global_issues * GLOBAL_ISSUE_PENALTY
    )
    return max(0, min(100, score))


def overall_status(unhealthy_panels: int, warning_panels: int, global_issues: Sequence[HealthIssue]) -> str:
    if unhealthy_panels > 0 or any(issue.severity == CRITICAL for issue in global_issues):
        return UNHEALTHY
    if warning_panels > 0 or global_issues:
        return WARNING
    return HEALTHY


def build_dashboard_health(
    dashboard_id: str,
    title: str,
    panels: List[PanelHealth],
    global_issues: List[HealthIssue],
) -> DashboardHealth:
    """Aggregate per-panel results and global issues into a DashboardHealth."""
    statuses = [panel.status for panel in panels]
    healthy = statuses.count(HEALTHY)
    warning = statuses.count(WARNING)
    unhealthy = statuses.count(UNHEALTHY)
    total_issues = sum(len(panel.issues) for panel in panels) + len(global_issues)

    return DashboardHealth(
        id=dashboard_id,
        title=title,
        overall_status=overall_status(unhealthy, warning, global_issues),
        overall_score=score_dashboard(unhealthy, warning, len(global_issues)),
        panel_count=len(panels),
        panels=panels,
        global_issues=global_issues,
        summary=HealthSummary(
            healthy_panels=healthy,
            warning_panels=warning,
            unhealthy_panels=unhealthy,
            total_issues=total_issues,
        ),
    )


def summarize_batch(dashboards: Sequence[DashboardHealth]) -> BatchSummary:
    statuses = [dashboard.overall_status for dashboard in dashboards]
    return BatchSummary(
        total_dashboards=len(dashboards),
        healthy=statuses.count(HEALTHY),
        warning=statuses.count(WARNING),
        unhealthy=statuses.count(UNHEALTHY),
        critical_issues=sum(dashboard.critical_issue_count for dashboard in dashboards),
    )


class _ReferenceResolver:
    """Checks referenced objects exist, fetching each one once per analysis."""

    def __init__(self, source: SavedObjectSource, space: Optional[str]):
        self.source = source
        self.space = space
        self._results: Dict[ObjectKey, Optional[KibanaError]] = {}

    def resolve(self, ref: Reference) -> Optional[KibanaError]:
        """Return None if the object exists, else the lookup error."""
        if ref.key not in self._results:
            try:
                self.source.get_object(ref.type, ref.id, space=self.space)
                self._results[ref.key] = None
            except KibanaError as exc:
                logger.warning("Could not resolve %s/%s: %s", ref.type, ref.id, exc)
                self._results[ref.key] = exc
        return self._results[ref.key]


class HealthAnalyzer:
    """Scores dashboards by inspecting their panel-to-object wiring."""

    def __init__(self, source: SavedObjectSource):
        self.source = source

    def analyze_dashboard(
        self,
        dashboard_id: str,
        space: Optional[str] = None,
        check_indices: bool = False,
    ) -> DashboardHealth:
        """Run the per-panel and global checks on one dashboard.

        Args:
            dashboard_id: Dashboard to analyze
            space: Kibana space (default space when omitted)
            check_indices: Also resolve every index-pattern reference (one
                extra request per index pattern)

        Raises:
            AnalysisError: the dashboard itself could not be fetched
        """
        try:
            dashboard = self.source.get_object("dashboard", dashboard_id, space=space)
        except KibanaError as exc:
            raise AnalysisError(f"Health analysis failed: {exc}") from exc

        title = dashboard.title or dashboard_id
        try:
            panels = parse_panels(dashboard.attributes.get("panelsJSON"))
        except ValueError as exc:
            logger.warning("Dashboard %s has an unreadable panel layout: %s", dashboard_id, exc)
            return self._no_panels(dashboard_id, title, f"Dashboard panel layout could not be parsed: {exc}")
        if not panels:
            return self._no_panels(dashboard_id, title, "Dashboard has no panels configured")

        resolver = _ReferenceResolver(self.source, space)
        panel_health = [self._check_panel(panel, dashboard.references, resolver) for panel in panels]

        global_issues: List[HealthIssue] = []
        if len(panels) > MAX_PANEL_COUNT:
            global_issues.append(
                HealthIssue(
                    severity=WARNING,
                    category=PERFORMANCE,
                    message=f"Dashboard contains {len(panels)} panels, which may slow down loading",
                    suggestion="Consider splitting it into several topic dashboards",
                )
            )
        if check_indices:
            global_issues.extend(self._check_index_patterns(dashboard.references, resolver))

        return build_dashboard_health(dashboard_id, title, panel_health, global_issues)

    @staticmethod
    def _no_panels(dashboard_id: str, title: str, message: str) -> DashboardHealth:
        issue = HealthIssue(
            severity=ERROR,
            category=CONFIGURATION,
            message=message,
            suggestion="Add at least one visualization panel",
        )
        return DashboardHealth(
            id=dashboard_id,
            title=title,
            overall_status=UNHEALTHY,
            overall_score=0,
            panel_count=0,
            panels=[],
            global_issues=[issue],
            summary=HealthSummary(total_issues=1),
        )

    def _check_panel(
        self,
        panel: PanelDescriptor,
        references: Sequence[Reference],
        resolver: _ReferenceResolver,
    ) -> PanelHealth:
        issues: List[HealthIssue] = []

        reference = next((ref for ref in references if panel.ref_name and ref.name == panel.ref_name), None)
        if reference is None:
            issues.append(
                HealthIssue(
                    severity=ERROR,
                    category=BROKEN_REFERENCE,
                    message="Panel has no matching reference entry",
                    details={"panel_id": panel.panel_id, "reference_name": panel.ref_name},
                    suggestion="The panel may have been deleted; remove it from the dashboard",
                )
            )
        else:
            error = resolver.resolve(reference)
            if isinstance(error, ObjectNotFoundError):
                issues.append(
                    HealthIssue(
                        severity=CRITICAL,
                        category=BROKEN_REFERENCE,
                        message=f"Referenced {reference.type} object does not exist",
                        details={"reference_id": reference.id, "reference_type": reference.type},
                        suggestion="Restore the deleted object or remove this panel from the dashboard",
                    )
                )
            elif error is not None:
                issues.append(
                    HealthIssue(
                        severity=WARNING,
                        category=BROKEN_REFERENCE,
                        message=f"Referenced {reference.type} object could not be verified",
                        details={"reference_id": reference.id, "reference_type": reference.type, "error": str(error)},
                        suggestion="Check Kibana connectivity and permissions, then re-run the check",
                    )
                )

        if panel.area > MAX_PANEL_AREA:
            issues.append(
                HealthIssue(
                    severity=WARNING,
                    category=PERFORMANCE,
                    message="Panel is large enough to affect performance",
                    details={"width": panel.width, "height": panel.height},
                    suggestion="Consider splitting it into several smaller panels",
                )
            )

        if not panel.panel_type:
            issues.append(
                HealthIssue(
                    severity=ERROR,
                    category=CONFIGURATION,
                    message="Panel has no type",
                    suggestion="Reconfigure the panel",
                )
            )

        return PanelHealth(
            panel_id=panel.panel_id,
            panel_type=panel.panel_type or "unknown",
            title=panel.title,
            issues=issues,
        )

    @staticmethod
    def _check_index_patterns(references: Sequence[Reference], resolver: _ReferenceResolver) -> List[HealthIssue]:
        issues = []
        for ref in references:
            if ref.type != "index-pattern":
                continue
            error = resolver.resolve(ref)
            if isinstance(error, ObjectNotFoundError):
                issues.append(
                    HealthIssue(
                        severity=CRITICAL,
                        category=BROKEN_REFERENCE,
                        message=f"Referenced index pattern does not exist: {ref.id}",
                        details={"reference_id": ref.id},
                        suggestion="Recreate the index pattern or update the dashboard references",
                    )
                )
            elif error is not None:
                issues.append(
                    HealthIssue(
                        severity=WARNING,
                        category=BROKEN_REFERENCE,
                        message=f"Referenced index pattern could not be verified: {ref.id}",
                        details={"reference_id": ref.id, "error": str(error)},
                        suggestion="Check Kibana connectivity and permissions, then re-run the check",
                    )
                )
        return issues

    # ------------------------------------------------------------------
    # Batch scan
    # ------------------------------------------------------------------

    def scan_dashboards(self, space: Optional[str] = None, max_dashboards: int = 50) -> BatchHealthReport:
        """Analyze up to ``max_dashboards`` dashboards of a space, one at a time.

        Index-pattern checks are skipped. A dashboard whose analysis fails is
        logged and left out of the report.

        Raises:
            AnalysisError: the dashboard listing itself failed
        """
        try:
            listed = self.source.find_objects(
                ("dashboard",),
                per_page=max_dashboards,
                fields=("title",),
                space=space,
            )
        except KibanaError as exc:
            raise AnalysisError(f"Batch health analysis failed: {exc}") from exc

        report = BatchHealthReport()
        for dashboard in listed[:max_dashboards]:
            try:
                health = self.analyze_dashboard(dashboard.id, space=space, check_indices=False)
            except Exception as exc:
                logger.warning("Failed to analyze dashboard %s: %s", dashboard.id, exc)
                report.skipped.append(dashboard.id)
                continue
            report.dashboards.append(health)

        report.summary = summarize_batch(report.dashboards)
        return report
