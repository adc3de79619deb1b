"""Core data models shared by the dependency and health analyzers."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

# Issue severities, from least to most severe.
INFO = "info"
WARNING = "warning"
ERROR = "error"
CRITICAL = "critical"

# Issue categories
BROKEN_REFERENCE = "broken_reference"
PERFORMANCE = "performance"
CONFIGURATION = "configuration"
DATA_QUALITY = "data_quality"

# Panel / dashboard status
HEALTHY = "healthy"
UNHEALTHY = "unhealthy"
# WARNING doubles as a status value.

# Impact risk levels
RISK_LOW = "Low"
RISK_MEDIUM = "Medium"
RISK_HIGH = "High"
RISK_CRITICAL = "Critical"


class ObjectKey(NamedTuple):
    """Identity of a saved object inside one analysis."""

    type: str
    id: str


@dataclass(frozen=True)
class Reference:
    """A named edge declared by a saved object."""

    id: str
    type: str
    name: str = ""

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.type, self.id)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Reference":
        return cls(
            id=str(payload.get("id", "")),
            type=str(payload.get("type", "")),
            name=str(payload.get("name") or ""),
        )


@dataclass
class SavedObject:
    """A saved object as returned by the saved-objects API."""

    id: str
    type: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    references: List[Reference] = field(default_factory=list)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.type, self.id)

    @property
    def title(self) -> Optional[str]:
        return self.attributes.get("title") or self.attributes.get("name") or None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SavedObject":
        return cls(
            id=str(payload.get("id", "")),
            type=str(payload.get("type", "")),
            attributes=dict(payload.get("attributes") or {}),
            references=[Reference.from_dict(ref) for ref in payload.get("references") or []],
        )


# ── Dependency graph ─────────────────────────────────────────


@dataclass
class DependencyNode:
    id: str
    type: str
    depth: int
    title: Optional[str] = None
    references: List[Reference] = field(default_factory=list)
    referenced_by: List[Reference] = field(default_factory=list)
    # Set when the object could not be fetched and this node is a stub.
    error: Optional[str] = None

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.type, self.id)

    @property
    def label(self) -> str:
        return self.title or self.id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReferenceCount:
    id: str
    type: str
    count: int
    title: Optional[str] = None


@dataclass
class ObjectSummary:
    id: str
    type: str
    title: Optional[str] = None


@dataclass
class TreeSummary:
    total_objects: int
    max_depth: int
    top_referenced: List[ReferenceCount] = field(default_factory=list)
    orphans: List[ObjectSummary] = field(default_factory=list)
    orphan_count: int = 0


@dataclass
class DependencyTree:
    root: DependencyNode
    all_nodes: Dict[ObjectKey, DependencyNode]
    summary: TreeSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root.to_dict(),
            "all_nodes": {f"{key.type}:{key.id}": node.to_dict() for key, node in self.all_nodes.items()},
            "summary": asdict(self.summary),
        }


@dataclass
class ImpactAnalysis:
    target: ObjectSummary
    direct_dependencies: int
    indirect_dependencies: int
    affected_dashboards: List[Reference]
    risk_level: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ── Dashboard health ─────────────────────────────────────────


@dataclass(frozen=True)
class HealthIssue:
    severity: str
    category: str
    message: str
    details: Optional[Dict[str, Any]] = None
    suggestion: Optional[str] = None

    @property
    def is_failure(self) -> bool:
        return self.severity in (ERROR, CRITICAL)


@dataclass
class PanelHealth:
    panel_id: str
    panel_type: str
    title: Optional[str] = None
    issues: List[HealthIssue] = field(default_factory=list)

    @property
    def status(self) -> str:
        if any(issue.is_failure for issue in self.issues):
            return UNHEALTHY
        if self.issues:
            return WARNING
        return HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status
        return payload


@dataclass
class HealthSummary:
    healthy_panels: int = 0
    warning_panels: int = 0
    unhealthy_panels: int = 0
    total_issues: int = 0


@dataclass
class DashboardHealth:
    id: str
    title: str
    overall_status: str
    overall_score: int
    panel_count: int
    panels: List[PanelHealth] = field(default_factory=list)
    global_issues: List[HealthIssue] = field(default_factory=list)
    summary: HealthSummary = field(default_factory=HealthSummary)

    @property
    def critical_issue_count(self) -> int:
        issues = list(self.global_issues)
        for panel in self.panels:
            issues.extend(panel.issues)
        return sum(1 for issue in issues if issue.severity == CRITICAL)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "overall_status": self.overall_status,
            "overall_score": self.overall_score,
            "panel_count": self.panel_count,
            "panels": [panel.to_dict() for panel in self.panels],
            "global_issues": [asdict(issue) for issue in self.global_issues],
            "summary": asdict(self.summary),
        }


@dataclass
class BatchSummary:
    total_dashboards: int = 0
    healthy: int = 0
    warning: int = 0
    unhealthy: int = 0
    critical_issues: int = 0


@dataclass
class BatchHealthReport:
    dashboards: List[DashboardHealth] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)
    # Ids of dashboards whose analysis failed; not counted in the summary.
    skipped: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dashboards": [dashboard.to_dict() for dashboard in self.dashboards],
            "summary": asdict(self.summary),
            "skipped": list(self.skipped),
        }
