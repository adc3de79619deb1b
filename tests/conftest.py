"""Pytest configuration and fixtures for kbgraph CLI tests."""

import json
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from kbgraph_cli.client import SavedObjectSource
from kbgraph_cli.errors import KibanaError, ObjectNotFoundError
from kbgraph_cli.models import Reference, SavedObject


class FakeSource(SavedObjectSource):
    """In-memory saved-object store that records every call."""

    def __init__(self):
        self.objects: Dict[Tuple[str, str], SavedObject] = {}
        self.get_errors: Dict[Tuple[str, str], Exception] = {}
        self.find_error: Optional[Exception] = None
        self.get_calls: List[Tuple[str, str, Optional[str]]] = []
        self.find_calls: List[dict] = []
        self.closed = False

    def add(self, obj_type: str, obj_id: str, title: Optional[str] = None, references=(), **attributes) -> SavedObject:
        refs = []
        for ref in references:
            if isinstance(ref, Reference):
                refs.append(ref)
            else:
                ref_type, ref_id, *rest = ref
                refs.append(Reference(id=ref_id, type=ref_type, name=rest[0] if rest else ""))
        if title is not None:
            attributes["title"] = title
        obj = SavedObject(id=obj_id, type=obj_type, attributes=attributes, references=refs)
        self.objects[(obj_type, obj_id)] = obj
        return obj

    def fail_get(self, obj_type: str, obj_id: str, error: Optional[Exception] = None) -> None:
        self.get_errors[(obj_type, obj_id)] = error or KibanaError("boom", status_code=500)

    def get_object(self, obj_type: str, obj_id: str, space: Optional[str] = None) -> SavedObject:
        self.get_calls.append((obj_type, obj_id, space))
        key = (obj_type, obj_id)
        if key in self.get_errors:
            raise self.get_errors[key]
        if key not in self.objects:
            raise ObjectNotFoundError(obj_type, obj_id)
        return self.objects[key]

    def find_objects(
        self,
        types: Sequence[str],
        has_reference: Optional[Dict[str, str]] = None,
        per_page: Optional[int] = None,
        fields: Optional[Sequence[str]] = None,
        space: Optional[str] = None,
    ) -> List[SavedObject]:
        self.find_calls.append({
            "types": tuple(types),
            "has_reference": has_reference,
            "per_page": per_page,
            "fields": tuple(fields) if fields else None,
            "space": space,
        })
        if self.find_error is not None:
            raise self.find_error
        matches = [obj for obj in self.objects.values() if obj.type in types]
        if has_reference:
            matches = [
                obj for obj in matches
                if any(r.type == has_reference["type"] and r.id == has_reference["id"] for r in obj.references)
            ]
        if per_page is not None:
            matches = matches[:per_page]
        return matches

    def close(self) -> None:
        self.closed = True

    def gets_of_type(self, obj_type: str) -> List[str]:
        return [obj_id for t, obj_id, _ in self.get_calls if t == obj_type]


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch):
    """Keep tests away from ~/.kbgraph and any KIBANA_* variables of the host."""
    config_file = tmp_path / "kbgraph" / "config.toml"
    monkeypatch.setattr("kbgraph_cli.config_manager.CONFIG_FILE", config_file)
    monkeypatch.setattr("kbgraph_cli.config.KIBANA_URL", "")
    monkeypatch.setattr("kbgraph_cli.config.KIBANA_API_KEY", "")
    monkeypatch.setattr("kbgraph_cli.config.KIBANA_USERNAME", "")
    monkeypatch.setattr("kbgraph_cli.config.KIBANA_PASSWORD", "")
    for name in (
        "KIBANA_URL", "KIBANA_USERNAME", "KIBANA_PASSWORD", "KIBANA_API_KEY",
        "KIBANA_CA_CERT", "KIBANA_TIMEOUT", "KIBANA_MAX_RETRIES", "KIBANA_DEFAULT_SPACE", "KBGRAPH_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    return config_file


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def add_dashboard(source: FakeSource):
    """Add a dashboard whose panels are each wired to a visualization.

    ``panels`` is a list of dicts with optional keys: ``ref`` (reference name,
    default ``panel_<i>``), ``target`` ((type, id) the reference points at, or
    None for no reference entry), ``type`` (panel type, default
    ``visualization``), ``w``/``h`` (grid size, default 8x6, which sits exactly
    on the size limit) and ``create`` (whether the target object exists,
    default True).
    """

    def _add(dashboard_id: str, panels: List[dict], title: Optional[str] = None, extra_refs=()) -> SavedObject:
        layout = []
        references = []
        for index, panel in enumerate(panels):
            ref_name = panel.get("ref", f"panel_{index}")
            target = panel.get("target", ("visualization", f"{dashboard_id}-vis-{index}"))
            entry = {
                "panelIndex": str(index + 1),
                "panelRefName": ref_name,
                "gridData": {"x": 0, "y": 0, "w": panel.get("w", 8), "h": panel.get("h", 6), "i": str(index + 1)},
            }
            if panel.get("type", "visualization") is not None:
                entry["type"] = panel.get("type", "visualization")
            if "title" in panel:
                entry["title"] = panel["title"]
            layout.append(entry)
            if target is not None:
                references.append((target[0], target[1], ref_name))
                if panel.get("create", True):
                    source.add(target[0], target[1], title=f"Vis {target[1]}")
        references.extend(extra_refs)
        return source.add(
            "dashboard",
            dashboard_id,
            title=title or f"Dashboard {dashboard_id}",
            references=references,
            panelsJSON=json.dumps(layout),
        )

    return _add
