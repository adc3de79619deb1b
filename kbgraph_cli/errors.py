"""Exception types shared by the client, the analyzers, and the CLI."""

from __future__ import annotations

from typing import Any, Optional


class KibanaError(Exception):
    """A request to the saved-objects API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class ObjectNotFoundError(KibanaError):
    """The requested saved object does not exist (HTTP 404)."""

    def __init__(self, obj_type: str, obj_id: str, details: Any = None):
        super().__init__(f"Saved object {obj_type}/{obj_id} not found", status_code=404, details=details)
        self.obj_type = obj_type
        self.obj_id = obj_id


class ConfigError(ValueError):
    """Kibana connection settings are missing or malformed."""


class AnalysisError(Exception):
    """An analysis could not produce any result."""
