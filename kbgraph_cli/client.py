"""Saved-object sources: the read-only Kibana API surface the analyzers use."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter

from .config_manager import validate_url
from .errors import KibanaError, ObjectNotFoundError
from .models import SavedObject

logger = logging.getLogger(__name__)


class SavedObjectSource:
    """Base class for anything that can serve saved objects.

    The analyzers only ever call these two methods and never write.
    """

    def get_object(self, obj_type: str, obj_id: str, space: Optional[str] = None) -> SavedObject:
        """Fetch a single object by exact type and id.

        Raises:
            ObjectNotFoundError: the object does not exist
            KibanaError: any other failure
        """
        raise NotImplementedError

    def find_objects(
        self,
        types: Sequence[str],
        has_reference: Optional[Dict[str, str]] = None,
        per_page: Optional[int] = None,
        fields: Optional[Sequence[str]] = None,
        space: Optional[str] = None,
    ) -> List[SavedObject]:
        """List objects of ``types``, optionally only those referencing ``has_reference``."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any held connections."""


class KibanaClient(SavedObjectSource):
    """Saved-objects client for the Kibana HTTP API."""

    def __init__(
        self,
        url: str,
        username: str = "",
        password: str = "",
        api_key: str = "",
        ca_cert: str = "",
        timeout: float = 30.0,
        max_retries: int = 3,
        default_space: str = "default",
        session: Optional[requests.Session] = None,
    ):
        self.base_url = validate_url(url)
        self.timeout = timeout
        self.default_space = default_space or "default"

        self.session = session or requests.Session()
        self.session.headers.update({
            "kbn-xsrf": "true",
            "Content-Type": "application/json",
        })
        if api_key:
            self.session.headers["Authorization"] = f"ApiKey {api_key}"
        elif username:
            self.session.auth = (username, password)
        if ca_cert:
            self.session.verify = ca_cert

        adapter = HTTPAdapter(max_retries=max_retries)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def close(self) -> None:
        self.session.close()

    def _space_prefix(self, space: Optional[str]) -> str:
        space = space or self.default_space
        if not space or space == "default":
            return ""
        return f"/s/{quote(space, safe='')}"

    def _request(self, method: str, path: str, space: Optional[str] = None, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self.base_url}{self._space_prefix(space)}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise KibanaError(f"Request to {url} failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                details = response.json()
            except ValueError:
                details = response.text
            raise KibanaError(
                f"Kibana returned HTTP {response.status_code} for {method} {path}",
                status_code=response.status_code,
                details=details,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise KibanaError(f"Kibana returned invalid JSON for {method} {path}") from exc

    def get_object(self, obj_type: str, obj_id: str, space: Optional[str] = None) -> SavedObject:
        # Custom ids may contain '/', '#' or '?'.
        path = f"/api/saved_objects/{quote(obj_type, safe='')}/{quote(obj_id, safe='')}"
        try:
            payload = self._request("GET", path, space=space)
        except KibanaError as exc:
            if exc.status_code == 404:
                raise ObjectNotFoundError(obj_type, obj_id, details=exc.details) from exc
            raise
        return SavedObject.from_dict(payload)

    def find_objects(
        self,
        types: Sequence[str],
        has_reference: Optional[Dict[str, str]] = None,
        per_page: Optional[int] = None,
        fields: Optional[Sequence[str]] = None,
        space: Optional[str] = None,
    ) -> List[SavedObject]:
        params: List[tuple] = [("type", t) for t in types]
        if has_reference:
            params.append(("has_reference", json.dumps({"type": has_reference["type"], "id": has_reference["id"]})))
        if per_page is not None:
            params.append(("per_page", per_page))
        for name in fields or []:
            params.append(("fields", name))

        payload = self._request("GET", "/api/saved_objects/_find", space=space, params=params)
        return [SavedObject.from_dict(item) for item in payload.get("saved_objects") or []]


def client_from_config(**overrides: Any) -> KibanaClient:
    """Build a :class:`KibanaClient` from loaded config, with per-call overrides."""
    from . import config

    settings = {
        "url": config.KIBANA_URL,
        "username": config.KIBANA_USERNAME,
        "password": config.KIBANA_PASSWORD,
        "api_key": config.KIBANA_API_KEY,
        "ca_cert": config.KIBANA_CA_CERT,
        "timeout": config.KIBANA_TIMEOUT,
        "max_retries": config.KIBANA_MAX_RETRIES,
        "default_space": config.DEFAULT_SPACE,
    }
    settings.update({key: value for key, value in overrides.items() if value not in (None, "")})
    return KibanaClient(**settings)
