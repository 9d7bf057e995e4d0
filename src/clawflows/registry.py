# registry.py
from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urljoin


class RegistryError(Exception):
    """Raised when registry requests fail."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class RegistryClient:
    """HTTP client for the automation registry (index, definitions, metadata)."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        """
        Initialize registry client.

        Args:
            base_url: Base URL of the registry (e.g., "https://clawflows.com")
            timeout: Socket timeout in seconds for each request
        """
        # Ensure base_url doesn't end with /
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._index: Optional[Dict[str, Any]] = None

    def _get(self, path: str) -> str:
        """
        GET a registry path and return the body as text.

        Raises:
            RegistryError: On HTTP errors (status attached) or network failures
        """
        url = urljoin(self.base_url + "/", path.lstrip("/"))
        req = urllib.request.Request(url, headers={"Accept": "application/json, text/yaml, */*"}, method="GET")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                return response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            raise RegistryError(f"Registry request failed: {e.code} {e.reason}", status=e.code)
        except urllib.error.URLError as e:
            raise RegistryError(f"Cannot reach registry at {self.base_url}: {e.reason}")

    def _get_json(self, path: str) -> Any:
        body = self._get(path)
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise RegistryError(f"Invalid JSON response from {path}: {e}")

    def fetch_index(self, refresh: bool = False) -> Dict[str, Any]:
        """Fetch /index.json (cached on this client unless refresh=True)."""
        if self._index is not None and not refresh:
            return self._index
        data = self._get_json("/index.json")
        if not isinstance(data, dict):
            raise RegistryError("Registry index must be a JSON object")
        self._index = data
        return data

    def fetch_automation(self, name: str) -> str:
        """Fetch the raw automation YAML for `name`."""
        try:
            return self._get(f"/automations/{quote(name)}/automation.yaml")
        except RegistryError as e:
            if e.status == 404:
                raise RegistryError(f'Automation "{name}" not found in registry.', status=404)
            raise

    def fetch_metadata(self, name: str) -> Optional[Dict[str, Any]]:
        """
        Fetch metadata.json for `name`.

        Metadata is optional, so any failure returns None.
        """
        try:
            data = self._get_json(f"/automations/{quote(name)}/metadata.json")
        except RegistryError:
            return None
        return data if isinstance(data, dict) else None


def _lower(values: Any) -> List[str]:
    return [str(v).lower() for v in (values or [])]


def search_index(
    index: Dict[str, Any],
    query: str,
    *,
    capability: str | None = None,
    tag: str | None = None,
) -> List[Dict[str, Any]]:
    """
    Filter registry index entries.

    A capability or tag filter, when given, replaces the text search.
    Otherwise the query is matched case-insensitively against name,
    description, tags and requires.
    """
    entries = index.get("automations") or []
    q = (query or "").lower()
    results: List[Dict[str, Any]] = []

    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if capability:
            hit = capability in (entry.get("requires") or [])
        elif tag:
            hit = tag in (entry.get("tags") or [])
        else:
            hit = (
                q in str(entry.get("name", "")).lower()
                or q in str(entry.get("description") or "").lower()
                or any(q in t for t in _lower(entry.get("tags")))
                or any(q in r for r in _lower(entry.get("requires")))
            )
        if hit:
            results.append(entry)

    return results
