"""
Fastly service source.

Uses the Fastly configuration API (token in the Fastly-Key header):
  GET https://api.fastly.com/service/{service_id}
  GET https://api.fastly.com/service/{service_id}/version/{version}/dictionary/{name}
  GET https://api.fastly.com/service/{service_id}/dictionary/{dictionary_id}/items
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from ..core.errors import ServiceSourceError
from .base import Dictionary, DictionaryItem, Service, ServiceVersion

logger = logging.getLogger(__name__)

FASTLY_BASE_URL = "https://api.fastly.com"
HTTP_TIMEOUT_S = 15.0
ITEMS_PER_PAGE = 100
MAX_ITEM_PAGES = 1000


def _require(data: Dict[str, Any], key: str, what: str) -> Any:
    value = data.get(key)
    if value is None:
        raise ServiceSourceError(f"Fastly {what} response missing '{key}'")
    return value


class FastlyServiceSource:
    """Read services and edge dictionaries from the Fastly API. Safe to share across threads."""

    def __init__(
        self,
        api_key: str,
        base_url: str = FASTLY_BASE_URL,
        timeout_s: float = HTTP_TIMEOUT_S,
    ) -> None:
        if not api_key:
            raise ValueError("Fastly API key is required")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s

    @property
    def source_name(self) -> str:
        return "fastly"

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self._base_url}{path}"
        headers = {"Fastly-Key": self._api_key, "Accept": "application/json"}
        try:
            resp = requests.get(url, headers=headers, params=params, timeout=self._timeout_s)
        except requests.RequestException as exc:
            raise ServiceSourceError(f"GET {path} failed: {exc}") from exc
        if resp.status_code == 404:
            raise ServiceSourceError(f"GET {path}: not found (HTTP 404)")
        if resp.status_code == 429:
            raise ServiceSourceError("Fastly rate limit (HTTP 429)")
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            raise ServiceSourceError(f"GET {path} failed: {exc}") from exc
        try:
            return resp.json()
        except ValueError as exc:
            raise ServiceSourceError(f"GET {path}: invalid JSON body") from exc

    def get_service(self, service_id: str) -> Service:
        data = self._get(f"/service/{service_id}")
        if not isinstance(data, dict):
            raise ServiceSourceError(f"Unexpected Fastly service response type: {type(data)}")
        versions = tuple(
            ServiceVersion(number=int(v["number"]), active=bool(v.get("active")))
            for v in data.get("versions") or []
            if isinstance(v, dict) and v.get("number") is not None
        )
        return Service(
            id=str(_require(data, "id", "service")),
            name=str(_require(data, "name", "service")),
            versions=versions,
        )

    def get_dictionary(self, service_id: str, version: int, name: str) -> Dictionary:
        data = self._get(f"/service/{service_id}/version/{version}/dictionary/{name}")
        if not isinstance(data, dict):
            raise ServiceSourceError(f"Unexpected Fastly dictionary response type: {type(data)}")
        return Dictionary(
            id=str(_require(data, "id", "dictionary")),
            name=str(data.get("name") or name),
            service_id=service_id,
            version=version,
        )

    def list_dictionary_items(self, service_id: str, dictionary_id: str) -> List[DictionaryItem]:
        """
        List all items, following pages until a short page is returned.

        Stops when a page repeats the previous one (pagination ignored upstream)
        and raises ServiceSourceError past MAX_ITEM_PAGES.
        """
        path = f"/service/{service_id}/dictionary/{dictionary_id}/items"
        items: List[DictionaryItem] = []
        previous: Optional[List[DictionaryItem]] = None
        for page in range(1, MAX_ITEM_PAGES + 1):
            data = self._get(path, params={"page": page, "per_page": ITEMS_PER_PAGE})
            if not isinstance(data, list):
                raise ServiceSourceError(f"Unexpected Fastly items response type: {type(data)}")
            page_items = [
                DictionaryItem(key=str(raw["item_key"]), value=str(raw.get("item_value") or ""))
                for raw in data
                if isinstance(raw, dict) and raw.get("item_key") is not None
            ]
            if page_items and page_items == previous:
                logger.warning(
                    "Page %d of dictionary %s on %s repeats page %d; stopping pagination",
                    page, dictionary_id, service_id, page - 1,
                )
                break
            items.extend(page_items)
            if len(data) < ITEMS_PER_PAGE:
                break
            previous = page_items
        else:
            raise ServiceSourceError(
                f"Dictionary {dictionary_id} on {service_id} exceeds {MAX_ITEM_PAGES} pages"
            )
        logger.debug("Listed %d items from dictionary %s on %s", len(items), dictionary_id, service_id)
        return items
