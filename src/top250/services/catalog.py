from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ..config import Settings
from ..errors import UpstreamError
from .films import Film

logger = logging.getLogger(__name__)

SELECT_FIELDS = ("id", "name", "rating", "year", "budget", "fees", "poster", "top250")
NOT_NULL_FIELDS = ("top250", "budget.value", "fees.world.value")
RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


class CatalogClient:
    """Client for the upstream movie database's ranked list (the top 250)."""

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: Optional[httpx.Client] = None,
        sleep=time.sleep,
    ) -> None:
        self.settings = settings.catalog
        self.base_url = self.settings.base_url.rstrip("/")
        self._client = http_client or httpx.Client(timeout=self.settings.request_timeout_seconds)
        self._sleep = sleep

    def fetch_top(self) -> List[Film]:
        data = self._request_json("/movie", self._query())
        docs = data.get("docs")
        if not isinstance(docs, list):
            raise UpstreamError("Catalog response has no 'docs' list.")
        films = [self._parse_doc(doc) for doc in docs]
        films.sort(key=lambda film: film.position)
        logger.info("Fetched %d films from the catalog", len(films))
        return films

    def close(self) -> None:
        self._client.close()

    def _query(self) -> List[Tuple[str, Any]]:
        params: List[Tuple[str, Any]] = [("page", 1), ("limit", self.settings.limit)]
        params.extend(("selectFields", name) for name in SELECT_FIELDS)
        params.extend(("notNullFields", name) for name in NOT_NULL_FIELDS)
        params.extend(
            [
                ("sortField", self.settings.list_name),
                ("sortType", 1),
                ("lists", self.settings.list_name),
            ]
        )
        return params

    def _request_json(
        self,
        path: str,
        params: Sequence[Tuple[str, Any]],
    ) -> Dict[str, Any]:
        if not self.settings.api_key:
            raise UpstreamError("Catalog API key is not configured.")
        headers = {"accept": "application/json", "X-API-KEY": self.settings.api_key}
        url = f"{self.base_url}{path}"
        attempt = 0
        while True:
            try:
                response = self._client.get(url, params=list(params), headers=headers)
            except httpx.HTTPError as exc:
                raise UpstreamError(f"Catalog request failed: {exc}") from exc
            if response.status_code in RETRY_STATUSES and attempt < self.settings.retry_limit:
                attempt += 1
                logger.warning(
                    "Catalog returned %s, retry %d/%d",
                    response.status_code,
                    attempt,
                    self.settings.retry_limit,
                )
                self._sleep(self.settings.retry_backoff_seconds * attempt)
                continue
            if response.status_code >= 400:
                raise UpstreamError(f"Catalog request failed with HTTP {response.status_code}.")
            try:
                return response.json()
            except ValueError as exc:
                raise UpstreamError("Catalog returned invalid JSON.") from exc

    @staticmethod
    def _parse_doc(doc: Dict[str, Any]) -> Film:
        try:
            return Film(
                id=int(doc["id"]),
                title=doc["name"],
                rating=f"{float(doc['rating']['kp']):.1f}",
                year=int(doc["year"]),
                budget=int(doc["budget"]["value"]),
                gross=int(doc["fees"]["world"]["value"]),
                poster=doc["poster"]["url"],
                position=int(doc["top250"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            entry_id = doc.get("id") if isinstance(doc, dict) else None
            raise UpstreamError(f"Malformed catalog entry {entry_id!r}.") from exc
