from typing import Any, Dict, Optional

import httpx
import pytest

from top250.config import CatalogSettings, Settings
from top250.errors import UpstreamError
from top250.services.catalog import CatalogClient


class DummyResponse:
    def __init__(self, payload: Any, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class DummyHTTPClient:
    def __init__(self, responses: Optional[list[Any]] = None):
        self.responses = responses or []
        self.calls: list[tuple[str, Any, Dict[str, str]]] = []

    def get(self, url: str, params: Any = None, headers: Optional[Dict[str, str]] = None):
        self.calls.append((url, params, headers or {}))
        entry: Any = self.responses.pop(0) if self.responses else {}
        if isinstance(entry, Exception):
            raise entry
        if isinstance(entry, tuple):
            return DummyResponse(*entry)
        return DummyResponse(entry)

    def close(self) -> None:
        pass


def make_settings(api_key: Optional[str] = "key") -> Settings:
    return Settings(
        catalog=CatalogSettings(api_key=api_key, base_url="https://catalog/v1.4/", retry_limit=2)
    )


def make_doc(movie_id: int, position: int, **overrides) -> Dict[str, Any]:
    doc = {
        "id": movie_id,
        "name": f"Movie {movie_id}",
        "rating": {"kp": 8.94, "imdb": 8.8},
        "year": 1994,
        "budget": {"value": 25_000_000, "currency": "$"},
        "fees": {"world": {"value": 28_341_469, "currency": "$"}},
        "poster": {"url": f"https://img/{movie_id}.jpg"},
        "top250": position,
    }
    doc.update(overrides)
    return doc


def make_client(responses, api_key: Optional[str] = "key"):
    http_client = DummyHTTPClient(responses=responses)
    sleeps: list[float] = []
    client = CatalogClient(make_settings(api_key), http_client=http_client, sleep=sleeps.append)
    return client, http_client, sleeps


def test_fetch_top_maps_docs_and_orders_by_position():
    client, http_client, _ = make_client([{"docs": [make_doc(2, 2), make_doc(1, 1)]}])
    films = client.fetch_top()
    assert [film.id for film in films] == [1, 2]
    first = films[0]
    assert first.title == "Movie 1"
    assert first.rating == "8.9"
    assert first.budget == 25_000_000
    assert first.gross == 28_341_469
    assert first.poster == "https://img/1.jpg"
    assert first.position == 1


def test_request_uses_api_key_header_and_list_query():
    client, http_client, _ = make_client([{"docs": []}])
    client.fetch_top()
    url, params, headers = http_client.calls[0]
    assert url == "https://catalog/v1.4/movie"
    assert headers["X-API-KEY"] == "key"
    assert ("lists", "top250") in params
    assert ("limit", 250) in params
    assert ("notNullFields", "fees.world.value") in params


def test_retries_transient_statuses_with_backoff():
    client, http_client, sleeps = make_client([({}, 503), ({}, 429), {"docs": [make_doc(1, 1)]}])
    films = client.fetch_top()
    assert len(films) == 1
    assert len(http_client.calls) == 3
    assert sleeps == [2.0, 4.0]


def test_gives_up_after_retry_limit():
    client, _, _ = make_client([({}, 500), ({}, 500), ({}, 500)])
    with pytest.raises(UpstreamError):
        client.fetch_top()


def test_client_error_is_upstream_error():
    client, _, sleeps = make_client([({}, 401)])
    with pytest.raises(UpstreamError):
        client.fetch_top()
    assert sleeps == []


def test_transport_error_is_upstream_error():
    client, _, _ = make_client([httpx.ConnectError("boom")])
    with pytest.raises(UpstreamError):
        client.fetch_top()


def test_malformed_doc_is_upstream_error():
    client, _, _ = make_client([{"docs": [make_doc(1, 1, fees=None)]}])
    with pytest.raises(UpstreamError):
        client.fetch_top()


def test_missing_docs_is_upstream_error():
    client, _, _ = make_client([{"total": 0}])
    with pytest.raises(UpstreamError):
        client.fetch_top()


def test_missing_api_key_fails_before_request():
    client, http_client, _ = make_client([], api_key=None)
    with pytest.raises(UpstreamError):
        client.fetch_top()
    assert http_client.calls == []
