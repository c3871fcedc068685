from typing import Dict, List

import pytest
from fastapi.testclient import TestClient

from apps.api import dependencies
from apps.api.main import app
from top250.config import AuthSettings, Settings
from top250.errors import UpstreamError
from top250.services.films import Film
from top250.services.managers import ManagerRegistry
from top250.storage import MemoryStore


def make_payload(title: str = "Film", position: int = 1, **overrides) -> Dict:
    payload = {
        "title": title,
        "rating": "8.5",
        "year": 1999,
        "budget": 63_000_000,
        "gross": 100_853_753,
        "poster": "https://image.example.com/poster.jpg",
        "position": position,
    }
    payload.update(overrides)
    return payload


class StaticFeed:
    def __init__(self, films: List[Film]):
        self.films = films

    def fetch_top(self) -> List[Film]:
        return self.films


class DownFeed:
    def fetch_top(self) -> List[Film]:
        raise UpstreamError("Catalog request failed with HTTP 503.")


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def settings():
    return Settings(auth=AuthSettings(hash_iterations=1_000))


@pytest.fixture
def client(store, settings):
    app.dependency_overrides[dependencies.get_store] = lambda: store
    app.dependency_overrides[dependencies.get_settings] = lambda: settings
    app.dependency_overrides[dependencies.get_catalog_feed] = lambda: StaticFeed(
        [Film(id=7, **make_payload("Upstream", position=1))]
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def login(client: TestClient, store, settings, email: str, *, super_user: bool) -> Dict[str, str]:
    assert client.post("/auth/register", json={"email": email, "password": "pw"}).status_code == 201
    if super_user:
        ManagerRegistry(store, settings.auth).grant(email)
    response = client.post("/auth/login", json={"email": email, "password": "pw"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def editor(client, store, settings):
    return login(client, store, settings, "editor@example.com", super_user=True)


def test_index_and_health_are_public(client):
    assert client.get("/").status_code == 200
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "storage": "memory"}


def test_films_require_token(client):
    response = client.get("/films")
    assert response.status_code == 401
    response = client.get("/films", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 403


def test_plain_manager_is_denied(client, store, settings):
    headers = login(client, store, settings, "plain@example.com", super_user=False)
    assert client.get("/films", headers=headers).status_code == 403
    assert client.post("/films", json=make_payload(), headers=headers).status_code == 403


def test_register_duplicate_and_missing_fields(client):
    assert client.post("/auth/register", json={"email": "a@example.com", "password": "pw"}).status_code == 201
    duplicate = client.post("/auth/register", json={"email": "a@example.com", "password": "pw"})
    assert duplicate.status_code == 400
    assert duplicate.json()["field"] == "email"
    assert client.post("/auth/register", json={"email": "b@example.com"}).status_code == 400


def test_login_unknown_and_wrong_password(client):
    client.post("/auth/register", json={"email": "a@example.com", "password": "pw"})
    assert client.post("/auth/login", json={"email": "x@example.com", "password": "pw"}).status_code == 404
    assert client.post("/auth/login", json={"email": "a@example.com", "password": "bad"}).status_code == 400


def test_create_list_read_update_delete(client, editor):
    for idx in range(1, 4):
        response = client.post("/films", json=make_payload(f"Film {idx}", position=idx), headers=editor)
        assert response.status_code == 201

    created = client.post("/films", json=make_payload("Late", position=9), headers=editor)
    assert created.status_code == 201
    assert created.json()["position"] == 4
    late_id = created.json()["id"]

    listed = client.get("/films", headers=editor).json()
    assert [film["title"] for film in listed] == ["Film 1", "Film 2", "Film 3", "Late"]

    assert client.get(f"/films/{late_id}", headers=editor).json()["title"] == "Late"
    assert client.post("/films/read", json={"id": late_id}, headers=editor).status_code == 200
    assert client.post("/films/read", json={}, headers=editor).status_code == 400
    assert client.get("/films/12345", headers=editor).status_code == 404

    updated = client.post(
        "/films/update", json={"id": late_id, "position": 1, "rating": "9.0"}, headers=editor
    )
    assert updated.status_code == 200
    assert updated.json()["position"] == 1
    assert updated.json()["year"] == 1999
    listed = client.get("/films", headers=editor).json()
    assert [film["position"] for film in listed] == [1, 2, 3, 4]
    assert listed[0]["title"] == "Late"

    deleted = client.post("/films/delete", json={"id": listed[1]["id"]}, headers=editor)
    assert deleted.status_code == 200
    assert "deleted" in deleted.json()["message"]
    listed = client.get("/films", headers=editor).json()
    assert [film["title"] for film in listed] == ["Late", "Film 2", "Film 3"]
    assert [film["position"] for film in listed] == [1, 2, 3]


def test_create_validation_errors_are_400(client, editor):
    response = client.post("/films", json=make_payload(year=1894), headers=editor)
    assert response.status_code == 400
    assert response.json()["field"] == "year"
    missing = make_payload()
    del missing["poster"]
    assert client.post("/films", json=missing, headers=editor).status_code == 400
    response = client.post("/films", json=make_payload(year="not a year"), headers=editor)
    assert response.status_code == 400
    assert client.get("/films", headers=editor).json() == []


def test_update_and_delete_unknown_ids(client, editor):
    assert client.post("/films/update", json={"id": 1, "title": "X"}, headers=editor).status_code == 404
    assert client.post("/films/delete", json={"id": 1}, headers=editor).status_code == 404
    assert client.post("/films/delete", json={}, headers=editor).status_code == 400


def test_refresh_catalog_replaces_films(client, editor):
    client.post("/films", json=make_payload("Local"), headers=editor)
    response = client.get("/refresh-catalog", headers=editor)
    assert response.status_code == 200
    assert response.json()["count"] == 1
    listed = client.get("/films", headers=editor).json()
    assert [film["id"] for film in listed] == [7]


def test_refresh_catalog_upstream_failure(client, editor):
    app.dependency_overrides[dependencies.get_catalog_feed] = lambda: DownFeed()
    client.post("/films", json=make_payload("Local"), headers=editor)
    response = client.get("/refresh-catalog", headers=editor)
    assert response.status_code == 502
    assert [film["title"] for film in client.get("/films", headers=editor).json()] == ["Local"]
