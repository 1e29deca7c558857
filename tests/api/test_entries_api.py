# tests/api/test_entries_api.py
# HTTP tests for the entry routes, run in-process through httpx.ASGITransport.

from typing import AsyncIterator
from uuid import uuid4

import httpx
import pytest
import pytest_asyncio

from cgshare.main import create_app
from cgshare.routers.entries import get_service


@pytest_asyncio.fixture
async def client(service) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(rate_limit=0)
    app.dependency_overrides[get_service] = lambda: service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://share.test") as c:
        yield c


def _session_body(url: str = "10.0.0.5") -> dict:
    return {
        "game_url": url,
        "username": "alice",
        "session": {
            "game_id": str(uuid4()),
            "player_id": str(uuid4()),
            "player_secret": "secret",
        },
    }


@pytest.mark.asyncio
async def test_create_and_resolve_session(client):
    body = _session_body()

    created = await client.post("/session", json=body)
    assert created.status_code == 201
    entry_id = created.json()["id"]
    assert len(entry_id) == 8

    resolved = await client.get(f"/{entry_id}")
    assert resolved.status_code == 200
    assert resolved.json() == body


@pytest.mark.asyncio
async def test_password_is_accepted_but_not_returned(client):
    body = _session_body()
    created = await client.post("/session", json={**body, "password": "hunter2"})
    assert created.status_code == 201

    resolved = await client.get(f"/{created.json()['id']}")
    assert "password" not in resolved.json()


@pytest.mark.asyncio
async def test_type_filter(client):
    entry_id = (await client.post("/session", json=_session_body())).json()["id"]

    assert (await client.get(f"/{entry_id}", params={"type": "session"})).status_code == 200

    mismatch = await client.get(f"/{entry_id}", params={"type": "game"})
    assert mismatch.status_code == 404
    assert mismatch.json()["error"]["code"] == "NOT_FOUND"

    unknown = await client.get(f"/{entry_id}", params={"type": "bogus"})
    assert unknown.status_code == 400
    assert unknown.json()["error"]["code"] == "UNKNOWN_ENTRY_TYPE"


@pytest.mark.asyncio
async def test_unknown_id(client):
    response = await client.get("/Zz9Zz9Zz")
    assert response.status_code == 404
    assert response.json()["error"]["message"] == "No entry stored at Zz9Zz9Zz."


@pytest.mark.asyncio
async def test_game_page(client):
    game_id = str(uuid4())
    created = await client.post("/game", json={"game_url": "http://192.168.0.7/", "game_id": game_id})
    assert created.status_code == 201

    page = await client.get(f"/{created.json()['id']}")

    assert page.status_code == 200
    assert page.headers["content-type"].startswith("text/html")
    assert game_id in page.text
    assert "192.168.0.7" in page.text


@pytest.mark.asyncio
async def test_spectate_redirect(client):
    body = {
        "game_url": "10.0.0.9:8080",
        "game_id": str(uuid4()),
        "player_id": str(uuid4()),
        "player_secret": "secret",
    }
    entry_id = (await client.post("/spectate", json=body)).json()["id"]

    response = await client.get(f"/{entry_id}")

    assert response.status_code == 307
    assert response.headers["location"].startswith("http://10.0.0.9:8080/spectate?game_id=")


@pytest.mark.asyncio
async def test_invalid_fields(client):
    response = await client.post("/game", json={"game_url": "10.0.0.5", "game_id": "not-a-uuid"})
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_FIELDS"
    assert error["details"]["fields"] == ["game_id"]


@pytest.mark.asyncio
async def test_missing_nested_field(client):
    body = _session_body()
    del body["session"]["player_secret"]
    response = await client.post("/session", json=body)
    assert response.status_code == 400
    assert response.json()["error"]["details"]["fields"] == ["player_secret"]


@pytest.mark.asyncio
async def test_undecodable_body(client):
    response = await client.post(
        "/game", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "DECODE_REQUEST_BODY"


@pytest.mark.asyncio
async def test_remote_rejection_is_forbidden(client, game_server):
    response = await client.post("/game", json={"game_url": "games.example.com", "game_id": str(uuid4())})
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "GAME_NOT_FOUND"


@pytest.mark.asyncio
async def test_soft_error_has_ok_status(client, game_server):
    player_id = str(uuid4())
    game_id = str(uuid4())
    game_server.games[game_id] = {player_id: "alice"}
    body = {
        "game_url": "games.example.com",
        "game_id": game_id,
        "player_id": player_id,
        "player_secret": "secret",
    }
    entry_id = (await client.post("/spectate", json=body)).json()["id"]
    game_server.games.clear()

    response = await client.get(f"/{entry_id}")

    assert response.status_code == 200
    assert response.json()["error"] == {
        "code": "GAME_NOT_FOUND",
        "message": f"The game '{game_id}' does not exist!",
    }


@pytest.mark.asyncio
async def test_root_redirects_to_readme(client):
    response = await client.get("/")
    assert response.status_code == 307
    assert response.headers["location"].endswith("README.md")


@pytest.mark.asyncio
async def test_rate_limit(service):
    app = create_app(rate_limit=2)
    app.dependency_overrides[get_service] = lambda: service
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://share.test") as c:
        assert (await c.get("/favicon.ico")).status_code == 204
        assert (await c.get("/favicon.ico")).status_code == 204
        limited = await c.get("/favicon.ico")
        assert limited.status_code == 429
        assert limited.headers["Retry-After"] == "60"
        # Liveness is never limited
        assert (await c.get("/health/live")).status_code == 200


@pytest.mark.asyncio
async def test_overlong_password_is_invalid_field(client):
    response = await client.post(
        "/game", json={"game_url": "10.0.0.5", "game_id": str(uuid4()), "password": "x" * 73}
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_FIELDS"
    assert error["details"]["fields"] == ["password"]


@pytest.mark.asyncio
async def test_unparseable_game_url_is_forbidden(client, game_server):
    response = await client.post("/game", json={"game_url": "games.example.com:abc", "game_id": str(uuid4())})
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "NOT_A_GAME_SERVER"
