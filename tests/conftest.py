# tests/conftest.py
# Shared fixtures: throwaway SQLite entry store, controllable clock, fake game servers.

import re
from typing import AsyncIterator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.pool import NullPool

from cgshare.clients.game_server import GameServerClient
from cgshare.db.base import create_engine, create_session_factory, create_tables
from cgshare.repositories.entry_repository import EntryRepository
from cgshare.services.share_service import ShareService
from cgshare.services.validation import EntryValidator

T0 = 1_700_000_000
TTL = 24 * 60 * 60


class FakeClock:
    """Callable time source that only moves when told to."""

    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGameServer:
    """In-memory CodeGame server served through httpx.MockTransport.

    `games` maps game_id -> {player_id: username}. Every request is recorded.
    """

    def __init__(self, tls: bool = False, info: dict | None = None):
        self.tls = tls
        self.info = info if info is not None else {
            "name": "tictactoe",
            "cg_version": "0.8",
            "display_name": "Tic Tac Toe",
            "description": "The classic game.",
            "version": "1.2.0",
            "repository_url": "https://github.com/code-game-project/tictactoe",
        }
        self.games: dict[str, dict[str, str]] = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.scheme == "https" and not self.tls:
            raise httpx.ConnectError("TLS not supported", request=request)

        path = request.url.path
        if path == "/api/info":
            return httpx.Response(200, json=self.info)

        match = re.fullmatch(r"/api/games/([^/]+)/players(?:/([^/]+))?", path)
        if match:
            game_id, player_id = match.groups()
            players = self.games.get(game_id)
            if players is None:
                return httpx.Response(404, json={"error": "game not found"})
            if player_id is None:
                return httpx.Response(200, json=players)
            if player_id in players:
                return httpx.Response(200, json={"username": players[player_id]})
            return httpx.Response(404, json={"error": "player not found"})

        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def game_server() -> FakeGameServer:
    return FakeGameServer()


@pytest.fixture
def validator(game_server: FakeGameServer) -> EntryValidator:
    return EntryValidator(GameServerClient(timeout=1.0, transport=game_server.transport()))


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncIterator:
    # NullPool: every session opens its own connection on the running loop
    engine = create_engine(f"sqlite:///{tmp_path / 'entries.sqlite'}", poolclass=NullPool)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def repository(session_factory, clock: FakeClock) -> EntryRepository:
    return EntryRepository(session_factory=session_factory, clock=clock, ttl_seconds=TTL, bcrypt_rounds=4)


@pytest.fixture
def service(repository: EntryRepository, validator: EntryValidator) -> ShareService:
    return ShareService(repository=repository, validator=validator)
