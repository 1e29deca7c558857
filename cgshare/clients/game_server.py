# cgshare/clients/game_server.py
# Async client for the HTTP API of CodeGame game servers

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

import httpx
from pydantic import BaseModel, ValidationError

from cgshare import config
from cgshare.utils.urls import base_url

logger = logging.getLogger(__name__)

# httpx.InvalidURL does not subclass HTTPError
REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class GameServerError(Exception):
    """The game server could not be reached or answered unexpectedly."""


class GameInfo(BaseModel):
    name: str = ""
    cg_version: str = ""
    display_name: Optional[str] = None
    description: str = ""
    version: str = ""
    repository_url: str = ""


class GameServerAPI:
    """API of one game server, bound to its resolved base URL."""

    def __init__(self, client: "GameServerClient", url: str):
        self._client = client
        self.url = url

    async def _get(self, path: str) -> httpx.Response:
        async with self._client.http() as http:
            return await http.get(f"{self.url}{path}")

    async def fetch_game_info(self) -> GameInfo:
        try:
            r = await self._get("/api/info")
            r.raise_for_status()
            return GameInfo.model_validate(r.json())
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, ValidationError) as e:
            raise GameServerError(f"Failed to fetch game info from {self.url}: {e}") from e

    async def _exists(self, path: str) -> bool:
        try:
            r = await self._get(path)
        except REQUEST_ERRORS as e:
            logger.info(f"Request to {self.url}{path} failed: {e}")
            return False
        return r.status_code == httpx.codes.OK

    async def game_exists(self, game_id: UUID | str) -> bool:
        return await self._exists(f"/api/games/{game_id}/players")

    async def player_exists(self, game_id: UUID | str, player_id: UUID | str) -> bool:
        return await self._exists(f"/api/games/{game_id}/players/{player_id}")

    async def get_players(self, game_id: UUID | str) -> dict[str, str]:
        """Return a mapping of player ID to username."""
        try:
            r = await self._get(f"/api/games/{game_id}/players")
            r.raise_for_status()
            players = r.json()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            raise GameServerError(f"Failed to fetch players of game {game_id}: {e}") from e
        if not isinstance(players, dict):
            raise GameServerError(f"Unexpected players response from {self.url}")
        return players


class GameServerClient:
    """Factory for GameServerAPI instances.

    `transport` lets tests substitute an httpx.MockTransport.
    """

    def __init__(
        self,
        timeout: float = config.settings.GAME_SERVER_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self._transport = transport

    def http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def is_tls(self, trimmed_url: str) -> bool:
        """Return True if the server answers over https."""
        try:
            async with self.http() as http:
                await http.get(f"https://{trimmed_url}")
        except REQUEST_ERRORS:
            return False
        return True

    async def base_url(self, trimmed_url: str, protocol: str = "http") -> str:
        return base_url(protocol, await self.is_tls(trimmed_url), trimmed_url)

    async def connect(self, trimmed_url: str) -> GameServerAPI:
        return GameServerAPI(self, await self.base_url(trimmed_url))
