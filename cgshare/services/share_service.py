# cgshare/services/share_service.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union
from urllib.parse import urlencode

from cgshare.clients.game_server import GameServerAPI, GameServerError
from cgshare.constants import EntryType
from cgshare.middleware.error_handler import (
    EntryValidationError,
    MalformedPayloadError,
    NotFoundError,
)
from cgshare.repositories.entry_repository import EntryRepository
from cgshare.schemas.entries import (
    EntryPayload,
    GamePayload,
    SessionPayload,
    SpectatePayload,
)
from cgshare.services.validation import EntryValidator
from cgshare.utils import codec
from cgshare.utils.logger import log_info
from cgshare.utils.urls import base_url


@dataclass(frozen=True)
class GameView:
    """Data shown on the game page."""
    display_name: str
    description: str
    base_url: str
    game_id: str
    join_secret: Optional[str]
    url: str
    player_count: int  # -1 when unknown (local servers)
    version: str = ""
    repository_url: str = ""
    cg_version: str = ""


@dataclass(frozen=True)
class RenderView:
    view: GameView


@dataclass(frozen=True)
class Redirect:
    url: str


@dataclass(frozen=True)
class RawData:
    data: dict[str, Any]


@dataclass(frozen=True)
class SoftError:
    """The link is intact but what it points to is gone or unreadable."""
    message: str
    code: str


ResolutionResult = Union[RenderView, Redirect, RawData, SoftError]


class ShareService:
    """Creates entries after validating them and resolves stored entries."""

    def __init__(self, repository: EntryRepository, validator: EntryValidator):
        self._repo = repository
        self._validator = validator

    async def _create(self, payload: EntryPayload, password: str | None) -> str:
        # Rejected payloads never reach the store
        await self._validator.validate(payload)
        return await self._repo.put(payload.entry_type, payload, password)

    async def create_game_entry(self, payload: GamePayload, password: str | None = None) -> str:
        return await self._create(payload, password)

    async def create_spectate_entry(self, payload: SpectatePayload, password: str | None = None) -> str:
        return await self._create(payload, password)

    async def create_session_entry(self, payload: SessionPayload, password: str | None = None) -> str:
        return await self._create(payload, password)

    async def delete_entry(self, entry_id: str) -> None:
        await self._repo.delete(entry_id)

    async def resolve_entry(self, entry_id: str, expected_type: EntryType | None = None) -> ResolutionResult:
        """Load, decode and revalidate an entry.

        Raises NotFoundError for missing or expired entries and for entries of
        a type other than `expected_type`. Problems with the stored payload or
        the remote game state come back as SoftError.
        """
        try:
            entry = await self._repo.get(entry_id)
        except MalformedPayloadError as e:
            if expected_type is not None:
                raise NotFoundError(f"No entry of type '{expected_type.label}' stored at {entry_id}.") from e
            log_info(f"ShareService: entry {entry_id} is malformed - {e.message}")
            return SoftError(e.message, e.error_code)

        if expected_type is not None and entry.type != expected_type:
            raise NotFoundError(f"No entry of type '{expected_type.label}' stored at {entry_id}.")

        try:
            payload = codec.decode(entry.type, entry.data)
        except MalformedPayloadError as e:
            log_info(f"ShareService: failed to decode {entry.type.label} entry {entry_id}")
            return SoftError(e.message, e.error_code)

        try:
            api = await self._validator.validate(payload)
        except EntryValidationError as e:
            log_info(f"ShareService: entry {entry_id} no longer valid - {e.message}")
            return SoftError(e.message, e.error_code)

        if isinstance(payload, GamePayload):
            return await self._resolve_game(payload, api)
        if isinstance(payload, SpectatePayload):
            return self._resolve_spectate(payload, api)
        return RawData(payload.model_dump(mode="json"))

    async def _resolve_game(self, game: GamePayload, api: Optional[GameServerAPI]) -> ResolutionResult:
        if api is None:
            return RenderView(GameView(
                display_name=game.game_url,
                description="",
                base_url=base_url("http", False, game.game_url),
                game_id=str(game.game_id),
                join_secret=game.join_secret,
                url=game.game_url,
                player_count=-1,
            ))

        try:
            info = await api.fetch_game_info()
            players = await api.get_players(game.game_id)
        except GameServerError as e:
            log_info(f"ShareService: {e}")
            return SoftError(f"Failed to fetch game info from '{game.game_url}'.", "GAME_SERVER_ERROR")

        return RenderView(GameView(
            display_name=info.display_name or info.name,
            description=info.description,
            base_url=api.url,
            game_id=str(game.game_id),
            join_secret=game.join_secret,
            url=game.game_url,
            player_count=len(players),
            version=info.version,
            repository_url=info.repository_url,
            cg_version=info.cg_version,
        ))

    def _resolve_spectate(self, spectate: SpectatePayload, api: Optional[GameServerAPI]) -> Redirect:
        server_url = api.url if api is not None else base_url("http", False, spectate.game_url)
        query = urlencode({
            "game_id": str(spectate.game_id),
            "player_id": str(spectate.player_id),
            "player_secret": spectate.player_secret,
        })
        return Redirect(f"{server_url}/spectate?{query}")
