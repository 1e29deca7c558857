from __future__ import annotations

from typing import Annotated, ClassVar, Optional, Union
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from cgshare.constants import MAX_PASSWORD_BYTES, EntryType
from cgshare.utils.urls import trim_url


class _GameURLModel(BaseModel):
    """Base for payloads that reference a game server by URL."""

    model_config = ConfigDict(extra="ignore")

    entry_type: ClassVar[EntryType]

    game_url: str = Field(min_length=1)

    @field_validator("game_url")
    @classmethod
    def trim_game_url(cls, v: str) -> str:
        trimmed = trim_url(v)
        if not trimmed:
            raise ValueError("game_url must not be empty")
        return trimmed

    def game_ref(self) -> tuple[UUID, Optional[UUID]]:
        """Return (game_id, player_id) referenced on the game server."""
        raise NotImplementedError


class GamePayload(_GameURLModel):
    entry_type: ClassVar[EntryType] = EntryType.GAME

    game_id: UUID
    join_secret: Optional[str] = None

    def game_ref(self) -> tuple[UUID, Optional[UUID]]:
        return self.game_id, None


class SpectatePayload(_GameURLModel):
    entry_type: ClassVar[EntryType] = EntryType.SPECTATE

    game_id: UUID
    player_id: UUID
    player_secret: str = Field(min_length=1)

    def game_ref(self) -> tuple[UUID, Optional[UUID]]:
        return self.game_id, self.player_id


class SessionDetails(BaseModel):
    game_id: UUID
    player_id: UUID
    player_secret: str = Field(min_length=1)


class SessionPayload(_GameURLModel):
    entry_type: ClassVar[EntryType] = EntryType.SESSION

    username: str = Field(min_length=1)
    session: SessionDetails

    def game_ref(self) -> tuple[UUID, Optional[UUID]]:
        return self.session.game_id, self.session.player_id


EntryPayload = Union[GamePayload, SpectatePayload, SessionPayload]

PAYLOAD_MODELS: dict[EntryType, type[_GameURLModel]] = {
    EntryType.GAME: GamePayload,
    EntryType.SPECTATE: SpectatePayload,
    EntryType.SESSION: SessionPayload,
}


# --- Request bodies: payload plus an optional password that is never stored in the payload ---

def _fits_bcrypt(password: str) -> str:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"password must not exceed {MAX_PASSWORD_BYTES} bytes")
    return password


EntryPassword = Annotated[str, AfterValidator(_fits_bcrypt)]


class GameEntryRequest(GamePayload):
    password: Optional[EntryPassword] = Field(default=None, exclude=True)


class SpectateEntryRequest(SpectatePayload):
    password: Optional[EntryPassword] = Field(default=None, exclude=True)


class SessionEntryRequest(SessionPayload):
    password: Optional[EntryPassword] = Field(default=None, exclude=True)


class EntryCreatedResponse(BaseModel):
    id: str
