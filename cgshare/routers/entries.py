# cgshare/routers/entries.py
# FastAPI router for creating and resolving share entries

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from cgshare import config
from cgshare.constants import EntryType
from cgshare.middleware.error_handler import UnknownEntryTypeError, create_error_response
from cgshare.repositories.entry_repository import EntryRepository
from cgshare.schemas.entries import (
    EntryCreatedResponse,
    GameEntryRequest,
    SessionEntryRequest,
    SpectateEntryRequest,
)
from cgshare.services.share_service import RawData, Redirect, ShareService, SoftError
from cgshare.services.validation import EntryValidator
from cgshare.utils.logger import log_info


router = APIRouter(tags=["Entries"])

templates = Jinja2Templates(directory=config.TEMPLATE_PATH)


def get_service() -> ShareService:
    """Provide service with DI so handlers stay thin."""
    return ShareService(repository=EntryRepository(), validator=EntryValidator())


@router.post("/game", response_model=EntryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_game(body: GameEntryRequest, service: ShareService = Depends(get_service)) -> EntryCreatedResponse:
    entry_id = await service.create_game_entry(body, password=body.password)
    return EntryCreatedResponse(id=entry_id)


@router.post("/spectate", response_model=EntryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_spectate(body: SpectateEntryRequest, service: ShareService = Depends(get_service)) -> EntryCreatedResponse:
    entry_id = await service.create_spectate_entry(body, password=body.password)
    return EntryCreatedResponse(id=entry_id)


@router.post("/session", response_model=EntryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_session(body: SessionEntryRequest, service: ShareService = Depends(get_service)) -> EntryCreatedResponse:
    entry_id = await service.create_session_entry(body, password=body.password)
    return EntryCreatedResponse(id=entry_id)


@router.get("/{entry_id}")
async def resolve_entry(
    request: Request,
    entry_id: str,
    entry_type: Optional[str] = Query(None, alias="type"),
    service: ShareService = Depends(get_service),
) -> Response:
    """Game: HTML page, spectate: redirect to the game server, session: JSON."""
    expected_type = None
    if entry_type:
        try:
            expected_type = EntryType.from_label(entry_type)
        except ValueError:
            raise UnknownEntryTypeError(entry_type) from None

    result = await service.resolve_entry(entry_id, expected_type)

    if isinstance(result, SoftError):
        # The link itself is fine, so this is not an error status
        return create_error_response(result.code, result.message, status.HTTP_200_OK)
    if isinstance(result, Redirect):
        log_info(f"GET /{entry_id} -> redirect to spectate")
        return RedirectResponse(result.url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    if isinstance(result, RawData):
        return JSONResponse(result.data)
    return templates.TemplateResponse(request, "game.html", {"game": result.view})
