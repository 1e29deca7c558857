# cgshare/services/validation.py
# Checks that the game (and player) referenced by a payload exist on the game server

import ipaddress
import logging
from typing import Optional

from cgshare.clients.game_server import GameServerAPI, GameServerClient, GameServerError
from cgshare.middleware.error_handler import (
    GameNotFoundError,
    NotAGameServerError,
    PlayerNotFoundError,
)
from cgshare.schemas.entries import EntryPayload
from cgshare.utils.urls import host_of

logger = logging.getLogger(__name__)

PRIVATE_NETWORKS = (
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
)


def is_local_address(game_url: str) -> bool:
    """True if the URL's host is an IPv4 address in a private (RFC 1918) range."""
    try:
        address = ipaddress.IPv4Address(host_of(game_url))
    except ValueError:
        return False
    return any(address in network for network in PRIVATE_NETWORKS)


class EntryValidator:
    """Revalidates payloads against their game server.

    Local game servers are trusted without any request. Results are never
    cached: every call asks the game server again.
    """

    def __init__(self, client: GameServerClient | None = None):
        self.client = client or GameServerClient()

    async def connect(self, game_url: str) -> GameServerAPI:
        """Return the API of a server that speaks the CodeGame protocol.

        Raises NotAGameServerError otherwise.
        """
        api = await self.client.connect(game_url)
        try:
            info = await api.fetch_game_info()
        except GameServerError as e:
            logger.info(f"{game_url} is not reachable as a game server: {e}")
            raise NotAGameServerError(game_url) from e
        if not info.cg_version:
            raise NotAGameServerError(game_url)
        return api

    async def validate(self, payload: EntryPayload) -> Optional[GameServerAPI]:
        """Check the payload's game server, game and player, in that order.

        Returns the connected API, or None for local servers.
        """
        if is_local_address(payload.game_url):
            return None

        api = await self.connect(payload.game_url)

        game_id, player_id = payload.game_ref()
        if not await api.game_exists(game_id):
            raise GameNotFoundError(game_id)

        if player_id is not None and not await api.player_exists(game_id, player_id):
            raise PlayerNotFoundError(player_id)

        return api
