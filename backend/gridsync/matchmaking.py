"""
Клиент матчмейкинга: запрос пары, game-found и start-game.
game-found носит справочный характер, источник истины для комнаты — start-game.
"""
import logging
from typing import Any

from .constants import REQUEST_MATCH
from .relay import Relay
from .session import SessionDescriptor

logger = logging.getLogger(__name__)


class MatchmakingClient:
    def __init__(self, relay: Relay):
        self.relay = relay
        self.pending_room_id: str | None = None

    def request_match(self) -> None:
        self.pending_room_id = None
        self.relay.emit(REQUEST_MATCH, {})
        logger.info("matchmaking: %s searching", self.relay.client_id)

    def handle_pairing_found(self, payload: dict[str, Any]) -> str | None:
        room_id = payload.get("room_id") if isinstance(payload, dict) else None
        if not room_id:
            logger.warning("matchmaking: game-found without room id ignored")
            return None
        self.pending_room_id = str(room_id)
        logger.info("matchmaking: paired into room %s", self.pending_room_id)
        return self.pending_room_id

    def handle_match_start(self, payload: dict[str, Any]) -> SessionDescriptor | None:
        local_id = self.relay.client_id
        if not local_id:
            logger.warning("matchmaking: start-game before identity is known, ignored")
            return None
        session = SessionDescriptor.from_match_start(payload, local_id)
        if session is None:
            return None
        if self.pending_room_id and self.pending_room_id != session.room_id:
            logger.info(
                "matchmaking: start-game room %s overrides game-found room %s",
                session.room_id, self.pending_room_id,
            )
        self.pending_room_id = None
        logger.info(
            "matchmaking: room %s started, playing %s, %s",
            session.room_id, session.local_symbol.value,
            "moving first" if session.is_local_turn else "moving second",
        )
        return session

    def reset(self) -> None:
        self.pending_room_id = None
