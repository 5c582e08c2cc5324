"""
Маршрутизация событий релея без ввода-вывода.
Возвращает список (получатель, событие, payload); отправкой занимаются
ws_handlers (по сети) и LocalRelayHub (в процессе).
"""
import logging
from typing import Any

from .constants import (
    ANNOUNCE_OUTCOME,
    LEAVE_ROOM,
    MATCH_START,
    MOVE_MADE,
    OPPONENT_LEFT,
    PAIRING_FOUND,
    REQUEST_MATCH,
    SUBMIT_MOVE,
)
from .pairing import Matchmaker

logger = logging.getLogger(__name__)

Outgoing = tuple[str, str, dict[str, Any]]


def route_event(matchmaker: Matchmaker, sender: str, event: str, payload: dict[str, Any]) -> list[Outgoing]:
    if event == REQUEST_MATCH:
        out = _leave(matchmaker, sender)
        room = matchmaker.join(sender)
        if room:
            for member in room.members:
                out.append((member, PAIRING_FOUND, {"room_id": room.id}))
            start = dict(room.start_payload())
            for member in room.members:
                out.append((member, MATCH_START, dict(start)))
        return out
    if event == SUBMIT_MOVE:
        return _forward(matchmaker, sender, MOVE_MADE, payload)
    if event == ANNOUNCE_OUTCOME:
        return _forward(matchmaker, sender, ANNOUNCE_OUTCOME, payload)
    if event == LEAVE_ROOM:
        return _leave(matchmaker, sender)
    logger.warning("relay: unknown event %r from %s", event, sender)
    return []


def route_disconnect(matchmaker: Matchmaker, client_id: str) -> list[Outgoing]:
    return _leave(matchmaker, client_id)


def _forward(matchmaker: Matchmaker, sender: str, event: str, payload: dict[str, Any]) -> list[Outgoing]:
    room_id = payload.get("room_id")
    if not isinstance(room_id, str):
        logger.warning("relay: %s from %s with malformed room id %r dropped", event, sender, room_id)
        return []
    peer = matchmaker.peer_of(room_id, sender)
    if peer is None:
        logger.info("relay: %s from %s for unknown room %s dropped", event, sender, room_id)
        return []
    return [(peer, event, dict(payload))]


def _leave(matchmaker: Matchmaker, client_id: str) -> list[Outgoing]:
    room = matchmaker.room_for(client_id)
    peer = matchmaker.leave(client_id)
    if room is None or peer is None:
        return []
    return [(peer, OPPONENT_LEFT, {"room_id": room.id})]
