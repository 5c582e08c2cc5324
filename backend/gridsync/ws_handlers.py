"""
Обработка сообщений WebSocket релея.
Первое сообщение сервера — connected с client_id. Дальше каждый кадр
маршрутизируется routing.route_event и пересылается участникам комнаты.
"""
import json
import logging
import uuid
from itertools import groupby
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from .constants import CONNECTED
from .pairing import Matchmaker
from .routing import Outgoing, route_disconnect, route_event
from .ws_manager import manager

logger = logging.getLogger(__name__)

matchmaker = Matchmaker()


async def _deliver(outgoing: list[Outgoing]) -> None:
    # одинаковые кадры подряд (game-found, start-game) уходят всей комнате разом
    for (event, payload), batch in groupby(outgoing, key=lambda item: (item[1], item[2])):
        await manager.send_to_room([target for target, _, _ in batch], event, payload)


async def handle_ws_message(raw: str, client_id: str) -> bool:
    """
    Обрабатывает одно сообщение клиента.
    Возвращает False если соединение нужно закрыть.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("WS: invalid JSON from %s: %s", client_id, e)
        return True
    if not isinstance(data, dict) or not isinstance(data.get("type"), str):
        logger.warning("WS: frame without type from %s", client_id)
        return True
    event = data.pop("type")
    logger.info("WS: msg from %s type=%s", client_id, event)
    await _deliver(route_event(matchmaker, client_id, event, data))
    return True


async def ws_relay_loop(ws: WebSocket) -> None:
    """
    Назначает клиенту id, сообщает его и принимает сообщения до отключения.
    """
    client_id = str(uuid.uuid4())
    connected = False
    try:
        await ws.accept()
        manager.connect(ws, client_id)
        connected = True
        await manager.send_to(client_id, CONNECTED, {"client_id": client_id})
        logger.info("WS: accepted client_id=%s", client_id)
        while True:
            msg = await ws.receive_text()
            if not await handle_ws_message(msg, client_id):
                break
    except WebSocketDisconnect as e:
        logger.info("WS: client disconnected code=%s client_id=%s", e.code, client_id)
    except Exception as e:
        logger.exception("WS: error client_id=%s: %s", client_id, e)
    finally:
        if connected:
            manager.disconnect(client_id)
            await _deliver(route_disconnect(matchmaker, client_id))
            logger.info("WS: disconnected client_id=%s", client_id)


def stats() -> dict[str, Any]:
    return {
        "connections": manager.count,
        "waiting": matchmaker.queue_size,
        "rooms": matchmaker.room_count,
    }
