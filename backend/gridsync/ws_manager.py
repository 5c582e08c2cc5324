"""
Менеджер WebSocket: подключения по client_id, отправка событий релея.
"""
import logging
from typing import Any, Iterable

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection:
    def __init__(self, ws: WebSocket, client_id: str):
        self.ws = ws
        self.client_id = client_id


class WSManager:
    def __init__(self):
        self._by_client: dict[str, Connection] = {}

    @property
    def count(self) -> int:
        return len(self._by_client)

    def connect(self, ws: WebSocket, client_id: str) -> None:
        self._by_client[client_id] = Connection(ws, client_id)

    def disconnect(self, client_id: str) -> None:
        self._by_client.pop(client_id, None)

    async def send_to(self, client_id: str, event: str, payload: dict[str, Any]) -> bool:
        conn = self._by_client.get(client_id)
        if not conn:
            logger.info("send_to %s: not connected, %s dropped", client_id, event)
            return False
        try:
            await conn.ws.send_json({"type": event, **payload})
            return True
        except Exception as e:
            logger.warning("send_to %s: %s", client_id, e)
            return False

    async def send_to_room(self, client_ids: Iterable[str], event: str, payload: dict[str, Any]) -> int:
        """Один и тот же кадр всем участникам комнаты. Возвращает число доставленных."""
        delivered = 0
        for client_id in client_ids:
            if await self.send_to(client_id, event, payload):
                delivered += 1
        return delivered


manager = WSManager()
