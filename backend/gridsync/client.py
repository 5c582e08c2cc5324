"""
Клиент релея поверх WebSocket (библиотека websockets).
Первый кадр от релея — connected с client_id; остальные кадры передаются
подписанным обработчикам в порядке получения.
"""
import asyncio
import json
import logging
from typing import Any

import websockets

from .constants import CONNECTED
from .relay import SubscriptionMixin

logger = logging.getLogger(__name__)


class WebSocketRelay(SubscriptionMixin):
    def __init__(self, url: str):
        super().__init__()
        self.url = url
        self.client_id: str | None = None
        self._ws = None
        self._outbox: asyncio.Queue[str] = asyncio.Queue()
        self.closed = False

    async def connect(self) -> str:
        self._ws = await websockets.connect(self.url)
        frame = self._decode(await self._ws.recv())
        if not frame or frame[0] != CONNECTED or not frame[1].get("client_id"):
            await self._ws.close()
            raise ConnectionError(f"relay at {self.url} did not assign a client id")
        self.client_id = str(frame[1]["client_id"])
        logger.info("relay: connected to %s as %s", self.url, self.client_id)
        return self.client_id

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        if self.closed:
            logger.warning("relay: connection closed, %s dropped", event)
            return
        self._outbox.put_nowait(json.dumps({"type": event, **payload}))

    async def run(self) -> None:
        """Читать и отправлять кадры, пока соединение открыто."""
        writer = asyncio.create_task(self._write_loop())
        try:
            async for raw in self._ws:
                frame = self._decode(raw)
                if frame is None:
                    continue
                self.deliver(*frame)
        except websockets.ConnectionClosed as e:
            logger.info("relay: connection closed: %s", e)
        finally:
            self.closed = True
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass

    async def close(self) -> None:
        if self._ws is not None:
            await self._ws.close()

    async def _write_loop(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await self._ws.send(message)
            except websockets.ConnectionClosed as e:
                self.closed = True
                logger.warning("relay: send failed, connection closed: %s", e)
                return

    @staticmethod
    def _decode(raw) -> tuple[str, dict[str, Any]] | None:
        try:
            data = json.loads(raw)
            event = data.pop("type")
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
            logger.warning("relay: malformed frame dropped: %s", e)
            return None
        if not isinstance(event, str):
            logger.warning("relay: frame type %r is not a string, dropped", event)
            return None
        return event, data
