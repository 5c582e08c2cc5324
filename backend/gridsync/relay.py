"""
Соединение с релеем как явная capability, которую получает слой сессии,
и кооперативная очередь событий.

Все входящие сигналы и команды пользователя проходят через EventQueue
и выполняются строго по одному, поэтому каждый обработчик читает
текущее состояние, а не снимок, захваченный при подписке.
"""
import logging
from collections import deque
from typing import Any, Callable, Protocol

from .pairing import Matchmaker
from .routing import route_disconnect, route_event

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], None]


class Relay(Protocol):
    client_id: str | None

    def emit(self, event: str, payload: dict[str, Any]) -> None: ...

    def subscribe(self, event: str, handler: Handler) -> None: ...

    def unsubscribe(self, event: str) -> None: ...


class EventQueue:
    def __init__(self):
        self._pending: deque[tuple[Callable[..., Any], tuple]] = deque()
        self._draining = False

    @property
    def busy(self) -> bool:
        return self._draining

    def submit(self, fn: Callable[..., Any], *args) -> Any:
        """
        Выполнить fn в очереди. Если очередь уже разбирается (вызов изнутри
        обработчика), fn откладывается до конца текущего обработчика и
        возвращается None. Исключение fn пробрасывается вызывающему только
        после того, как отложенные обработчики разобраны.
        """
        if self._draining:
            self._pending.append((fn, args))
            return None
        self._draining = True
        try:
            return fn(*args)
        finally:
            while self._pending:
                next_fn, next_args = self._pending.popleft()
                try:
                    next_fn(*next_args)
                except Exception as e:
                    logger.exception("queue: deferred %s failed: %s", getattr(next_fn, "__name__", next_fn), e)
            self._draining = False


class SubscriptionMixin:
    """Таблица обработчиков по имени события."""

    def __init__(self):
        self._handlers: dict[str, Handler] = {}

    def subscribe(self, event: str, handler: Handler) -> None:
        self._handlers[event] = handler

    def unsubscribe(self, event: str) -> None:
        self._handlers.pop(event, None)

    def deliver(self, event: str, payload: dict[str, Any]) -> bool:
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug("relay: no handler for %s, dropped", event)
            return False
        handler(payload)
        return True


class LocalRelay(SubscriptionMixin):
    def __init__(self, hub: "LocalRelayHub", client_id: str):
        super().__init__()
        self.hub = hub
        self.client_id = client_id
        self.sent: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        self.sent.append((event, dict(payload)))
        self.hub.post(self.client_id, event, payload)

    def disconnect(self) -> None:
        self.hub.disconnect(self.client_id)


class LocalRelayHub:
    """
    Релей внутри процесса с теми же правилами пейринга и пересылки,
    что и сетевой. Доставка откладывается до pump(), чтобы можно было
    моделировать одновременные отправки с обеих сторон.
    """

    def __init__(self, matchmaker: Matchmaker | None = None):
        self.matchmaker = matchmaker or Matchmaker()
        self._clients: dict[str, LocalRelay] = {}
        self._inflight: deque[tuple[str, str, dict[str, Any]]] = deque()

    def connect(self, client_id: str) -> LocalRelay:
        relay = LocalRelay(self, client_id)
        self._clients[client_id] = relay
        return relay

    def disconnect(self, client_id: str) -> None:
        self._clients.pop(client_id, None)
        self._inflight.extend(route_disconnect(self.matchmaker, client_id))

    def post(self, sender: str, event: str, payload: dict[str, Any]) -> None:
        self._inflight.extend(route_event(self.matchmaker, sender, event, dict(payload)))

    @property
    def pending(self) -> int:
        return len(self._inflight)

    def step(self) -> bool:
        """Доставить одно сообщение. False если доставлять нечего."""
        if not self._inflight:
            return False
        target, event, payload = self._inflight.popleft()
        relay = self._clients.get(target)
        if relay is None:
            logger.info("relay: %s for disconnected %s dropped", event, target)
            return True
        relay.deliver(event, payload)
        return True

    def pump(self, limit: int = 1000) -> int:
        """Доставлять сообщения, пока они есть. Возвращает число доставленных."""
        delivered = 0
        while delivered < limit and self.step():
            delivered += 1
        return delivered
