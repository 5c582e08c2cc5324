"""
Очередь пейринга и комнаты релея (in-memory).
Релей не знает правил игры: он только составляет пары, назначает
первого игрока и символы и знает, кому пересылать события.
"""
import logging
import random
import uuid
from dataclasses import dataclass

from .config import get_config
from .constants import FIRST_MOVER_SYMBOL, SECOND_MOVER_SYMBOL, MatchStartPayload

logger = logging.getLogger(__name__)


@dataclass
class Room:
    id: str
    first_player: str
    second_player: str
    first_player_symbol: str = FIRST_MOVER_SYMBOL
    second_player_symbol: str = SECOND_MOVER_SYMBOL

    @property
    def members(self) -> tuple[str, str]:
        return (self.first_player, self.second_player)

    def peer_of(self, client_id: str) -> str | None:
        if client_id == self.first_player:
            return self.second_player
        if client_id == self.second_player:
            return self.first_player
        return None

    def start_payload(self) -> MatchStartPayload:
        return {
            "room_id": self.id,
            "first_player": self.first_player,
            "first_player_symbol": self.first_player_symbol,
            "second_player_symbol": self.second_player_symbol,
        }


class Matchmaker:
    def __init__(self, rng: random.Random | None = None):
        self._queue: list[str] = []
        self._rooms: dict[str, Room] = {}
        self._room_by_client: dict[str, str] = {}
        self._rng = rng or random.Random(get_config().seed)

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    def join(self, client_id: str) -> Room | None:
        """
        Поставить в очередь или сразу создать комнату, если кто-то ждёт.
        Возвращает Room если пара найдена, иначе None.
        Клиент, уже сидящий в комнате, сначала её покидает.
        """
        if client_id in self._queue:
            return None
        if client_id in self._room_by_client:
            self.leave(client_id)
        if self._queue:
            opponent = self._queue.pop(0)
            room = self._create_room(opponent, client_id)
            logger.info("pairing: room %s created for %s and %s", room.id, opponent, client_id)
            return room
        self._queue.append(client_id)
        return None

    def leave(self, client_id: str) -> str | None:
        """
        Убрать клиента из очереди и из комнаты.
        Возвращает id оставшегося в комнате соперника, если он был.
        """
        if client_id in self._queue:
            self._queue.remove(client_id)
        room_id = self._room_by_client.pop(client_id, None)
        if room_id is None:
            return None
        room = self._rooms.pop(room_id, None)
        if room is None:
            return None
        peer = room.peer_of(client_id)
        if peer is not None:
            self._room_by_client.pop(peer, None)
        logger.info("pairing: room %s closed, %s left", room_id, client_id)
        return peer

    def get_room(self, room_id: str) -> Room | None:
        return self._rooms.get(room_id)

    def room_for(self, client_id: str) -> Room | None:
        room_id = self._room_by_client.get(client_id)
        return self._rooms.get(room_id) if room_id else None

    def peer_of(self, room_id: str, client_id: str) -> str | None:
        """Второй участник комнаты; None если комнаты нет или клиент не её участник."""
        if not isinstance(room_id, str):
            return None
        room = self._rooms.get(room_id)
        if not room:
            return None
        return room.peer_of(client_id)

    def _create_room(self, waiting: str, arriving: str) -> Room:
        first, second = (waiting, arriving) if self._rng.random() < 0.5 else (arriving, waiting)
        room = Room(id=str(uuid.uuid4()), first_player=first, second_player=second)
        self._rooms[room.id] = room
        self._room_by_client[first] = room.id
        self._room_by_client[second] = room.id
        return room
