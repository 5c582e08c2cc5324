"""
Дескриптор сессии, ход и снимок состояния для слоя отображения.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .board import Board, Outcome, Symbol, is_valid_index

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    MATCHED = "matched"
    ACTIVE = "active"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class Move:
    index: int
    symbol: Symbol
    seq: int | None = None  # номер хода в комнате, с нуля

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Move | None":
        """Ход из payload move-made; None если payload некорректен."""
        if not isinstance(payload, dict):
            return None
        index = payload.get("index")
        if not is_valid_index(index):
            return None
        symbol = Symbol.parse(payload.get("symbol"))
        if symbol is None:
            return None
        seq = payload.get("seq")
        if seq is not None and (not isinstance(seq, int) or isinstance(seq, bool) or seq < 0):
            return None
        return cls(index=index, symbol=symbol, seq=seq)

    def to_payload(self, room_id: str) -> dict[str, Any]:
        payload: dict[str, Any] = {"room_id": room_id, "index": self.index, "symbol": self.symbol.value}
        if self.seq is not None:
            payload["seq"] = self.seq
        return payload


@dataclass
class SessionDescriptor:
    room_id: str
    local_id: str
    local_symbol: Symbol
    is_local_turn: bool
    next_seq: int = 0

    @classmethod
    def from_match_start(cls, payload: dict[str, Any], local_id: str) -> "SessionDescriptor | None":
        """
        Сопоставляет свой id с первым игроком из start-game:
        от этого зависят очередь хода и свой символ.
        """
        if not isinstance(payload, dict):
            return None
        room_id = payload.get("room_id")
        first_player = payload.get("first_player")
        first_symbol = Symbol.parse(payload.get("first_player_symbol"))
        second_symbol = Symbol.parse(payload.get("second_player_symbol"))
        if not room_id or not first_player or first_symbol is None or second_symbol is None:
            logger.warning("start-game payload incomplete: %s", payload)
            return None
        if first_symbol is second_symbol:
            logger.warning("start-game assigns the same symbol to both players: %s", payload)
            return None
        is_first = first_player == local_id
        return cls(
            room_id=str(room_id),
            local_id=local_id,
            local_symbol=first_symbol if is_first else second_symbol,
            is_local_turn=is_first,
        )


@dataclass(frozen=True)
class Snapshot:
    """Снимок только для чтения, который получает слой отображения."""

    board: Board
    is_local_turn: bool
    local_symbol: Symbol | None
    outcome: Outcome
    has_active_room: bool
    phase: Phase
    room_id: str | None = None
    opponent_left: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "board": self.board.to_list(),
            "is_local_turn": self.is_local_turn,
            "local_symbol": self.local_symbol.value if self.local_symbol else None,
            "outcome": str(self.outcome),
            "has_active_room": self.has_active_room,
            "phase": self.phase.value,
            "room_id": self.room_id,
            "opponent_left": self.opponent_left,
        }
