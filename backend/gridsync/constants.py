"""Константы протокола: имена событий релея, символы, линии победы."""
from typing import TypedDict

# Клиент -> релей
REQUEST_MATCH = "search-game"
SUBMIT_MOVE = "make-move"
LEAVE_ROOM = "leave-room"

# Релей -> клиент
CONNECTED = "connected"
PAIRING_FOUND = "game-found"
MATCH_START = "start-game"
MOVE_MADE = "move-made"
OPPONENT_LEFT = "opponent-left"

# В обе стороны
ANNOUNCE_OUTCOME = "game-ended"

INBOUND_EVENTS = (PAIRING_FOUND, MATCH_START, MOVE_MADE, ANNOUNCE_OUTCOME, OPPONENT_LEFT)

BOARD_SIZE = 9

FIRST_MOVER_SYMBOL = "X"
SECOND_MOVER_SYMBOL = "O"


class MatchStartPayload(TypedDict):
    room_id: str
    first_player: str
    first_player_symbol: str
    second_player_symbol: str


# 3 строки, 3 столбца, 2 диагонали
WIN_LINES: tuple[tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)
