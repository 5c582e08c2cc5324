"""
Модель поля 3x3 и чистые функции над ним.
Оценка исхода зависит только от содержимого поля, поэтому обе стороны
получают один и тот же результат для одинаковых полей.
"""
from dataclasses import dataclass
from enum import Enum

from .constants import BOARD_SIZE, WIN_LINES


class Symbol(str, Enum):
    X = "X"
    O = "O"

    @property
    def other(self) -> "Symbol":
        return Symbol.O if self is Symbol.X else Symbol.X

    @classmethod
    def parse(cls, value) -> "Symbol | None":
        """Символ из строки протокола или None, если значение неизвестно."""
        if isinstance(value, Symbol):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class OutcomeKind(str, Enum):
    IN_PROGRESS = "in_progress"
    WON = "won"
    DRAW = "draw"


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind = OutcomeKind.IN_PROGRESS
    winner: Symbol | None = None

    @classmethod
    def in_progress(cls) -> "Outcome":
        return cls()

    @classmethod
    def won(cls, symbol: Symbol) -> "Outcome":
        return cls(OutcomeKind.WON, symbol)

    @classmethod
    def draw(cls) -> "Outcome":
        return cls(OutcomeKind.DRAW)

    @property
    def is_terminal(self) -> bool:
        return self.kind is not OutcomeKind.IN_PROGRESS

    def to_winner_field(self) -> str | None:
        """Значение поля winner в game-ended: символ победителя или null для ничьей."""
        return self.winner.value if self.winner else None

    @classmethod
    def from_winner_field(cls, value) -> "Outcome | None":
        """
        Разбирает поле winner из объявления исхода.
        None означает ничью; неизвестный символ — некорректное объявление (None).
        """
        if value is None:
            return cls.draw()
        symbol = Symbol.parse(value)
        if symbol is None:
            return None
        return cls.won(symbol)

    def __str__(self) -> str:
        if self.kind is OutcomeKind.WON:
            return f"won({self.winner.value})"
        return self.kind.value


@dataclass(frozen=True)
class Board:
    cells: tuple[Symbol | None, ...] = (None,) * BOARD_SIZE

    @classmethod
    def empty(cls) -> "Board":
        return cls()

    @classmethod
    def from_cells(cls, cells) -> "Board":
        """Поле из последовательности 'X' / 'O' / None (для тестов и отладки)."""
        parsed = tuple(None if c in (None, "", ".") else Symbol(c) for c in cells)
        if len(parsed) != BOARD_SIZE:
            raise ValueError(f"board must have {BOARD_SIZE} cells, got {len(parsed)}")
        return cls(parsed)

    def __getitem__(self, index: int) -> Symbol | None:
        return self.cells[index]

    def __iter__(self):
        return iter(self.cells)

    def is_empty(self, index: int) -> bool:
        return self.cells[index] is None

    def place(self, index: int, symbol: Symbol) -> "Board":
        """Новое поле с символом в клетке. Занятая клетка не перезаписывается."""
        if not is_valid_index(index):
            raise ValueError(f"cell index out of range: {index!r}")
        if self.cells[index] is not None:
            raise ValueError(f"cell {index} is already occupied by {self.cells[index].value}")
        cells = list(self.cells)
        cells[index] = symbol
        return Board(tuple(cells))

    def count(self, symbol: Symbol) -> int:
        return sum(1 for c in self.cells if c is symbol)

    def filled_count(self) -> int:
        return sum(1 for c in self.cells if c is not None)

    def is_full(self) -> bool:
        return all(c is not None for c in self.cells)

    def to_list(self) -> list[str | None]:
        return [c.value if c else None for c in self.cells]


def is_valid_index(index) -> bool:
    return isinstance(index, int) and not isinstance(index, bool) and 0 <= index < BOARD_SIZE


def winning_line(board: Board) -> tuple[int, int, int] | None:
    for line in WIN_LINES:
        a, b, c = line
        if board[a] is not None and board[a] is board[b] is board[c]:
            return line
    return None


def evaluate(board: Board) -> Outcome:
    """Оценка терминального условия: победа по линии, иначе ничья на полном поле."""
    line = winning_line(board)
    if line is not None:
        return Outcome.won(board[line[0]])
    if board.is_full():
        return Outcome.draw()
    return Outcome.in_progress()
