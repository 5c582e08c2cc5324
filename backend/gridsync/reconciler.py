"""
Согласование исхода партии между двумя сторонами.

Каждая сторона сама вычисляет исход после каждого хода и объявляет его
сопернику. Полученное объявление принимается как есть; повторное или
совпадающее с уже известным исходом ничего не меняет и не вызывает
новой рассылки.
"""
import logging

from .board import Outcome
from .constants import ANNOUNCE_OUTCOME
from .relay import Relay

logger = logging.getLogger(__name__)


class TerminationReconciler:
    def __init__(self, relay: Relay):
        self.relay = relay
        self.outcome = Outcome.in_progress()
        self.announced = False

    def reset(self) -> None:
        self.outcome = Outcome.in_progress()
        self.announced = False

    def local_detected(self, room_id: str, outcome: Outcome) -> bool:
        """
        Локальная оценка дала исход. Объявляет его, если исход ещё не был
        зафиксирован. Возвращает True если отображаемый исход изменился.
        """
        if not outcome.is_terminal:
            return False
        if self.outcome.is_terminal:
            if self.outcome != outcome:
                logger.warning(
                    "reconciler: room %s local %s disagrees with resolved %s, keeping resolved",
                    room_id, outcome, self.outcome,
                )
            return False
        self.outcome = outcome
        self._announce(room_id)
        return True

    def receive_announcement(self, room_id: str, outcome: Outcome) -> bool:
        """Объявление соперника. Никогда не вызывает ответной рассылки."""
        if not outcome.is_terminal:
            return False
        if self.outcome == outcome:
            logger.debug("reconciler: room %s duplicate announcement %s", room_id, outcome)
            return False
        if self.outcome.is_terminal:
            logger.warning(
                "reconciler: room %s peer announced %s over resolved %s, adopting",
                room_id, outcome, self.outcome,
            )
        self.outcome = outcome
        return True

    def _announce(self, room_id: str) -> None:
        if self.announced:
            return
        self.announced = True
        self.relay.emit(ANNOUNCE_OUTCOME, {"room_id": room_id, "winner": self.outcome.to_winner_field()})
        logger.info("reconciler: room %s announced %s", room_id, self.outcome)
