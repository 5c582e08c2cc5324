"""
Машина состояний партии.

Фазы: idle -> searching -> matched -> active -> terminal -> (reset) -> searching.
Поле, дескриптор сессии и исход меняются только внутри обработчиков,
которые по одному выполняет EventQueue.
"""
import logging
from typing import Any, Callable

from .board import Board, Outcome, evaluate, is_valid_index
from .constants import (
    ANNOUNCE_OUTCOME,
    INBOUND_EVENTS,
    LEAVE_ROOM,
    MATCH_START,
    MOVE_MADE,
    OPPONENT_LEFT,
    PAIRING_FOUND,
    SUBMIT_MOVE,
)
from .matchmaking import MatchmakingClient
from .reconciler import TerminationReconciler
from .relay import EventQueue, Relay
from .session import Move, Phase, SessionDescriptor, Snapshot

logger = logging.getLogger(__name__)

Listener = Callable[[Snapshot], None]


class GameStateMachine:
    def __init__(self, relay: Relay, events: EventQueue | None = None):
        self.relay = relay
        self.events = events or EventQueue()
        self.matchmaking = MatchmakingClient(relay)
        self.reconciler = TerminationReconciler(relay)
        self.phase = Phase.IDLE
        self.board = Board.empty()
        self.session: SessionDescriptor | None = None
        self.opponent_left = False
        self._listeners: list[Listener] = []
        self._subscribed = False
        self._subscribe()

    # ------------------------------------------------------------------
    # Подписка на релей
    # ------------------------------------------------------------------

    def _subscribe(self) -> None:
        handlers = {
            PAIRING_FOUND: self._on_pairing_found,
            MATCH_START: self._on_match_start,
            MOVE_MADE: self._on_move_made,
            ANNOUNCE_OUTCOME: self._on_outcome_announced,
            OPPONENT_LEFT: self._on_opponent_left,
        }
        for event, handler in handlers.items():
            self.relay.subscribe(event, self._queued(handler))
        self._subscribed = True

    def _queued(self, handler: Callable[[dict[str, Any]], bool]) -> Callable[[dict[str, Any]], None]:
        def run(payload: dict[str, Any]) -> None:
            self.events.submit(self._dispatch, handler, payload)
        return run

    def _dispatch(self, handler: Callable[..., bool], *args) -> bool:
        changed = handler(*args)
        if changed:
            self._notify()
        return bool(changed)

    def close(self) -> None:
        """Покинуть комнату или очередь и снять все подписки."""
        if not self._subscribed:
            return
        if self.phase is not Phase.IDLE:
            self.relay.emit(LEAVE_ROOM, {})
        for event in INBOUND_EVENTS:
            self.relay.unsubscribe(event)
        self._subscribed = False

    def on_change(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in self._listeners:
            listener(snap)

    # ------------------------------------------------------------------
    # Снимок
    # ------------------------------------------------------------------

    @property
    def outcome(self) -> Outcome:
        return self.reconciler.outcome

    def snapshot(self) -> Snapshot:
        session = self.session
        return Snapshot(
            board=self.board,
            is_local_turn=bool(session and session.is_local_turn),
            local_symbol=session.local_symbol if session else None,
            outcome=self.outcome,
            has_active_room=session is not None,
            phase=self.phase,
            room_id=session.room_id if session else self.matchmaking.pending_room_id,
            opponent_left=self.opponent_left,
        )

    # ------------------------------------------------------------------
    # Команды пользователя
    # ------------------------------------------------------------------

    def request_match(self) -> bool:
        return bool(self.events.submit(self._dispatch, self._request_match))

    def submit_local_move(self, index: int) -> bool:
        """True если ход принят; False если проигнорирован (не свой ход, занято, партия окончена)."""
        return bool(self.events.submit(self._dispatch, self._submit_local_move, index))

    def reset(self) -> bool:
        """Сыграть ещё: очистить поле, исход и сессию и сразу искать новую пару."""
        return bool(self.events.submit(self._dispatch, self._reset))

    def _request_match(self) -> bool:
        if self.phase is Phase.TERMINAL:
            self._clear()
        if self.phase is not Phase.IDLE:
            logger.info("match request ignored in phase %s", self.phase.value)
            return False
        self.phase = Phase.SEARCHING
        self.matchmaking.request_match()
        return True

    def _reset(self) -> bool:
        self._clear()
        return self._request_match()

    def _clear(self) -> None:
        self.board = Board.empty()
        self.reconciler.reset()
        self.matchmaking.reset()
        self.session = None
        self.opponent_left = False
        self.phase = Phase.IDLE

    def _submit_local_move(self, index: int) -> bool:
        session = self.session
        if self.phase is not Phase.ACTIVE or session is None or self.outcome.is_terminal:
            logger.info("move ignored: no game in progress")
            return False
        if self.opponent_left:
            logger.info("move ignored: opponent left room %s", session.room_id)
            return False
        if not session.is_local_turn:
            logger.info("move ignored: not our turn")
            return False
        if not is_valid_index(index) or not self.board.is_empty(index):
            logger.info("move ignored: cell %r unavailable", index)
            return False

        move = Move(index=index, symbol=session.local_symbol, seq=session.next_seq)
        self.board = self.board.place(index, move.symbol)
        session.is_local_turn = False
        session.next_seq += 1
        self.relay.emit(SUBMIT_MOVE, move.to_payload(session.room_id))
        logger.info("room %s: local %s at %d", session.room_id, move.symbol.value, index)
        self._evaluate()
        return True

    # ------------------------------------------------------------------
    # События релея
    # ------------------------------------------------------------------

    def _on_pairing_found(self, payload: dict[str, Any]) -> bool:
        if self.phase is not Phase.SEARCHING:
            logger.info("game-found ignored in phase %s", self.phase.value)
            return False
        if self.matchmaking.handle_pairing_found(payload) is None:
            return False
        self.phase = Phase.MATCHED
        return True

    def _on_match_start(self, payload: dict[str, Any]) -> bool:
        if self.phase not in (Phase.SEARCHING, Phase.MATCHED):
            logger.info("start-game ignored in phase %s", self.phase.value)
            return False
        session = self.matchmaking.handle_match_start(payload)
        if session is None:
            return False
        self.session = session
        self.board = Board.empty()
        self.reconciler.reset()
        self.opponent_left = False
        self.phase = Phase.ACTIVE
        return True

    def receive_remote_move(self, payload: dict[str, Any]) -> bool:
        return bool(self.events.submit(self._dispatch, self._on_move_made, payload))

    def _on_move_made(self, payload: dict[str, Any]) -> bool:
        """
        Применить ход соперника. Очередь и занятость клетки не проверяются:
        отправитель их соблюдает. Повторная доставка уже применённого хода
        и ход в клетку, занятую другим символом, игнорируются.
        """
        session = self.session
        if self.phase is not Phase.ACTIVE or session is None:
            logger.info("move-made ignored in phase %s", self.phase.value)
            return False
        if not self._same_room(payload):
            return False
        move = Move.from_payload(payload)
        if move is None:
            logger.warning("room %s: malformed move-made %s", session.room_id, payload)
            return False

        current = self.board[move.index]
        if current is move.symbol:
            logger.info("room %s: duplicate move at %d ignored", session.room_id, move.index)
            return False
        if move.seq is not None and move.seq != session.next_seq:
            logger.warning(
                "room %s: move seq %d out of order (expected %d), ignored",
                session.room_id, move.seq, session.next_seq,
            )
            return False
        if current is not None:
            logger.warning(
                "room %s: move %s at %d conflicts with %s, ignored",
                session.room_id, move.symbol.value, move.index, current.value,
            )
            return False

        self.board = self.board.place(move.index, move.symbol)
        session.is_local_turn = True
        session.next_seq += 1
        logger.info("room %s: remote %s at %d", session.room_id, move.symbol.value, move.index)
        self._evaluate()
        return True

    def _on_outcome_announced(self, payload: dict[str, Any]) -> bool:
        session = self.session
        if self.phase not in (Phase.ACTIVE, Phase.TERMINAL) or session is None:
            logger.info("game-ended ignored in phase %s", self.phase.value)
            return False
        if not self._same_room(payload):
            return False
        if not isinstance(payload, dict) or "winner" not in payload:
            logger.warning("room %s: game-ended without winner field ignored", session.room_id)
            return False
        outcome = Outcome.from_winner_field(payload["winner"])
        if outcome is None:
            logger.warning("room %s: game-ended with unknown winner %r ignored", session.room_id, payload["winner"])
            return False
        if not self.reconciler.receive_announcement(session.room_id, outcome):
            return False
        self._enter_terminal()
        return True

    def _on_opponent_left(self, payload: dict[str, Any]) -> bool:
        if self.session is None or not self._same_room(payload):
            return False
        if self.opponent_left:
            return False
        self.opponent_left = True
        logger.info("room %s: opponent left", self.session.room_id)
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _same_room(self, payload: dict[str, Any]) -> bool:
        """Событие для текущей комнаты. Событие без room_id считается своим."""
        room_id = payload.get("room_id") if isinstance(payload, dict) else None
        if room_id is not None and room_id != self.session.room_id:
            logger.info("event for room %s ignored, active room is %s", room_id, self.session.room_id)
            return False
        return True

    def _evaluate(self) -> None:
        outcome = evaluate(self.board)
        if self.reconciler.local_detected(self.session.room_id, outcome):
            self._enter_terminal()

    def _enter_terminal(self) -> None:
        self.phase = Phase.TERMINAL
        logger.info("room %s: game over, %s", self.session.room_id, self.outcome)
