"""
gridsync: синхронизация партии крестиков-ноликов между двумя игроками через релей.
"""
from .board import Board, Outcome, OutcomeKind, Symbol, evaluate
from .machine import GameStateMachine
from .relay import EventQueue, LocalRelay, LocalRelayHub, Relay
from .session import Move, Phase, SessionDescriptor, Snapshot

__all__ = [
    "Board",
    "EventQueue",
    "GameStateMachine",
    "LocalRelay",
    "LocalRelayHub",
    "Move",
    "Outcome",
    "OutcomeKind",
    "Phase",
    "Relay",
    "SessionDescriptor",
    "Snapshot",
    "Symbol",
    "evaluate",
]
