"""Shared test fixtures for gridsync."""

import random

import pytest

from gridsync.config import get_config
from gridsync.constants import MATCH_START
from gridsync.machine import GameStateMachine
from gridsync.pairing import Matchmaker
from gridsync.relay import LocalRelayHub


@pytest.fixture(autouse=True)
def fresh_config():
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def hub():
    return LocalRelayHub(Matchmaker(rng=random.Random(7)))


@pytest.fixture
def pair(hub):
    """Two machines matched into one room: (first mover, second mover)."""
    a = GameStateMachine(hub.connect("alice"))
    b = GameStateMachine(hub.connect("bob"))
    a.request_match()
    b.request_match()
    hub.pump()
    assert a.session is not None and b.session is not None
    return (a, b) if a.session.is_local_turn else (b, a)


def _start_payload(first_player="me", room_id="room-1", first_symbol="X", second_symbol="O"):
    return {
        "room_id": room_id,
        "first_player": first_player,
        "first_player_symbol": first_symbol,
        "second_player_symbol": second_symbol,
    }


@pytest.fixture
def make_start():
    return _start_payload


@pytest.fixture
def solo(hub):
    """A single machine that has been started as first mover (X) in room-1.

    Remote events are injected with ``relay.deliver``.
    """
    relay = hub.connect("me")
    machine = GameStateMachine(relay)
    machine.request_match()
    relay.deliver(MATCH_START, _start_payload())
    return machine, relay
