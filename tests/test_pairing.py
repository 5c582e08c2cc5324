"""Tests for relay pairing and event routing."""

import random

import pytest

from gridsync.constants import (
    ANNOUNCE_OUTCOME,
    LEAVE_ROOM,
    MATCH_START,
    MOVE_MADE,
    OPPONENT_LEFT,
    PAIRING_FOUND,
    REQUEST_MATCH,
    SUBMIT_MOVE,
)
from gridsync.pairing import Matchmaker
from gridsync.routing import route_disconnect, route_event


@pytest.fixture
def mm():
    return Matchmaker(rng=random.Random(3))


class TestMatchmaker:
    def test_first_client_waits(self, mm):
        assert mm.join("a") is None
        assert mm.queue_size == 1

    def test_second_client_pairs(self, mm):
        mm.join("a")
        room = mm.join("b")
        assert room is not None
        assert set(room.members) == {"a", "b"}
        assert mm.queue_size == 0
        assert mm.room_for("a") is room
        assert room.first_player_symbol == "X"
        assert room.second_player_symbol == "O"

    def test_double_join_does_not_pair_with_self(self, mm):
        mm.join("a")
        assert mm.join("a") is None
        assert mm.queue_size == 1

    def test_peer_of(self, mm):
        mm.join("a")
        room = mm.join("b")
        assert mm.peer_of(room.id, "a") == "b"
        assert mm.peer_of(room.id, "c") is None
        assert mm.peer_of("nope", "a") is None

    def test_leave_returns_orphaned_peer(self, mm):
        mm.join("a")
        room = mm.join("b")
        assert mm.leave("a") == "b"
        assert mm.get_room(room.id) is None
        assert mm.room_for("b") is None

    def test_leave_from_queue(self, mm):
        mm.join("a")
        assert mm.leave("a") is None
        assert mm.queue_size == 0

    def test_first_mover_is_randomized(self):
        firsts = set()
        mm = Matchmaker(rng=random.Random(0))
        for i in range(20):
            mm.join(f"a{i}")
            firsts.add(mm.join(f"b{i}").first_player[0])
        assert firsts == {"a", "b"}

    def test_start_payload(self, mm):
        mm.join("a")
        room = mm.join("b")
        payload = room.start_payload()
        assert payload["room_id"] == room.id
        assert payload["first_player"] == room.first_player


class TestRouting:
    def _paired(self, mm):
        route_event(mm, "a", REQUEST_MATCH, {})
        return route_event(mm, "b", REQUEST_MATCH, {})

    def test_pairing_notifies_both(self, mm):
        out = self._paired(mm)
        assert [event for _, event, _ in out] == [PAIRING_FOUND, PAIRING_FOUND, MATCH_START, MATCH_START]
        assert {target for target, _, _ in out[:2]} == {"a", "b"}
        assert {target for target, _, _ in out[2:]} == {"a", "b"}
        assert out[2][2] == out[3][2]

    def test_move_forwarded_to_peer_only(self, mm):
        self._paired(mm)
        room = mm.room_for("a")
        out = route_event(mm, "a", SUBMIT_MOVE, {"room_id": room.id, "index": 4, "symbol": "X", "seq": 0})
        assert out == [("b", MOVE_MADE, {"room_id": room.id, "index": 4, "symbol": "X", "seq": 0})]

    def test_announcement_forwarded_to_peer(self, mm):
        self._paired(mm)
        room = mm.room_for("b")
        out = route_event(mm, "b", ANNOUNCE_OUTCOME, {"room_id": room.id, "winner": None})
        assert out == [("a", ANNOUNCE_OUTCOME, {"room_id": room.id, "winner": None})]

    def test_move_for_unknown_room_dropped(self, mm):
        self._paired(mm)
        assert route_event(mm, "a", SUBMIT_MOVE, {"room_id": "other", "index": 1, "symbol": "X"}) == []
        assert route_event(mm, "a", SUBMIT_MOVE, {"index": 1, "symbol": "X"}) == []

    def test_rematch_request_orphans_old_peer(self, mm):
        self._paired(mm)
        old_room = mm.room_for("a")
        out = route_event(mm, "a", REQUEST_MATCH, {})
        assert out == [("b", OPPONENT_LEFT, {"room_id": old_room.id})]
        assert mm.queue_size == 1

    def test_leave_room(self, mm):
        self._paired(mm)
        room = mm.room_for("a")
        assert route_event(mm, "a", LEAVE_ROOM, {}) == [("b", OPPONENT_LEFT, {"room_id": room.id})]

    def test_disconnect(self, mm):
        self._paired(mm)
        room = mm.room_for("b")
        assert route_disconnect(mm, "b") == [("a", OPPONENT_LEFT, {"room_id": room.id})]

    def test_unknown_event(self, mm):
        assert route_event(mm, "a", "dance", {}) == []

    @pytest.mark.parametrize("room_id", [["x"], {"x": 1}, 7])
    def test_unhashable_room_id_dropped(self, mm, room_id):
        self._paired(mm)
        room = mm.room_for("a")
        assert route_event(mm, "a", SUBMIT_MOVE, {"room_id": room_id, "index": 1, "symbol": "X"}) == []
        assert route_event(mm, "a", ANNOUNCE_OUTCOME, {"room_id": room_id, "winner": None}) == []
        assert mm.room_for("a") is room
        assert mm.peer_of(room_id, "a") is None
