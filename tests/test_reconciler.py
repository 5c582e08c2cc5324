"""Tests for termination reconciliation between the two peers."""

import pytest

from gridsync.board import Outcome, Symbol
from gridsync.constants import ANNOUNCE_OUTCOME
from gridsync.reconciler import TerminationReconciler
from gridsync.session import Phase


def _announcements(relay):
    return [payload for event, payload in relay.sent if event == ANNOUNCE_OUTCOME]


@pytest.fixture
def relay(hub):
    return hub.connect("me")


@pytest.fixture
def reconciler(relay):
    return TerminationReconciler(relay)


class TestReconcilerUnit:
    def test_in_progress_never_announced(self, reconciler, relay):
        assert reconciler.local_detected("r1", Outcome.in_progress()) is False
        assert _announcements(relay) == []

    def test_local_detection_announces_once(self, reconciler, relay):
        assert reconciler.local_detected("r1", Outcome.won(Symbol.X)) is True
        assert reconciler.local_detected("r1", Outcome.won(Symbol.X)) is False
        assert _announcements(relay) == [{"room_id": "r1", "winner": "X"}]

    def test_draw_announced_with_null_winner(self, reconciler, relay):
        reconciler.local_detected("r1", Outcome.draw())
        assert _announcements(relay) == [{"room_id": "r1", "winner": None}]

    def test_received_announcement_adopted_without_broadcast(self, reconciler, relay):
        assert reconciler.receive_announcement("r1", Outcome.won(Symbol.O)) is True
        assert reconciler.outcome == Outcome.won(Symbol.O)
        assert _announcements(relay) == []

    def test_duplicate_announcement_noop(self, reconciler):
        reconciler.receive_announcement("r1", Outcome.draw())
        assert reconciler.receive_announcement("r1", Outcome.draw()) is False

    def test_announcement_matching_local_detection_retained(self, reconciler, relay):
        reconciler.local_detected("r1", Outcome.won(Symbol.X))
        assert reconciler.receive_announcement("r1", Outcome.won(Symbol.X)) is False
        assert reconciler.outcome == Outcome.won(Symbol.X)
        assert len(_announcements(relay)) == 1

    def test_local_detection_after_adoption_is_silent(self, reconciler, relay):
        reconciler.receive_announcement("r1", Outcome.won(Symbol.X))
        assert reconciler.local_detected("r1", Outcome.won(Symbol.X)) is False
        assert _announcements(relay) == []

    def test_outcome_never_reverts(self, reconciler):
        reconciler.local_detected("r1", Outcome.draw())
        assert reconciler.receive_announcement("r1", Outcome.in_progress()) is False
        assert reconciler.outcome.is_terminal

    def test_reset(self, reconciler):
        reconciler.local_detected("r1", Outcome.draw())
        reconciler.reset()
        assert reconciler.outcome == Outcome.in_progress()
        assert reconciler.announced is False


class TestReconciliationBetweenPeers:
    def _play_top_row(self, hub, first, second):
        for machine, index in [(first, 0), (second, 4), (first, 1), (second, 3)]:
            machine.submit_local_move(index)
            hub.pump()
        first.submit_local_move(2)

    def test_both_sides_announce_and_retain(self, hub, pair):
        first, second = pair
        self._play_top_row(hub, first, second)
        hub.pump()
        assert _announcements(first.relay) == [{"room_id": first.session.room_id, "winner": "X"}]
        assert _announcements(second.relay) == [{"room_id": second.session.room_id, "winner": "X"}]
        assert first.outcome == second.outcome == Outcome.won(Symbol.X)
        assert hub.pending == 0

    def test_concurrent_announcements_cross_in_flight(self, hub, pair):
        first, second = pair
        self._play_top_row(hub, first, second)
        # deliver only the winning move so the receiver detects and announces
        # while the winner's own announcement is still in flight
        hub.step()
        assert second.phase is Phase.TERMINAL
        assert hub.pending == 2
        hub.pump()
        assert first.outcome == Outcome.won(Symbol.X)
        assert second.outcome == Outcome.won(Symbol.X)
        assert len(_announcements(first.relay)) == 1
        assert len(_announcements(second.relay)) == 1

    def test_duplicate_announcement_delivery(self, hub, pair):
        first, second = pair
        self._play_top_row(hub, first, second)
        hub.pump()
        snap = second.snapshot()
        payload = {"room_id": second.session.room_id, "winner": "X"}
        second.relay.deliver(ANNOUNCE_OUTCOME, payload)
        second.relay.deliver(ANNOUNCE_OUTCOME, dict(payload))
        assert second.snapshot() == snap
        assert hub.pending == 0

    def test_announcement_before_detection_is_adopted(self, solo):
        machine, relay = solo
        relay.deliver(ANNOUNCE_OUTCOME, {"room_id": "room-1", "winner": None})
        assert machine.outcome == Outcome.draw()
        assert machine.phase is Phase.TERMINAL
        assert _announcements(relay) == []

    def test_announcement_for_other_room_ignored(self, solo):
        machine, relay = solo
        relay.deliver(ANNOUNCE_OUTCOME, {"room_id": "room-2", "winner": "X"})
        assert machine.outcome == Outcome.in_progress()

    def test_malformed_announcement_ignored(self, solo):
        machine, relay = solo
        relay.deliver(ANNOUNCE_OUTCOME, {"room_id": "room-1", "winner": "Z"})
        relay.deliver(ANNOUNCE_OUTCOME, {"room_id": "room-1"})
        assert machine.phase is Phase.ACTIVE
