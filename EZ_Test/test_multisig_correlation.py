from modules.ez_multisig.correlation import CorrelationTracker
from modules.ez_multisig.models import ParticipantSlot


def _slot(tag: int) -> ParticipantSlot:
    return ParticipantSlot(pub_key=bytes([2]) + bytes([tag]) * 32)


def test_track_assigns_fresh_ids_and_marks_slot():
    tracker = CorrelationTracker()
    a, b = _slot(1), _slot(2)

    id_a = tracker.track(a)
    id_b = tracker.track(b)

    assert id_a != id_b
    assert a.sent == id_a and b.sent == id_b
    assert tracker.peek(id_a) is a
    assert tracker.peek(id_b) is b
    assert len(tracker) == 2


def test_retracking_a_slot_retires_its_previous_id():
    tracker = CorrelationTracker()
    slot = _slot(1)

    first = tracker.track(slot)
    second = tracker.track(slot)

    assert first != second
    assert slot.sent == second
    assert first not in tracker
    assert tracker.peek(second) is slot
    assert len(tracker) == 1


def test_resolve_consumes_entry_once():
    tracker = CorrelationTracker()
    slot = _slot(1)
    request_id = tracker.track(slot)

    assert tracker.resolve(request_id) is slot
    assert request_id not in tracker
    assert tracker.resolve(request_id) is None
    assert tracker.resolve("never-issued") is None


def test_reset_clears_pending_and_ids_keep_increasing():
    tracker = CorrelationTracker(first_id=10)
    slots = [_slot(i) for i in range(3)]
    issued = [tracker.track(s) for s in slots]

    tracker.reset()

    assert len(tracker) == 0
    assert all(i not in tracker for i in issued)
    assert tracker.track(_slot(9)) > max(issued)


def test_retrack_after_reset_does_not_touch_other_entries():
    tracker = CorrelationTracker()
    slot = _slot(1)
    old = tracker.track(slot)
    tracker.reset()
    other = _slot(2)
    tracker.track(other)

    tracker.track(slot)

    assert old not in tracker
    assert tracker.peek(other.sent) is other
    assert len(tracker) == 2
