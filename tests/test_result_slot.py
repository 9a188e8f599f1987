from engine.result_slot import LatestResultSlot


def test_stale_results_are_rejected():
    slot = LatestResultSlot()

    assert slot.offer("first", 1.0)
    assert not slot.offer("late", 0.5)
    assert not slot.offer("same time", 1.0)
    assert slot.latest_time == 1.0

    pending = slot.take()
    assert pending.value == "first"
    assert pending.query_time == 1.0


def test_newer_result_replaces_pending_one():
    slot = LatestResultSlot()
    slot.offer("first", 1.0)
    slot.offer("second", 2.0)

    assert slot.take().value == "second"
    assert slot.take() is None


def test_stale_check_survives_take_until_clear():
    slot = LatestResultSlot()
    slot.offer("first", 1.0)
    slot.take()

    assert not slot.offer("older", 0.9)

    slot.clear()
    assert slot.latest_time is None
    assert slot.offer("older", 0.9)
