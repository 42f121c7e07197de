from gitsafe.utils.observer import Signal


def test_connect_is_idempotent_and_ordered():
    signal = Signal("test")
    seen = []
    first = lambda v: seen.append(("first", v))
    second = lambda v: seen.append(("second", v))

    signal.connect(first)
    signal.connect(second)
    signal.connect(first)
    signal.emit(1)

    assert seen == [("first", 1), ("second", 1)]


def test_disconnect_stops_delivery():
    signal = Signal("test")
    seen = []
    signal.connect(seen.append)
    signal.disconnect(seen.append)
    signal.disconnect(seen.append)

    signal.emit("x")

    assert seen == []


def test_subscriber_may_disconnect_during_emit():
    signal = Signal("test")
    seen = []

    def once(value):
        seen.append(value)
        signal.disconnect(once)

    signal.connect(once)
    signal.emit(1)
    signal.emit(2)

    assert seen == [1]
