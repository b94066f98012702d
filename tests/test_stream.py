"""Tests for EventStream — the synchronous notification primitive."""

from deepwatch import EventStream


class TestEmitSubscribe:
    """Core emit/subscribe behavior."""

    def test_subscribe_receives_emitted_values(self):
        stream = EventStream()
        received = []
        stream.subscribe(lambda v: received.append(v))
        stream.emit(1)
        stream.emit(2)
        assert received == [1, 2]

    def test_multiple_subscribers_in_order(self):
        stream = EventStream()
        log = []
        stream.subscribe(lambda v: log.append(("a", v)))
        stream.subscribe(lambda v: log.append(("b", v)))
        stream.emit("x")
        assert log == [("a", "x"), ("b", "x")]

    def test_unsubscribe(self):
        stream = EventStream()
        received = []
        unsub = stream.subscribe(lambda v: received.append(v))
        stream.emit(1)
        unsub()
        stream.emit(2)
        assert received == [1]
        assert stream.subscriber_count == 0

    def test_unsubscribe_idempotent(self):
        stream = EventStream()
        unsub = stream.subscribe(lambda v: None)
        unsub()
        unsub()  # should not raise

    def test_unsubscribe_during_emit(self):
        """A subscriber removing another mid-delivery doesn't skip anyone."""
        stream = EventStream()
        log = []
        disposers = []

        def first(v):
            log.append("first")
            disposers[1]()

        disposers.append(stream.subscribe(first))
        disposers.append(stream.subscribe(lambda v: log.append("second")))
        disposers.append(stream.subscribe(lambda v: log.append("third")))

        stream.emit(0)
        assert log == ["first", "second", "third"]

        log.clear()
        stream.emit(0)
        assert log == ["first", "third"]


class TestDispose:
    def test_emit_after_dispose_is_noop(self):
        stream = EventStream()
        received = []
        stream.subscribe(lambda v: received.append(v))
        stream.dispose()
        stream.emit(1)
        assert received == []
        assert stream.subscriber_count == 0

    def test_repr(self):
        stream = EventStream()
        stream.subscribe(lambda v: None)
        assert "1 subscribers" in repr(stream)
        stream.dispose()
        assert "disposed" in repr(stream)
