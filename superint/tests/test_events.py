"""
Tests for the event bus.

Tests:
- Delivery order and handler counts
- Unsubscription
- Failure isolation
- Nested (depth-first) emission
"""

from ..engine_core.events import EventBus


class TestDelivery:
    """Tests for emit/subscribe."""

    def test_handlers_run_in_subscription_order(self, bus):
        calls = []
        bus.subscribe("x", lambda p: calls.append(("first", p)))
        bus.subscribe("x", lambda p: calls.append(("second", p)))

        invoked = bus.emit("x", 42)

        assert invoked == 2
        assert calls == [("first", 42), ("second", 42)]

    def test_emit_without_handlers_returns_zero(self, bus):
        assert bus.emit("nobody:listens") == 0

    def test_topics_are_independent(self, bus):
        calls = []
        bus.subscribe("a", calls.append)

        bus.emit("b", 1)

        assert calls == []

    def test_listener_count(self, bus):
        bus.subscribe("a", lambda p: None)
        bus.subscribe("a", lambda p: None)
        bus.subscribe("b", lambda p: None)

        assert bus.listener_count("a") == 2
        assert bus.listener_count() == 3


class TestUnsubscribe:
    """Tests for removing handlers."""

    def test_returned_function_unsubscribes(self, bus):
        calls = []
        unsubscribe = bus.subscribe("x", calls.append)

        unsubscribe()
        bus.emit("x", 1)

        assert calls == []
        assert bus.listener_count("x") == 0

    def test_unsubscribe_twice_is_harmless(self, bus):
        unsubscribe = bus.subscribe("x", lambda p: None)
        unsubscribe()
        unsubscribe()
        assert bus.listener_count("x") == 0

    def test_unsubscribe_during_emit_keeps_snapshot(self, bus):
        """A handler removed mid-emit still receives the current event."""
        calls = []
        unsubscribers = []

        def first(payload):
            calls.append("first")
            unsubscribers[0]()

        bus.subscribe("x", first)
        unsubscribers.append(bus.subscribe("x", lambda p: calls.append("second")))

        bus.emit("x")
        bus.emit("x")

        assert calls == ["first", "second", "first"]


class TestFailureIsolation:
    """A failing handler never blocks the rest."""

    def test_exception_does_not_stop_other_handlers(self, bus):
        calls = []

        def broken(payload):
            raise RuntimeError("boom")

        bus.subscribe("x", broken)
        bus.subscribe("x", calls.append)

        invoked = bus.emit("x", "payload")

        assert invoked == 2
        assert calls == ["payload"]

    def test_chain_is_reset_after_failure(self, bus):
        def broken(payload):
            raise ValueError("bad")

        bus.subscribe("x", broken)
        bus.emit("x")

        assert bus.current_chain == []


class TestNestedEmission:
    """Handlers may emit; inner events complete before the outer emit returns."""

    def test_depth_first_order(self, bus):
        order = []

        def outer(payload):
            order.append("outer:start")
            bus.emit("inner")
            order.append("outer:end")

        bus.subscribe("outer", outer)
        bus.subscribe("inner", lambda p: order.append("inner"))

        bus.emit("outer")

        assert order == ["outer:start", "inner", "outer:end"]

    def test_history_records_depth_and_parent(self, bus):
        bus.subscribe("outer", lambda p: bus.emit("inner"))

        bus.emit("outer")

        outer, inner = bus.history()
        assert (outer.topic, outer.depth, outer.parent) == ("outer", 0, None)
        assert (inner.topic, inner.depth, inner.parent) == ("inner", 1, "outer")

    def test_history_is_bounded(self):
        bus = EventBus(history_size=3)
        for i in range(5):
            bus.emit(f"t{i}")

        assert [r.topic for r in bus.history()] == ["t2", "t3", "t4"]
