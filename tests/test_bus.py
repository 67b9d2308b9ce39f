"""Tests for the meet event bus."""

from relaymeet.bus import EventBus


class TestEventBus:

    def test_emit_calls_handlers_in_order(self):
        bus = EventBus()
        calls = []
        bus.on("teamsUpdated", lambda n: calls.append(("first", n)))
        bus.on("teamsUpdated", lambda n: calls.append(("second", n)))

        bus.emit("teamsUpdated", 4)

        assert calls == [("first", 4), ("second", 4)]

    def test_unsubscribe(self):
        bus = EventBus()
        calls = []
        unsubscribe = bus.on("eventRevealed", calls.append)

        bus.emit("eventRevealed", 1)
        unsubscribe()
        bus.emit("eventRevealed", 2)

        assert calls == [1]

    def test_failing_handler_does_not_stop_others(self, caplog):
        bus = EventBus()
        calls = []

        def broken(payload):
            raise RuntimeError("boom")

        bus.on("sequenceGenerated", broken)
        bus.on("sequenceGenerated", calls.append)

        bus.emit("sequenceGenerated", ["100m"])

        assert calls == [["100m"]]
        assert "sequenceGenerated" in caplog.text

    def test_instances_are_isolated(self):
        first, second = EventBus(), EventBus()
        calls = []
        first.on("teamsUpdated", calls.append)

        second.emit("teamsUpdated", 3)

        assert calls == []

    def test_emit_without_listeners(self):
        EventBus().emit("nothing")
