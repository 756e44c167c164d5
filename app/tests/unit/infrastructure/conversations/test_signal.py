"""Unit tests for the completion signal."""

from unittest.mock import MagicMock

import pytest

from infrastructure.conversations.signal import CompletionSignal

pytestmark = pytest.mark.unit


class TestCompletionSignal:
    """Tests for CompletionSignal."""

    def test_initial_value(self):
        """The signal holds its initial value until emitted."""
        signal = CompletionSignal("s", value=3)
        assert signal.value == 3
        assert signal.subscriber_count == 0

    def test_emit_stores_value_and_calls_subscribers_in_order(self):
        """Subscribers are invoked once each, in registration order."""
        signal = CompletionSignal("s")
        calls = []
        signal.subscribe(lambda value: calls.append(("first", value)))
        signal.subscribe(lambda value: calls.append(("second", value)))

        signal.emit(42)

        assert calls == [("first", 42), ("second", 42)]
        assert signal.value == 42

    def test_emit_without_subscribers_only_stores(self):
        signal = CompletionSignal("s")
        signal.emit("done")
        assert signal.value == "done"

    def test_reemit_overwrites_value(self):
        """Emitting twice keeps the latest value and notifies twice."""
        signal = CompletionSignal("s")
        subscriber = MagicMock()
        signal.subscribe(subscriber)

        signal.emit(1)
        signal.emit(2)

        assert signal.value == 2
        assert subscriber.call_count == 2

    def test_subscribe_returns_subscriber(self):
        signal = CompletionSignal("s")
        subscriber = MagicMock()
        assert signal.subscribe(subscriber) is subscriber

    def test_unsubscribe_stops_notifications(self):
        signal = CompletionSignal("s")
        subscriber = MagicMock()
        signal.subscribe(subscriber)

        signal.unsubscribe(subscriber)
        signal.emit(1)

        subscriber.assert_not_called()
        assert signal.subscriber_count == 0

    def test_unsubscribe_during_emit_does_not_skip_neighbour(self):
        """A subscriber removing itself mid-emit does not skip the next one."""
        signal = CompletionSignal("s")
        second = MagicMock()

        def first(value):
            signal.unsubscribe(first)

        signal.subscribe(first)
        signal.subscribe(second)

        signal.emit("x")

        second.assert_called_once_with("x")
        assert signal.subscriber_count == 1

    def test_subscriber_exception_propagates(self):
        """Subscriber errors reach the emitter."""
        signal = CompletionSignal("s")
        signal.subscribe(MagicMock(side_effect=RuntimeError("boom")))

        with pytest.raises(RuntimeError, match="boom"):
            signal.emit(None)

    def test_clear_drops_subscribers_and_value(self):
        signal = CompletionSignal("s", value=1)
        signal.subscribe(MagicMock())

        signal.clear()

        assert signal.subscriber_count == 0
        assert signal.value is None

    def test_repr(self):
        signal = CompletionSignal("add_account#0")
        signal.subscribe(MagicMock())
        assert repr(signal) == "CompletionSignal(name='add_account#0', subscribers=1)"
