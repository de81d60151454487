"""Tests for change notification."""
import pytest

from guardedstate import NotGuardedError, Subscribable, Subscription, observe_guarded


class RecordingObserver:
    def __init__(self):
        self.received = []

    def on_next(self, value):
        self.received.append(value)


class TestObserveGuarded:
    """Test subscribing to guarded instances."""

    def test_rejects_plain_instances(self):
        class Plain:
            pass

        with pytest.raises(NotGuardedError, match="Plain is not decorated as @guarded."):
            observe_guarded(Plain())

    def test_observer_object(self, counter):
        observer = RecordingObserver()
        observe_guarded(counter).subscribe(observer)

        counter.increment()

        assert [call.method_name for call in observer.received] == ['increment']

    def test_unsubscribe_stops_delivery(self, counter):
        calls = []
        subscription = observe_guarded(counter).subscribe(calls.append)

        counter.increment()
        subscription.unsubscribe()
        counter.increment()

        assert len(calls) == 1
        assert subscription.closed

    def test_observers_are_called_in_subscription_order(self, counter):
        order = []
        observe_guarded(counter).subscribe(lambda call: order.append('first'))
        observe_guarded(counter).subscribe(lambda call: order.append('second'))

        counter.increment()

        assert order == ['first', 'second']

    def test_observable_factory(self, counter):
        created = []

        def factory(subscribe):
            created.append(subscribe)
            return 'observable'

        assert observe_guarded(counter, factory) == 'observable'
        calls = []
        created[0](calls.append)
        counter.increment()
        assert len(calls) == 1

    def test_observer_exceptions_propagate(self, counter):
        def failing(call):
            raise RuntimeError("observer failed")

        observe_guarded(counter).subscribe(failing)

        with pytest.raises(RuntimeError, match="observer failed"):
            counter.increment()
        assert counter.count == 1

    def test_observer_may_trigger_new_calls(self, counter):
        calls = []

        def observer(call):
            calls.append(call.method_name)
            if call.method_name == 'increment_twice':
                counter.increment()

        observe_guarded(counter).subscribe(observer)
        counter.increment_twice()

        assert calls == ['increment_twice', 'increment']
        assert counter.count == 3


class TestSubscription:
    """Test the minimal subscribe/unsubscribe contract."""

    def test_unsubscribe_removes_every_occurrence_and_is_idempotent(self):
        observers = []
        stream = Subscribable(observers)
        callback = observers.append

        stream.subscribe(callback)
        subscription = stream.subscribe(callback)
        subscription()
        subscription.unsubscribe()

        assert observers == []

    def test_rejects_non_callables(self):
        with pytest.raises(TypeError):
            Subscribable([]).subscribe(42)

    def test_returns_subscription(self):
        assert isinstance(Subscribable([]).subscribe(print), Subscription)
