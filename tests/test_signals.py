"""Tests for the callback registry."""

from flighttracker.signals import Signal


def test_emit_in_registration_order():
    signal = Signal('test')
    calls = []
    signal.connect(lambda x: calls.append(('a', x)))
    signal.connect(lambda x: calls.append(('b', x)))

    signal.emit(1)

    assert calls == [('a', 1), ('b', 1)]
    assert len(signal) == 2


def test_failing_listener_does_not_stop_others(caplog):
    signal = Signal('test')
    calls = []

    def broken(_):
        raise RuntimeError('boom')

    signal.connect(broken)
    signal.connect(calls.append)
    signal.emit('value')

    assert calls == ['value']
    assert 'test callback error: boom' in caplog.text


def test_disconnect():
    signal = Signal('test')
    calls = []
    signal.connect(calls.append)
    signal.disconnect(calls.append)
    signal.disconnect(calls.append)

    signal.emit(1)
    assert calls == []
