import socket

import pytest

from rproxy.multiplexor import (
    Event,
    MultiplexorError,
    PollMultiplexor,
    default_multiplexor,
)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    a.setblocking(False)
    b.setblocking(False)
    yield a, b
    a.close()
    b.close()


class Recorder:
    def __init__(self):
        self.seen = []

    def __call__(self, sock, events):
        self.seen.append((sock, events))


def test_idle_socket_reports_nothing(pair):
    a, _ = pair
    for mux in (PollMultiplexor(), default_multiplexor()):
        mux.add_socket(a, Event.READ)
        rec = Recorder()
        assert mux.wait(0, rec) == 0
        assert rec.seen == []


def test_readable_socket_reported(pair):
    a, b = pair
    b.send(b"x")
    for mux in (PollMultiplexor(), default_multiplexor()):
        mux.add_socket(a, Event.READ)
        rec = Recorder()
        assert mux.wait(500_000, rec) == 1
        assert rec.seen == [(a, Event.READ)]


def test_handler_object_with_handle_event(pair):
    a, b = pair
    b.send(b"x")

    class H:
        def __init__(self):
            self.got = []

        def handle_event(self, sock, events):
            self.got.append(events)

    for mux in (PollMultiplexor(), default_multiplexor()):
        mux.add_socket(a, Event.READ)
        h = H()
        assert mux.wait(500_000, h) == 1
        assert h.got == [Event.READ]


def test_add_event_write(pair):
    a, _ = pair
    for mux in (PollMultiplexor(), default_multiplexor()):
        mux.add_socket(a, Event.READ)
        assert mux.wait(0, Recorder()) == 0
        mux.add_event(a, Event.WRITE)
        rec = Recorder()
        assert mux.wait(500_000, rec) == 1
        assert rec.seen == [(a, Event.WRITE)]


def test_del_event_write(pair):
    a, _ = pair
    for mux in (PollMultiplexor(), default_multiplexor()):
        mux.add_socket(a, Event.READ | Event.WRITE)
        first = Recorder()
        assert mux.wait(500_000, first) == 1
        assert Event.WRITE in first.seen[0][1]
        mux.del_event(a, Event.WRITE)
        rec = Recorder()
        assert mux.wait(0, rec) == 0
        assert rec.seen == []


def test_del_socket_stops_reports(pair):
    a, b = pair
    muxes = (PollMultiplexor(), default_multiplexor())
    for mux in muxes:
        mux.add_socket(a, Event.READ)
        mux.del_socket(a)
    b.send(b"x")
    for mux in muxes:
        rec = Recorder()
        assert mux.wait(0, rec) == 0
        assert rec.seen == []


def test_peer_close_is_readable(pair):
    a, b = pair
    muxes = (PollMultiplexor(), default_multiplexor())
    for mux in muxes:
        mux.add_socket(a, Event.READ)
    b.close()
    for mux in muxes:
        rec = Recorder()
        assert mux.wait(500_000, rec) == 1
        assert Event.READ in rec.seen[0][1]


def test_unregistered_socket_raises(pair):
    a, _ = pair
    for mux in (PollMultiplexor(), default_multiplexor()):
        with pytest.raises(MultiplexorError):
            mux.add_event(a, Event.WRITE)
        with pytest.raises(MultiplexorError):
            mux.del_event(a, Event.READ)


def test_two_sockets_both_reported():
    a1, b1 = socket.socketpair()
    a2, b2 = socket.socketpair()
    try:
        b1.send(b"1")
        b2.send(b"2")
        for mux in (PollMultiplexor(), default_multiplexor()):
            mux.add_socket(a1, Event.READ)
            mux.add_socket(a2, Event.READ)
            rec = Recorder()
            total = 0
            for _ in range(5):
                total += mux.wait(200_000, rec)
                if total == 2:
                    break
            assert total == 2
            assert {id(s) for s, _ in rec.seen} == {id(a1), id(a2)}
    finally:
        for s in (a1, b1, a2, b2):
            s.close()