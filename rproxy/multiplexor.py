"""Readiness notification over poll, epoll and kqueue with a common interface."""

from __future__ import annotations

import select
from enum import IntFlag
from typing import Callable, Protocol, Union


class Event(IntFlag):
    """Readiness events reported for a socket."""

    NONE = 0
    READ = 1
    WRITE = 2
    ERROR = 4


class MultiplexorError(OSError):
    """Raised when the kernel event facility cannot be created or used."""


class _Pollable(Protocol):
    def fileno(self) -> int: ...


Handler = Callable[[_Pollable, Event], object]

_MAX_EVENTS = 1024


def _dispatch(handler: Union[Handler, object], sock: _Pollable, events: Event) -> None:
    callback = getattr(handler, "handle_event", handler)
    callback(sock, events)


class _Registry:
    """Sockets known to a multiplexor and the events each one waits for."""

    def __init__(self) -> None:
        self._entries: dict[int, tuple[_Pollable, Event]] = {}

    def put(self, sock: _Pollable, events: Event) -> None:
        self._entries[sock.fileno()] = (sock, Event(events))

    def remove(self, sock: _Pollable) -> None:
        self._entries.pop(sock.fileno(), None)

    def events(self, sock: _Pollable) -> Event:
        entry = self._entries.get(sock.fileno())
        if entry is None or entry[0] is not sock:
            raise MultiplexorError(f"socket {sock.fileno()} is not registered")
        return entry[1]

    def socket(self, fd: int):
        entry = self._entries.get(fd)
        return None if entry is None else entry[0]


class PollMultiplexor:
    """Level-triggered multiplexor built on poll()."""

    def __init__(self) -> None:
        if not hasattr(select, "poll"):
            raise MultiplexorError("poll is not available on this platform")
        self._poll = select.poll()
        self._registry = _Registry()

    @staticmethod
    def _mask(events: Event) -> int:
        mask = 0
        if events & Event.READ:
            mask |= select.POLLIN
        if events & Event.WRITE:
            mask |= select.POLLOUT
        return mask

    def add_socket(self, sock: _Pollable, events: Event = Event.READ) -> None:
        """Start watching ``sock`` for ``events``."""
        self._poll.register(sock.fileno(), self._mask(events))
        self._registry.put(sock, events)

    def del_socket(self, sock: _Pollable) -> None:
        """Stop watching ``sock``."""
        try:
            self._poll.unregister(sock.fileno())
        except (KeyError, ValueError):
            pass
        self._registry.remove(sock)

    def add_event(self, sock: _Pollable, events: Event) -> None:
        """Also watch ``sock`` for ``events``."""
        current = self._registry.events(sock) | events
        self._poll.modify(sock.fileno(), self._mask(current))
        self._registry.put(sock, current)

    def del_event(self, sock: _Pollable, events: Event) -> None:
        """Stop watching ``sock`` for ``events``."""
        current = self._registry.events(sock) & ~events
        self._poll.modify(sock.fileno(), self._mask(current))
        self._registry.put(sock, current)

    def wait(self, usec: int, handler) -> int:
        """Wait up to ``usec`` microseconds (forever if negative); dispatch events."""
        timeout = None if usec < 0 else usec // 1000
        try:
            ready = self._poll.poll(timeout)
        except InterruptedError:
            return 0
        except OSError as exc:
            raise MultiplexorError(f"poll wait fail {exc}") from exc
        for fd, revents in ready:
            sock = self._registry.socket(fd)
            if sock is None:
                continue
            events = Event.NONE
            if revents & select.POLLIN:
                events |= Event.READ
            if revents & select.POLLOUT:
                events |= Event.WRITE
            if revents & (select.POLLERR | select.POLLHUP):
                events |= Event.ERROR
            _dispatch(handler, sock, events)
        return len(ready)

    def close(self) -> None:
        """Forget all sockets."""
        self._registry = _Registry()
        self._poll = select.poll()

    def __enter__(self) -> "PollMultiplexor":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class EpollMultiplexor:
    """Edge-triggered multiplexor built on epoll (Linux)."""

    def __init__(self) -> None:
        if not hasattr(select, "epoll"):
            raise MultiplexorError("epoll create fail: not available on this platform")
        try:
            self._epoll = select.epoll(_MAX_EVENTS)
        except OSError as exc:
            raise MultiplexorError(f"epoll create fail {exc}") from exc
        self._registry = _Registry()

    @staticmethod
    def _mask(events: Event) -> int:
        mask = select.EPOLLET
        if events & Event.READ:
            mask |= select.EPOLLIN
        if events & Event.WRITE:
            mask |= select.EPOLLOUT
        return mask

    def add_socket(self, sock: _Pollable, events: Event = Event.READ) -> None:
        """Start watching ``sock`` for ``events``."""
        try:
            self._epoll.register(sock.fileno(), self._mask(events))
        except OSError as exc:
            raise MultiplexorError(f"epoll add fail {exc}") from exc
        self._registry.put(sock, events)

    def del_socket(self, sock: _Pollable) -> None:
        """Stop watching ``sock``."""
        try:
            self._epoll.unregister(sock.fileno())
        except (OSError, ValueError):
            pass
        self._registry.remove(sock)

    def _modify(self, sock: _Pollable, events: Event) -> None:
        try:
            self._epoll.modify(sock.fileno(), self._mask(events))
        except OSError as exc:
            raise MultiplexorError(f"epoll modify fail {exc}") from exc
        self._registry.put(sock, events)

    def add_event(self, sock: _Pollable, events: Event) -> None:
        """Also watch ``sock`` for ``events``."""
        current = self._registry.events(sock)
        if current | events != current:
            self._modify(sock, current | events)

    def del_event(self, sock: _Pollable, events: Event) -> None:
        """Stop watching ``sock`` for ``events``."""
        current = self._registry.events(sock)
        if current & events & (Event.READ | Event.WRITE):
            self._modify(sock, current & ~events)

    def wait(self, usec: int, handler) -> int:
        """Wait up to ``usec`` microseconds (forever if negative); dispatch events."""
        timeout = -1 if usec < 0 else (usec // 1000) / 1000
        try:
            ready = self._epoll.poll(timeout, _MAX_EVENTS)
        except InterruptedError:
            return 0
        except OSError as exc:
            raise MultiplexorError(f"epoll wait fail {exc}") from exc
        for fd, revents in ready:
            sock = self._registry.socket(fd)
            if sock is None:
                continue
            events = Event.NONE
            if revents & select.EPOLLIN:
                events |= Event.READ
            if revents & select.EPOLLOUT:
                events |= Event.WRITE
            if revents & (select.EPOLLERR | select.EPOLLHUP):
                events |= Event.ERROR
            _dispatch(handler, sock, events)
        return len(ready)

    def close(self) -> None:
        """Release the epoll descriptor."""
        self._epoll.close()

    def __enter__(self) -> "EpollMultiplexor":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class KqueueMultiplexor:
    """Multiplexor built on kqueue (BSD and macOS)."""

    def __init__(self) -> None:
        if not hasattr(select, "kqueue"):
            raise MultiplexorError("kqueue call fail: not available on this platform")
        try:
            self._kq = select.kqueue()
        except OSError as exc:
            raise MultiplexorError(f"kqueue call fail {exc}") from exc
        self._registry = _Registry()

    def _control(self, fd: int, kfilter: int, flags: int) -> None:
        self._kq.control([select.kevent(fd, filter=kfilter, flags=flags)], 0, 0)

    def _change(self, sock: _Pollable, current: Event, add: Event, remove: Event) -> None:
        fd = sock.fileno()
        for flag, kfilter in ((Event.READ, select.KQ_FILTER_READ),
                              (Event.WRITE, select.KQ_FILTER_WRITE)):
            if add & flag and not current & flag:
                action = select.KQ_EV_ADD
            elif remove & flag and current & flag:
                action = select.KQ_EV_DELETE
            else:
                continue
            try:
                self._control(fd, kfilter, action)
            except OSError as exc:
                self._registry.put(sock, current)
                raise MultiplexorError(f"kqueue change fail {exc}") from exc
            current = current | flag if action == select.KQ_EV_ADD else current & ~flag
        self._registry.put(sock, current)

    def add_socket(self, sock: _Pollable, events: Event = Event.READ) -> None:
        """Start watching ``sock`` for ``events``."""
        self._change(sock, Event.NONE, events, Event.NONE)

    def del_socket(self, sock: _Pollable) -> None:
        """Stop watching ``sock``."""
        fd = sock.fileno()
        for kfilter in (select.KQ_FILTER_READ, select.KQ_FILTER_WRITE):
            try:
                self._control(fd, kfilter, select.KQ_EV_DELETE)
            except OSError:
                pass
        self._registry.remove(sock)

    def add_event(self, sock: _Pollable, events: Event) -> None:
        """Also watch ``sock`` for ``events``."""
        self._change(sock, self._registry.events(sock), events, Event.NONE)

    def del_event(self, sock: _Pollable, events: Event) -> None:
        """Stop watching ``sock`` for ``events``."""
        self._change(sock, self._registry.events(sock), Event.NONE, events)

    def wait(self, usec: int, handler) -> int:
        """Wait up to ``usec`` microseconds (forever if negative); dispatch events."""
        timeout = None if usec < 0 else usec / 1_000_000
        try:
            ready = self._kq.control(None, _MAX_EVENTS, timeout)
        except InterruptedError:
            return 0
        except OSError as exc:
            raise MultiplexorError(f"kqueue wait fail {exc}") from exc
        for kev in ready:
            sock = self._registry.socket(kev.ident)
            if sock is None:
                continue
            if kev.flags & select.KQ_EV_ERROR:
                events = Event.ERROR
            elif kev.filter == select.KQ_FILTER_READ:
                events = Event.READ
            elif kev.filter == select.KQ_FILTER_WRITE:
                events = Event.WRITE
            else:
                events = Event.NONE
            _dispatch(handler, sock, events)
        return len(ready)

    def close(self) -> None:
        """Release the kqueue descriptor."""
        self._kq.close()

    def __enter__(self) -> "KqueueMultiplexor":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def default_multiplexor():
    """The best multiplexor for this platform: epoll, then kqueue, then poll."""
    if hasattr(select, "epoll"):
        return EpollMultiplexor()
    if hasattr(select, "kqueue"):
        return KqueueMultiplexor()
    return PollMultiplexor()