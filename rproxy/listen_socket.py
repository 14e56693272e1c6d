"""Listening socket bound to a host:port or a Unix socket path."""

from __future__ import annotations

import errno
import socket
from typing import Optional


class BindError(OSError):
    """Raised when the address cannot be resolved or bound."""


class ListenError(OSError):
    """Raised when listen() fails."""


class TooManyOpenFiles(OSError):
    """Raised when accept() fails for lack of file descriptors."""


class AcceptError(OSError):
    """Raised when accept() fails for any other reason."""


def _resolve(addr: str, sock_type: int, protocol: int):
    if addr.startswith("/"):
        return socket.AF_UNIX, addr
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise BindError(f"invalid address {addr!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        infos = socket.getaddrinfo(
            host or None, port, socket.AF_UNSPEC, sock_type, protocol, socket.AI_PASSIVE
        )
    except (socket.gaierror, UnicodeError) as exc:
        raise BindError(f"socket bind to {addr} fail {exc}") from exc
    if not infos:
        raise BindError(f"socket bind to {addr} fail: no address")
    family, _, _, _, sockaddr = infos[0]
    return family, sockaddr


class ListenSocket:
    """A bound server socket that accepts client connections."""

    def __init__(self, addr: str, sock_type: int = socket.SOCK_STREAM, protocol: int = 0) -> None:
        self.addr = addr
        family, sockaddr = _resolve(addr, sock_type, protocol)
        sock = socket.socket(family, sock_type, protocol)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError:
            pass
        try:
            sock.bind(sockaddr)
        except OSError as exc:
            sock.close()
            raise BindError(exc.errno, f"socket bind to {addr} fail {exc.strerror}") from exc
        self._sock = sock

    @property
    def sockname(self):
        """The address the socket is actually bound to."""
        return self._sock.getsockname()

    def listen(self, backlog: int = 511) -> None:
        """Start accepting connections."""
        try:
            self._sock.listen(backlog)
        except OSError as exc:
            raise ListenError(exc.errno, f"socket listen fail {exc.strerror}") from exc

    def accept(self) -> Optional[tuple[socket.socket, object]]:
        """Accept one connection; None when none is pending on a non-blocking socket."""
        while True:
            try:
                return self._sock.accept()
            except BlockingIOError:
                return None
            except (InterruptedError, ConnectionAbortedError):
                continue
            except OSError as exc:
                if exc.errno in (errno.EMFILE, errno.ENFILE):
                    raise TooManyOpenFiles(
                        exc.errno, f"socket accept fail {exc.strerror}"
                    ) from exc
                raise AcceptError(exc.errno, f"socket accept fail {exc.strerror}") from exc

    def fileno(self) -> int:
        """Descriptor of the socket, -1 once closed."""
        return self._sock.fileno()

    def set_nonblocking(self) -> None:
        """Make accept() return at once when nothing is pending."""
        self._sock.setblocking(False)

    def close(self) -> None:
        """Close the socket."""
        self._sock.close()

    def __enter__(self) -> "ListenSocket":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()