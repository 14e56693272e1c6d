"""Requests the proxy builds itself, and decoding of inline command arguments."""

from __future__ import annotations

from enum import Enum, auto
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview, str]


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode()
    return bytes(data)


def _command(*args: BytesLike) -> bytes:
    """Encode arguments as a multi-bulk request."""
    parts = [b"*%d\r\n" % len(args)]
    for arg in args:
        raw = _as_bytes(arg)
        parts.append(b"$%d\r\n%s\r\n" % (len(raw), raw))
    return b"".join(parts)


class GenericRequest(Enum):
    """Fixed requests sent to servers, and the heads of split multi-key requests."""

    PING = auto()
    PING_SERV = auto()
    CLUSTER_NODES = auto()
    ASKING = auto()
    READONLY = auto()
    UNWATCH_SERV = auto()
    DISCARD_SERV = auto()
    MGET_HEAD = auto()
    MSET_HEAD = auto()
    MSETNX_HEAD = auto()
    TOUCH_HEAD = auto()
    EXISTS_HEAD = auto()
    DEL_HEAD = auto()
    UNLINK_HEAD = auto()
    PSUBSCRIBE_HEAD = auto()
    SUBSCRIBE_HEAD = auto()
    PUNSUBSCRIBE_HEAD = auto()
    UNSUBSCRIBE_HEAD = auto()

    @property
    def command(self) -> str:
        """Name of the command this request carries."""
        return _GENERIC[self][0]

    def content(self) -> bytes:
        """Wire bytes of the request or request head."""
        return _GENERIC[self][1]


_GENERIC: dict[GenericRequest, tuple[str, bytes]] = {
    GenericRequest.PING: ("ping", b"*1\r\n$4\r\nping\r\n"),
    GenericRequest.PING_SERV: ("ping", b"*1\r\n$4\r\nping\r\n"),
    GenericRequest.CLUSTER_NODES: ("cluster", b"*2\r\n$7\r\ncluster\r\n$5\r\nnodes\r\n"),
    GenericRequest.ASKING: ("asking", b"*1\r\n$6\r\nasking\r\n"),
    GenericRequest.READONLY: ("readonly", b"*1\r\n$8\r\nreadonly\r\n"),
    GenericRequest.UNWATCH_SERV: ("unwatch", b"*1\r\n$7\r\nunwatch\r\n"),
    GenericRequest.DISCARD_SERV: ("discard", b"*1\r\n$7\r\ndiscard\r\n"),
    GenericRequest.MGET_HEAD: ("mget", b"*2\r\n$4\r\nmget\r\n"),
    GenericRequest.MSET_HEAD: ("mset", b"*3\r\n$4\r\nmset\r\n"),
    GenericRequest.MSETNX_HEAD: ("msetnx", b"*3\r\n$6\r\nmsetnx\r\n"),
    GenericRequest.TOUCH_HEAD: ("touch", b"*2\r\n$5\r\ntouch\r\n"),
    GenericRequest.EXISTS_HEAD: ("exists", b"*2\r\n$6\r\nexists\r\n"),
    GenericRequest.DEL_HEAD: ("del", b"*2\r\n$3\r\ndel\r\n"),
    GenericRequest.UNLINK_HEAD: ("unlink", b"*2\r\n$6\r\nunlink\r\n"),
    GenericRequest.PSUBSCRIBE_HEAD: ("psubscribe", b"*2\r\n$10\r\npsubscribe\r\n"),
    GenericRequest.SUBSCRIBE_HEAD: ("subscribe", b"*2\r\n$9\r\nsubscribe\r\n"),
    GenericRequest.PUNSUBSCRIBE_HEAD: ("punsubscribe", b"*2\r\n$12\r\npunsubscribe\r\n"),
    GenericRequest.UNSUBSCRIBE_HEAD: ("unsubscribe", b"*2\r\n$11\r\nunsubscribe\r\n"),
}


def auth_request(password: BytesLike | None) -> bytes:
    """AUTH request sent to a server; None is sent as an empty password."""
    return _command(b"auth", b"" if password is None else password)


def select_request(db: int) -> bytes:
    """SELECT request switching a server connection to ``db``."""
    return _command(b"select", str(int(db)))


def sentinels_request(master: BytesLike) -> bytes:
    """SENTINEL SENTINELS request for the named master."""
    return _command(b"sentinel", b"sentinels", master)


def sentinel_get_master_request(master: BytesLike) -> bytes:
    """SENTINEL GET-MASTER-ADDR-BY-NAME request for the named master."""
    return _command(b"sentinel", b"get-master-addr-by-name", master)


def sentinel_slaves_request(master: BytesLike) -> bytes:
    """SENTINEL SLAVES request for the named master."""
    return _command(b"sentinel", b"slaves", master)


_DQUOTE_ESCAPES = {
    ord("n"): ord("\n"),
    ord("r"): ord("\r"),
    ord("t"): ord("\t"),
    ord("b"): ord("\b"),
    ord("a"): 0x07,
}


def decode_inline_arg(src: BytesLike, max_len: int = 1024) -> tuple[bytes, bool]:
    """Remove quoting from an inline command argument.

    Inside double quotes ``\\n``, ``\\r``, ``\\t``, ``\\b`` and ``\\a`` are
    translated and other escapes yield the escaped character; inside single
    quotes the backslash is kept. At most ``max_len`` bytes are produced.
    Returns the decoded bytes and whether they fitted completely.
    """
    out = bytearray()
    complete = True

    def append(byte: int) -> None:
        nonlocal complete
        if len(out) < max_len:
            out.append(byte)
        else:
            complete = False

    escape = False
    quote = 0
    for byte in _as_bytes(src):
        if escape:
            if quote == ord('"'):
                byte = _DQUOTE_ESCAPES.get(byte, byte)
            else:
                append(ord("\\"))
            escape = False
        elif quote:
            if byte == ord("\\"):
                escape = True
                continue
            if byte == quote:
                quote = 0
                continue
        elif byte in (ord('"'), ord("'")):
            quote = byte
            continue
        append(byte)
    return bytes(out), complete