"""Small enumerations used across the proxy: refresh methods, distributions, reply types."""

from __future__ import annotations

from enum import IntEnum


class InvalidEnumValue(ValueError):
    """Raised when a text value names no member of a strict enumeration."""


class _LabelledEnum(IntEnum):
    """Integer enumeration whose members carry a lower-case textual label."""

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def _lookup(cls, text: str):
        wanted = text.lower()
        for member in cls:
            if member.label == wanted:
                return member
        return None


class ServerPoolRefreshMethod(_LabelledEnum):
    """How a server pool learns about its servers."""

    NONE = 0
    FIXED = 1
    SENTINEL = 2

    @classmethod
    def parse(cls, text: str) -> "ServerPoolRefreshMethod":
        """Parse a method name case-insensitively; unknown names raise."""
        member = cls._lookup(text)
        if member is None:
            raise InvalidEnumValue(f"invalid enum value:{text}")
        return member


class Distribution(_LabelledEnum):
    """How keys are spread over server groups."""

    NONE = 0
    MODULA = 1
    RANDOM = 2

    @classmethod
    def parse(cls, text: str) -> "Distribution":
        """Parse a distribution name case-insensitively; unknown names give NONE."""
        member = cls._lookup(text)
        return cls.NONE if member is None else member


class ReplyType(IntEnum):
    """Kind of a reply in the wire protocol."""

    NONE = 0
    STATUS = 1
    ERROR = 2
    STRING = 3
    INTEGER = 4
    ARRAY = 5

    def type_str(self) -> str:
        """Short name of the reply type as shown in logs."""
        return _REPLY_TYPE_STR[self]


_REPLY_TYPE_STR = {
    ReplyType.NONE: "None",
    ReplyType.STATUS: "Status",
    ReplyType.ERROR: "Err",
    ReplyType.STRING: "Str",
    ReplyType.INTEGER: "Int",
    ReplyType.ARRAY: "Array",
}