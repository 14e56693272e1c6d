"""Log file output with optional rotation by time period or by size."""

from __future__ import annotations

import contextlib
import os
import re
import sys
import time
from typing import BinaryIO, Callable, Optional, Union

DAY_SECS = 86400
MAX_PATH_LEN = 1024
_SUFFIX_RESERVE = 20
_ROTATE_SPEC = re.compile(r"([+-]?\d+)(\S{1,2})")


def parse_rotate(text: Optional[str]) -> tuple[int, int]:
    """Parse a rotation spec such as ``"1d"``, ``"2h 1G"`` into (seconds, bytes).

    Units: ``d`` (only 1), ``h`` (up to 24), ``m`` (up to 1440 minutes),
    ``G`` and ``M`` for sizes. Raises ValueError on anything else.
    """
    secs = 0
    nbytes = 0
    if not text:
        return secs, nbytes
    for part in text.split():
        match = _ROTATE_SPEC.match(part)
        if match is None:
            raise ValueError(f"invalid log rotate spec: {part!r}")
        count = int(match.group(1))
        unit = match.group(2)
        if count <= 0:
            raise ValueError(f"invalid log rotate spec: {part!r}")
        if unit == "d":
            if count != 1:
                raise ValueError(f"invalid log rotate spec: {part!r}")
            secs = DAY_SECS
        elif unit == "h":
            if count > 24:
                raise ValueError(f"invalid log rotate spec: {part!r}")
            secs = count * 3600
        elif unit == "m":
            if count > 1440:
                raise ValueError(f"invalid log rotate spec: {part!r}")
            secs = count * 60
        elif unit == "G":
            nbytes = count << 30
        elif unit == "M":
            nbytes = count << 20
        else:
            raise ValueError(f"invalid log rotate spec: {part!r}")
    return secs, nbytes


class LogFileSink:
    """Appends log records to a file, or to standard output when no path is set."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._file_name = ""
        self._base = ""
        self._suffix_fmt: Optional[str] = None
        self._file: Optional[BinaryIO] = None
        self._to_stdout = False
        self._path: Optional[str] = None
        self._rotate_secs = 0
        self._rotate_bytes = 0
        self._last_reopen = 0
        self._bytes = 0
        self._errors = 0

    def __enter__(self) -> "LogFileSink":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def path(self) -> Optional[str]:
        """Path of the file currently written, or None for standard output."""
        return self._path

    @property
    def bytes_written(self) -> int:
        """Size of the current file as counted for size rotation."""
        return self._bytes

    @property
    def errors(self) -> int:
        """Number of writes that failed."""
        return self._errors

    def set_file(self, path: str, rotate_secs: int = 0, rotate_bytes: int = 0) -> None:
        """Select the output file and rotation; an empty path means standard output.

        Raises ValueError when the path is too long and OSError when it
        cannot be opened.
        """
        base = path
        if (rotate_secs > 0 or rotate_bytes > 0) and len(path) > 4:
            if path[-4:].lower() == ".log":
                base = path[:-4]
        if len(base) + _SUFFIX_RESERVE >= MAX_PATH_LEN:
            raise ValueError(f"log file path too long: {path!r}")
        self._file_name = path
        self._base = base
        self._rotate_secs = rotate_secs
        self._rotate_bytes = rotate_bytes
        self._suffix_fmt = None
        if base:
            if rotate_bytes > 0:
                self._suffix_fmt = ".%Y%m%d%H%M%S.log"
            elif rotate_secs >= DAY_SECS:
                self._suffix_fmt = ".%Y%m%d.log"
            elif rotate_secs >= 3600:
                self._suffix_fmt = ".%Y%m%d%H.log"
            elif rotate_secs > 0:
                self._suffix_fmt = ".%Y%m%d%H%M.log"
        now = int(self._clock())
        self._reopen(now if rotate_bytes > 0 else self._round_time(now))

    def check_rotate(self) -> None:
        """Switch to a new file when the size or the time period is exceeded."""
        rotated = False
        now = int(self._clock())
        if self._rotate_bytes > 0 and self._bytes >= self._rotate_bytes:
            rotated = self._try_reopen(now)
        if not rotated and self._rotate_secs > 0:
            now = self._round_time(now)
            if (
                now > self._last_reopen
                and now - self._round_time(self._last_reopen) >= self._rotate_secs
            ):
                self._try_reopen(now)

    def write(self, data: Union[bytes, bytearray, str]) -> None:
        """Write one record and flush it; failures are counted, not raised."""
        payload = data.encode() if isinstance(data, str) else bytes(data)
        try:
            if self._to_stdout:
                sys.stdout.write(payload.decode(errors="replace"))
                sys.stdout.flush()
            elif self._file is not None:
                self._file.write(payload)
                self._file.flush()
            else:
                return
        except OSError:
            self._errors += 1
            return
        self._bytes += len(payload)

    def fileno(self) -> int:
        """Descriptor of the output, or -1 when there is none."""
        try:
            if self._to_stdout:
                return sys.stdout.fileno()
            if self._file is not None:
                return self._file.fileno()
        except (OSError, ValueError, AttributeError):
            pass
        return -1

    def close(self) -> None:
        """Close the current file; standard output is left open."""
        self._close_file()
        self._to_stdout = False
        self._path = None

    def _close_file(self) -> None:
        if self._file is not None:
            with contextlib.suppress(OSError):
                self._file.close()
            self._file = None

    def _round_time(self, t: int) -> int:
        if self._rotate_secs > 0:
            lt = time.localtime(t)
            start = int(
                time.mktime(
                    (lt.tm_year, lt.tm_mon, lt.tm_mday, 0, 0, 0, lt.tm_wday, lt.tm_yday, -1)
                )
            )
            return start + (t - start) // self._rotate_secs * self._rotate_secs
        return t

    def _try_reopen(self, t: int) -> bool:
        try:
            self._reopen(t)
        except OSError:
            return False
        return True

    def _reopen(self, t: int) -> None:
        if not self._base:
            self._close_file()
            self._to_stdout = True
            self._path = None
            return
        path = self._base
        if self._suffix_fmt:
            path += time.strftime(self._suffix_fmt, time.localtime(t))
        handle = open(path, "ab")
        self._close_file()
        self._file = handle
        self._to_stdout = False
        self._path = path
        if self._last_reopen != t:
            self._bytes = handle.tell()
            self._last_reopen = t
        if self._suffix_fmt:
            self._link(path)

    def _link(self, path: str) -> None:
        with contextlib.suppress(OSError):
            os.unlink(self._file_name)
        try:
            os.symlink(os.path.basename(path), self._file_name)
        except OSError:
            print(f"create symbol link for {self._file_name} fail", file=sys.stderr)