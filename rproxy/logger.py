"""Asynchronous, sampled logger backed by a background writer thread."""

from __future__ import annotations

import inspect
import os
import threading
import time
from enum import IntEnum
from typing import Optional

from rproxy.logfilesink import LogFileSink


class LogLevel(IntEnum):
    """Severity of a log record."""

    VERB = 0
    DEBUG = 1
    INFO = 2
    NOTICE = 3
    WARN = 4
    ERROR = 5

    @property
    def short(self) -> str:
        """One-letter tag written in each record."""
        return "VDINWE"[self]


class SetLogFileError(Exception):
    """Raised when the log file cannot be set up."""


class LogUnit:
    """One formatted log record, capped at MAX_LOG_LEN bytes including the newline."""

    MAX_LOG_LEN = 1024

    def __init__(self) -> None:
        self.data = b""

    def __len__(self) -> int:
        return len(self.data)

    def format(self, level: LogLevel, file: str, line: int, message: str) -> bytes:
        """Fill the record with a timestamped line and return its bytes."""
        now_us = time.time_ns() // 1000
        secs, micros = divmod(now_us, 1_000_000)
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(secs))
        text = f"{stamp}.{micros:06d} {LogLevel(level).short} {file}:{line} {message}"
        payload = text.encode(errors="replace")
        if len(payload) >= self.MAX_LOG_LEN:
            payload = payload[: self.MAX_LOG_LEN - 1]
        self.data = payload + b"\n"
        return self.data


_DEFAULT_SAMPLES = (0, 0, 100, 1, 1, 1)


class Logger:
    """Queues log records from any thread and writes them from one worker thread."""

    def __init__(self, max_log_unit_num: int = 1024) -> None:
        self._capacity = max_log_unit_num
        self._stop = False
        self.allow_miss_log = True
        self._miss_logs = 0
        self._samples = list(_DEFAULT_SAMPLES)
        self._unit_count = 0
        self._logs: list[LogUnit] = []
        self._free: list[LogUnit] = []
        self._lock = threading.Lock()
        self._cond = threading.Condition(self._lock)
        self._thread: Optional[threading.Thread] = None
        self._sink: Optional[LogFileSink] = None
        self._local = threading.local()

    def __enter__(self) -> "Logger":
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()

    @property
    def miss_logs(self) -> int:
        """Records dropped since the writer last reported them."""
        return self._miss_logs

    def start(self) -> None:
        """Start the background writer."""
        self._thread = threading.Thread(target=self._run, name="logger", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the writer after it has written what is queued."""
        with self._cond:
            self._stop = True
            self._cond.notify_all()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
            self._thread = None
        if self._sink is not None:
            self._sink.close()

    def set_log_file(self, path: str, rotate_secs: int = 0, rotate_bytes: int = 0) -> None:
        """Direct output to ``path`` (standard output when empty) with rotation."""
        if self._sink is None:
            self._sink = LogFileSink()
        try:
            self._sink.set_file(path, rotate_secs, rotate_bytes)
        except (OSError, ValueError) as exc:
            raise SetLogFileError(f"set log file {path} fail {exc}") from exc

    def log_sample(self, level: LogLevel) -> int:
        """Every how many records of this level one is kept; 0 disables the level."""
        return self._samples[level]

    def set_log_sample(self, level: LogLevel, value: int) -> None:
        """Keep one in ``value`` records of this level; 0 disables it."""
        self._samples[level] = value

    def sampled(self, level: LogLevel) -> Optional[LogUnit]:
        """A free record if this call passes sampling and one is available."""
        sample = self._samples[level]
        if sample <= 0:
            return None
        counts = getattr(self._local, "counts", None)
        if counts is None:
            counts = [0] * len(LogLevel)
            self._local.counts = counts
        counts[level] += 1
        if counts[level] % sample != 0:
            return None
        return self._get_unit()

    def log(self, level: LogLevel, file: str, line: int, message: str) -> bool:
        """Sample, format and queue one record; False when it was not queued."""
        unit = self.sampled(level)
        if unit is None:
            return False
        unit.format(level, file, line, message)
        self.put(unit)
        return True

    def put(self, unit: LogUnit) -> None:
        """Queue a formatted record for the writer."""
        with self._cond:
            self._logs.append(unit)
            self._cond.notify_all()

    def log_file_fd(self) -> int:
        """Descriptor of the log output, or -1 when none is set."""
        return self._sink.fileno() if self._sink is not None else -1

    def _take_unit(self) -> Optional[LogUnit]:
        if self._free:
            return self._free.pop()
        if self._unit_count < self._capacity:
            self._unit_count += 1
            return LogUnit()
        return None

    def _get_unit(self) -> Optional[LogUnit]:
        if self.allow_miss_log:
            if not self._lock.acquire(blocking=False):
                self._miss_logs += 1
                return None
            try:
                unit = self._take_unit()
                if unit is None:
                    self._miss_logs += 1
                return unit
            finally:
                self._lock.release()
        with self._cond:
            unit = self._take_unit()
            if unit is not None:
                return unit
            while not self._free and not self._stop:
                self._cond.wait()
            return self._free.pop() if self._free else None

    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._logs and not self._stop:
                    self._cond.wait()
                batch, self._logs = self._logs, []
                missed, self._miss_logs = self._miss_logs, 0
                stopping = self._stop
            sink = self._sink
            if sink is not None:
                sink.check_rotate()
                for unit in batch:
                    sink.write(unit.data)
                    with self._cond:
                        self._free.append(unit)
                        self._cond.notify_all()
            else:
                with self._cond:
                    self._free.extend(batch)
                    self._cond.notify_all()
            if missed > 0 and sink is not None:
                notice = LogUnit()
                frame = inspect.currentframe()
                line = frame.f_lineno if frame is not None else 0
                notice.format(
                    LogLevel.NOTICE, os.path.basename(__file__), line, f"MissLog count {missed}"
                )
                sink.write(notice.data)
            if stopping:
                break