"""Latency histograms per command group and their textual report."""

from __future__ import annotations

import bisect
import copy
from dataclasses import dataclass, field
from typing import Iterable, Optional


class DuplicateDefinition(Exception):
    """Raised when two latency monitors share a name."""


@dataclass(frozen=True)
class LatencyMonitorConf:
    """A named latency monitor: the commands it watches and its bucket bounds."""

    name: str
    cmds: frozenset[str] = frozenset()
    time_span: list[int] = field(default_factory=list)


@dataclass
class TimeSpan:
    """One histogram bucket: latencies up to ``span`` microseconds."""

    span: int
    total: int = 0
    count: int = 0

    def __iadd__(self, other: "TimeSpan") -> "TimeSpan":
        self.total += other.total
        self.count += other.count
        return self

    def record(self, value: int) -> None:
        self.total += value
        self.count += 1

    def clear(self) -> None:
        self.total = 0
        self.count = 0


class LatencyMonitor:
    """Histogram of latencies with an overflow bucket past the last bound."""

    def __init__(self, conf: Optional[LatencyMonitorConf] = None) -> None:
        self.name = ""
        self.spans: list[TimeSpan] = []
        self.last = TimeSpan(0)
        if conf is not None:
            self.name = conf.name
            self.spans = [TimeSpan(span) for span in sorted(conf.time_span)]
            if self.spans:
                self.last.span = self.spans[-1].span
        self._bounds = [s.span for s in self.spans]

    def __iadd__(self, other: "LatencyMonitor") -> "LatencyMonitor":
        for mine, theirs in zip(self.spans, other.spans):
            mine += theirs
        self.last += other.last
        return self

    def copy(self) -> "LatencyMonitor":
        """An independent copy with the same buckets and counts."""
        return copy.deepcopy(self)

    def add(self, value: int) -> int:
        """Record a latency; return the index of the bucket it went into."""
        idx = bisect.bisect_left(self._bounds, value)
        if idx == len(self.spans):
            self.last.record(value)
        else:
            self.spans[idx].record(value)
        return idx

    def add_at(self, value: int, idx: int) -> None:
        """Record a latency into a known bucket; past the end means overflow."""
        bucket = self.spans[idx] if idx < len(self.spans) else self.last
        bucket.record(value)

    def reset(self) -> None:
        """Clear all counts, keeping the bucket bounds."""
        for span in self.spans:
            span.clear()
        self.last.clear()

    def output(self) -> str:
        """Textual report of the histogram; empty when nothing was recorded."""
        total_count = self.last.count + sum(s.count for s in self.spans)
        if total_count == 0:
            return ""
        lines = []
        total_elapsed = self.last.total
        running = 0
        for span in self.spans:
            if span.count == 0:
                continue
            total_elapsed += span.total
            running += span.count
            percent = running * 100.0 / total_count
            lines.append(
                f"<= {span.span:12d} {span.total:20d} {span.count:16d} {percent:.2f}%\n"
            )
        if self.last.count > 0:
            lines.append(
                f">  {self.last.span:12d} {self.last.total:20d} "
                f"{self.last.count:16d} 100.00%\n"
            )
        lines.append(
            f"T  {total_elapsed // total_count:12d} {total_elapsed:20d} "
            f"{total_count:16d}\n"
        )
        return "".join(lines)


class LatencyMonitorSet:
    """All configured latency monitors, indexed by name and by command."""

    def __init__(self, confs: Iterable[LatencyMonitorConf] = ()) -> None:
        self._confs = list(confs)
        self._pool: list[LatencyMonitor] = []
        self._name_idx: dict[str, int] = {}
        for idx, conf in enumerate(self._confs):
            if conf.name in self._name_idx:
                raise DuplicateDefinition(f'LatencyMonitor "{conf.name}" duplicate')
            self._pool.append(LatencyMonitor(conf))
            self._name_idx[conf.name] = idx
        self._cmd_idx: dict[str, list[int]] = {}

    def monitors(self) -> list[LatencyMonitor]:
        """Fresh copies of the configured monitors, in configuration order."""
        return [m.copy() for m in self._pool]

    def find(self, name: str) -> Optional[int]:
        """Index of the monitor with this name, or None."""
        return self._name_idx.get(name)

    def cmd_index(self, cmd: str) -> list[int]:
        """Indices of the monitors that watch ``cmd``, in configuration order."""
        cmd = cmd.lower()
        indices = self._cmd_idx.get(cmd)
        if indices is None:
            indices = [
                idx
                for idx, conf in enumerate(self._confs)
                if cmd in {c.lower() for c in conf.cmds}
            ]
            self._cmd_idx[cmd] = indices
        return list(indices)