"""Data centers: address prefix lookup and read policies between data centers."""

from __future__ import annotations

import bisect
import os
from dataclasses import dataclass, field
from typing import Iterable, Optional


class DataCenterError(Exception):
    """Raised when the data center configuration is inconsistent."""


@dataclass(frozen=True)
class ReadPolicyConf:
    """Configured read policy towards the data center named ``name``."""

    name: str
    priority: int = 0
    weight: int = 0


@dataclass(frozen=True)
class DCConf:
    """Configuration of one data center."""

    name: str
    addr_prefix: list[str] = field(default_factory=list)
    read_policy: list[ReadPolicyConf] = field(default_factory=list)


@dataclass(frozen=True)
class ReadPolicy:
    """Priority and weight for reading from another data center."""

    priority: int = 0
    weight: int = 0


class DC:
    """A data center and its read policies towards the others."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._policies: dict[str, ReadPolicy] = {}

    def __repr__(self) -> str:
        return f"DC({self.name!r})"

    def set(self, other: "DC", policy: ReadPolicyConf) -> None:
        """Record the read policy towards ``other``."""
        self._policies[other.name] = ReadPolicy(policy.priority, policy.weight)

    def read_policy(self, other: "DC") -> ReadPolicy:
        """Read policy towards ``other``; zero priority and weight if unset."""
        return self._policies.get(other.name, ReadPolicy())

    def read_priority(self, other: Optional["DC"]) -> int:
        """Read priority towards ``other``; 1 when ``other`` is unknown."""
        return 1 if other is None else self.read_policy(other).priority

    def read_weight(self, other: Optional["DC"]) -> int:
        """Read weight towards ``other``; 1 when ``other`` is unknown."""
        return 1 if other is None else self.read_policy(other).weight


class DataCenter:
    """All configured data centers, with the local one singled out."""

    def __init__(self, confs: Iterable[DCConf], local_dc: str) -> None:
        confs = list(confs)
        self._dcs: dict[str, DC] = {}
        self._addr_dc: dict[str, DC] = {}
        self._local: Optional[DC] = None
        for conf in confs:
            if conf.name in self._dcs:
                raise DataCenterError(f'DC "{conf.name}" duplicate define')
            dc = DC(conf.name)
            self._dcs[conf.name] = dc
            if conf.name == local_dc:
                self._local = dc
            for prefix in conf.addr_prefix:
                if prefix in self._addr_dc:
                    raise DataCenterError(
                        f'DC "{conf.name}" AddrPrefix "{prefix}" collision '
                        f'with DC "{self._addr_dc[prefix].name}"'
                    )
                self._addr_dc[prefix] = dc
        if self._local is None:
            raise DataCenterError(f'DataCenter can\'t find localDC "{local_dc}"')
        for conf in confs:
            dc = self._dcs[conf.name]
            for policy in conf.read_policy:
                other = self._dcs.get(policy.name)
                if other is None:
                    raise DataCenterError(
                        f'DC "{dc.name}" ReadPolicy "{policy.name}" '
                        "no exists in DataCenter"
                    )
                dc.set(other, policy)
        self._prefixes = sorted(self._addr_dc)

    @property
    def dcs(self) -> dict[str, DC]:
        """Data centers by name."""
        return dict(self._dcs)

    def local_dc(self) -> DC:
        """The data center the proxy runs in."""
        assert self._local is not None
        return self._local

    def get_dc(self, addr: str) -> Optional[DC]:
        """Data center whose longest address prefix matches ``addr``, if any."""
        probe = addr
        while True:
            idx = bisect.bisect_right(self._prefixes, probe)
            if idx == 0:
                return None
            candidate = self._prefixes[idx - 1]
            if probe.startswith(candidate):
                return self._addr_dc[candidate]
            probe = os.path.commonprefix([probe, candidate])