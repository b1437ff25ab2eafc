"""Load balancers that pick a backend server id for a request."""

from __future__ import annotations

import random
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .models import LoadBalance, Server

_FNV32_OFFSET = 2166136261
_FNV32_PRIME = 16777619


def _fnv32a(data: bytes) -> int:
    h = _FNV32_OFFSET
    for byte in data:
        h ^= byte
        h = (h * _FNV32_PRIME) & 0xFFFFFFFF
    return h


class LoadBalancer(ABC):
    """Chooses a server; returns its id, or 0 when there are none."""

    @abstractmethod
    def select(self, servers: Sequence[Server], client_ip: str = "") -> int:
        """Return the id of the chosen server."""


class RoundRobin(LoadBalancer):
    def __init__(self) -> None:
        self._ops = 0
        self._lock = threading.Lock()

    def select(self, servers: Sequence[Server], client_ip: str = "") -> int:
        if not servers:
            return 0
        with self._lock:
            self._ops += 1
            ops = self._ops
        return servers[ops % len(servers)].id


@dataclass
class _Weight:
    effective: int
    current: int = 0


class WeightRobin(LoadBalancer):
    """Smooth weighted round robin."""

    def __init__(self) -> None:
        self._opts: dict[int, _Weight] = {}

    def select(self, servers: Sequence[Server], client_ip: str = "") -> int:
        if not servers:
            return 0
        total = 0
        best = 0
        for svr in reversed(servers):
            wt = self._opts.setdefault(svr.id, _Weight(effective=svr.weight))
            wt.current += wt.effective
            total += wt.effective
            if wt.effective < svr.weight:
                wt.effective += 1
            if best == 0 or best not in self._opts or wt.current > self._opts[best].current:
                best = svr.id
        if best == 0:
            return 0
        self._opts[best].current -= total
        return best


class HashIPBalance(LoadBalancer):
    """Maps a client address to a server with FNV-1a."""

    def select(self, servers: Sequence[Server], client_ip: str = "") -> int:
        if not servers:
            return 0
        return servers[_fnv32a(client_ip.encode()) % len(servers)].id


class RandBalance(LoadBalancer):
    def select(self, servers: Sequence[Server], client_ip: str = "") -> int:
        if not servers:
            return 0
        return servers[random.randrange(len(servers))].id


LBS: dict[LoadBalance, Callable[[], LoadBalancer]] = {
    LoadBalance.ROUND_ROBIN: RoundRobin,
    LoadBalance.WEIGHT_ROBIN: WeightRobin,
    LoadBalance.IP_HASH: HashIPBalance,
    LoadBalance.RAND: RandBalance,
}

_SUPPORTED = (LoadBalance.ROUND_ROBIN,)


def get_support_lbs() -> list[LoadBalance]:
    return list(_SUPPORTED)


def new_load_balance(name) -> LoadBalancer:
    """Create the balancer for name, falling back to round robin."""
    factory = LBS.get(name, RoundRobin)
    return factory()