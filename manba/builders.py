"""Fluent builders for clusters, plugins, routings and servers."""

from __future__ import annotations

import copy
from datetime import timedelta
from typing import Optional, Union

from .models import (
    CMP,
    CircuitBreaker,
    Cluster,
    Condition,
    HeathCheck,
    LoadBalance,
    MetaStore,
    Parameter,
    Plugin,
    PluginType,
    Protocol,
    Routing,
    RoutingStrategy,
    Server,
    Status,
)
from .validation import (
    validate_cluster,
    validate_plugin,
    validate_routing,
    validate_server,
)

Duration = Union[timedelta, int]


def _nanos(value: Duration) -> int:
    """Return a duration in nanoseconds; plain ints are taken as nanoseconds."""
    if isinstance(value, timedelta):
        whole = (value.days * 86400 + value.seconds) * 1_000_000_000
        return whole + value.microseconds * 1000
    return int(value)


def _require_store(store: Optional[MetaStore]) -> MetaStore:
    if store is None:
        raise RuntimeError("builder has no store to commit to")
    return store


class ClusterBuilder:
    """Builds a cluster record; every setter returns the builder."""

    def __init__(self, store: Optional[MetaStore] = None) -> None:
        self._store = store
        self.value = Cluster()

    def use(self, value: Cluster) -> "ClusterBuilder":
        self.value = copy.deepcopy(value)
        return self

    def name(self, name: str) -> "ClusterBuilder":
        self.value.name = name
        return self

    def loadbalance(self, lb: LoadBalance) -> "ClusterBuilder":
        self.value.load_balance = lb
        return self

    def commit(self) -> int:
        """Validate the cluster and store it; return its id."""
        validate_cluster(self.value)
        return _require_store(self._store).put_cluster(self.value)

    def build(self) -> Cluster:
        """Validate the cluster and return a copy of it."""
        validate_cluster(self.value)
        return copy.deepcopy(self.value)


class PluginBuilder:
    """Builds a plugin record; every setter returns the builder."""

    def __init__(self, store: Optional[MetaStore] = None) -> None:
        self._store = store
        self.value = Plugin(type=PluginType.JAVASCRIPT)

    def use(self, value: Plugin) -> "PluginBuilder":
        self.value = copy.deepcopy(value)
        return self

    def name(self, name: str) -> "PluginBuilder":
        self.value.name = name
        return self

    def version(self, version: int) -> "PluginBuilder":
        self.value.version = version
        return self

    def author(self, author: str, email: str) -> "PluginBuilder":
        self.value.author = author
        self.value.email = email
        return self

    def script(self, content: bytes, cfg: bytes) -> "PluginBuilder":
        self.value.content = content
        self.value.cfg = cfg
        return self

    def commit(self) -> int:
        """Validate the plugin and store it; return its id."""
        validate_plugin(self.value)
        return _require_store(self._store).put_plugin(self.value)

    def build(self) -> Plugin:
        """Validate the plugin and return a copy of it."""
        validate_plugin(self.value)
        return copy.deepcopy(self.value)


class RoutingBuilder:
    """Builds a routing record; every setter returns the builder."""

    def __init__(self, store: Optional[MetaStore] = None) -> None:
        self._store = store
        self.value = Routing()

    def use(self, value: Routing) -> "RoutingBuilder":
        self.value = copy.deepcopy(value)
        return self

    def to(self, cluster_id: int) -> "RoutingBuilder":
        self.value.cluster_id = cluster_id
        return self

    def add_condition(self, param: Parameter, op: CMP, expect: str) -> "RoutingBuilder":
        self.value.conditions.append(Condition(parameter=param, cmp=op, expect=expect))
        return self

    def traffic_rate(self, rate: int) -> "RoutingBuilder":
        self.value.traffic_rate = rate
        return self

    def strategy(self, strategy: RoutingStrategy) -> "RoutingBuilder":
        self.value.strategy = strategy
        return self

    def up(self) -> "RoutingBuilder":
        self.value.status = Status.UP
        return self

    def down(self) -> "RoutingBuilder":
        self.value.status = Status.DOWN
        return self

    def name(self, name: str) -> "RoutingBuilder":
        self.value.name = name
        return self

    def api(self, api: int) -> "RoutingBuilder":
        self.value.api = api
        return self

    def commit(self) -> int:
        """Validate the routing and store it; return its id."""
        validate_routing(self.value)
        return _require_store(self._store).put_routing(self.value)

    def build(self) -> Routing:
        """Validate the routing and return a copy of it."""
        validate_routing(self.value)
        return copy.deepcopy(self.value)


class ServerBuilder:
    """Builds a server record; durations are stored in nanoseconds."""

    def __init__(self, store: Optional[MetaStore] = None) -> None:
        self._store = store
        self.value = Server()

    def use(self, value: Server) -> "ServerBuilder":
        self.value = copy.deepcopy(value)
        return self

    def no_heath_check(self) -> "ServerBuilder":
        self.value.heath_check = None
        return self

    def _heath_check(self) -> HeathCheck:
        if self.value.heath_check is None:
            self.value.heath_check = HeathCheck()
        return self.value.heath_check

    def check_http_code(self, path: str, interval: Duration, timeout: Duration) -> "ServerBuilder":
        return self.check_http_body(path, "", interval, timeout)

    def check_http_body(
        self, path: str, body: str, interval: Duration, timeout: Duration
    ) -> "ServerBuilder":
        check = self._heath_check()
        check.path = path
        check.body = body
        check.check_interval = _nanos(interval)
        check.timeout = _nanos(timeout)
        return self

    def addr(self, addr: str) -> "ServerBuilder":
        self.value.addr = addr
        return self

    def http_backend(self) -> "ServerBuilder":
        self.value.protocol = Protocol.HTTP
        return self

    def max_qps(self, max_qps: int) -> "ServerBuilder":
        self.value.max_qps = max_qps
        return self

    def weight(self, weight: int) -> "ServerBuilder":
        self.value.weight = weight
        return self

    def no_circuit_breaker(self) -> "ServerBuilder":
        self.value.circuit_breaker = None
        return self

    def _breaker(self) -> CircuitBreaker:
        if self.value.circuit_breaker is None:
            self.value.circuit_breaker = CircuitBreaker()
        return self.value.circuit_breaker

    def circuit_breaker_check_period(self, check_period: Duration) -> "ServerBuilder":
        self._breaker().rate_check_period = _nanos(check_period)
        return self

    def circuit_breaker_half_traffic_rate(self, rate: int) -> "ServerBuilder":
        self._breaker().half_traffic_rate = rate
        return self

    def circuit_breaker_close_to_half_timeout(self, timeout: Duration) -> "ServerBuilder":
        self._breaker().close_timeout = _nanos(timeout)
        return self

    def circuit_breaker_half_to_close_condition(self, failure_rate: int) -> "ServerBuilder":
        self._breaker().failure_rate_to_close = failure_rate
        return self

    def circuit_breaker_half_to_open_condition(self, succeed_rate: int) -> "ServerBuilder":
        self._breaker().succeed_rate_to_open = succeed_rate
        return self

    def commit(self) -> int:
        """Validate the server and store it; return its id."""
        validate_server(self.value)
        return _require_store(self._store).put_server(self.value)

    def build(self) -> Server:
        """Validate the server and return a copy of it."""
        validate_server(self.value)
        return copy.deepcopy(self.value)