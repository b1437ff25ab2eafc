"""Gateway metadata records, their enumerations and an in-memory metadata store."""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

SERVICE_META = "gateway-service-meta"


class Status(IntEnum):
    DOWN = 0
    UP = 1


class Protocol(IntEnum):
    HTTP = 0


class LoadBalance(IntEnum):
    ROUND_ROBIN = 0
    IP_HASH = 1
    WEIGHT_ROBIN = 2
    RAND = 3


class Source(IntEnum):
    QUERY_STRING = 0
    FORM_DATA = 1
    JSON_BODY = 2
    HEADER = 3
    COOKIE = 4
    PATH_VALUE = 5


class CMP(IntEnum):
    EQ = 0
    LT = 1
    LE = 2
    GT = 3
    GE = 4
    IN = 5
    MATCH = 6


class RoutingStrategy(IntEnum):
    COPY = 0
    SPLIT = 1


class RuleType(IntEnum):
    REGEXP = 0


class HostType(IntEnum):
    ORIGIN = 0
    SERVER_ADDRESS = 1
    CUSTOM = 2


class PluginType(IntEnum):
    JAVASCRIPT = 0


@dataclass
class Parameter:
    name: str = ""
    source: Source = Source.QUERY_STRING
    index: int = 0


@dataclass
class Condition:
    parameter: Parameter = field(default_factory=Parameter)
    cmp: CMP = CMP.EQ
    expect: str = ""


@dataclass
class PairValue:
    name: str = ""
    value: str = ""


@dataclass
class HTTPResult:
    body: bytes = b""
    headers: list[PairValue] = field(default_factory=list)
    cookies: list[PairValue] = field(default_factory=list)
    code: int = 0


@dataclass
class IPAccessControl:
    whitelist: list[str] = field(default_factory=list)
    blacklist: list[str] = field(default_factory=list)


@dataclass
class Cache:
    keys: list[Parameter] = field(default_factory=list)
    deadline: int = 0
    conditions: list[Condition] = field(default_factory=list)


@dataclass
class ValidationRule:
    rule_type: RuleType = RuleType.REGEXP
    expression: str = ""


@dataclass
class Validation:
    parameter: Parameter = field(default_factory=Parameter)
    required: bool = False
    rules: list[ValidationRule] = field(default_factory=list)


@dataclass
class RetryStrategy:
    interval: int = 0
    max_times: int = 0
    codes: list[int] = field(default_factory=list)


@dataclass
class WebSocketOptions:
    origin: str = ""


@dataclass
class DispatchNode:
    cluster_id: int = 0
    url_rewrite: str = ""
    attr_name: str = ""
    validations: list[Validation] = field(default_factory=list)
    cache: Optional[Cache] = None
    default_value: Optional[HTTPResult] = None
    use_default: bool = False
    batch_index: int = 0
    retry_strategy: Optional[RetryStrategy] = None
    write_timeout: int = 0
    read_timeout: int = 0
    host_type: HostType = HostType.ORIGIN
    custom_host: str = ""


@dataclass
class RenderAttr:
    name: str = ""
    extract_exp: str = ""


@dataclass
class RenderObject:
    name: str = ""
    attrs: list[RenderAttr] = field(default_factory=list)
    flat_attrs: bool = False


@dataclass
class RenderTemplate:
    objects: list[RenderObject] = field(default_factory=list)


@dataclass
class API:
    id: int = 0
    name: str = ""
    url_pattern: str = ""
    method: str = ""
    domain: str = ""
    status: Status = Status.DOWN
    ip_access_control: Optional[IPAccessControl] = None
    default_value: Optional[HTTPResult] = None
    nodes: list[DispatchNode] = field(default_factory=list)
    perms: list[str] = field(default_factory=list)
    auth_filter: str = ""
    render_template: Optional[RenderTemplate] = None
    use_default: bool = False
    position: int = 0
    tags: list[PairValue] = field(default_factory=list)
    web_socket_options: Optional[WebSocketOptions] = None


@dataclass
class Cluster:
    id: int = 0
    name: str = ""
    load_balance: LoadBalance = LoadBalance.ROUND_ROBIN


@dataclass
class HeathCheck:
    path: str = ""
    body: str = ""
    check_interval: int = 0
    timeout: int = 0


@dataclass
class CircuitBreaker:
    close_timeout: int = 0
    half_traffic_rate: int = 0
    rate_check_period: int = 0
    failure_rate_to_close: int = 0
    succeed_rate_to_open: int = 0


@dataclass
class Server:
    id: int = 0
    addr: str = ""
    protocol: Protocol = Protocol.HTTP
    max_qps: int = 0
    heath_check: Optional[HeathCheck] = None
    circuit_breaker: Optional[CircuitBreaker] = None
    weight: int = 0


@dataclass
class Routing:
    id: int = 0
    cluster_id: int = 0
    conditions: list[Condition] = field(default_factory=list)
    strategy: RoutingStrategy = RoutingStrategy.COPY
    traffic_rate: int = 0
    status: Status = Status.DOWN
    api: int = 0
    name: str = ""


@dataclass
class Plugin:
    id: int = 0
    name: str = ""
    type: PluginType = PluginType.JAVASCRIPT
    content: bytes = b""
    cfg: bytes = b""
    version: int = 0
    author: str = ""
    email: str = ""


class MetaStore:
    """Holds gateway metadata in memory and hands out ids from one shared sequence."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last_id = 0
        self.apis: dict[int, API] = {}
        self.clusters: dict[int, Cluster] = {}
        self.servers: dict[int, Server] = {}
        self.routings: dict[int, Routing] = {}
        self.plugins: dict[int, Plugin] = {}

    def _put(self, table: dict, value) -> int:
        stored = copy.deepcopy(value)
        with self._lock:
            if stored.id == 0:
                self._last_id += 1
                stored.id = self._last_id
            else:
                self._last_id = max(self._last_id, stored.id)
            table[stored.id] = stored
        return stored.id

    def put_api(self, api: API) -> int:
        return self._put(self.apis, api)

    def put_cluster(self, cluster: Cluster) -> int:
        return self._put(self.clusters, cluster)

    def put_server(self, server: Server) -> int:
        return self._put(self.servers, server)

    def put_routing(self, routing: Routing) -> int:
        return self._put(self.routings, routing)

    def put_plugin(self, plugin: Plugin) -> int:
        return self._put(self.plugins, plugin)