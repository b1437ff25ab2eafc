"""Fluent builder for gateway API definitions."""

from __future__ import annotations

import copy
from datetime import timedelta
from typing import Optional, Union

from .models import (
    API,
    CMP,
    Cache,
    Condition,
    DispatchNode,
    HostType,
    HTTPResult,
    IPAccessControl,
    MetaStore,
    PairValue,
    Parameter,
    RenderAttr,
    RenderObject,
    RenderTemplate,
    RetryStrategy,
    RuleType,
    Status,
    Validation,
    ValidationRule,
    WebSocketOptions,
)
from .validation import validate_api


def _seconds(value: Union[timedelta, int, float]) -> int:
    if isinstance(value, timedelta):
        return int(value.total_seconds())
    return int(value)


class APIBuilder:
    """Builds an API record step by step; every setter returns the builder."""

    def __init__(self, store: Optional[MetaStore] = None) -> None:
        self._store = store
        self.value = API()

    def use(self, value: API) -> "APIBuilder":
        self.value = copy.deepcopy(value)
        return self

    def name(self, name: str) -> "APIBuilder":
        self.value.name = name
        return self

    def auth_plugin(self, name: str) -> "APIBuilder":
        self.value.auth_filter = name
        return self

    def add_perm(self, perm: str) -> "APIBuilder":
        self.value.perms.append(perm)
        return self

    def remove_perm(self, perm: str) -> "APIBuilder":
        if self.value.perms:
            self.value.perms = [p for p in self.value.perms if p != perm]
        return self

    def web_socket_options(self, options: Optional[WebSocketOptions]) -> "APIBuilder":
        self.value.web_socket_options = options
        return self

    def match_url_pattern(self, url_pattern: str) -> "APIBuilder":
        self.value.url_pattern = url_pattern
        self.value.domain = ""
        return self

    def match_method(self, method: str) -> "APIBuilder":
        self.value.method = method
        self.value.domain = ""
        return self

    def match_domain(self, domain: str) -> "APIBuilder":
        self.value.domain = domain
        self.value.method = ""
        self.value.url_pattern = ""
        return self

    def up(self) -> "APIBuilder":
        self.value.status = Status.UP
        return self

    def down(self) -> "APIBuilder":
        self.value.status = Status.DOWN
        return self

    def no_default_value(self) -> "APIBuilder":
        self.value.default_value = None
        return self

    def _default_value(self) -> HTTPResult:
        if self.value.default_value is None:
            self.value.default_value = HTTPResult()
        return self.value.default_value

    def default_value(self, value: bytes) -> "APIBuilder":
        self._default_value().body = value
        return self

    def use_default_value(self, force: bool) -> "APIBuilder":
        self.value.use_default = force
        return self

    def add_default_value_header(self, name: str, value: str) -> "APIBuilder":
        self._default_value().headers.append(PairValue(name=name, value=value))
        return self

    def add_default_value_cookie(self, name: str, value: str) -> "APIBuilder":
        self._default_value().cookies.append(PairValue(name=name, value=value))
        return self

    def no_whitelist(self) -> "APIBuilder":
        if self.value.ip_access_control is not None:
            self.value.ip_access_control.whitelist = []
        return self

    def no_blacklist(self) -> "APIBuilder":
        if self.value.ip_access_control is not None:
            self.value.ip_access_control.blacklist = []
        return self

    @staticmethod
    def _without(values: list[str], ips: tuple[str, ...]) -> list[str]:
        # Each kept entry is emitted once per differing ip.
        return [old for old in values for ip in ips if old != ip]

    def remove_whitelist(self, *args: str) -> "APIBuilder":
        acl = self.value.ip_access_control
        if acl is not None and acl.whitelist:
            acl.whitelist = self._without(acl.whitelist, args)
        return self

    def remove_blacklist(self, *args: str) -> "APIBuilder":
        acl = self.value.ip_access_control
        if acl is not None and acl.blacklist:
            acl.blacklist = self._without(acl.blacklist, args)
        return self

    def _acl(self) -> IPAccessControl:
        if self.value.ip_access_control is None:
            self.value.ip_access_control = IPAccessControl()
        return self.value.ip_access_control

    def add_whitelist(self, *args: str) -> "APIBuilder":
        self._acl().whitelist.extend(args)
        return self

    def add_blacklist(self, *args: str) -> "APIBuilder":
        self._acl().blacklist.extend(args)
        return self

    def append_dispatch_node(self, cluster: int) -> "APIBuilder":
        self.value.nodes.append(DispatchNode(cluster_id=cluster))
        return self

    def add_dispatch_node(self, cluster: int) -> "APIBuilder":
        if not any(n.cluster_id == cluster for n in self.value.nodes):
            self.value.nodes.append(DispatchNode(cluster_id=cluster))
        return self

    def _get_node(self, cluster: int, index: int) -> Optional[DispatchNode]:
        matching = [n for n in self.value.nodes if n.cluster_id == cluster]
        if 0 <= index < len(matching):
            return matching[index]
        return None

    def _node(self, cluster: int, index: int) -> DispatchNode:
        node = self._get_node(cluster, index)
        if node is None:
            node = DispatchNode(cluster_id=cluster)
            self.value.nodes.append(node)
        return node

    def dispatch_node_timeouts(
        self, cluster: int, read_timeout: int, write_timeout: int, index: int = 0
    ) -> "APIBuilder":
        node = self._node(cluster, index)
        node.read_timeout = read_timeout
        node.write_timeout = write_timeout
        return self

    def dispatch_node_retry_strategy(
        self, cluster: int, strategy: Optional[RetryStrategy], index: int = 0
    ) -> "APIBuilder":
        self._node(cluster, index).retry_strategy = strategy
        return self

    def dispatch_node_batch_index(self, cluster: int, batch_index: int, index: int = 0) -> "APIBuilder":
        self._node(cluster, index).batch_index = batch_index
        return self

    @staticmethod
    def _node_default(node: DispatchNode) -> HTTPResult:
        if node.default_value is None:
            node.default_value = HTTPResult()
        return node.default_value

    def add_dispatch_node_default_value(self, cluster: int, value: bytes, index: int = 0) -> "APIBuilder":
        self._node_default(self._node(cluster, index)).body = value
        return self

    def use_dispatch_node_default_value(self, cluster: int, force: bool, index: int = 0) -> "APIBuilder":
        self._node(cluster, index).use_default = force
        return self

    def add_dispatch_node_default_value_header(
        self, cluster: int, name: str, value: str, index: int = 0
    ) -> "APIBuilder":
        node = self._node(cluster, index)
        self._node_default(node).headers.append(PairValue(name=name, value=value))
        return self

    def add_dispatch_node_default_value_cookie(
        self, cluster: int, name: str, value: str, index: int = 0
    ) -> "APIBuilder":
        node = self._node(cluster, index)
        self._node_default(node).cookies.append(PairValue(name=name, value=value))
        return self

    def remove_dispatch_node_url_rewrite(self, cluster: int) -> "APIBuilder":
        for node in self.value.nodes:
            if node.cluster_id == cluster:
                node.url_rewrite = ""
        return self

    def dispatch_node_use_caching(
        self, cluster: int, deadline: Union[timedelta, int, float], index: int = 0
    ) -> "APIBuilder":
        self._node(cluster, index).cache = Cache(deadline=_seconds(deadline))
        return self

    def _cached_node(self, cluster: int, index: int) -> Optional[DispatchNode]:
        node = self._get_node(cluster, index)
        if node is not None and node.cache is None:
            raise ValueError(f"dispatch node for cluster {cluster} has no caching")
        return node

    def add_dispatch_node_caching_key(self, cluster: int, *args: Parameter, index: int = 0) -> "APIBuilder":
        node = self._cached_node(cluster, index)
        if node is not None:
            node.cache.keys.extend(args)
        return self

    def add_dispatch_node_caching_condition(
        self, cluster: int, param: Parameter, op: CMP, expect: str, index: int = 0
    ) -> "APIBuilder":
        node = self._cached_node(cluster, index)
        if node is not None:
            node.cache.conditions.append(Condition(parameter=param, cmp=op, expect=expect))
        return self

    def dispatch_node_url_rewrite(self, cluster: int, url_rewrite: str, index: int = 0) -> "APIBuilder":
        self._node(cluster, index).url_rewrite = url_rewrite
        return self

    def dispatch_node_value_attr_name(self, cluster: int, attr_name: str, index: int = 0) -> "APIBuilder":
        self._node(cluster, index).attr_name = attr_name
        return self

    def add_dispatch_node_validation(
        self, cluster: int, param: Parameter, rule: str, required: bool, index: int = 0
    ) -> "APIBuilder":
        node = self._node(cluster, index)
        validation = next(
            (
                v
                for v in node.validations
                if v.parameter.name == param.name and v.parameter.source == param.source
            ),
            None,
        )
        if validation is None:
            validation = Validation(parameter=param, required=required)
            node.validations.append(validation)
        validation.rules.append(ValidationRule(rule_type=RuleType.REGEXP, expression=rule))
        return self

    def no_render_template(self) -> "APIBuilder":
        self.value.render_template = None
        return self

    def add_flat_render_object(self, *args: str) -> "APIBuilder":
        return self._add_render_object("", True, args)

    def add_render_object(self, name_in_template: str, *args: str) -> "APIBuilder":
        return self._add_render_object(name_in_template, False, args)

    def _add_render_object(self, name: str, flat_attrs: bool, pairs: tuple[str, ...]) -> "APIBuilder":
        if not pairs or len(pairs) % 2 != 0:
            return self
        if self.value.render_template is None:
            self.value.render_template = RenderTemplate()
        objects = self.value.render_template.objects
        obj = next((o for o in reversed(objects) if o.name == name), None)
        if obj is None:
            obj = RenderObject(name=name, flat_attrs=flat_attrs)
            objects.append(obj)
        obj.attrs.extend(
            RenderAttr(name=attr, extract_exp=exp) for attr, exp in zip(pairs[::2], pairs[1::2])
        )
        return self

    def add_dispatch_node_host(
        self, cluster: int, host_type: HostType, custom: str, index: int = 0
    ) -> "APIBuilder":
        node = self._node(cluster, index)
        node.host_type = host_type
        node.custom_host = custom
        return self

    def add_tag(self, key: str, value: str) -> "APIBuilder":
        self.value.tags.append(PairValue(name=key, value=value))
        return self

    def remove_tag(self, key: str) -> "APIBuilder":
        self.value.tags = [t for t in self.value.tags if t.name != key]
        return self

    def position(self, value: int) -> "APIBuilder":
        self.value.position = value
        return self

    def commit(self) -> int:
        """Validate the API and store it; return its id."""
        validate_api(self.value)
        if self._store is None:
            raise RuntimeError("builder has no store to commit to")
        return self._store.put_api(self.value)

    def build(self) -> API:
        """Validate the API and return a copy of it."""
        validate_api(self.value)
        return copy.deepcopy(self.value)