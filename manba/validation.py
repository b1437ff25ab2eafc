"""Validation of gateway metadata before it is stored."""

from __future__ import annotations

import re

from .models import API, Cluster, Plugin, Routing, RuleType, Server


class ValidationError(ValueError):
    """Raised when a metadata record is incomplete or malformed."""


def validate_routing(value: Routing) -> Routing:
    if value.api == 0:
        raise ValidationError("missing api")
    if value.cluster_id == 0:
        raise ValidationError("missing cluster")
    if value.name == "":
        raise ValidationError("missing name")
    if value.traffic_rate <= 0 or value.traffic_rate > 100:
        raise ValidationError(f"error traffic rate: {value.traffic_rate}")
    return value


def validate_cluster(value: Cluster) -> Cluster:
    if value.name == "":
        raise ValidationError("missing name")
    return value


def validate_server(value: Server) -> Server:
    if value.addr == "":
        raise ValidationError("missing server address")
    if value.max_qps == 0:
        raise ValidationError("missing server max qps")
    return value


def validate_api(value: API) -> API:
    if value.name == "":
        raise ValidationError("missing api name")
    if value.url_pattern == "":
        raise ValidationError("missing URLPattern")
    for node in value.nodes:
        for validation in node.validations:
            for rule in validation.rules:
                if rule.rule_type == RuleType.REGEXP:
                    try:
                        re.compile(rule.expression)
                    except re.error as exc:
                        raise ValidationError(str(exc)) from exc
    return value


def validate_plugin(value: Plugin) -> Plugin:
    if value.name == "":
        raise ValidationError("missing plugin name")
    if value.version == 0:
        raise ValidationError("missing plugin version")
    if not value.content:
        raise ValidationError("missing plugin content")
    return value