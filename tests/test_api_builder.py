from datetime import timedelta

import pytest

from manba.api_builder import APIBuilder
from manba.models import (
    API,
    CMP,
    HostType,
    MetaStore,
    Parameter,
    RetryStrategy,
    Source,
    Status,
)
from manba.validation import ValidationError


def _valid():
    return APIBuilder().name("user api").match_url_pattern("/api/user/(.+)")


def test_match_domain_clears_pattern_and_method():
    b = APIBuilder().match_url_pattern("/api/user/(.+)").match_method("GET")
    b.match_domain("user.example.com")
    assert b.value.domain == "user.example.com"
    assert b.value.url_pattern == ""
    assert b.value.method == ""
    b.match_method("*")
    assert b.value.domain == ""
    assert b.value.method == "*"


def test_status_up_down():
    b = APIBuilder().down()
    assert b.value.status == Status.DOWN
    b.up()
    assert b.value.status == Status.UP


def test_black_and_white_lists_example():
    b = APIBuilder()
    b.add_blacklist("192.168.0.1", "192.168.1.*", "192.168.*")
    b.add_whitelist("192.168.3.1", "192.168.3.*", "192.168.*")
    b.remove_blacklist("192.168.0.1")
    b.remove_whitelist("192.168.3.1")
    assert b.value.ip_access_control.blacklist == ["192.168.1.*", "192.168.*"]
    assert b.value.ip_access_control.whitelist == ["192.168.3.*", "192.168.*"]
    b.no_blacklist().no_whitelist()
    assert b.value.ip_access_control.blacklist == []
    assert b.value.ip_access_control.whitelist == []


def test_remove_from_missing_acl_is_noop():
    b = APIBuilder().remove_whitelist("x").no_blacklist()
    assert b.value.ip_access_control is None


def test_tags_and_perms():
    b = APIBuilder().add_tag("tag1", "value1").add_tag("tag2", "").remove_tag("tag1")
    assert [(t.name, t.value) for t in b.value.tags] == [("tag2", "")]
    b.add_perm("PERM1").add_perm("PERM2").remove_perm("PERM1")
    assert b.value.perms == ["PERM2"]


def test_default_value_parts():
    b = APIBuilder().default_value(b'{"value": "default"}')
    b.add_default_value_header("token", "token").add_default_value_cookie("sid", "placeholder")
    dv = b.value.default_value
    assert dv.body == b'{"value": "default"}'
    assert [(h.name, h.value) for h in dv.headers] == [("token", "token")]
    assert [(c.name, c.value) for c in dv.cookies] == [("sid", "placeholder")]
    b.no_default_value()
    assert b.value.default_value is None


def test_add_dispatch_node_is_unique_append_is_not():
    b = APIBuilder().add_dispatch_node(1).add_dispatch_node(1)
    assert [n.cluster_id for n in b.value.nodes] == [1]
    b.append_dispatch_node(1)
    assert [n.cluster_id for n in b.value.nodes] == [1, 1]


def test_indexed_node_setters():
    b = APIBuilder().append_dispatch_node(1).append_dispatch_node(1)
    b.dispatch_node_url_rewrite(1, "/second", index=1)
    b.dispatch_node_url_rewrite(1, "/first")
    assert [n.url_rewrite for n in b.value.nodes] == ["/first", "/second"]
    b.remove_dispatch_node_url_rewrite(1)
    assert all(n.url_rewrite == "" for n in b.value.nodes)


def test_setter_creates_missing_node():
    b = APIBuilder().dispatch_node_value_attr_name(2, "account")
    assert len(b.value.nodes) == 1
    assert b.value.nodes[0].cluster_id == 2
    assert b.value.nodes[0].attr_name == "account"


def test_timeouts_retry_batch_host():
    strategy = RetryStrategy(interval=10, max_times=3, codes=[502])
    b = APIBuilder().add_dispatch_node(1)
    b.dispatch_node_timeouts(1, 5, 7).dispatch_node_retry_strategy(1, strategy)
    b.dispatch_node_batch_index(1, 2).add_dispatch_node_host(1, HostType.CUSTOM, "h.example.com")
    node = b.value.nodes[0]
    assert (node.read_timeout, node.write_timeout) == (5, 7)
    assert node.retry_strategy is strategy
    assert node.batch_index == 2
    assert node.host_type == HostType.CUSTOM
    assert node.custom_host == "h.example.com"
    assert len(b.value.nodes) == 1


def test_node_default_values():
    b = APIBuilder().add_dispatch_node_default_value(1, b"{}")
    b.add_dispatch_node_default_value_header(1, "h", "v")
    b.add_dispatch_node_default_value_cookie(1, "c", "v")
    b.use_dispatch_node_default_value(1, True)
    node = b.value.nodes[0]
    assert node.default_value.body == b"{}"
    assert [h.name for h in node.default_value.headers] == ["h"]
    assert [c.name for c in node.default_value.cookies] == ["c"]
    assert node.use_default is True


def test_caching():
    b = APIBuilder().dispatch_node_use_caching(1, timedelta(seconds=30))
    key = Parameter(name="id", source=Source.QUERY_STRING)
    b.add_dispatch_node_caching_key(1, key)
    b.add_dispatch_node_caching_condition(1, key, CMP.EQ, "1")
    cache = b.value.nodes[0].cache
    assert cache.deadline == 30
    assert cache.keys == [key]
    assert cache.conditions[0].expect == "1"
    assert cache.conditions[0].cmp == CMP.EQ


def test_caching_key_without_cache_raises():
    b = APIBuilder().add_dispatch_node(1)
    with pytest.raises(ValueError):
        b.add_dispatch_node_caching_key(1, Parameter(name="id"))


def test_validation_groups_rules_by_parameter():
    b = APIBuilder()
    query = Parameter(name="name", source=Source.QUERY_STRING)
    cookie = Parameter(name="name", source=Source.COOKIE)
    b.add_dispatch_node_validation(1, query, "[a-zA-Z]+", True)
    b.add_dispatch_node_validation(1, query, "^a", False)
    b.add_dispatch_node_validation(1, cookie, "[a-zA-Z]+", True)
    validations = b.value.nodes[0].validations
    assert len(validations) == 2
    assert [r.expression for r in validations[0].rules] == ["[a-zA-Z]+", "^a"]
    assert validations[0].required is True


def test_render_objects():
    b = APIBuilder()
    b.add_render_object("base", "feild1", "base.user.feild1", "field2", "base.user.field2")
    b.add_render_object("base", "extra")  # odd count is ignored
    b.add_flat_render_object("account_field1", "account.felid1")
    objects = b.value.render_template.objects
    assert [o.name for o in objects] == ["base", ""]
    assert [(a.name, a.extract_exp) for a in objects[0].attrs] == [
        ("feild1", "base.user.feild1"),
        ("field2", "base.user.field2"),
    ]
    assert objects[1].flat_attrs is True
    b.no_render_template()
    assert b.value.render_template is None


def test_build_requires_name_and_pattern():
    with pytest.raises(ValidationError, match="missing api name"):
        APIBuilder().match_url_pattern("/x").build()
    with pytest.raises(ValidationError, match="missing URLPattern"):
        APIBuilder().name("a").build()


def test_build_rejects_bad_regexp():
    b = _valid().add_dispatch_node_validation(1, Parameter(name="n"), "[a-", True)
    with pytest.raises(ValidationError):
        b.build()


def test_build_returns_independent_copy():
    b = _valid().position(3)
    api = b.build()
    assert isinstance(api, API)
    assert api.position == 3
    b.name("other")
    assert api.name == "user api"


def test_commit_stores_api():
    store = MetaStore()
    b = APIBuilder(store)
    api_id = _valid().use(API(name="user api", url_pattern="/p")).value and b.use(
        API(name="user api", url_pattern="/p")
    ).commit()
    assert store.apis[api_id].name == "user api"
    updated = APIBuilder(store).use(store.apis[api_id]).down().commit()
    assert updated == api_id
    assert store.apis[api_id].status == Status.DOWN


def test_commit_without_store_raises():
    with pytest.raises(RuntimeError):
        _valid().commit()


def test_use_does_not_mutate_source():
    original = API(name="a", url_pattern="/p")
    APIBuilder().use(original).add_perm("PERM1")
    assert original.perms == []