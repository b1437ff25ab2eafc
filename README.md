# manba

Building blocks for an HTTP API gateway: the metadata that describes what a
gateway serves, the checks that metadata must pass, the filter interface a
request travels through, load balancers that pick a backend server, chainable
builders that assemble configuration, and a small HTTP backend to point a
gateway at while trying things out.

Python 3.10 or newer; only the standard library is used.

## Modules

- `manba.models` – dataclasses for the gateway's metadata: `API`,
  `DispatchNode`, `Cluster`, `Server`, `Routing`, `Plugin` and their parts
  (`Parameter`, `Condition`, `PairValue`, `HTTPResult`, `IPAccessControl`,
  `Cache`, `Validation`, `ValidationRule`, `RetryStrategy`,
  `WebSocketOptions`, `RenderTemplate`, `RenderObject`, `RenderAttr`,
  `HeathCheck`, `CircuitBreaker`), the enumerations `Status`, `Protocol`,
  `LoadBalance`, `Source`, `CMP`, `RoutingStrategy`, `RuleType`, `HostType`
  and `PluginType`, and `MetaStore`.
- `manba.validation` – `validate_api`, `validate_cluster`, `validate_server`,
  `validate_routing` and `validate_plugin`. Each returns the object it was
  given or raises `ValidationError` (a `ValueError`).
- `manba.filter` – the abstract `Context`, `SimpleContext`, `BaseFilter`,
  `Response`, `string_value`, and `new_cached_value` /
  `read_cached_value_to`.
- `manba.lb` – `LoadBalancer` and its implementations `RoundRobin`,
  `WeightRobin`, `HashIPBalance` and `RandBalance`; `new_load_balance` and
  `get_support_lbs`.
- `manba.api_builder` – `APIBuilder`.
- `manba.builders` – `ClusterBuilder`, `ServerBuilder`, `RoutingBuilder` and
  `PluginBuilder`.
- `manba.backend` – `BackendHandler`, `make_server` and `main`, the test
  backend.

## Storing metadata

`MetaStore` keeps APIs, clusters, servers, routings and plugins in memory,
in the dictionaries `apis`, `clusters`, `servers`, `routings` and `plugins`.
`put_api`, `put_cluster`, `put_server`, `put_routing` and `put_plugin` store
a deep copy of the object and return its id. An object whose `id` is 0 is
given the next id from one sequence shared by all kinds; an object that
already has an id keeps it and replaces whatever was stored under it.

## Building configuration

Every builder takes an optional `MetaStore`. Its setters change the object
under construction (the builder's `value`) and return the builder, so calls
chain. `build()` validates the object and returns a copy; `commit()`
validates it and puts it into the store, returning its id (it raises
`RuntimeError` if the builder was made without a store). `use(value)` starts
from a copy of an existing object.

```python
from datetime import timedelta

from manba.api_builder import APIBuilder
from manba.builders import ClusterBuilder, ServerBuilder
from manba.models import LoadBalance, MetaStore, Parameter, Source

store = MetaStore()

cluster_id = (
    ClusterBuilder(store)
    .name("cluster-01")
    .loadbalance(LoadBalance.ROUND_ROBIN)
    .commit()
)

server_id = (
    ServerBuilder(store)
    .addr("127.0.0.1:8080")
    .http_backend()
    .max_qps(100)
    .check_http_code("/check", timedelta(seconds=10), timedelta(seconds=30))
    .commit()
)

api_id = (
    APIBuilder(store)
    .name("users")
    .match_url_pattern("/api/user/(.+)")
    .match_method("GET")
    .up()
    .add_dispatch_node(cluster_id)
    .dispatch_node_url_rewrite(cluster_id, "/api/user/base/$1")
    .add_dispatch_node_validation(
        cluster_id, Parameter(name="name", source=Source.QUERY_STRING), "[a-zA-Z]+", True
    )
    .commit()
)
```

Points worth knowing:

- `APIBuilder.match_domain` clears the method and URL pattern;
  `match_url_pattern` and `match_method` clear the domain.
- Dispatch-node setters take the cluster id and an optional `index`, which
  picks the n-th node for that cluster; when there is no such node a new one
  is appended. `append_dispatch_node` always appends,
  `add_dispatch_node` only when the cluster has no node yet.
- `dispatch_node_use_caching` takes a `timedelta` or a number of seconds and
  stores whole seconds. `add_dispatch_node_caching_key` and
  `add_dispatch_node_caching_condition` raise `ValueError` when the node has
  no caching set up, and do nothing when the node does not exist.
- `add_render_object(name, attr, exp, ...)` and
  `add_flat_render_object(attr, exp, ...)` take name/expression pairs; an
  empty or odd-length list of pairs is ignored.
- `remove_whitelist` / `remove_blacklist` keep each entry once for every
  given address it differs from, so passing several addresses can repeat
  entries.
- `ServerBuilder` stores health-check and circuit-breaker durations in
  nanoseconds; give it a `timedelta`, or an `int` already in nanoseconds.

## Validation rules

- API: needs a name and a URL pattern; every regular-expression validation
  rule on its dispatch nodes must compile.
- Cluster: needs a name.
- Server: needs an address and a non-zero `max_qps`.
- Routing: needs an API id, a cluster id, a name, and a traffic rate from 1
  to 100.
- Plugin: needs a name, a non-zero version and non-empty content.

## Filters and contexts

`Context` is what a filter sees of a request: `start_at`, `end_at`,
`origin_request`, `forward_request`, `response`, `api`, `dispatch_node`,
`server`, `analysis`, plus `set_attr` / `get_attr`. `SimpleContext` holds
those as plain attributes and keeps attrs in a lock-guarded dict.
`string_value(attr, c)` returns an attr that must be a string, and raises
`TypeError` otherwise.

`BaseFilter` lets everything through: `pre` and `post` return 200,
`post_err` records `(code, err)` in `last_error`, and each of them sets
`last_active`. `init(cfg)` keeps the configuration in `cfg`; `name()` is the
class name. The constants `ATTR_CLIENT_REAL_IP`, `ATTR_USING_CACHING_VALUE`,
`ATTR_USING_RESPONSE` and `BREAK_FILTER_CHAIN_CODE` (-1) are defined there
too.

`new_cached_value(response)` turns a `Response`'s headers and body into
bytes (big-endian 32-bit lengths before each part), and
`read_cached_value_to(buf, response)` sets those headers and the body on
another response; truncated data raises `ValueError`.

## Choosing a backend server

Every balancer's `select(servers, client_ip="")` returns the chosen
server's id, or 0 when the list is empty.

- `RoundRobin` steps through the list in turn.
- `WeightRobin` is smooth weighted round robin over each server's `weight`.
- `HashIPBalance` hashes the client address with 32-bit FNV-1a, so one
  client always lands on the same server of a given list.
- `RandBalance` picks at random.

`new_load_balance(LoadBalance.IP_HASH)` and friends create a balancer,
falling back to `RoundRobin` for anything it does not know.
`get_support_lbs()` returns `[LoadBalance.ROUND_ROBIN]`.

## A test backend

`manba-backend` starts a threaded HTTP server that plays an upstream
service:

    manba-backend --addr 127.0.0.1:9090

It answers `GET` on:

- `/check` – `OK`.
- `/serverinfo` – the host name and the listen address.
- `/fail` – `OK`, after sleeping `sleep` seconds and with status `code` when
  those query parameters are given.
- `/header?name=X` – the value of request header `X`.
- `/host` – the request's `Host` header and the listen address.
- `/error` – an empty 400.
- `/v1/users/<id>`, `/v1/account/<id>`, `/v1/components/<id>`,
  `/v2/users/<id>`, `/v2/account/<id>` – small JSON documents built from
  the id, the listen address and the query string.

Anything else is a 404 with a JSON message. Bodies are gzip-compressed when
the client accepts gzip. `make_server(addr)` builds the server without
starting it, for use from code or tests.

## What this package does not do

It holds no gateway proxy: nothing here accepts client traffic, runs the
filter chain or forwards requests to servers. There is no remote metadata
service or client either; builders commit only to an in-memory `MetaStore`,
which is not persisted. Plugins are stored as data — their scripts are
neither checked nor run — and `validate_api` does not check the syntax of
URL-rewrite expressions.