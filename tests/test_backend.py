import gzip
import json
import socket
import threading
import urllib.error
import urllib.request

import pytest

from manba.backend import make_server

ADDR = "127.0.0.1:0"


@pytest.fixture
def base_url():
    server = make_server(ADDR)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()


def _get(url, headers=None):
    req = urllib.request.Request(url, headers=headers or {})
    try:
        with urllib.request.urlopen(req, timeout=5) as rsp:
            return rsp.status, rsp.headers, rsp.read()
    except urllib.error.HTTPError as exc:
        return exc.code, exc.headers, exc.read()


def test_check(base_url):
    status, _, body = _get(base_url + "/check")
    assert status == 200
    assert body == b"OK"


def test_serverinfo(base_url):
    _, _, body = _get(base_url + "/serverinfo")
    assert body.decode() == socket.gethostname() + "\n" + ADDR


def test_fail_with_code(base_url):
    status, _, body = _get(base_url + "/fail?code=503")
    assert status == 503
    assert body == b"OK"


def test_fail_bad_code(base_url):
    status, _, _ = _get(base_url + "/fail?code=abc")
    assert status == 500


def test_error(base_url):
    status, _, body = _get(base_url + "/error")
    assert status == 400
    assert body == b""


def test_header_echo(base_url):
    _, _, body = _get(base_url + "/header?name=X-Thing", {"X-Thing": "hello"})
    assert body == b"hello"


def test_host(base_url):
    _, _, body = _get(base_url + "/host", {"Host": "example.com"})
    assert body.decode() == "Host in HTTP request header: example.com\nserver:" + ADDR


def test_v1_users(base_url):
    status, headers, body = _get(base_url + "/v1/users/7?a=1", {"header": "a"})
    assert status == 200
    assert headers["Content-Type"].startswith("application/json")
    value = json.loads(body)
    assert value == {
        "id": "7",
        "name": "v1-name-7",
        "source": ADDR,
        "query": "a=1",
        "header": "1",
    }


def test_v1_components(base_url):
    _, _, body = _get(base_url + "/v1/components/3")
    value = json.loads(body)
    assert value["code"] == "0"
    assert value["data"]["user"] == {"id": "3", "name": "v1-name-3"}
    assert value["data"]["source"] == ADDR


@pytest.mark.parametrize(
    "path, key, expected",
    [
        ("/v1/account/5", "account", "v1-account-5"),
        ("/v2/users/5", "name", "v2-name-5"),
        ("/v2/account/5", "account", "v2-account-5"),
    ],
)
def test_other_json_routes(base_url, path, key, expected):
    _, _, body = _get(base_url + path)
    value = json.loads(body)
    assert value[key] == expected
    assert value["id"] == "5"


def test_not_found(base_url):
    status, _, _ = _get(base_url + "/nothing")
    assert status == 404


def test_gzip(base_url):
    _, headers, body = _get(base_url + "/check", {"Accept-Encoding": "gzip"})
    assert headers["Content-Encoding"] == "gzip"
    assert gzip.decompress(body) == b"OK"


def test_make_server_rejects_bad_address():
    with pytest.raises(ValueError):
        make_server("no-port")