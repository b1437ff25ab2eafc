"""A small HTTP backend for exercising the gateway."""

from __future__ import annotations

import argparse
import gzip
import json
import re
import socket
import time
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

_TEXT = "text/plain; charset=UTF-8"
_JSON = "application/json; charset=UTF-8"

_PARAM_ROUTES = [
    (re.compile(r"^/v1/components/([^/]+)$"), "_v1_components"),
    (re.compile(r"^/v1/users/([^/]+)$"), "_v1_users"),
    (re.compile(r"^/v1/account/([^/]+)$"), "_v1_account"),
    (re.compile(r"^/v2/users/([^/]+)$"), "_v2_users"),
    (re.compile(r"^/v2/account/([^/]+)$"), "_v2_account"),
]


class _BackendServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, server_address, handler, addr: str) -> None:
        super().__init__(server_address, handler)
        self.addr = addr


class BackendHandler(BaseHTTPRequestHandler):
    """Answers the fixed set of test endpoints."""

    server: _BackendServer

    def do_GET(self) -> None:
        parts = urlsplit(self.path)
        self._query_string = parts.query
        self._query = parse_qs(parts.query, keep_blank_values=True)
        path = parts.path
        simple = {
            "/serverinfo": self._serverinfo,
            "/fail": self._fail,
            "/check": self._check,
            "/header": self._header,
            "/host": self._host,
            "/error": self._error,
        }
        try:
            if path in simple:
                simple[path]()
                return
            for pattern, method in _PARAM_ROUTES:
                match = pattern.match(path)
                if match:
                    getattr(self, method)(match.group(1))
                    return
            self._json(HTTPStatus.NOT_FOUND, {"message": "Not Found"})
        except ValueError:
            self._json(HTTPStatus.INTERNAL_SERVER_ERROR, {"message": "Internal Server Error"})

    def _param(self, name: str) -> str:
        values = self._query.get(name)
        return values[0] if values else ""

    def _send(self, code: int, content_type: Optional[str], body: bytes) -> None:
        headers = []
        accept = self.headers.get("Accept-Encoding", "")
        if body and "gzip" in accept:
            body = gzip.compress(body)
            headers.append(("Content-Encoding", "gzip"))
            headers.append(("Vary", "Accept-Encoding"))
        self.send_response(code)
        if content_type:
            self.send_header("Content-Type", content_type)
        for key, value in headers:
            self.send_header(key, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _text(self, code: int, text: str) -> None:
        self._send(code, _TEXT, text.encode())

    def _json(self, code: int, value: Any) -> None:
        body = (json.dumps(value, sort_keys=True, separators=(",", ":")) + "\n").encode()
        self._send(code, _JSON, body)

    def _serverinfo(self) -> None:
        self._text(HTTPStatus.OK, socket.gethostname() + "\n" + self.server.addr)

    def _fail(self) -> None:
        sleep = self._param("sleep")
        if sleep:
            time.sleep(int(sleep))
        code = self._param("code")
        self._text(int(code) if code else HTTPStatus.OK, "OK")

    def _check(self) -> None:
        self._text(HTTPStatus.OK, "OK")

    def _header(self) -> None:
        self._text(HTTPStatus.OK, self.headers.get(self._param("name"), ""))

    def _host(self) -> None:
        host = self.headers.get("Host", "")
        self._text(
            HTTPStatus.OK,
            "Host in HTTP request header: " + host + "\nserver:" + self.server.addr,
        )

    def _error(self) -> None:
        self._send(HTTPStatus.BAD_REQUEST, None, b"")

    def _v1_components(self, ident: str) -> None:
        data = {
            "user": {"id": ident, "name": f"v1-name-{ident}"},
            "source": self.server.addr,
            "query": self._query_string,
        }
        self._json(HTTPStatus.OK, {"code": "0", "data": data})

    def _v1_users(self, ident: str) -> None:
        self._json(
            HTTPStatus.OK,
            {
                "id": ident,
                "name": f"v1-name-{ident}",
                "source": self.server.addr,
                "query": self._query_string,
                "header": self._param(self.headers.get("header", "")),
            },
        )

    def _v1_account(self, ident: str) -> None:
        self._json(
            HTTPStatus.OK,
            {
                "id": ident,
                "source": self.server.addr,
                "account": f"v1-account-{ident}",
                "query": self._query_string,
            },
        )

    def _v2_users(self, ident: str) -> None:
        self._json(
            HTTPStatus.OK,
            {
                "id": ident,
                "source": self.server.addr,
                "name": f"v2-name-{ident}",
                "query": self._query_string,
            },
        )

    def _v2_account(self, ident: str) -> None:
        self._json(
            HTTPStatus.OK,
            {
                "id": ident,
                "source": self.server.addr,
                "account": f"v2-account-{ident}",
                "query": self._query_string,
            },
        )


def make_server(addr: str) -> ThreadingHTTPServer:
    """Create (but do not start) a backend server bound to host:port."""
    host, sep, port = addr.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"invalid address: {addr!r}")
    return _BackendServer((host, int(port)), BackendHandler, addr)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Test backend for the gateway.")
    parser.add_argument("--addr", default="127.0.0.1:9090", help="addr for backend")
    args = parser.parse_args(argv)
    server = make_server(args.addr)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())