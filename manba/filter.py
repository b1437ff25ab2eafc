"""Filter contracts, request context and the cached-response wire format."""

from __future__ import annotations

import struct
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

ATTR_CLIENT_REAL_IP = "__internal_real_ip__"
ATTR_USING_CACHING_VALUE = "__internal_using_cache_value__"
ATTR_USING_RESPONSE = "__internal_using_response__"

BREAK_FILTER_CHAIN_CODE = -1

STATUS_OK = 200

_INT = struct.Struct(">i")


@dataclass
class Response:
    """An HTTP response with ordered headers."""

    status_code: int = STATUS_OK
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""

    def get_header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        return next((v for k, v in self.headers if k.lower() == lowered), None)

    def set_header(self, name: str, value: str) -> None:
        lowered = name.lower()
        self.headers = [(k, v) for k, v in self.headers if k.lower() != lowered]
        self.headers.append((name, value))

    def add_header(self, name: str, value: str) -> None:
        self.headers.append((name, value))


class Context(ABC):
    """What a filter sees of a request being proxied."""

    start_at: Optional[datetime]
    end_at: Optional[datetime]
    origin_request: Any
    forward_request: Any
    response: Optional[Response]
    api: Any
    dispatch_node: Any
    server: Any
    analysis: Any

    @abstractmethod
    def set_attr(self, key: str, value: Any) -> None:
        """Store a value under key."""

    @abstractmethod
    def get_attr(self, key: str) -> Any:
        """Return the value under key, or None."""


@dataclass
class SimpleContext(Context):
    """A context whose parts are plain attributes."""

    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    origin_request: Any = None
    forward_request: Any = None
    response: Optional[Response] = None
    api: Any = None
    dispatch_node: Any = None
    server: Any = None
    analysis: Any = None
    attrs: dict[str, Any] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def set_attr(self, key: str, value: Any) -> None:
        with self._lock:
            self.attrs[key] = value

    def get_attr(self, key: str) -> Any:
        with self._lock:
            return self.attrs.get(key)


def string_value(attr: str, c: Context) -> str:
    """Return the attribute as a string; raise TypeError if it is not one."""
    value = c.get_attr(attr)
    if not isinstance(value, str):
        raise TypeError(f"attr {attr!r} is not a string: {value!r}")
    return value


class BaseFilter:
    """A filter that lets everything through; subclasses override what they need.

    It keeps the configuration it was given, when it last ran and the last
    error reported to it.
    """

    cfg: str = ""
    last_active: Optional[datetime] = None
    last_error: Optional[tuple[int, Exception]] = None

    def name(self) -> str:
        return type(self).__name__

    def init(self, cfg: str) -> None:
        """Keep the filter's configuration."""
        self.cfg = cfg

    def _touch(self) -> None:
        self.last_active = datetime.now()

    def pre(self, c: Context) -> int:
        """Let the request through before it is proxied."""
        self._touch()
        return STATUS_OK

    def post(self, c: Context) -> int:
        """Let the response through after it is proxied."""
        self._touch()
        return STATUS_OK

    def post_err(self, c: Context, code: int, err: Exception) -> None:
        """Note the error that the proxy met."""
        self._touch()
        self.last_error = (code, err)


def _pack(data: bytes) -> bytes:
    return _INT.pack(len(data)) + data


def new_cached_value(response: Response) -> bytes:
    """Serialise a response's headers and body for the cache."""
    parts = [_INT.pack(len(response.headers))]
    for key, value in response.headers:
        parts.append(_pack(key.encode()))
        parts.append(_pack(value.encode()))
    parts.append(_pack(response.body))
    return b"".join(parts)


class _Reader:
    def __init__(self, buf: bytes) -> None:
        self._view = memoryview(buf)
        self._pos = 0

    def take(self, n: int) -> bytes:
        if n < 0 or self._pos + n > len(self._view):
            raise ValueError("cached value is truncated")
        chunk = bytes(self._view[self._pos:self._pos + n])
        self._pos += n
        return chunk

    def int(self) -> int:
        return _INT.unpack(self.take(_INT.size))[0]

    def bytes(self) -> bytes:
        return self.take(self.int())


def read_cached_value_to(buf: bytes, response: Response) -> None:
    """Apply a cached value's headers and body to response."""
    reader = _Reader(buf)
    for _ in range(reader.int()):
        key = reader.bytes().decode()
        value = reader.bytes().decode()
        response.set_header(key, value)
    response.body = reader.bytes()