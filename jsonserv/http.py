from __future__ import annotations

"""Request and response primitives shared by middleware, views and the serializer."""

import io
import json
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, BinaryIO, Callable, Dict, Optional, TypeVar
from urllib.parse import urlsplit

from .context import MAX_BODY_SIZE, ContextStore
from .errors import BodyTooLargeError, DecodeError
from .sink import OutputSink

T = TypeVar("T")


class LimitedReader:
    """Reads at most ``limit`` bytes from ``stream``."""

    def __init__(self, stream: BinaryIO, limit: int) -> None:
        self._stream = stream
        self.remaining = limit

    def read(self, size: int = -1) -> bytes:
        if self.remaining <= 0:
            return b""
        if size < 0 or size > self.remaining:
            size = self.remaining
        data = self._stream.read(size)
        self.remaining -= len(data)
        return data


@dataclass(slots=True)
class Request:
    """An inbound call plus the context store owned by it."""

    method: str
    target: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: BinaryIO = field(default_factory=io.BytesIO)
    content_length: Optional[int] = None
    path: str = ""
    query: str = ""
    path_params: Dict[str, str] = field(default_factory=dict)
    context: ContextStore = field(default_factory=ContextStore)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.headers = {name.lower(): value for name, value in self.headers.items()}
        if not self.path:
            parsed = urlsplit(self.target)
            self.path = parsed.path or "/"
            self.query = parsed.query

    def __str__(self) -> str:
        return f"{self.method} {self.target}"

    def header(self, name: str, fallback: str = "") -> str:
        return self.headers.get(name.lower(), fallback)

    def path_param(self, name: str, fallback: str = "") -> str:
        return self.path_params.get(name, fallback)

    def parse_body(self, model: Optional[Callable[..., T]] = None) -> Any:
        """Decode the JSON body, enforcing the ``MAX_BODY_SIZE`` context value.

        A declared ``Content-Length`` above the limit fails before the stream is
        touched. Otherwise at most ``limit`` bytes are read. When ``model`` is
        given it is called with the decoded object (as keyword arguments when
        the payload is a JSON object).
        """

        limit = self.context.get_or_default(MAX_BODY_SIZE, 0)
        if limit and self.content_length is not None and self.content_length > limit:
            raise BodyTooLargeError()

        reader: Any = self.body
        if limit:
            reader = LimitedReader(self.body, limit)
        if self.content_length is not None:
            raw = reader.read(self.content_length)
        else:
            raw = reader.read()

        try:
            payload = json.loads(raw.decode("utf-8"))
        except UnicodeDecodeError as exc:
            raise DecodeError("request body is not valid UTF-8") from exc
        except json.JSONDecodeError as exc:
            raise DecodeError(f"invalid JSON body: {exc.msg}") from exc

        if model is None:
            return payload
        try:
            if isinstance(payload, dict):
                return model(**payload)
            return model(payload)
        except TypeError as exc:
            raise DecodeError(f"unexpected JSON body: {exc}") from exc


class Response:
    """Envelope the view fills in; serialized once the chain has unwound.

    Header overrides go straight to the current sink, so they must be added
    before the status line is written.
    """

    def __init__(self, sink: OutputSink) -> None:
        self.status: int = int(HTTPStatus.OK)
        self.error: Optional[BaseException] = None
        self.body: Any = None
        self._sink = sink

    @property
    def sink(self) -> OutputSink:
        return self._sink

    def set_result(self, code: HTTPStatus | int, body: Any) -> "Response":
        self.status = int(code)
        self.body = body
        return self

    def set_empty(self, code: HTTPStatus | int) -> "Response":
        return self.set_result(code, None)

    def set_ok(self, body: Any) -> "Response":
        return self.set_result(HTTPStatus.OK, body)

    def set_error(self, error: BaseException) -> "Response":
        self.status = int(HTTPStatus.INTERNAL_SERVER_ERROR)
        self.error = error
        self.body = None
        return self

    def add_header(self, name: str, value: str) -> "Response":
        self._sink.set_header(name, value)
        return self

    def wrap_sink(self, wrapper: Callable[[OutputSink], OutputSink]) -> OutputSink:
        """Hand the current sink to ``wrapper`` and install the sink it returns."""

        self._sink = wrapper(self._sink)
        return self._sink

    def close(self) -> None:
        self._sink.close()


__all__ = [
    "LimitedReader",
    "Request",
    "Response",
]
