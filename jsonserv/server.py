from __future__ import annotations

"""Adapter from :mod:`http.server` to the dispatcher.

Each inbound call is served on its own thread; the handler turns it into a
:class:`~jsonserv.http.Request` and a :class:`HandlerSink` and hands both over.
"""

import io
import json
import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Protocol

from .http import LimitedReader, Request
from .sink import BaseSink, OutputSink

MAX_DRAIN_BYTES = 64 * 1024


class RequestHandler(Protocol):
    def handle(self, request: Request, sink: OutputSink) -> Any:
        """Process ``request`` and write the outcome to ``sink``."""


class HandlerSink(BaseSink):
    """Writes through a :class:`BaseHTTPRequestHandler`."""

    def __init__(self, handler: BaseHTTPRequestHandler) -> None:
        super().__init__()
        self._handler = handler

    def _send_head(self, status: int, headers: Dict[str, str]) -> None:
        self._handler.send_response(status)
        for name, value in headers.items():
            self._handler.send_header(name.title(), value)
        if "connection" not in headers:
            self._handler.send_header("Connection", "close")
        self._handler.end_headers()

    def _send_body(self, data: bytes) -> None:
        if self._handler.command != "HEAD":
            self._handler.wfile.write(data)

    def _release(self) -> None:
        self._handler.wfile.flush()


class JsonRequestHandler(BaseHTTPRequestHandler):
    dispatcher: RequestHandler
    logger = logging.getLogger("jsonserv.server")

    def do_GET(self) -> None:
        self._dispatch()

    def do_HEAD(self) -> None:
        self._dispatch()

    def do_POST(self) -> None:
        self._dispatch()

    def do_PUT(self) -> None:
        self._dispatch()

    def do_PATCH(self) -> None:
        self._dispatch()

    def do_DELETE(self) -> None:
        self._dispatch()

    def do_OPTIONS(self) -> None:
        self._dispatch()

    def log_message(self, format: str, *args) -> None:  # pragma: no cover - routed to logging
        self.logger.debug("%s - %s", self.address_string(), format % args)

    def _dispatch(self) -> None:
        raw_length = self.headers.get("content-length")
        content_length: Optional[int] = None
        if raw_length is not None:
            try:
                content_length = int(raw_length)
            except ValueError:
                content_length = -1
            if content_length < 0:
                self._write_bad_request("invalid content-length")
                return

        body = LimitedReader(self.rfile, content_length or 0)
        request = Request(
            method=self.command,
            target=self.path,
            headers=self._header_map(),
            body=body if content_length is not None else io.BytesIO(),  # type: ignore[arg-type]
            content_length=content_length,
        )
        self.dispatcher.handle(request, HandlerSink(self))
        self._drain(body)

    def _header_map(self) -> Dict[str, str]:
        merged: Dict[str, str] = {}
        for name in self.headers.keys():
            key = name.lower()
            if key not in merged:
                merged[key] = ", ".join(self.headers.get_all(name) or [])
        return merged

    def _drain(self, body: LimitedReader) -> None:
        # closing with unread input resets the connection under the response
        if 0 < body.remaining <= MAX_DRAIN_BYTES:
            try:
                body.read()
            except OSError as exc:
                self.logger.debug("could not drain request body: %s", exc)

    def _write_bad_request(self, message: str) -> None:
        self.logger.warning("request from %s rejected: %s", self.client_address[0], message)
        body = json.dumps({"error": message}).encode()
        self.send_response(HTTPStatus.BAD_REQUEST)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class ThreadingJsonServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True


def create_server(dispatcher: RequestHandler, host: str, port: int) -> ThreadingJsonServer:
    handler_cls = type("ConfiguredJsonRequestHandler", (JsonRequestHandler,), {})
    handler_cls.dispatcher = dispatcher
    return ThreadingJsonServer((host, port), handler_cls)


__all__ = [
    "HandlerSink",
    "JsonRequestHandler",
    "RequestHandler",
    "ThreadingJsonServer",
    "create_server",
]
