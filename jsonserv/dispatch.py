"""Per-request lifecycle and the builder that assembles it.

For every inbound call the :class:`Dispatcher` runs, in order: ingress, the
route's view, egress, serialization and release. Egress, serialization and
release always run, even when the view raises; the fault is logged and
attached to the response like any other handler error. A raising middleware
is handled the same way and the rest of its phase still runs; the view is
skipped when ingress faulted.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Generic, List, Optional, TypeVar

from .config import ServerConfig
from .errors import ServerNotListeningError
from .http import Request, Response
from .middleware import (
    GzipMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewareChain,
    debug_flag_middleware,
    max_request_size_middleware,
)
from .routes import Route, Router, RouteTable, View
from .server import ThreadingJsonServer, create_server
from .sink import OutputSink
from .write import respond

AppT = TypeVar("AppT")

NOT_FOUND = "NotFound"

logger = logging.getLogger("jsonserv.dispatch")


def not_found_view(app: Any, req: Request, res: Response) -> None:
    res.set_empty(HTTPStatus.NOT_FOUND)


class Dispatcher(Generic[AppT]):
    """Read-only after construction; safe to share between serving threads."""

    def __init__(self, app: AppT, router: Router, middlewares: MiddlewareChain[AppT]) -> None:
        self.app = app
        self.router = router
        self.middlewares = middlewares

    def handle(self, request: Request, sink: OutputSink) -> Response:
        name, view = NOT_FOUND, not_found_view
        found = self.router.match(request.method, request.path)
        if found is not None:
            route, params = found
            name, view = route.name, route.view
            request.path_params = dict(params)

        response = Response(sink)
        faults: List[BaseException] = []

        def on_error(middleware: Middleware[Any], exc: BaseException) -> None:
            logger.exception("Unhandled error in %s while handling %s", type(middleware).__name__, request)
            faults.append(exc)
            response.set_error(exc)

        try:
            self.middlewares.ingress(self.app, request, response, on_error)
            if not faults:
                try:
                    view(self.app, request, response)
                except Exception as exc:  # noqa: BLE001
                    logger.exception("Unhandled error in %s handling %s", name, request)
                    response.set_error(exc)
            self.middlewares.egress(self.app, request, response, on_error)
            respond(request, response)
        finally:
            self._release(request, response)
        return response

    def _release(self, request: Request, response: Response) -> None:
        try:
            response.close()
        except OSError as exc:
            logger.error("Error releasing response for %s: %s", request, exc)


class JsonServer(Generic[AppT]):
    """Collects routes, middleware and the app value, then builds a :class:`Dispatcher`."""

    def __init__(self, app: Optional[AppT] = None) -> None:
        self.app = app
        self._routes: List[Route] = []
        self._middlewares: List[Middleware[AppT]] = []
        self._server: Optional[ThreadingJsonServer] = None

    @classmethod
    def from_config(cls, config: ServerConfig, app: Optional[AppT] = None) -> "JsonServer[AppT]":
        server: JsonServer[AppT] = cls(app)
        server.add_middleware(LoggingMiddleware(config.log_requests))
        server.add_middleware(debug_flag_middleware(config.debug))
        server.add_middleware(max_request_size_middleware(config.max_body_size))
        if config.gzip:
            server.add_middleware(GzipMiddleware())
        return server

    def add_route(self, method: str, name: str, path: str, view: View) -> "JsonServer[AppT]":
        self._routes.append(Route(name, method, path, view))
        return self

    def add_middleware(self, middleware: Middleware[AppT]) -> "JsonServer[AppT]":
        self._middlewares.append(middleware)
        return self

    def set_app(self, app: AppT) -> "JsonServer[AppT]":
        self.app = app
        return self

    def build(self) -> Dispatcher[AppT]:
        return Dispatcher(self.app, RouteTable(self._routes), MiddlewareChain(self._middlewares))  # type: ignore[arg-type]

    def listen(self, host: str, port: int) -> ThreadingJsonServer:
        """Bind a listener; the caller drives ``serve_forever`` on the result."""

        self._server = create_server(self.build(), host, port)
        return self._server

    def serve(self, host: str, port: int) -> None:
        server = self.listen(host, port)
        logger.info("listening on %s:%s (%d routes)", host, server.server_address[1], len(self._routes))
        server.serve_forever()

    def close(self) -> None:
        if self._server is None:
            raise ServerNotListeningError()
        server, self._server = self._server, None
        server.shutdown()
        server.server_close()


__all__ = [
    "Dispatcher",
    "JsonServer",
    "NOT_FOUND",
    "not_found_view",
]
