"""Cross-cutting behaviors that run around every view.

Each :class:`Middleware` takes part twice per request: ``ingress`` before the
view and ``egress`` after it. A :class:`MiddlewareChain` runs ingress in
registration order and egress in reverse, so the last middleware to see the
request is the first to see the response. Nothing short-circuits: a
middleware that wants to abort sets an error or status on the response and
returns normally.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Generic, Iterable, Iterator, Optional, Tuple, TypeVar

from .context import DEBUG_FLAG, MAX_BODY_SIZE, START_TIME, Key
from .http import Request, Response
from .sink import GzipSink

AppT = TypeVar("AppT")

HEADER_ACCEPT_ENCODING = "Accept-Encoding"
HEADER_CONTENT_ENCODING = "Content-Encoding"
ENCODING_GZIP = "gzip"

logger = logging.getLogger("jsonserv.middleware")


class Middleware(Generic[AppT]):
    """Base middleware; both phases default to doing nothing."""

    def ingress(self, app: AppT, req: Request, res: Response) -> None:
        pass

    def egress(self, app: AppT, req: Request, res: Response) -> None:
        pass


ErrorHook = Callable[[Middleware[Any], BaseException], None]


class MiddlewareChain(Generic[AppT]):
    """Immutable ordered collection of middleware, fixed at setup time."""

    __slots__ = ("_items",)

    def __init__(self, middlewares: Iterable[Middleware[AppT]] = ()) -> None:
        self._items: Tuple[Middleware[AppT], ...] = tuple(middlewares)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Middleware[AppT]]:
        return iter(self._items)

    def __add__(self, middleware: Middleware[AppT]) -> "MiddlewareChain[AppT]":
        return MiddlewareChain(self._items + (middleware,))

    def ingress(self, app: AppT, req: Request, res: Response, on_error: Optional[ErrorHook] = None) -> None:
        for middleware in self._items:
            _run(middleware.ingress, middleware, app, req, res, on_error)

    def egress(self, app: AppT, req: Request, res: Response, on_error: Optional[ErrorHook] = None) -> None:
        for middleware in reversed(self._items):
            _run(middleware.egress, middleware, app, req, res, on_error)


def _run(
    phase: Callable[[Any, Request, Response], None],
    middleware: Middleware[Any],
    app: Any,
    req: Request,
    res: Response,
    on_error: Optional[ErrorHook],
) -> None:
    """Without ``on_error`` a raising entry propagates; with it the remaining entries still run."""

    if on_error is None:
        phase(app, req, res)
        return
    try:
        phase(app, req, res)
    except Exception as exc:  # noqa: BLE001
        on_error(middleware, exc)


class StaticValueMiddleware(Middleware[Any]):
    """Puts the same value into every request's context."""

    def __init__(self, key: Key, value: Any) -> None:
        self.key = key
        self.value = value

    def ingress(self, app: Any, req: Request, res: Response) -> None:
        req.context.set(self.key, self.value)


class FactoryValueMiddleware(Middleware[Any]):
    """Puts ``factory()`` into the context, evaluated fresh for each request."""

    def __init__(self, key: Key, factory: Callable[[], Any]) -> None:
        self.key = key
        self.factory = factory

    def ingress(self, app: Any, req: Request, res: Response) -> None:
        req.context.set(self.key, self.factory())


def debug_flag_middleware(debug: bool) -> StaticValueMiddleware:
    """Debug mode discloses error messages in 500 responses."""

    return StaticValueMiddleware(DEBUG_FLAG, bool(debug))


def max_request_size_middleware(max_request_size: int) -> StaticValueMiddleware:
    """Caps the bytes read from request bodies; 0 disables the cap."""

    if max_request_size < 0:
        raise ValueError("max_request_size must be >= 0")
    return StaticValueMiddleware(MAX_BODY_SIZE, int(max_request_size))


class LoggingMiddleware(Middleware[Any]):
    """Logs every response with its duration, and optionally every request."""

    def __init__(self, log_ingress: bool = False) -> None:
        self.log_ingress = log_ingress

    def ingress(self, app: Any, req: Request, res: Response) -> None:
        req.context.set(START_TIME, time.time())
        if self.log_ingress:
            logger.info("<- %s", req)

    def egress(self, app: Any, req: Request, res: Response) -> None:
        start = req.context.get(START_TIME)
        duration_ms = round((time.time() - start) * 1000, 1) if start is not None else -1.0
        if res.error is not None:
            logger.warning("-> ERROR %s %s %s (%sms): %s", req.method, res.status, req.target, duration_ms, res.error)
        else:
            logger.info("-> %s %s %s (%sms)", req.method, res.status, req.target, duration_ms)


def accepts_gzip(header_value: str) -> bool:
    for item in header_value.split(","):
        token, _, params = item.partition(";")
        if token.strip().lower() != ENCODING_GZIP:
            continue
        for param in params.split(";"):
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    return float(value) > 0
                except ValueError:
                    return False
        return True
    return False


class GzipMiddleware(Middleware[Any]):
    """Compresses responses when the client sends ``Accept-Encoding: gzip``."""

    def __init__(self, compresslevel: int = 9) -> None:
        self.compresslevel = compresslevel

    def ingress(self, app: Any, req: Request, res: Response) -> None:
        if not accepts_gzip(req.header(HEADER_ACCEPT_ENCODING)):
            return
        res.wrap_sink(lambda sink: GzipSink(sink, self.compresslevel))
        res.add_header(HEADER_CONTENT_ENCODING, ENCODING_GZIP)


__all__ = [
    "FactoryValueMiddleware",
    "GzipMiddleware",
    "LoggingMiddleware",
    "Middleware",
    "MiddlewareChain",
    "StaticValueMiddleware",
    "accepts_gzip",
    "debug_flag_middleware",
    "max_request_size_middleware",
]
