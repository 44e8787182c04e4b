"""Minimal JSON-API request pipeline: middleware chain, context store and JSON envelope."""

from .config import ServerConfig, load_config
from .context import DEBUG_FLAG, MAX_BODY_SIZE, START_TIME, ContextKey, ContextStore
from .dispatch import Dispatcher, JsonServer
from .errors import BodyTooLargeError, DecodeError, HeadersSentError, JsonServError, ServerNotListeningError
from .http import Request, Response
from .middleware import (
    FactoryValueMiddleware,
    GzipMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewareChain,
    StaticValueMiddleware,
    debug_flag_middleware,
    max_request_size_middleware,
)
from .routes import Route, RouteTable
from .sink import BufferSink, GzipSink, OutputSink, SinkDecorator

__all__ = [
    "BodyTooLargeError",
    "BufferSink",
    "ContextKey",
    "ContextStore",
    "DEBUG_FLAG",
    "DecodeError",
    "Dispatcher",
    "FactoryValueMiddleware",
    "GzipMiddleware",
    "GzipSink",
    "HeadersSentError",
    "JsonServError",
    "JsonServer",
    "LoggingMiddleware",
    "MAX_BODY_SIZE",
    "Middleware",
    "MiddlewareChain",
    "OutputSink",
    "Request",
    "Response",
    "Route",
    "RouteTable",
    "START_TIME",
    "ServerConfig",
    "ServerNotListeningError",
    "SinkDecorator",
    "StaticValueMiddleware",
    "debug_flag_middleware",
    "load_config",
    "max_request_size_middleware",
]
