"""Exceptions raised by the request pipeline."""

from __future__ import annotations


class JsonServError(Exception):
    """Base class for every error raised by :mod:`jsonserv`."""


class BodyTooLargeError(JsonServError):
    def __init__(self, message: str = "Request body too large") -> None:
        super().__init__(message)


class DecodeError(JsonServError):
    """The request body is not valid JSON (or not the expected shape)."""


class HeadersSentError(JsonServError):
    """A header was staged after the status line had already been sent."""


class ServerNotListeningError(JsonServError):
    def __init__(self, message: str = "Server not listening") -> None:
        super().__init__(message)


__all__ = [
    "JsonServError",
    "BodyTooLargeError",
    "DecodeError",
    "HeadersSentError",
    "ServerNotListeningError",
]
