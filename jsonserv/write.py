"""Renders a response envelope onto its sink as JSON."""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import Any, Dict

from .context import DEBUG_FLAG
from .errors import HeadersSentError
from .http import Request, Response
from .sink import OutputSink

CONTENT_TYPE_HEADER = "Content-Type"
CONTENT_TYPE_JSON = "application/json"
EMPTY_BODY = b"{}"

logger = logging.getLogger("jsonserv.write")


def error_body(req: Request, error: BaseException) -> Dict[str, Any]:
    """The ``error`` field is only disclosed when the debug flag is set."""

    body: Dict[str, Any] = {}
    if req.context.get_or_default(DEBUG_FLAG, False) is True:
        body["error"] = str(error)
    return body


def encode(body: Any) -> bytes:
    if body is None:
        return EMPTY_BODY
    return json.dumps(body, separators=(",", ":"), allow_nan=False).encode()


def respond(req: Request, res: Response) -> None:
    """Write ``res`` to its sink; failures are logged, never raised."""

    if res.error is not None:
        code, payload = HTTPStatus.INTERNAL_SERVER_ERROR, encode(error_body(req, res.error))
    else:
        try:
            code, payload = res.status, encode(res.body)
        except (TypeError, ValueError) as exc:
            logger.error("Error encoding body of %s: %s", req, exc)
            res.set_error(exc)
            code, payload = HTTPStatus.INTERNAL_SERVER_ERROR, encode(error_body(req, exc))

    try:
        write(res.sink, code, payload)
    except (OSError, HeadersSentError) as exc:
        logger.error("Error rendering %s: %s", req, exc)


def write(sink: OutputSink, code: HTTPStatus | int, payload: bytes) -> None:
    sink.set_header(CONTENT_TYPE_HEADER, CONTENT_TYPE_JSON)
    sink.write_status(int(code))
    written = sink.write(payload)
    if written != len(payload):
        raise OSError(f"short write: {written} of {len(payload)} bytes")


__all__ = [
    "CONTENT_TYPE_JSON",
    "encode",
    "error_body",
    "respond",
    "write",
]
