from __future__ import annotations

import io
from typing import Any, Dict, List, Optional

from jsonserv.http import Request, Response
from jsonserv.middleware import Middleware
from jsonserv.sink import BufferSink

EXAMPLE_BODY = b'{"foo":"bar"}'


class TrackingBody(io.BytesIO):
    """Body stream that remembers whether anyone read from it."""

    def __init__(self, data: bytes = EXAMPLE_BODY) -> None:
        super().__init__(data)
        self.reads = 0

    def read(self, size: Optional[int] = -1) -> bytes:
        self.reads += 1
        return super().read(size)


def make_request(
    method: str = "GET",
    target: str = "/foo?query=5",
    *,
    headers: Optional[Dict[str, str]] = None,
    body: bytes = EXAMPLE_BODY,
    content_length: Optional[int] = -1,
) -> Request:
    if content_length == -1:
        content_length = len(body)
    return Request(
        method=method,
        target=target,
        headers=headers or {},
        body=TrackingBody(body),
        content_length=content_length,
    )


def make_pair(**kwargs: Any) -> tuple[Request, Response, BufferSink]:
    sink = BufferSink()
    return make_request(**kwargs), Response(sink), sink


class RecordingMiddleware(Middleware[Any]):
    """Appends ``(phase, name)`` to a shared journal."""

    def __init__(self, name: str, journal: List[tuple[str, str]]) -> None:
        self.name = name
        self.journal = journal

    def ingress(self, app: Any, req: Request, res: Response) -> None:
        self.journal.append(("ingress", self.name))

    def egress(self, app: Any, req: Request, res: Response) -> None:
        self.journal.append(("egress", self.name))
