"""Output sinks: the write side of a response, and decorators that wrap it.

A sink accepts headers until its status line is sent, then body bytes, and is
released exactly once with :meth:`close`. Decorators such as
:class:`GzipSink` keep the same contract and own the sink they wrap: closing a
decorator finalizes its own layer first and only then releases the inner sink.
"""

from __future__ import annotations

import gzip
import io
from http import HTTPStatus
from typing import Dict, Optional, Protocol

from .errors import HeadersSentError


class OutputSink(Protocol):
    @property
    def headers_sent(self) -> bool:
        ...

    def set_header(self, name: str, value: str) -> None:
        ...

    def write_status(self, code: int) -> None:
        ...

    def write(self, data: bytes) -> int:
        ...

    def close(self) -> None:
        ...


class BaseSink:
    """Stages headers and enforces the status-once rule.

    Subclasses implement ``_send_head``, ``_send_body`` and ``_release``.
    """

    def __init__(self) -> None:
        self.headers: Dict[str, str] = {}
        self.status: Optional[int] = None
        self.closed = False

    @property
    def headers_sent(self) -> bool:
        return self.status is not None

    def set_header(self, name: str, value: str) -> None:
        if self.headers_sent:
            raise HeadersSentError(f"cannot set header {name!r}: status line already sent")
        self.headers[name.lower()] = value

    def write_status(self, code: int) -> None:
        if self.headers_sent:
            raise HeadersSentError("status line already sent")
        self.status = int(code)
        self._send_head(self.status, dict(self.headers))

    def write(self, data: bytes) -> int:
        if not self.headers_sent:
            self.write_status(HTTPStatus.OK)
        if not data:
            return 0
        self._send_body(data)
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._release()

    def _send_head(self, status: int, headers: Dict[str, str]) -> None:
        raise NotImplementedError

    def _send_body(self, data: bytes) -> None:
        raise NotImplementedError

    def _release(self) -> None:
        pass


class BufferSink(BaseSink):
    """Sink that keeps everything in memory."""

    def __init__(self) -> None:
        super().__init__()
        self._buffer = io.BytesIO()

    @property
    def body(self) -> bytes:
        return self._buffer.getvalue()

    def _send_head(self, status: int, headers: Dict[str, str]) -> None:
        pass

    def _send_body(self, data: bytes) -> None:
        self._buffer.write(data)


class SinkDecorator:
    """Forwards everything to the wrapped sink; subclasses override what they change."""

    def __init__(self, inner: OutputSink) -> None:
        self.inner = inner
        self.closed = False

    @property
    def headers_sent(self) -> bool:
        return self.inner.headers_sent

    def set_header(self, name: str, value: str) -> None:
        self.inner.set_header(name, value)

    def write_status(self, code: int) -> None:
        self.inner.write_status(code)

    def write(self, data: bytes) -> int:
        return self.inner.write(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._finalize()
        finally:
            self.inner.close()

    def _finalize(self) -> None:
        pass


class GzipSink(SinkDecorator):
    """Compresses the body with gzip.

    The compressor is created on the first body write so that the gzip header
    never reaches the inner sink before the status line.
    """

    def __init__(self, inner: OutputSink, compresslevel: int = 9) -> None:
        super().__init__(inner)
        self._compresslevel = compresslevel
        self._gz: Optional[gzip.GzipFile] = None

    def write(self, data: bytes) -> int:
        if not self.inner.headers_sent:
            self.inner.write_status(HTTPStatus.OK)
        if self._gz is None:
            self._gz = gzip.GzipFile(fileobj=self.inner, mode="wb", compresslevel=self._compresslevel)
        return self._gz.write(data)

    def flush(self) -> None:
        if self._gz is not None:
            self._gz.flush()

    def _finalize(self) -> None:
        if self._gz is not None:
            self._gz.close()
            self._gz = None


__all__ = [
    "BaseSink",
    "BufferSink",
    "GzipSink",
    "OutputSink",
    "SinkDecorator",
]
