from __future__ import annotations

import gzip
from http import HTTPStatus
from typing import List

import pytest

from jsonserv.errors import HeadersSentError
from jsonserv.http import Response
from jsonserv.sink import BufferSink, GzipSink, OutputSink, SinkDecorator


class JournalSink(BufferSink):
    def __init__(self, journal: List[str]) -> None:
        super().__init__()
        self.journal = journal

    def _release(self) -> None:
        self.journal.append("sink")


class JournalDecorator(SinkDecorator):
    def __init__(self, inner: OutputSink, name: str, journal: List[str]) -> None:
        super().__init__(inner)
        self.name = name
        self.journal = journal

    def _finalize(self) -> None:
        self.journal.append(self.name)


def test_new_response_defaults() -> None:
    res = Response(BufferSink())
    assert res.status == 200
    assert res.error is None
    assert res.body is None


def test_set_result() -> None:
    res = Response(BufferSink())
    res.set_result(5000, "abc")
    assert res.error is None
    assert res.status == 5000
    assert res.body == "abc"


def test_set_empty_clears_body() -> None:
    res = Response(BufferSink())
    res.body = "abc"
    res.set_empty(HTTPStatus.NO_CONTENT)
    assert res.status == 204
    assert res.body is None


def test_set_ok() -> None:
    res = Response(BufferSink()).set_result(HTTPStatus.CREATED, "old").set_ok("abc")
    assert res.status == 200
    assert res.body == "abc"


def test_set_error_forces_500_and_clears_body() -> None:
    res = Response(BufferSink()).set_ok({"a": 1})
    err = RuntimeError("fail")
    res.set_error(err)
    assert res.error is err
    assert res.status == 500
    assert res.body is None


def test_add_header_writes_through_to_sink() -> None:
    sink = BufferSink()
    Response(sink).add_header("content-type", "text/plain")
    assert sink.headers["content-type"] == "text/plain"


def test_add_header_after_status_is_rejected() -> None:
    sink = BufferSink()
    res = Response(sink)
    sink.write_status(200)
    with pytest.raises(HeadersSentError):
        res.add_header("x-late", "1")
    assert "x-late" not in sink.headers


def test_status_is_sent_once() -> None:
    sink = BufferSink()
    sink.write(b"x")
    assert sink.status == 200
    with pytest.raises(HeadersSentError):
        sink.write_status(404)


def test_gzip_sink_round_trip() -> None:
    contents = b"hello, world!" * 20
    inner = BufferSink()
    res = Response(inner)
    res.wrap_sink(GzipSink)

    res.sink.write_status(200)
    assert res.sink.write(contents) == len(contents)
    res.close()

    assert inner.closed
    assert inner.body != contents
    assert gzip.decompress(inner.body) == contents


def test_gzip_sink_finalizes_before_inner_release() -> None:
    class CheckingSink(BufferSink):
        def _release(self) -> None:
            # the compressed stream must be complete by the time we are released
            self.snapshot = gzip.decompress(self.body)

    inner = CheckingSink()
    outer = GzipSink(inner)
    outer.write(b"payload")
    outer.close()

    assert inner.snapshot == b"payload"


def test_stacked_decorators_close_outermost_layer_first() -> None:
    journal: List[str] = []
    res = Response(JournalSink(journal))
    res.wrap_sink(lambda sink: JournalDecorator(sink, "inner", journal))
    res.wrap_sink(lambda sink: JournalDecorator(sink, "outer", journal))

    res.close()
    res.close()

    assert journal == ["outer", "inner", "sink"]


def test_double_gzip_round_trip() -> None:
    inner = BufferSink()
    outer = GzipSink(GzipSink(inner))
    outer.write(b"nested")
    outer.close()

    assert gzip.decompress(gzip.decompress(inner.body)) == b"nested"
