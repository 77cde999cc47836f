import io
import json

import pytest

from container_upload import ProtocolError
from container_upload.transport.framing import FrameReader, FrameWriter, build_request


def test_build_request_frames_json_body() -> None:
    request = build_request("/containers/abc/exec", "localhost:4243", {"Tty": False})
    head, _, body = request.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    assert lines[0] == "POST /containers/abc/exec HTTP/1.1"
    assert "Host: localhost:4243" in lines
    assert "Content-Type: application/json" in lines
    assert f"Content-Length: {len(body)}" in lines
    assert "Upgrade: tcp" not in lines
    assert json.loads(body) == {"Tty": False}


def test_build_request_adds_upgrade_headers() -> None:
    request = build_request("/exec/abc/start", "localhost", {}, upgrade="tcp")
    lines = request.split(b"\r\n\r\n", 1)[0].decode("utf-8").split("\r\n")
    assert lines[1:3] == ["Upgrade: tcp", "Connection: Upgrade"]


def test_content_length_counts_utf8_bytes() -> None:
    request = build_request("/x", "localhost", {"Cmd": ["/tmp/naïve-файл.txt"]})
    head, _, body = request.partition(b"\r\n\r\n")
    assert len(body) > len(body.decode("utf-8"))
    assert f"Content-Length: {len(body)}".encode() in head


def test_writer_flushes_whole_request() -> None:
    sink = io.BytesIO()
    written = FrameWriter(sink).post_json("/x", "localhost", {"a": 1})
    assert written == len(sink.getvalue())
    assert sink.getvalue().endswith(b'{"a":1}')


def test_reader_accepts_crlf_and_bare_lf() -> None:
    reader = FrameReader(io.BytesIO(b"HTTP/1.1 201 Created\nA: 1\r\nB:2\n\r\nrest"))
    response = reader.read_response_head()
    assert response.status == 201
    assert response.ok
    assert response.headers == {"a": "1", "b": "2"}


def test_reader_raises_on_eof_before_status_line() -> None:
    with pytest.raises(ProtocolError):
        FrameReader(io.BytesIO(b"")).read_status_line()


def test_reader_raises_on_eof_inside_headers() -> None:
    with pytest.raises(ProtocolError):
        FrameReader(io.BytesIO(b"Content-Type: x\r\n")).read_headers()


def test_content_length_body_does_not_consume_following_bytes() -> None:
    stream = io.BytesIO(b'{"Id":"abc"}NEXT')
    body = FrameReader(stream).read_body({"content-length": "12"})
    assert body == b'{"Id":"abc"}'
    assert stream.read() == b"NEXT"


def test_chunked_body_is_reassembled() -> None:
    stream = io.BytesIO(b'4\r\n{"Id\r\nb;ext=1\r\n":"abc123"}\r\n0\r\n\r\nNEXT')
    body = FrameReader(stream).read_body({"transfer-encoding": "chunked"})
    assert body == b'{"Id":"abc123"}'
    assert stream.read() == b"NEXT"


def test_unframed_body_is_left_to_the_caller() -> None:
    assert FrameReader(io.BytesIO(b'{"Id":"abc"}\n')).read_body({}) is None


@pytest.mark.parametrize(
    ("data", "headers"),
    [
        (b"short", {"content-length": "10"}),
        (b"", {"content-length": "nope"}),
        (b"", {"content-length": "-1"}),
        (b"zz\r\n", {"transfer-encoding": "chunked"}),
        (b"5\r\nab", {"transfer-encoding": "chunked"}),
    ],
)
def test_bad_body_framing_raises_protocol_error(data: bytes, headers: dict[str, str]) -> None:
    with pytest.raises(ProtocolError):
        FrameReader(io.BytesIO(data)).read_body(headers)


def test_oversized_line_is_rejected() -> None:
    with pytest.raises(ProtocolError):
        FrameReader(io.BytesIO(b"x" * (64 * 1024 + 10))).readline()
