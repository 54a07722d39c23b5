#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""Tests for the FastCGI client."""

import io
import socket

import pytest

from cgibridge.fastcgi import (
    FastCGIClient,
    FastCGIConnectionError,
    FastCGIError,
    FastCGIRequestRejected,
    InvalidFastCGIRecord,
)
from cgibridge.fastcgi.client import (
    encode_length,
    encode_name_value,
    encode_params,
    make_begin_request,
    make_record,
    make_stream,
)
from cgibridge.fastcgi.constants import (
    FCGI_BEGIN_REQUEST,
    FCGI_OVERLOADED,
    FCGI_PARAMS,
    FCGI_RESPONDER,
    FCGI_STDIN,
    FCGI_STDOUT,
    FCGI_UNKNOWN_ROLE,
)

from support import (
    FastCGIResponder,
    decode_params,
    make_end_request,
    make_fcgi_record,
    make_fcgi_response,
    read_records,
)


class MockSocket:
    """Socket double serving canned bytes in small pieces."""

    def __init__(self, data=b'', chunk=7, error=None):
        self._buf = io.BytesIO(data)
        self.chunk = chunk
        self.error = error

    def recv(self, size):
        data = self._buf.read(min(size, self.chunk))
        if not data and self.error is not None:
            raise self.error
        return data


def read(data, **kwargs):
    return FastCGIClient().read_response(MockSocket(data, **kwargs),
                                         ("127.0.0.1", 9000))


# Encoding

@pytest.mark.parametrize("length, expected", [
    (0, b'\x00'),
    (127, b'\x7f'),
    (128, b'\x80\x00\x00\x80'),
    (70000, b'\x80\x01\x11\x70'),
])
def test_encode_length(length, expected):
    assert encode_length(length) == expected


def test_encode_name_value():
    assert encode_name_value("A", "bc") == b'\x01\x02Abc'
    long_value = "v" * 200
    encoded = encode_name_value("NAME", long_value)
    assert encoded[:5] == b'\x04\x80\x00\x00\xc8'
    assert encoded.endswith(b"NAME" + long_value.encode())


def test_encode_params_decodes_back():
    environ = {
        "REQUEST_METHOD": "GET",
        "QUERY_STRING": "q=" + "x" * 300,
        "MOTAN_user": "Zoë",
        "EMPTY": "",
    }
    assert decode_params(encode_params(environ)) == environ


def test_make_record_is_padded():
    record = make_record(FCGI_STDOUT, 1, b'hello')
    assert len(record) % 8 == 0
    assert record[:8] == bytes([1, FCGI_STDOUT, 0, 1, 0, 5, 3, 0])
    assert read_records(record) == [(FCGI_STDOUT, 1, b'hello')]


def test_make_record_aligned_content_has_no_padding():
    record = make_record(FCGI_STDIN, 1, b'12345678')
    assert record[6] == 0
    assert len(record) == 16


def test_make_stream_splits_large_data():
    data = b'a' * 70000
    records = read_records(make_stream(FCGI_STDIN, 1, data))
    assert [len(c) for _, _, c in records] == [65535, 4465, 0]
    assert b''.join(c for _, _, c in records) == data


def test_make_stream_empty():
    assert read_records(make_stream(FCGI_PARAMS, 3, b'')) == [
        (FCGI_PARAMS, 3, b'')]


def test_begin_request():
    records = read_records(make_begin_request(1))
    assert records == [(FCGI_BEGIN_REQUEST, 1,
                        bytes([0, FCGI_RESPONDER, 0, 0, 0, 0, 0, 0]))]


def test_build_request_layout():
    client = FastCGIClient(request_id=2)
    data = client.build_request({"A": "1"}, b'body')
    types = [(t, rid) for t, rid, _ in read_records(data)]
    assert types == [
        (FCGI_BEGIN_REQUEST, 2),
        (FCGI_PARAMS, 2),
        (FCGI_PARAMS, 2),
        (FCGI_STDIN, 2),
        (FCGI_STDIN, 2),
    ]


# Reading responses

def test_read_response():
    result = read(make_fcgi_response(b'Content-Type: text/plain\r\n\r\nhi',
                                     stderr=b'warn', app_status=3))
    assert result.stdout == b'Content-Type: text/plain\r\n\r\nhi'
    assert result.stderr == b'warn'
    assert result.app_status == 3
    assert result.protocol_status == 0


def test_read_response_joins_stdout_records():
    data = (make_fcgi_record(FCGI_STDOUT, 1, b'X-A: 1\r\n') +
            make_fcgi_record(FCGI_STDOUT, 1, b'\r\nbody', padding=2) +
            make_fcgi_record(FCGI_STDOUT, 1, b'') +
            make_end_request(1))
    assert read(data).stdout == b'X-A: 1\r\n\r\nbody'


def test_records_for_other_requests_are_skipped():
    # GET_VALUES_RESULT management record, request id 0
    data = (make_fcgi_record(10, 0, b'\x00\x00') +
            make_fcgi_record(FCGI_STDOUT, 7, b'stray') +
            make_fcgi_response(b'mine'))
    assert read(data).stdout == b'mine'


@pytest.mark.parametrize("status", [FCGI_OVERLOADED, FCGI_UNKNOWN_ROLE])
def test_rejected_request(status):
    data = make_fcgi_response(b'partial', protocol_status=status)
    with pytest.raises(FastCGIRequestRejected) as exc_info:
        read(data)
    assert exc_info.value.protocol_status == status
    assert exc_info.value.stdout == b'partial'


def test_rejected_request_message():
    err = FastCGIRequestRejected(FCGI_OVERLOADED)
    assert str(err) == "FastCGI request rejected: OVERLOADED"


def test_connection_closed_before_end():
    data = make_fcgi_record(FCGI_STDOUT, 1, b'half')
    with pytest.raises(InvalidFastCGIRecord) as exc_info:
        read(data)
    assert exc_info.value.stdout == b'half'
    assert "END_REQUEST" in str(exc_info.value)


def test_truncated_header():
    with pytest.raises(InvalidFastCGIRecord):
        read(b'\x01\x06\x00')


def test_truncated_content():
    data = make_fcgi_record(FCGI_STDOUT, 1, b'0123456789')[:12]
    with pytest.raises(InvalidFastCGIRecord):
        read(data)


def test_bad_version():
    data = b'\x02' + make_fcgi_response(b'x')[1:]
    with pytest.raises(InvalidFastCGIRecord) as exc_info:
        read(data)
    assert "version" in str(exc_info.value)


def test_short_end_request():
    data = make_fcgi_record(3, 1, b'\x00\x00')
    with pytest.raises(InvalidFastCGIRecord):
        read(data)


def test_unexpected_record_type():
    data = make_fcgi_record(FCGI_BEGIN_REQUEST, 1, b'\x00' * 8)
    with pytest.raises(InvalidFastCGIRecord) as exc_info:
        read(data)
    assert "BEGIN_REQUEST" in str(exc_info.value)


def test_unnamed_record_type():
    # FCGI_DATA belongs to the FILTER role only
    data = make_fcgi_record(8, 1, b"x")
    with pytest.raises(InvalidFastCGIRecord) as exc_info:
        read(data)
    assert str(exc_info.value) == "Invalid FastCGI record: unexpected 8 record"


def test_socket_error_keeps_stdout():
    data = make_fcgi_record(FCGI_STDOUT, 1, b'so far')
    with pytest.raises(FastCGIConnectionError) as exc_info:
        read(data, error=socket.timeout("timed out"))
    assert exc_info.value.stdout == b'so far'
    assert "127.0.0.1:9000" in str(exc_info.value)


def test_errors_share_base():
    for cls in (FastCGIConnectionError, InvalidFastCGIRecord,
                FastCGIRequestRejected):
        assert issubclass(cls, FastCGIError)


def test_timeout_zero_means_blocking():
    assert FastCGIClient(timeout=0).timeout is None
    assert FastCGIClient(timeout=2).timeout == 2


# Against a live responder

def test_request_round_trip():
    def handler(params, stdin):
        body = b'method=' + params["REQUEST_METHOD"].encode() + b' ' + stdin
        return make_fcgi_response(b'X-A: 1\r\n\r\n' + body, stderr=b'note')

    with FastCGIResponder(handler) as responder:
        client = FastCGIClient(timeout=5)
        result = client.request(responder.host, responder.port,
                                {"REQUEST_METHOD": "POST"}, "a=1")

    assert result.stdout == b'X-A: 1\r\n\r\nmethod=POST a=1'
    assert result.stderr == b'note'
    assert responder.requests == [({"REQUEST_METHOD": "POST"}, b'a=1')]


def test_large_body():
    body = b'x' * 200000

    def handler(params, stdin):
        return make_fcgi_response(str(len(stdin)).encode())

    with FastCGIResponder(handler) as responder:
        result = FastCGIClient(timeout=5).request(
            responder.host, responder.port, {}, body)

    assert result.stdout == b'200000'
    assert responder.requests[0][1] == body


def test_connection_refused():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()

    with pytest.raises(FastCGIConnectionError) as exc_info:
        FastCGIClient(timeout=2).request("127.0.0.1", port, {}, b'')
    assert exc_info.value.stdout == b''
    assert exc_info.value.address == ("127.0.0.1", port)
