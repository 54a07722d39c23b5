#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
FastCGI client

Sends one RESPONDER request per connection and collects what the
responder writes on its stdout and stderr streams:

    client = FastCGIClient(timeout=30)
    result = client.request("127.0.0.1", 9000, environ, body)
    print(result.stdout)
"""

import io
import socket
from collections import namedtuple

from cgibridge import util
from cgibridge.fastcgi.constants import (
    FCGI_VERSION_1,
    FCGI_BEGIN_REQUEST,
    FCGI_END_REQUEST,
    FCGI_PARAMS,
    FCGI_STDIN,
    FCGI_STDOUT,
    FCGI_STDERR,
    FCGI_RESPONDER,
    FCGI_HEADER_LEN,
    FCGI_MAX_CONTENT_LEN,
    FCGI_REQUEST_COMPLETE,
    FCGI_DEFAULT_REQUEST_ID,
    FCGI_RECORD_TYPES,
)
from cgibridge.fastcgi.errors import (
    FastCGIConnectionError,
    InvalidFastCGIRecord,
    FastCGIRequestRejected,
)


FastCGIResult = namedtuple(
    'FastCGIResult', ['stdout', 'stderr', 'app_status', 'protocol_status'])


def encode_length(length):
    """Encode a name or value length.

    Lengths below 128 take one byte, longer ones four bytes big-endian
    with the high bit set.
    """
    if length < 0x80:
        return bytes([length])
    return (length | 0x80000000).to_bytes(4, 'big')


def encode_name_value(name, value):
    name = util.to_bytestring(name)
    value = util.to_bytestring(value)
    return encode_length(len(name)) + encode_length(len(value)) + name + value


def encode_params(environ):
    return b"".join(encode_name_value(k, v) for k, v in environ.items())


def make_record(record_type, request_id, content=b""):
    """Build a single FastCGI record.

    Record format:
    - version (1 byte): FCGI_VERSION_1
    - type (1 byte): record type
    - requestId (2 bytes BE): request ID
    - contentLength (2 bytes BE): content length
    - paddingLength (1 byte): padding length
    - reserved (1 byte): 0
    - content (contentLength bytes)
    - padding (paddingLength bytes)
    """
    content_length = len(content)
    # Pad to 8-byte boundary
    padding_length = (8 - (content_length % 8)) % 8

    header = bytes([
        FCGI_VERSION_1,
        record_type,
        (request_id >> 8) & 0xFF,
        request_id & 0xFF,
        (content_length >> 8) & 0xFF,
        content_length & 0xFF,
        padding_length,
        0,  # reserved
    ])
    return header + content + b'\x00' * padding_length


def make_stream(record_type, request_id, data):
    """Wrap ``data`` in as many records as needed, then the empty record
    that closes the stream."""
    records = []
    offset = 0
    while offset < len(data):
        chunk = data[offset:offset + FCGI_MAX_CONTENT_LEN]
        records.append(make_record(record_type, request_id, chunk))
        offset += len(chunk)
    records.append(make_record(record_type, request_id, b''))
    return b"".join(records)


def make_begin_request(request_id, role=FCGI_RESPONDER, flags=0):
    # BEGIN_REQUEST body: role (2 BE), flags (1), reserved (5)
    content = bytes([
        (role >> 8) & 0xFF,
        role & 0xFF,
        flags,
        0, 0, 0, 0, 0,
    ])
    return make_record(FCGI_BEGIN_REQUEST, request_id, content)


class FastCGIClient:
    """Blocking FastCGI client, one request per connection.

    ``timeout`` is applied to connecting and to every socket operation;
    ``None`` or 0 waits forever.
    """

    def __init__(self, timeout=30.0, request_id=FCGI_DEFAULT_REQUEST_ID):
        self.timeout = timeout or None
        self.request_id = request_id

    def request(self, host, port, environ, body=b""):
        """Run one request and return a ``FastCGIResult``.

        Raises ``FastCGIError`` subclasses; the ``stdout`` attribute of the
        error holds the output read before the failure.
        """
        address = (host, port)
        body = util.to_bytestring(body)
        try:
            sock = socket.create_connection(address, timeout=self.timeout)
        except OSError as e:
            raise FastCGIConnectionError(address, e)

        try:
            try:
                sock.sendall(self.build_request(environ, body))
            except OSError as e:
                raise FastCGIConnectionError(address, e)
            return self.read_response(sock, address)
        finally:
            sock.close()

    def build_request(self, environ, body):
        rid = self.request_id
        return b"".join([
            make_begin_request(rid),
            make_stream(FCGI_PARAMS, rid, encode_params(environ)),
            make_stream(FCGI_STDIN, rid, body),
        ])

    def read_response(self, sock, address):
        stdout = io.BytesIO()
        stderr = io.BytesIO()

        while True:
            try:
                header = self._read_exact(sock, FCGI_HEADER_LEN)
            except OSError as e:
                raise FastCGIConnectionError(address, e, stdout.getvalue())
            if not header:
                raise InvalidFastCGIRecord(
                    "connection closed before END_REQUEST", stdout.getvalue())
            if len(header) < FCGI_HEADER_LEN:
                raise InvalidFastCGIRecord("incomplete header",
                                           stdout.getvalue())

            version = header[0]
            record_type = header[1]
            request_id = int.from_bytes(header[2:4], 'big')
            content_length = int.from_bytes(header[4:6], 'big')
            padding_length = header[6]

            if version != FCGI_VERSION_1:
                raise InvalidFastCGIRecord(
                    "unsupported version: %d" % version, stdout.getvalue())

            try:
                content = self._read_exact(
                    sock, content_length + padding_length)
            except OSError as e:
                raise FastCGIConnectionError(address, e, stdout.getvalue())
            if len(content) < content_length + padding_length:
                raise InvalidFastCGIRecord("incomplete content",
                                           stdout.getvalue())
            content = content[:content_length]

            if request_id != self.request_id:
                # management records and strays are not ours
                continue

            if record_type == FCGI_STDOUT:
                stdout.write(content)
            elif record_type == FCGI_STDERR:
                stderr.write(content)
            elif record_type == FCGI_END_REQUEST:
                if content_length < 8:
                    raise InvalidFastCGIRecord(
                        "END_REQUEST content too short", stdout.getvalue())
                # END_REQUEST body: appStatus (4 BE), protocolStatus (1),
                # reserved (3)
                app_status = int.from_bytes(content[0:4], 'big')
                protocol_status = content[4]
                if protocol_status != FCGI_REQUEST_COMPLETE:
                    raise FastCGIRequestRejected(protocol_status,
                                                 stdout.getvalue())
                return FastCGIResult(stdout.getvalue(), stderr.getvalue(),
                                     app_status, protocol_status)
            else:
                raise InvalidFastCGIRecord(
                    "unexpected %s record" %
                    FCGI_RECORD_TYPES.get(record_type, record_type),
                    stdout.getvalue())

    def _read_exact(self, sock, size):
        """Read exactly size bytes, less only when the peer closes."""
        buf = io.BytesIO()
        remaining = size

        while remaining > 0:
            data = sock.recv(remaining)
            if not data:
                break
            buf.write(data)
            remaining = size - buf.tell()

        return buf.getvalue()
