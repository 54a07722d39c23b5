#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""Test helpers: FastCGI record builders, a loopback responder and fake
transports."""

import socket
import threading

from cgibridge.fastcgi import FastCGIResult
from cgibridge.fastcgi.constants import (
    FCGI_VERSION_1,
    FCGI_BEGIN_REQUEST,
    FCGI_END_REQUEST,
    FCGI_PARAMS,
    FCGI_STDIN,
    FCGI_STDOUT,
    FCGI_STDERR,
    FCGI_REQUEST_COMPLETE,
)
from cgibridge.rpc import URL


def make_fcgi_record(record_type, request_id, content, padding=0):
    """Create a FastCGI record with explicit padding."""
    content_length = len(content)
    header = bytes([
        FCGI_VERSION_1,
        record_type,
        (request_id >> 8) & 0xFF,
        request_id & 0xFF,
        (content_length >> 8) & 0xFF,
        content_length & 0xFF,
        padding,
        0,  # reserved
    ])
    return header + content + b'\x00' * padding


def make_end_request(request_id, app_status=0,
                     protocol_status=FCGI_REQUEST_COMPLETE):
    content = app_status.to_bytes(4, 'big') + bytes([protocol_status, 0, 0, 0])
    return make_fcgi_record(FCGI_END_REQUEST, request_id, content)


def make_fcgi_response(stdout, stderr=b'', request_id=1, app_status=0,
                       protocol_status=FCGI_REQUEST_COMPLETE):
    """Records a responder sends back for one request."""
    result = b''
    if stdout:
        result += make_fcgi_record(FCGI_STDOUT, request_id, stdout, padding=3)
    result += make_fcgi_record(FCGI_STDOUT, request_id, b'')
    if stderr:
        result += make_fcgi_record(FCGI_STDERR, request_id, stderr)
        result += make_fcgi_record(FCGI_STDERR, request_id, b'')
    result += make_end_request(request_id, app_status, protocol_status)
    return result


def decode_params(data):
    params = {}
    pos = 0
    while pos < len(data):
        lengths = []
        for _ in range(2):
            if data[pos] >> 7 == 0:
                lengths.append(data[pos])
                pos += 1
            else:
                lengths.append(
                    int.from_bytes(data[pos:pos + 4], 'big') & 0x7FFFFFFF)
                pos += 4
        name_len, value_len = lengths
        name = data[pos:pos + name_len].decode('utf-8')
        pos += name_len
        params[name] = data[pos:pos + value_len].decode('utf-8')
        pos += value_len
    return params


def read_records(data):
    """Split a byte stream into (type, request_id, content) tuples."""
    records = []
    pos = 0
    while pos + 8 <= len(data):
        record_type = data[pos + 1]
        request_id = int.from_bytes(data[pos + 2:pos + 4], 'big')
        content_length = int.from_bytes(data[pos + 4:pos + 6], 'big')
        padding_length = data[pos + 6]
        if pos + 8 + content_length + padding_length > len(data):
            break
        content = data[pos + 8:pos + 8 + content_length]
        records.append((record_type, request_id, content))
        pos += 8 + content_length + padding_length
    return records


def recv_request(sock):
    """Read one client request, returns (request_id, params, stdin)."""
    data = b''
    while True:
        records = read_records(data)
        stdin_done = any(t == FCGI_STDIN and not c for t, _, c in records)
        if stdin_done:
            break
        chunk = sock.recv(65536)
        if not chunk:
            break
        data += chunk

    request_id = 0
    params = b''
    stdin = b''
    for record_type, rid, content in read_records(data):
        if record_type == FCGI_BEGIN_REQUEST:
            request_id = rid
        elif record_type == FCGI_PARAMS:
            params += content
        elif record_type == FCGI_STDIN:
            stdin += content
    return request_id, decode_params(params), stdin


class FastCGIResponder:
    """Serves FastCGI requests on a loopback socket from a thread.

    ``handler(params, stdin)`` returns the raw bytes to send back, usually
    built with ``make_fcgi_response``. Received requests are kept in
    ``requests`` as (params, stdin) pairs.
    """

    def __init__(self, handler, connections=1):
        self.handler = handler
        self.connections = connections
        self.requests = []
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(connections)
        self.host, self.port = self.sock.getsockname()
        self.thread = threading.Thread(target=self.serve, daemon=True)

    def serve(self):
        for _ in range(self.connections):
            try:
                conn, _ = self.sock.accept()
            except OSError:
                return
            with conn:
                request_id, params, stdin = recv_request(conn)
                self.requests.append((params, stdin))
                reply = self.handler(params, stdin)
                if reply:
                    conn.sendall(reply)

    def __enter__(self):
        self.thread.start()
        return self

    def __exit__(self, *args):
        self.sock.close()
        self.thread.join(timeout=5)


class FakeTransport:
    """Transport returning canned stdout and recording what it was sent."""

    def __init__(self, stdout=b'', stderr=b'', error=None):
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        self.calls = []

    def request(self, host, port, environ, body=b''):
        self.calls.append((host, port, dict(environ), body))
        if self.error is not None:
            raise self.error
        return FastCGIResult(self.stdout, self.stderr, 0,
                             FCGI_REQUEST_COMPLETE)


def make_url(**params):
    base = {
        "CGI_REQUEST_METHOD": "GET",
        "CGI_SCRIPT_FILENAME": "/srv/www/index.php",
        "CGI_DOCUMENT_ROOT": "/srv/www",
        "serialization": "simple",
    }
    base.update(params)
    return URL("motan", "127.0.0.1", 8002, "com.example.Search", base)
