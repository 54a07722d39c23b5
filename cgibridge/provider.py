#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
CGI provider

Serves RPC calls by running them through a FastCGI responder such as
php-fpm. Each call becomes one FastCGI request: the CGI environment is
built from the provider URL and the call attachments, the arguments go
in the query string (GET) or in a form body (POST), and the responder
output is parsed back into the response value and attachments.
"""

import time

from cgibridge import util
from cgibridge.cgi import environ as cgi_environ
from cgibridge.cgi.encoding import FORM_CONTENT_TYPE, encode_arguments
from cgibridge.cgi.errors import CGIParseException
from cgibridge.cgi.response import parse_output
from cgibridge.config import Config
from cgibridge.errors import ConfigError
from cgibridge.fastcgi import FastCGIClient, FastCGIError
from cgibridge.rpc.message import Response

DEFAULT_CGI_HOST = "127.0.0.1"
DEFAULT_CGI_PORT = 9000
HTTP_METHOD_GET = "GET"
HTTP_METHOD_POST = "POST"

INTERNAL_ERROR = 500


class CGIProvider:
    """Bridge from RPC calls to a FastCGI responder.

    Everything read from the URL is resolved here, once; ``call`` only
    reads it and may run from several threads at the same time.
    """

    name = "CgiProvider"

    def __init__(self, url, cfg=None, log=None, transport=None):
        self.cfg = cfg or Config()
        self.log = log or self.cfg.logger_class(self.cfg)
        self._url = url
        self.params = url.parameters

        self.host = url.get_param("CGI_HOST", DEFAULT_CGI_HOST)
        self.port = url.get_int_param("CGI_PORT", DEFAULT_CGI_PORT)
        if not 0 < self.port < 65536:
            raise ConfigError("Invalid CGI_PORT: %d" % self.port)
        self.needed = tuple(self.cfg.needed_env)
        self.serialization = url.get_param("serialization")

        if transport is None:
            transport = FastCGIClient(timeout=self.cfg.timeout)
        self.transport = transport

    @property
    def url(self):
        return self._url

    @property
    def path(self):
        return self._url.path

    def initialize(self):
        self.log.debug("CGI provider %s ready, responder at %s:%d",
                       self.path, self.host, self.port)

    def destroy(self):
        self.log.debug("CGI provider %s destroyed", self.path)

    def is_available(self):
        return True

    def set_serialization(self, serialization):
        # arguments are always encoded by the provider itself
        pass

    def set_proxy(self, proxy):
        pass

    def call(self, req):
        """Run one call; always returns a ``Response``.

        Failures of this call never propagate: they are logged and turned
        into a response carrying an exception.
        """
        start = time.monotonic()
        environ = {}
        try:
            environ = self.create_environ(req)
            body = self.prepare_body(req, environ)
            content = self.dispatch(environ, body)
            resp = self.make_response(req, content, start)
        except Exception:
            self.log.exception("cgi provider call error!")
            resp = Response.failure(getattr(req, "request_id", 0),
                                    INTERNAL_ERROR,
                                    "cgi provider call error",
                                    util.elapsed_millis(start))

        try:
            self.log.access(resp, req, environ, resp.process_time)
        except Exception:
            self.log.exception("Failed to log call")
        return resp

    def create_environ(self, req):
        return cgi_environ.create(self.params, req, self.needed, self.log)

    def prepare_body(self, req, environ):
        """Put the encoded arguments where the request method wants them.

        Returns the request body, empty unless the method is POST.
        """
        method = environ.get("REQUEST_METHOD")
        if method == HTTP_METHOD_GET:
            query = self.encode(req)
            if query is not None:
                environ["QUERY_STRING"] = query
            return ""

        if method == HTTP_METHOD_POST:
            body = self.encode(req) or ""
            environ["CONTENT_TYPE"] = FORM_CONTENT_TYPE
            environ["CONTENT_LENGTH"] = str(len(util.to_bytestring(body)))
            return body

        return ""

    def encode(self, req):
        try:
            return encode_arguments(req, self.serialization, self.log)
        except Exception:
            self.log.exception("CGI encode arguments error, request %s",
                               req.request_id)
            return None

    def dispatch(self, environ, body):
        """Send the request to the responder and return its raw stdout.

        A transport failure is logged and whatever was read before it is
        returned, parsing then decides the outcome.
        """
        try:
            result = self.transport.request(self.host, self.port, environ,
                                            body)
        except FastCGIError as e:
            self.log.error("CGI Call error: %s", e)
            return e.stdout

        if result.stderr:
            self.log.warning("CGI stderr: %s",
                             util.bytes_to_str(result.stderr).rstrip())
        return result.stdout

    def make_response(self, req, content, start):
        try:
            output = parse_output(content)
        except CGIParseException as e:
            self.log.debug("CGI output of request %s: %r", req.request_id,
                           content[:256])
            return Response.failure(req.request_id, e.code, str(e),
                                    util.elapsed_millis(start))

        resp = Response(req.request_id, value=output.body)
        for name, value in output.headers.items():
            resp.set_attachment(name, value)
        resp.process_time = util.elapsed_millis(start)
        return resp
