#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

# We don't need to call super() in __init__ methods of our
# BaseException and Exception classes because we also define
# our own __str__ methods so there is no need to pass 'message'
# to the base class to get a meaningful output from 'str(exc)'.
# pylint: disable=super-init-not-called


class CGIParseException(Exception):
    """Base exception for responder output parsing errors."""


class InvalidCGIResponse(CGIParseException):
    """Raised when the responder output has no header/body separator."""

    def __init__(self, content=b"", msg="Cannot parse FastCGI Response"):
        self.content = content
        self.msg = msg
        self.code = 502

    def __str__(self):
        return self.msg
