#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

# We don't need to call super() in __init__ methods of our
# BaseException and Exception classes because we also define
# our own __str__ methods so there is no need to pass 'message'
# to the base class to get a meaningful output from 'str(exc)'.
# pylint: disable=super-init-not-called

from cgibridge.fastcgi.constants import FCGI_PROTOCOL_STATUSES


class FastCGIError(Exception):
    """Base exception for FastCGI transport errors.

    ``stdout`` holds whatever the responder wrote before the failure.
    """

    stdout = b""


class FastCGIConnectionError(FastCGIError):
    """Raised when the responder can't be reached or the socket fails."""

    def __init__(self, address, err, stdout=b""):
        self.address = address
        self.err = err
        self.stdout = stdout

    def __str__(self):
        return "FastCGI connection to %s:%s failed: %s" % (
            self.address[0], self.address[1], self.err)


class InvalidFastCGIRecord(FastCGIError):
    """Raised when a FastCGI record is malformed."""

    def __init__(self, msg="", stdout=b""):
        self.msg = msg
        self.stdout = stdout

    def __str__(self):
        return "Invalid FastCGI record: %s" % self.msg


class FastCGIRequestRejected(FastCGIError):
    """Raised when END_REQUEST carries a protocol status other than
    REQUEST_COMPLETE."""

    def __init__(self, protocol_status, stdout=b""):
        self.protocol_status = protocol_status
        self.stdout = stdout

    def __str__(self):
        return "FastCGI request rejected: %s" % FCGI_PROTOCOL_STATUSES.get(
            self.protocol_status, self.protocol_status)
