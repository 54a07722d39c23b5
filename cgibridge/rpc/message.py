#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
RPC call and response containers.

Only the fields the bridge reads or writes are modelled here: the call
arguments, attachments and request id on the way in, the value or the
exception, the attachments and the processing time on the way out.
"""

import types
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class NoArgument:
    """The call carries no argument."""


@dataclass(frozen=True)
class StringArgument:
    value: str


@dataclass(frozen=True)
class MappingArgument:
    items: Mapping[str, str]


@dataclass(frozen=True)
class UnsupportedArgument:
    """Anything simple serialization cannot express."""
    value: object


def simple_argument(arguments):
    """Resolve the call arguments into one of the simple argument shapes.

    Simple serialization only looks at the first argument: a ``str`` or a
    mapping whose keys and values are all ``str``.
    """
    if not arguments:
        return NoArgument()

    first = arguments[0]
    if isinstance(first, str):
        return StringArgument(first)
    if isinstance(first, Mapping) and all(
            isinstance(k, str) and isinstance(v, str)
            for k, v in first.items()):
        return MappingArgument(types.MappingProxyType(dict(first)))
    return UnsupportedArgument(first)


class Request:
    """One RPC call as handed to a provider.

    The argument shape is resolved once, when the request is built.
    """

    def __init__(self, request_id, service="", method="", arguments=None,
                 attachments=None):
        self.request_id = request_id
        self.service = service
        self.method = method
        self.arguments = tuple(arguments or ())
        self.attachments = types.MappingProxyType(dict(attachments or {}))
        self.argument = simple_argument(self.arguments)

    def get_attachment(self, key, default=None):
        return self.attachments.get(key, default)

    def __repr__(self):
        return "<Request %d %s.%s>" % (self.request_id, self.service,
                                       self.method)


class RPCException:
    """Failure half of a response."""

    def __init__(self, err_code, err_msg, err_type=None):
        self.err_code = err_code
        self.err_msg = err_msg
        self.err_type = err_code if err_type is None else err_type

    def to_dict(self):
        return {
            "errcode": self.err_code,
            "errmsg": self.err_msg,
            "errtype": self.err_type,
        }

    def __str__(self):
        return "%s (code %s)" % (self.err_msg, self.err_code)

    def __repr__(self):
        return "<RPCException %s: %r>" % (self.err_code, self.err_msg)


class Response:
    """Result of one call: either ``value`` or ``exception`` is set."""

    def __init__(self, request_id, value=None, exception=None,
                 attachments=None, process_time=0):
        if value is not None and exception is not None:
            raise ValueError("a response carries a value or an exception")
        self.request_id = request_id
        self.value = value
        self.exception = exception
        self.attachments = dict(attachments or {})
        self.process_time = process_time

    @classmethod
    def failure(cls, request_id, code, message, process_time=0):
        return cls(request_id, exception=RPCException(code, message, code),
                   process_time=process_time)

    @property
    def ok(self):
        return self.exception is None

    def set_attachment(self, key, value):
        self.attachments[key] = value

    def get_attachment(self, key, default=None):
        return self.attachments.get(key, default)

    def __repr__(self):
        if self.exception is not None:
            return "<Response %d %r>" % (self.request_id, self.exception)
        return "<Response %d ok>" % self.request_id
