#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

from cgibridge.rpc.message import (
    Request,
    Response,
    RPCException,
    NoArgument,
    StringArgument,
    MappingArgument,
    UnsupportedArgument,
    simple_argument,
)
from cgibridge.rpc.url import URL

__all__ = [
    'Request',
    'Response',
    'RPCException',
    'NoArgument',
    'StringArgument',
    'MappingArgument',
    'UnsupportedArgument',
    'simple_argument',
    'URL',
]
