#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
Simple serialization of call arguments into a CGI query string or
``application/x-www-form-urlencoded`` body.
"""

import logging
from urllib.parse import quote

from cgibridge.rpc.message import (
    MappingArgument,
    NoArgument,
    StringArgument,
)

SIMPLE_SERIALIZATION = "simple"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
REQUEST_ID_FIELD = "requestIdFromClient"

log = logging.getLogger(__name__)


def escape(value):
    # RFC 3986: everything but the unreserved characters is percent-encoded
    return quote(value, safe="")


def encode_mapping(items):
    return "&".join("%s=%s" % (k, escape(items[k])) for k in sorted(items))


def encode_argument(argument):
    if isinstance(argument, MappingArgument):
        return encode_mapping(argument.items)
    if isinstance(argument, StringArgument):
        return escape(argument.value)
    return ""


def encode_arguments(req, serialization, logger=None):
    """Encode the call arguments and the request id.

    Only simple serialization is understood; with any other mode the
    arguments are dropped and only the request id field is sent.
    """
    logger = logger or log
    res = ""
    if serialization == SIMPLE_SERIALIZATION:
        res = encode_argument(req.argument)
    elif not isinstance(req.argument, NoArgument):
        logger.error("CGI encode_arguments error, serialization: %r, "
                     "arguments: %r", serialization, req.arguments)

    return "%s&%s=%d" % (res, REQUEST_ID_FIELD, req.request_id)
