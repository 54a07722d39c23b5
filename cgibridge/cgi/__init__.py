#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

from cgibridge.cgi.environ import (
    CGI_KEY_PREFIX,
    ATTACHMENT_PREFIX,
    NEEDED_CGI_ENV,
    SERVER_ENVIRON,
)
from cgibridge.cgi.encoding import (
    SIMPLE_SERIALIZATION,
    FORM_CONTENT_TYPE,
    encode_arguments,
)
from cgibridge.cgi.response import CGIOutput, parse_output, format_output
from cgibridge.cgi.errors import CGIParseException, InvalidCGIResponse

__all__ = [
    'CGI_KEY_PREFIX',
    'ATTACHMENT_PREFIX',
    'NEEDED_CGI_ENV',
    'SERVER_ENVIRON',
    'SIMPLE_SERIALIZATION',
    'FORM_CONTENT_TYPE',
    'encode_arguments',
    'CGIOutput',
    'parse_output',
    'format_output',
    'CGIParseException',
    'InvalidCGIResponse',
]
