#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

from collections import namedtuple

from cgibridge import util
from cgibridge.cgi.errors import InvalidCGIResponse

HEADER_SEPARATOR = "\r\n\r\n"
LINE_SEPARATOR = "\r\n"
STATUS_HEADER = "Status"
DEFAULT_STATUS = 200


CGIOutput = namedtuple('CGIOutput', ['status', 'headers', 'body'])


def parse_status(line):
    """Numeric code of a ``Status: 404 Not Found`` line, 0 when unreadable."""
    parts = line.split(None, 2)
    if len(parts) < 2:
        return 0
    try:
        return int(parts[1])
    except ValueError:
        return 0


def parse_headers(lines):
    headers = {}
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep:
            continue
        if name == STATUS_HEADER:
            continue
        headers[name] = value.strip()
    return headers


def parse_output(content):
    """Parse what a FastCGI responder wrote on its stdout.

    The output is a CGI header block, a blank line and the body. A leading
    ``Status:`` line sets the status code, 200 otherwise. Raises
    ``InvalidCGIResponse`` when there is no blank line at all.
    """
    content = util.bytes_to_str(content)

    head, sep, body = content.partition(HEADER_SEPARATOR)
    if not sep:
        raise InvalidCGIResponse(content)

    lines = head.split(LINE_SEPARATOR)
    status = DEFAULT_STATUS
    if lines[0].startswith(STATUS_HEADER + ":"):
        status = parse_status(lines[0])

    return CGIOutput(status, parse_headers(lines), body)


def format_output(status=None, headers=None, body=""):
    """Build responder output in the form ``parse_output`` reads.

    With ``status`` set a ``Status:`` line is written first.
    """
    lines = []
    if status is not None:
        lines.append("%s: %s" % (STATUS_HEADER, status))
    for name, value in (headers or {}).items():
        lines.append("%s: %s" % (name, value))
    return LINE_SEPARATOR.join(lines) + HEADER_SEPARATOR + body
