#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""FastCGI constants used by the client side of a RESPONDER request.

https://fastcgi-archives.github.io/FastCGI_Specification.html
"""

FCGI_VERSION_1 = 1

# Record types a client writes
FCGI_BEGIN_REQUEST = 1
FCGI_PARAMS = 4
FCGI_STDIN = 5

# Record types a responder answers with
FCGI_END_REQUEST = 3
FCGI_STDOUT = 6
FCGI_STDERR = 7

FCGI_RESPONDER = 1

# END_REQUEST protocolStatus
FCGI_REQUEST_COMPLETE = 0
FCGI_CANT_MPX_CONN = 1
FCGI_OVERLOADED = 2
FCGI_UNKNOWN_ROLE = 3

FCGI_HEADER_LEN = 8
FCGI_MAX_CONTENT_LEN = 65535

# one request per connection, always the same id
FCGI_DEFAULT_REQUEST_ID = 1

# names for error messages
FCGI_RECORD_TYPES = {
    FCGI_BEGIN_REQUEST: 'BEGIN_REQUEST',
    FCGI_END_REQUEST: 'END_REQUEST',
    FCGI_PARAMS: 'PARAMS',
    FCGI_STDIN: 'STDIN',
    FCGI_STDOUT: 'STDOUT',
    FCGI_STDERR: 'STDERR',
}

FCGI_PROTOCOL_STATUSES = {
    FCGI_REQUEST_COMPLETE: 'REQUEST_COMPLETE',
    FCGI_CANT_MPX_CONN: 'CANT_MPX_CONN',
    FCGI_OVERLOADED: 'OVERLOADED',
    FCGI_UNKNOWN_ROLE: 'UNKNOWN_ROLE',
}
