#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

from cgibridge.fastcgi.client import FastCGIClient, FastCGIResult
from cgibridge.fastcgi.errors import (
    FastCGIError,
    FastCGIConnectionError,
    InvalidFastCGIRecord,
    FastCGIRequestRejected,
)

__all__ = [
    'FastCGIClient',
    'FastCGIResult',
    'FastCGIError',
    'FastCGIConnectionError',
    'InvalidFastCGIRecord',
    'FastCGIRequestRejected',
]
