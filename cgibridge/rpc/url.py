#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""
Provider URL

A provider is described by a URL such as::

    motan://10.0.0.5:8002/com.example.Search?CGI_PORT=9001&serialization=simple

The query parameters are the provider configuration; they are read on
every call but never changed once the provider is built.
"""

import types
from urllib.parse import parse_qsl, quote, urlsplit

from cgibridge.errors import ConfigError


DEFAULT_PROTOCOL = "motan"


class URL:
    """Immutable provider URL."""

    def __init__(self, protocol=DEFAULT_PROTOCOL, host="", port=0, path="",
                 parameters=None):
        self.protocol = protocol
        self.host = host
        self.port = port
        self.path = path
        self.parameters = types.MappingProxyType(dict(parameters or {}))

    @classmethod
    def parse(cls, url):
        """Build a URL from its string form.

        Raises ``ConfigError`` when the port is not a number.
        """
        parts = urlsplit(url)
        if not parts.scheme:
            raise ConfigError("URL %r has no protocol" % url)
        try:
            port = parts.port or 0
        except ValueError:
            raise ConfigError("URL %r has an invalid port" % url)

        return cls(
            protocol=parts.scheme,
            host=parts.hostname or "",
            port=port,
            path=parts.path.lstrip("/"),
            parameters=dict(parse_qsl(parts.query, keep_blank_values=True)),
        )

    def get_param(self, key, default=None):
        return self.parameters.get(key, default)

    def get_int_param(self, key, default):
        """Integer parameter, ``default`` when the key is absent.

        Raises ``ConfigError`` on a non integer value.
        """
        value = self.parameters.get(key)
        if value is None:
            return default
        try:
            return int(value.strip())
        except ValueError:
            raise ConfigError("Invalid integer for %s: %r" % (key, value))

    def with_params(self, params):
        """Return a copy of this URL with ``params`` merged in."""
        merged = dict(self.parameters)
        merged.update(params)
        return URL(self.protocol, self.host, self.port, self.path, merged)

    def identity(self):
        return "%s://%s:%d/%s" % (self.protocol, self.host, self.port, self.path)

    def __str__(self):
        query = "&".join("%s=%s" % (k, quote(v, safe=""))
                         for k, v in sorted(self.parameters.items()))
        if query:
            return "%s?%s" % (self.identity(), query)
        return self.identity()

    def __repr__(self):
        return "<URL %s>" % self

    def __eq__(self, other):
        if not isinstance(other, URL):
            return NotImplemented
        return (self.identity() == other.identity() and
                dict(self.parameters) == dict(other.parameters))

    def __hash__(self):
        return hash((self.identity(), frozenset(self.parameters.items())))
