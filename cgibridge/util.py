#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import importlib
import importlib.metadata as importlib_metadata
import inspect
import time
import traceback


SUPPORTED_LOGGERS = {
    "simple": "cgibridge.glogging.Logger",
}


def load_entry_point(distribution, group, name):
    dist_obj = importlib_metadata.distribution(distribution)
    eps = [ep for ep in dist_obj.entry_points
           if ep.group == group and ep.name == name]
    if not eps:
        raise ImportError("Entry point %r not found" % ((group, name),))
    return eps[0].load()


def load_class(uri, default="simple", section="cgibridge.loggers"):
    if inspect.isclass(uri):
        return uri
    if uri.startswith("egg:"):
        # uses entry points
        entry_str = uri.split("egg:")[1]
        try:
            dist, name = entry_str.rsplit("#", 1)
        except ValueError:
            dist = entry_str
            name = default

        try:
            return load_entry_point(dist, section, name)
        except Exception:
            exc = traceback.format_exc()
            msg = "class uri %r invalid or not found: \n\n[%s]"
            raise RuntimeError(msg % (uri, exc))

    components = uri.split('.')
    if len(components) == 1:
        if uri.startswith("#"):
            uri = uri[1:]

        if uri in SUPPORTED_LOGGERS:
            components = SUPPORTED_LOGGERS[uri].split(".")
        else:
            try:
                return load_entry_point("cgibridge", section, uri)
            except Exception:
                exc = traceback.format_exc()
                msg = "class uri %r invalid or not found: \n\n[%s]"
                raise RuntimeError(msg % (uri, exc))

    klass = components.pop(-1)

    try:
        mod = importlib.import_module('.'.join(components))
    except Exception:
        exc = traceback.format_exc()
        msg = "class uri %r invalid or not found: \n\n[%s]"
        raise RuntimeError(msg % (uri, exc))
    return getattr(mod, klass)


def check_is_writeable(path):
    try:
        with open(path, 'a') as f:
            f.close()
    except OSError as e:
        raise RuntimeError("Error: '%s' isn't writable [%r]" % (path, e))


def to_bytestring(value, encoding="utf8", errors="strict"):
    """Converts a string argument to a byte string"""
    if isinstance(value, bytes):
        return value
    if not isinstance(value, str):
        raise TypeError('%r is not a string' % value)

    return value.encode(encoding, errors)


def bytes_to_str(b, encoding="utf8"):
    """Decode raw responder output, keeping undecodable bytes intact."""
    if isinstance(b, str):
        return b
    return str(b, encoding, "surrogateescape")


def parse_pairs(values, sep="="):
    """Turn a list of ``KEY=VALUE`` strings into a dict.

    Later entries override earlier ones. Raises ``ValueError`` on an entry
    without a separator or with an empty key.
    """
    pairs = {}
    for item in values or ():
        key, found, value = item.partition(sep)
        key = key.strip()
        if not found or not key:
            raise ValueError("expected KEY%sVALUE, got %r" % (sep, item))
        pairs[key] = value
    return pairs


def elapsed_millis(start):
    """Whole milliseconds elapsed since ``start`` (a ``time.monotonic()``)."""
    return max(0, int((time.monotonic() - start) * 1000))
