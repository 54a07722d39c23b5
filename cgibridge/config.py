#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import argparse
import copy
import inspect
import os
import shlex
import sys
import textwrap

from cgibridge import __version__, util
from cgibridge.errors import ConfigError

KNOWN_SETTINGS = []


def make_settings(ignore=None):
    settings = {}
    ignore = ignore or ()
    for s in KNOWN_SETTINGS:
        setting = s()
        if setting.name in ignore:
            continue
        settings[setting.name] = setting.copy()
    return settings


class Config:

    def __init__(self, usage=None, prog=None):
        self.settings = make_settings()
        self.usage = usage
        self.prog = prog or os.path.basename(sys.argv[0])
        self.env_orig = os.environ.copy()

    def __str__(self):
        lines = []
        kmax = max(len(k) for k in self.settings)
        for k in sorted(self.settings):
            v = self.settings[k].value
            if callable(v):
                v = "<{}()>".format(v.__qualname__)
            lines.append("{k:{kmax}} = {v}".format(k=k, v=v, kmax=kmax))
        return "\n".join(lines)

    def __getattr__(self, name):
        if name not in self.settings:
            raise AttributeError("No configuration setting for: %s" % name)
        return self.settings[name].get()

    def __setattr__(self, name, value):
        if name != "settings" and name in self.settings:
            raise AttributeError("Invalid access!")
        super().__setattr__(name, value)

    def set(self, name, value):
        if name not in self.settings:
            raise AttributeError("No configuration setting for: %s" % name)
        self.settings[name].set(value)

    def get_cmd_args_from_env(self):
        if 'CGIBRIDGE_CMD_ARGS' in self.env_orig:
            return shlex.split(self.env_orig['CGIBRIDGE_CMD_ARGS'])
        return []

    def parser(self):
        kwargs = {
            "usage": self.usage,
            "prog": self.prog
        }
        parser = argparse.ArgumentParser(**kwargs)
        parser.add_argument("-v", "--version",
                            action="version", default=argparse.SUPPRESS,
                            version="%(prog)s (version " + __version__ + ")\n",
                            help="show program's version number and exit")

        keys = sorted(self.settings, key=self.settings.__getitem__)
        for k in keys:
            self.settings[k].add_option(parser)

        return parser

    @property
    def logger_class(self):
        uri = self.settings['logger_class'].get()
        logger_class = util.load_class(
            uri,
            default="simple",
            section="cgibridge.loggers")

        if hasattr(logger_class, "install"):
            logger_class.install()
        return logger_class

    @property
    def url_params(self):
        """URL parameters contributed by the command line.

        The explicit ``--param`` entries are applied first so the dedicated
        shortcuts (``--cgi-host``, ``--cgi-port``...) win over them.
        """
        params = util.parse_pairs(self.settings['params'].get())
        if self.cgi_host is not None:
            params["CGI_HOST"] = self.cgi_host
        if self.cgi_port is not None:
            params["CGI_PORT"] = str(self.cgi_port)
        if self.serialization is not None:
            params["serialization"] = self.serialization
        return params


class SettingMeta(type):
    def __new__(cls, name, bases, attrs):
        super_new = super().__new__
        parents = [b for b in bases if isinstance(b, SettingMeta)]
        if not parents:
            return super_new(cls, name, bases, attrs)

        attrs["order"] = len(KNOWN_SETTINGS)
        attrs["validator"] = staticmethod(attrs["validator"])

        new_class = super_new(cls, name, bases, attrs)
        new_class.fmt_desc(attrs.get("desc", ""))
        KNOWN_SETTINGS.append(new_class)
        return new_class

    def fmt_desc(cls, desc):
        desc = textwrap.dedent(desc).strip()
        setattr(cls, "desc", desc)
        setattr(cls, "short", desc.splitlines()[0])


class Setting:
    name = None
    value = None
    section = None
    cli = None
    validator = None
    type = None
    meta = None
    action = None
    default = None
    short = None
    desc = None
    nargs = None
    const = None

    def __init__(self):
        if self.default is not None:
            self.set(self.default)

    def add_option(self, parser):
        if not self.cli:
            return
        args = tuple(self.cli)

        help_txt = "%s [%s]" % (self.short, self.default)
        help_txt = help_txt.replace("%", "%%")

        kwargs = {
            "dest": self.name,
            "action": self.action or "store",
            "type": self.type or str,
            "default": None,
            "help": help_txt
        }

        if self.meta is not None:
            kwargs['metavar'] = self.meta

        if kwargs["action"] != "store":
            kwargs.pop("type")

        if self.nargs is not None:
            kwargs["nargs"] = self.nargs

        if self.const is not None:
            kwargs["const"] = self.const

        parser.add_argument(*args, **kwargs)

    def copy(self):
        return copy.copy(self)

    def get(self):
        return self.value

    def set(self, val):
        if not callable(self.validator):
            raise TypeError('Invalid validator: %s' % self.name)
        self.value = self.validator(val)

    def __lt__(self, other):
        return (self.section == other.section and
                self.order < other.order)
    __cmp__ = __lt__

    def __repr__(self):
        return "<%s.%s object at %x with value %r>" % (
            self.__class__.__module__,
            self.__class__.__name__,
            id(self),
            self.value,
        )


Setting = SettingMeta('Setting', (Setting,), {})


def validate_dict(val):
    if not isinstance(val, dict):
        raise TypeError("Value is not a dictionary: %s " % val)
    return val


def validate_pos_int(val):
    if not isinstance(val, int):
        val = int(val, 0)
    else:
        # Booleans are ints!
        val = int(val)
    if val < 0:
        raise ValueError("Value must be positive: %s" % val)
    return val


def validate_port(val):
    if val is None:
        return None
    val = validate_pos_int(val)
    if val > 65535:
        raise ValueError("Value is not a valid port: %s" % val)
    return val


def validate_string(val):
    if val is None:
        return None
    if not isinstance(val, str):
        raise TypeError("Not a string: %s" % val)
    return val.strip()


def validate_list_string(val):
    if not val:
        return []

    # legacy syntax
    if isinstance(val, str):
        val = [val]

    return [validate_string(v) for v in val]


def validate_string_to_list(val):
    val = validate_string(val)

    if not val:
        return []

    return [v.strip() for v in val.split(",") if v.strip()]


def validate_pairs(val):
    val = validate_list_string(val)
    try:
        util.parse_pairs(val)
    except ValueError as e:
        raise ConfigError(str(e))
    return val


def validate_class(val):
    if inspect.isfunction(val) or inspect.ismethod(val):
        val = val()
    if inspect.isclass(val):
        return val
    return validate_string(val)


class ConfigFile(Setting):
    name = "config"
    section = "Config File"
    cli = ["-c", "--config"]
    meta = "CONFIG"
    validator = validate_string
    default = None
    desc = """\
        The path to a cgibridge config file.

        The file is a Python module; every top level name matching a setting
        name is applied as if it had been given on the command line. Command
        line options still take precedence.
        """


class ProviderURL(Setting):
    name = "url"
    section = "Provider"
    cli = ["--url"]
    meta = "URL"
    validator = validate_string
    default = "motan://127.0.0.1:0/cgi"
    desc = """\
        The provider URL.

        A string of the form ``PROTOCOL://HOST:PORT/PATH?KEY=VALUE&...``. The
        query parameters are the provider configuration: ``CGI_HOST``,
        ``CGI_PORT``, ``CGI_<NAME>`` for every needed CGI variable and
        ``serialization``.
        """


class Params(Setting):
    name = "params"
    section = "Provider"
    cli = ["-p", "--param"]
    action = "append"
    meta = "KEY=VALUE"
    validator = validate_pairs
    default = []
    desc = """\
        Extra provider URL parameter.

        May be given several times, e.g.
        ``--param CGI_SCRIPT_FILENAME=/srv/www/index.php``. Values given here
        override the ones found in ``--url``.
        """


class CGIHost(Setting):
    name = "cgi_host"
    section = "FastCGI"
    cli = ["--cgi-host"]
    meta = "HOST"
    validator = validate_string
    default = None
    desc = """\
        Host of the FastCGI responder.

        Shortcut for ``--param CGI_HOST=HOST``. When neither is set the
        responder is expected on 127.0.0.1.
        """


class CGIPort(Setting):
    name = "cgi_port"
    section = "FastCGI"
    cli = ["--cgi-port"]
    meta = "INT"
    validator = validate_port
    type = int
    default = None
    desc = """\
        Port of the FastCGI responder.

        Shortcut for ``--param CGI_PORT=PORT``. When neither is set port 9000
        is used.
        """


class Serialization(Setting):
    name = "serialization"
    section = "FastCGI"
    cli = ["--serialization"]
    meta = "STRING"
    validator = validate_string
    default = None
    desc = """\
        The serialization of the call arguments.

        Only ``simple`` arguments (a single string or a single string to
        string mapping) are turned into a query string or form body. Any
        other value sends the call without arguments. When unset the
        ``serialization`` URL parameter is used, then ``simple``.
        """


class NeededEnv(Setting):
    name = "needed_env"
    section = "FastCGI"
    cli = ["--needed-env"]
    meta = "NAMES"
    validator = validate_string_to_list
    default = "REQUEST_METHOD,SCRIPT_FILENAME,DOCUMENT_ROOT"
    desc = """\
        Comma separated CGI variables taken from the provider URL.

        Each ``NAME`` is read from the ``CGI_NAME`` URL parameter. Missing
        parameters are logged and left out of the environment.
        """


class Timeout(Setting):
    name = "timeout"
    section = "FastCGI"
    cli = ["-t", "--timeout"]
    meta = "INT"
    validator = validate_pos_int
    type = int
    default = 30
    desc = """\
        Seconds to wait on the FastCGI responder socket.

        Applies to connecting and to every read and write. A value of 0
        disables the timeout.
        """


class AccessLog(Setting):
    name = "accesslog"
    section = "Logging"
    cli = ["--access-logfile"]
    meta = "FILE"
    validator = validate_string
    default = None
    desc = """\
        The call log file to write to.

        ``'-'`` means log to stderr. One line is written per call.
        """


class AccessLogFormat(Setting):
    name = "access_log_format"
    section = "Logging"
    cli = ["--access-logformat"]
    meta = "STRING"
    validator = validate_string
    default = '%(i)s "%(m)s %(S)s" %(s)s %(b)s %(M)sms'
    desc = """\
        The call log format.

        ===========  ===========
        Identifier   Description
        ===========  ===========
        i            request id
        m            CGI request method
        S            script filename
        q            query string
        s            status (200 or the failure code)
        b            body length
        t            date of the call
        T            call time in seconds
        M            call time in milliseconds
        D            call time in microseconds
        p            process ID
        {name}a      call attachment
        {name}o      response attachment
        ===========  ===========
        """


class ErrorLog(Setting):
    name = "errorlog"
    section = "Logging"
    cli = ["--error-logfile", "--log-file"]
    meta = "FILE"
    validator = validate_string
    default = '-'
    desc = """\
        The Error log file to write to.

        Using ``'-'`` for FILE makes cgibridge log to stderr.
        """


class Loglevel(Setting):
    name = "loglevel"
    section = "Logging"
    cli = ["--log-level"]
    meta = "LEVEL"
    validator = validate_string
    default = "info"
    desc = """\
        The granularity of Error log outputs.

        Valid level names are:

        * ``'debug'``
        * ``'info'``
        * ``'warning'``
        * ``'error'``
        * ``'critical'``
        """


class LoggerClass(Setting):
    name = "logger_class"
    section = "Logging"
    cli = ["--logger-class"]
    meta = "STRING"
    validator = validate_class
    default = "cgibridge.glogging.Logger"
    desc = """\
        The logger you want to use to log events in cgibridge.

        The default class (``cgibridge.glogging.Logger``) handles error and
        call logging. You can provide your own logger by giving a Python path
        to a class that quacks like ``cgibridge.glogging.Logger``.
        """


class LogConfigDict(Setting):
    name = "logconfig_dict"
    section = "Logging"
    validator = validate_dict
    default = {}
    desc = """\
        The log config dictionary to use, using the standard Python
        logging module's dictionary configuration format.

        Only settable from a config file. The dictionary is merged on top of
        ``cgibridge.glogging.CONFIG_DEFAULTS``.
        """
