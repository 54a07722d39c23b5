#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import logging
logging.Logger.manager.emittedNoHandlerWarning = 1  # noqa
from logging.config import dictConfig
import os
import time
import traceback

from cgibridge import util


CONFIG_DEFAULTS = {
    "version": 1,
    "disable_existing_loggers": False,
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        "cgibridge.error": {
            "level": "INFO",
            "handlers": ["error_console"],
            "propagate": True,
            "qualname": "cgibridge.error"
        },

        "cgibridge.access": {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": True,
            "qualname": "cgibridge.access"
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "generic",
            "stream": "ext://sys.stdout"
        },
        "error_console": {
            "class": "logging.StreamHandler",
            "formatter": "generic",
            "stream": "ext://sys.stderr"
        },
    },
    "formatters": {
        "generic": {
            "format": "%(asctime)s [%(process)d] [%(levelname)s] %(message)s",
            "datefmt": "[%Y-%m-%d %H:%M:%S %z]",
            "class": "logging.Formatter"
        }
    }
}


class SafeAtoms(dict):

    def __init__(self, atoms):
        dict.__init__(self)
        for key, value in atoms.items():
            if isinstance(value, str):
                self[key] = value.replace('"', '\\"')
            else:
                self[key] = value

    def __getitem__(self, k):
        if k.startswith("{"):
            kl = k.lower()
            if kl in self:
                return super().__getitem__(kl)
            else:
                return "-"
        if k in self:
            return super().__getitem__(k)
        else:
            return '-'


class Logger:

    LOG_LEVELS = {
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warning": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG
    }
    loglevel = logging.INFO

    error_fmt = r"%(asctime)s [%(process)d] [%(levelname)s] %(message)s"
    datefmt = r"[%Y-%m-%d %H:%M:%S %z]"

    access_fmt = "%(message)s"

    def __init__(self, cfg):
        self.error_log = logging.getLogger("cgibridge.error")
        self.error_log.propagate = False
        self.access_log = logging.getLogger("cgibridge.access")
        self.access_log.propagate = False
        self.cfg = cfg
        self.setup(cfg)

    def setup(self, cfg):
        self.loglevel = self.LOG_LEVELS.get(cfg.loglevel.lower(), logging.INFO)
        self.error_log.setLevel(self.loglevel)
        self.access_log.setLevel(logging.INFO)

        # set cgibridge.error handler
        self._set_handler(
            self.error_log, cfg.errorlog,
            logging.Formatter(self.error_fmt, self.datefmt))

        # set cgibridge.access handler
        if cfg.accesslog is not None:
            self._set_handler(
                self.access_log, cfg.accesslog,
                fmt=logging.Formatter(self.access_fmt))

        if cfg.logconfig_dict:
            config = CONFIG_DEFAULTS.copy()
            config.update(cfg.logconfig_dict)
            try:
                dictConfig(config)
            except (
                    AttributeError,
                    ImportError,
                    ValueError,
                    TypeError
            ) as exc:
                raise RuntimeError(str(exc))

    def critical(self, msg, *args, **kwargs):
        self.error_log.critical(msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        self.error_log.error(msg, *args, **kwargs)

    def warning(self, msg, *args, **kwargs):
        self.error_log.warning(msg, *args, **kwargs)

    def info(self, msg, *args, **kwargs):
        self.error_log.info(msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        self.error_log.debug(msg, *args, **kwargs)

    def exception(self, msg, *args, **kwargs):
        self.error_log.exception(msg, *args, **kwargs)

    def log(self, lvl, msg, *args, **kwargs):
        if isinstance(lvl, str):
            lvl = self.LOG_LEVELS.get(lvl.lower(), logging.INFO)
        self.error_log.log(lvl, msg, *args, **kwargs)

    def atoms(self, resp, req, environ, request_time):
        """ Gets atoms for log formatting.

        ``request_time`` is the call duration in milliseconds.
        """
        if resp.exception is not None:
            status = str(resp.exception.err_code)
            body_length = 0
        else:
            status = "200"
            body_length = len(util.to_bytestring(resp.value or "",
                                                   errors="surrogateescape"))

        atoms = {
            'i': str(req.request_id),
            'm': environ.get('REQUEST_METHOD') or '-',
            'S': environ.get('SCRIPT_FILENAME') or '-',
            'q': environ.get('QUERY_STRING') or '-',
            's': status,
            'b': str(body_length),
            'B': body_length,
            't': self.now(),
            'T': str(request_time // 1000),
            'M': str(request_time),
            'D': str(request_time * 1000),
            'p': "<%s>" % os.getpid()
        }

        # add call attachments
        atoms.update({"{%s}a" % k.lower(): v
                      for k, v in req.attachments.items()})

        # add response attachments
        atoms.update({"{%s}o" % k.lower(): v
                      for k, v in resp.attachments.items()})

        return atoms

    def access(self, resp, req, environ, request_time):
        """ Write one line per call to the access log, formatted with
        ``access_log_format``.
        """

        if not (self.cfg.accesslog or self.cfg.logconfig_dict):
            return

        # wrap atoms:
        # - make sure atoms will be test case insensitively
        # - if atom doesn't exist replace it by '-'
        safe_atoms = SafeAtoms(self.atoms(resp, req, environ, request_time))

        try:
            self.access_log.info(self.cfg.access_log_format, safe_atoms)
        except Exception:
            self.error(traceback.format_exc())

    def now(self):
        """ return date in Apache Common Log Format """
        return time.strftime('[%d/%b/%Y:%H:%M:%S %z]')

    def close(self):
        for log in (self.error_log, self.access_log):
            h = self._get_cgibridge_handler(log)
            if h:
                log.handlers.remove(h)
                h.close()

    def _get_cgibridge_handler(self, log):
        for h in log.handlers:
            if getattr(h, "_cgibridge", False):
                return h

    def _set_handler(self, log, output, fmt, stream=None):
        # remove previous cgibridge log handler
        h = self._get_cgibridge_handler(log)
        if h:
            log.handlers.remove(h)

        if output is not None:
            if output == "-":
                h = logging.StreamHandler(stream)
            else:
                util.check_is_writeable(output)
                h = logging.FileHandler(output)

            h.setFormatter(fmt)
            h._cgibridge = True
            log.addHandler(h)

