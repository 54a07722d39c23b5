#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import importlib.machinery
import importlib.util
import os
import sys
import traceback

from cgibridge.config import Config
from cgibridge.errors import ConfigError


class Application:
    """\
    An application interface for configuring and running the bridge
    from the command line.
    """

    def __init__(self, usage=None, prog=None):
        self.usage = usage
        self.cfg = None
        self.prog = prog
        self.logger = None
        self.do_load_config()

    def do_load_config(self):
        try:
            self.load_config()
        except Exception as e:
            print("\nError: %s" % str(e), file=sys.stderr)
            sys.stderr.flush()
            sys.exit(2)

    def get_config_from_filename(self, filename):

        if not os.path.exists(filename):
            raise RuntimeError("%r doesn't exist" % filename)

        ext = os.path.splitext(filename)[1]

        try:
            module_name = '__config__'
            if ext in [".py", ".pyc"]:
                spec = importlib.util.spec_from_file_location(module_name, filename)
            else:
                loader_ = importlib.machinery.SourceFileLoader(module_name, filename)
                spec = importlib.util.spec_from_file_location(module_name, filename, loader=loader_)
            mod = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = mod
            spec.loader.exec_module(mod)
        except Exception:
            print("Failed to read config file: %s" % filename, file=sys.stderr)
            traceback.print_exc()
            sys.stderr.flush()
            sys.exit(2)

        return vars(mod)

    def load_config_from_file(self, filename):
        cfg = self.get_config_from_filename(filename)

        for k, v in cfg.items():
            # Ignore unknown names
            if k not in self.cfg.settings:
                continue
            try:
                self.cfg.set(k.lower(), v)
            except Exception:
                print("Invalid value for %s: %s\n" % (k, v), file=sys.stderr)
                sys.stderr.flush()
                raise

        return cfg

    def load_config(self):
        # init configuration
        self.cfg = Config(self.usage, prog=self.prog)

        # parse console args
        parser = self.cfg.parser()
        self.add_arguments(parser)
        args = parser.parse_args()

        # optional settings from apps
        cfg = self.init(parser, args)

        if cfg:
            for k, v in cfg.items():
                self.cfg.set(k.lower(), v)

        env_args = parser.parse_args(self.cfg.get_cmd_args_from_env())

        if args.config:
            self.load_config_from_file(args.config)
        elif env_args.config:
            self.load_config_from_file(env_args.config)

        # Load up environment configuration
        for k, v in vars(env_args).items():
            if v is None or k not in self.cfg.settings:
                continue
            if k == "config":
                continue
            self.cfg.set(k.lower(), v)

        # Lastly, update the configuration with any command line settings.
        for k, v in vars(args).items():
            if v is None or k not in self.cfg.settings:
                continue
            self.cfg.set(k.lower(), v)

    def add_arguments(self, parser):
        """Add the options that are not settings."""

    def init(self, parser, opts):
        raise NotImplementedError

    def run(self):
        raise NotImplementedError

    def fail(self, msg, code=2):
        print("\nError: %s\n" % msg, file=sys.stderr)
        sys.stderr.flush()
        sys.exit(code)

    def check_config(self):
        try:
            return self.load()
        except ConfigError as e:
            self.fail(e)

    def load(self):
        raise NotImplementedError
