#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import sys

from cgibridge import util
from cgibridge.app.base import Application
from cgibridge.cgi.encoding import SIMPLE_SERIALIZATION
from cgibridge.provider import CGIProvider
from cgibridge.rpc import URL, Request


class CallApplication(Application):
    """Run a single call against a FastCGI responder and print the result."""

    def add_arguments(self, parser):
        group = parser.add_mutually_exclusive_group()
        group.add_argument("--arg", dest="call_arg", metavar="STRING",
                           help="Pass STRING as the call argument")
        group.add_argument("--form", dest="call_form", action="append",
                           metavar="KEY=VALUE",
                           help="Add KEY=VALUE to a mapping call argument")
        parser.add_argument("--attachment", dest="call_attachments",
                            action="append", metavar="KEY=VALUE",
                            help="Attach KEY=VALUE to the call")
        parser.add_argument("--request-id", dest="call_request_id", type=int,
                            default=1, metavar="INT",
                            help="Request id of the call [1]")
        parser.add_argument("--method-name", dest="call_method", default="",
                            metavar="STRING",
                            help="Name of the called method")
        parser.add_argument("--show-headers", dest="show_headers",
                            action="store_true",
                            help="Print the response attachments before the body")

    def init(self, parser, opts):
        try:
            self.form = util.parse_pairs(opts.call_form)
            self.attachments = util.parse_pairs(opts.call_attachments)
        except ValueError as e:
            parser.error(str(e))
        self.call_arg = opts.call_arg
        self.request_id = opts.call_request_id
        self.method_name = opts.call_method
        self.show_headers = opts.show_headers

    def load(self):
        url = URL.parse(self.cfg.url).with_params(self.cfg.url_params)
        if "serialization" not in url.parameters:
            url = url.with_params({"serialization": SIMPLE_SERIALIZATION})
        return CGIProvider(url, self.cfg, self.logger)

    def build_request(self, path):
        if self.call_arg is not None:
            arguments = [self.call_arg]
        elif self.form:
            arguments = [self.form]
        else:
            arguments = []
        return Request(self.request_id, service=path,
                       method=self.method_name, arguments=arguments,
                       attachments=self.attachments)

    def run(self):
        try:
            self.logger = self.cfg.logger_class(self.cfg)
        except RuntimeError as e:
            self.fail(e)

        provider = self.check_config()
        provider.initialize()
        try:
            resp = provider.call(self.build_request(provider.path))
        finally:
            provider.destroy()
            self.logger.close()

        if resp.exception is not None:
            print("Error: %s" % resp.exception, file=sys.stderr)
            sys.exit(1)

        out = []
        if self.show_headers:
            for name, value in sorted(resp.attachments.items()):
                out.append("%s: %s\n" % (name, value))
            out.append("\n")
        out.append(resp.value)

        # write the bytes the responder sent, undecodable ones included
        sys.stdout.flush()
        sys.stdout.buffer.write(
            util.to_bytestring("".join(out), errors="surrogateescape"))
        sys.stdout.buffer.flush()
        sys.exit(0)


def run():
    """\
    The ``cgibridge`` command line runner: sends one call to a FastCGI
    responder.
    """
    CallApplication("%(prog)s [OPTIONS]").run()


if __name__ == '__main__':
    run()
