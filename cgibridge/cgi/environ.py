#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

import logging
import types

from cgibridge import SERVER_SOFTWARE

# CGI RFC: https://datatracker.ietf.org/doc/rfc3875/

CGI_KEY_PREFIX = "CGI_"
ATTACHMENT_PREFIX = "MOTAN_"

NEEDED_CGI_ENV = ("REQUEST_METHOD", "SCRIPT_FILENAME", "DOCUMENT_ROOT")

SERVER_ENVIRON = types.MappingProxyType({
    "SERVER_SOFTWARE": SERVER_SOFTWARE,
})

log = logging.getLogger(__name__)


def default_environ():
    return dict(SERVER_ENVIRON)


def needed_environ(parameters, needed=NEEDED_CGI_ENV, logger=None):
    """Pick the ``CGI_<NAME>`` provider parameters for every needed name.

    Missing parameters are reported and left out.
    """
    logger = logger or log
    environ = {}
    for key in needed:
        cgi_key = CGI_KEY_PREFIX + key
        if cgi_key in parameters:
            environ[key] = parameters[cgi_key]
        else:
            logger.info("NeededCGIEnv %s is not exist", cgi_key)
    return environ


def attachment_environ(attachments):
    return {ATTACHMENT_PREFIX + k: v for k, v in attachments.items()}


def create(parameters, req, needed=NEEDED_CGI_ENV, logger=None):
    """Build the CGI environment of one call.

    ``parameters`` is the provider URL parameter mapping, ``req`` the
    call. The result is a new dict on every call.
    """
    environ = default_environ()
    environ.update(needed_environ(parameters, needed, logger))
    environ.update(attachment_environ(req.attachments))
    return environ
