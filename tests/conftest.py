#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.

"""Pytest configuration for cgibridge tests."""

import os
import sys
from unittest import mock

import pytest

# Add the project root to sys.path so the package imports without install
root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)

from cgibridge.glogging import Logger  # noqa: E402


@pytest.fixture
def log():
    """A logger double recording every call."""
    return mock.Mock(spec=Logger)
