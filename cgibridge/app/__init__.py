#
# This file is part of cgibridge released under the MIT license.
# See the NOTICE for more information.
