# Copyright (C) 2026 Linuxfabrik <info@linuxfabrik.ch>
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.
#
# On Debian systems, the complete text of the GNU General Public License
# version 2 can be found in /usr/share/common-licenses/GPL-2.
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""Exception types raised while parsing, compiling and adjusting rates.

Parse-time errors derive from ``ValueError`` so callers can treat every
malformed input the same way.  None of them is ever raised after a rule
has been handed to the filter engine.
"""


class MalformedSpecError(ValueError):
    """An interface token, network, router spec or port list is malformed."""


class MalformedRateError(MalformedSpecError):
    """The ``{in,out}`` bandwidth suffix of an interface token is malformed."""


class TooManyInterfacesError(MalformedSpecError):
    """More interfaces were declared than the rule number bands can hold."""


class UnknownOptionError(ValueError):
    """An unrecognized command line option was given."""


class IndexOutOfRangeError(IndexError):
    """The rate adjuster was given an index without a corresponding pipe."""


class RuleNumberingError(RuntimeError):
    """Two generated rules collided in rule number space."""
