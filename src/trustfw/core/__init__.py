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

from ._errors import (
    IndexOutOfRangeError,
    MalformedRateError,
    MalformedSpecError,
    RuleNumberingError,
    TooManyInterfacesError,
    UnknownOptionError,
)
from ._rates import kbps, parse_rate, rate_to_bits
from ._descriptor import ANY, InterfaceDescriptor, OsType, parse_interface_spec, parse_network
from ._registry import MAX_INTERFACES, InterfaceRegistry
from ._yaml_reader import ConfigReader, LoadedConfig

__all__ = [
    'ANY',
    'MAX_INTERFACES',
    'ConfigReader',
    'IndexOutOfRangeError',
    'InterfaceDescriptor',
    'InterfaceRegistry',
    'LoadedConfig',
    'MalformedRateError',
    'MalformedSpecError',
    'OsType',
    'RuleNumberingError',
    'TooManyInterfacesError',
    'UnknownOptionError',
    'kbps',
    'parse_interface_spec',
    'parse_network',
    'parse_rate',
    'rate_to_bits',
]
