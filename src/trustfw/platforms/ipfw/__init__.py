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

"""ipfw backend: rule printer, engine, host configuration and driver."""

from ._print_rule import PrintRule_ipfw
from ._engine import IPFW, IpfwEngine, parse_pipe_show
from ._os_configurator import OSConfigurator_ipfw
from ._compiler_driver import CompilerDriver_ipfw

__all__ = [
    'IPFW',
    'CompilerDriver_ipfw',
    'IpfwEngine',
    'OSConfigurator_ipfw',
    'PrintRule_ipfw',
    'parse_pipe_show',
]
