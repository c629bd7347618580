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

"""Typed option keys and schemas for the compiler configuration.

This module provides:

- **StrEnum keys**: Type-safe config key names that work as dict keys
- **Dataclass schemas**: Typed, immutable option sets with defaults

Usage in the compiler::

    from trustfw.core.options import CompilerOptions

    if self.options.stealth:
        ...
"""

from trustfw.core.options._keys import ConfigKey, PortOption, ScheduleKey
from trustfw.core.options._schemas import (
    COMPILER_DEFAULTS,
    CompilerOptions,
    PortLists,
    RouterConfig,
    parse_port_list,
)

__all__ = [
    'COMPILER_DEFAULTS',
    'CompilerOptions',
    'ConfigKey',
    'PortLists',
    'PortOption',
    'RouterConfig',
    'ScheduleKey',
    'parse_port_list',
]
