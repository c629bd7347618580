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

"""Canonical configuration key definitions using StrEnum.

The same keys are used by the YAML config reader and by the CLI, so a
setting given in a config file and the corresponding command line flag
always land in the same option.

Example::

    from trustfw.core.options import ConfigKey

    stealth = data.get(ConfigKey.STEALTH, False)
"""

from enum import StrEnum


class ConfigKey(StrEnum):
    """Top-level keys of a trustfw YAML config file."""

    INTERFACES = 'interfaces'
    DEBUG = 'debug'
    LOG_ALL = 'log_all'
    STEALTH = 'stealth'
    BLACKHOLE = 'blackhole'
    ROUTER = 'router'
    PORTS = 'ports'
    SCHEDULE = 'schedule'


class PortOption(StrEnum):
    """Keys below ``ports:``; each also names a ``PortLists`` field.

    The CLI flag for each key is ``--`` plus the key with underscores
    replaced by dashes, except for the public lists (``--tcp``/``--udp``).
    """

    TRUSTED_TCP = 'trusted_tcp'
    TRUSTED_UDP = 'trusted_udp'
    LOCAL_TCP = 'local_tcp'
    LOCAL_UDP = 'local_udp'
    PUBLIC_TCP = 'public_tcp'
    PUBLIC_UDP = 'public_udp'


class ScheduleKey(StrEnum):
    """Keys of one rate schedule profile."""

    DEFAULT = 'default'
    WINDOWS = 'windows'
    START = 'start'
    END = 'end'
    IN = 'in'
    OUT = 'out'
