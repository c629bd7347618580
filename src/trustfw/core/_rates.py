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

"""Bandwidth strings as understood by dummynet pipes.

A rate is a number with an optional unit, e.g. ``504``, ``504Kbit/s``,
``1.5Mbits/s`` or ``64KByte/s``.  Without a unit dummynet reads the
number as bit/s.  ``0`` means the pipe is not limited (but traffic is
still shaped through it).
"""

from __future__ import annotations

import re

from ._errors import MalformedRateError

_RATE_RE = re.compile(
    r'^(?P<value>\d+(?:\.\d+)?)\s*'
    r'(?:(?P<prefix>[KkMm]?)(?P<kind>bit|Byte|byte)s?/s)?$'
)

_PREFIX_FACTOR = {'': 1, 'k': 1_000, 'm': 1_000_000}

UNLIMITED = '0'


def parse_rate(text: str) -> str:
    """Validate a rate string and return it stripped of surrounding blanks.

    Raises:
        MalformedRateError: if *text* is empty or not a number with an
            optional bit/s or Byte/s unit.
    """
    value = text.strip()
    if not _RATE_RE.match(value):
        raise MalformedRateError(f'invalid bandwidth {text!r}')
    return value


def rate_to_bits(text: str) -> int:
    """Convert a rate string to bits per second."""
    m = _RATE_RE.match(text.strip())
    if m is None:
        raise MalformedRateError(f'invalid bandwidth {text!r}')
    bits = float(m.group('value'))
    bits *= _PREFIX_FACTOR[(m.group('prefix') or '').lower()]
    if (m.group('kind') or 'bit').lower() == 'byte':
        bits *= 8
    return int(round(bits))


def kbps(value: int) -> str:
    """Format an integer Kbit/s value as a rate string."""
    if value < 0:
        raise MalformedRateError(f'negative bandwidth {value}')
    if value == 0:
        return UNLIMITED
    return f'{value}Kbit/s'
