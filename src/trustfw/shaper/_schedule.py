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

"""Time-of-day rate schedules for the rate adjuster.

A schedule holds named profiles.  Each profile has a default in/out rate
in Kbit/s and optional windows that override it for part of the day::

    schedule:
      office:
        default: {in: 0, out: 0}
        windows:
          - {start: '08:00', end: '18:00', in: 512, out: 128}
          - {start: '22:00', end: '06:00', in: 2048, out: 512}

A window whose end is before its start wraps around midnight.  A rate of
0 leaves the pipe unlimited.
"""

from __future__ import annotations

import dataclasses
import datetime
import re

from trustfw.core import MalformedSpecError
from trustfw.core.options import ScheduleKey

DEFAULT_PROFILE = 'default'

_TIME_RE = re.compile(r'^(?P<hour>\d{1,2}):(?P<minute>\d{2})$')


def _parse_time(value, where: str) -> datetime.time:
    # YAML 1.1 reads an unquoted 08:00 as the sexagesimal integer 480.
    if isinstance(value, int) and not isinstance(value, bool):
        hour, minute = divmod(value, 60)
    else:
        m = _TIME_RE.match(str(value).strip())
        if m is None:
            raise MalformedSpecError(f'{where}: invalid time {value!r}, expected HH:MM')
        hour, minute = int(m.group('hour')), int(m.group('minute'))
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise MalformedSpecError(f'{where}: invalid time {value!r}')
    return datetime.time(hour, minute)


def _parse_kbps(data: dict, key: ScheduleKey, where: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MalformedSpecError(f'{where}: {key} must be a non-negative integer (Kbit/s)')
    return value


@dataclasses.dataclass(frozen=True)
class RateWindow:
    start: datetime.time
    end: datetime.time
    in_kbps: int
    out_kbps: int

    def contains(self, moment: datetime.time) -> bool:
        if self.start <= self.end:
            return self.start <= moment < self.end
        return moment >= self.start or moment < self.end


@dataclasses.dataclass(frozen=True)
class Profile:
    """Rates of one profile; the first matching window wins."""

    name: str
    in_kbps: int = 0
    out_kbps: int = 0
    windows: tuple[RateWindow, ...] = ()

    def rates_at(self, moment: datetime.time) -> tuple[int, int]:
        for window in self.windows:
            if window.contains(moment):
                return window.in_kbps, window.out_kbps
        return self.in_kbps, self.out_kbps

    @classmethod
    def from_data(cls, name: str, data) -> Profile:
        where = f'schedule.{name}'
        if not isinstance(data, dict):
            raise MalformedSpecError(f'{where}: must be a mapping')
        unknown = sorted(set(data) - {ScheduleKey.DEFAULT.value, ScheduleKey.WINDOWS.value})
        if unknown:
            raise MalformedSpecError(f'{where}: unknown keys: {", ".join(unknown)}')

        default = data.get(ScheduleKey.DEFAULT) or {}
        if not isinstance(default, dict):
            raise MalformedSpecError(f'{where}.default: must be a mapping')
        in_kbps = _parse_kbps(default, ScheduleKey.IN, f'{where}.default') if default else 0
        out_kbps = _parse_kbps(default, ScheduleKey.OUT, f'{where}.default') if default else 0

        windows = []
        for i, item in enumerate(data.get(ScheduleKey.WINDOWS) or []):
            w_where = f'{where}.windows[{i}]'
            if not isinstance(item, dict):
                raise MalformedSpecError(f'{w_where}: must be a mapping')
            windows.append(
                RateWindow(
                    start=_parse_time(item.get(ScheduleKey.START), w_where),
                    end=_parse_time(item.get(ScheduleKey.END), w_where),
                    in_kbps=_parse_kbps(item, ScheduleKey.IN, w_where),
                    out_kbps=_parse_kbps(item, ScheduleKey.OUT, w_where),
                )
            )
        return cls(name, in_kbps, out_kbps, tuple(windows))


@dataclasses.dataclass(frozen=True)
class Schedule:
    profiles: tuple[Profile, ...] = (Profile(DEFAULT_PROFILE),)

    def profile(self, name: str) -> Profile:
        for profile in self.profiles:
            if profile.name == name:
                return profile
        known = ', '.join(p.name for p in self.profiles)
        raise MalformedSpecError(f'unknown rate profile {name!r} (known: {known})')

    @classmethod
    def from_data(cls, data: dict | None) -> Schedule:
        """Build a schedule from the ``schedule:`` mapping of a config file."""
        if not data:
            return DEFAULT_SCHEDULE
        return cls(tuple(Profile.from_data(str(name), value) for name, value in data.items()))


# Unlimited in both directions, all day.
DEFAULT_SCHEDULE = Schedule()
