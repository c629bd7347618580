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

"""Runtime bandwidth re-tuning of shaped interfaces."""

from ._schedule import DEFAULT_SCHEDULE, Profile, RateWindow, Schedule
from ._rate_adjuster import PROFILE_ENV, RateAdjuster

__all__ = [
    'DEFAULT_SCHEDULE',
    'PROFILE_ENV',
    'Profile',
    'RateAdjuster',
    'RateWindow',
    'Schedule',
]
