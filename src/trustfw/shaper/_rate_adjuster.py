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

"""RateAdjuster: re-tune the pipes of one shaped interface at runtime.

Pipes are addressed by interface index alone, using the same numbering
the compiler allocated them with.  Concurrent adjustments of the same
index are not coordinated here; callers serialize them.
"""

from __future__ import annotations

import datetime
import logging
import os
from typing import TYPE_CHECKING

from trustfw.compiler._numbering import inbound_pipe, outbound_pipe
from trustfw.compiler._program import PipeConfig
from trustfw.core import MAX_INTERFACES, IndexOutOfRangeError, kbps, rate_to_bits
from trustfw.shaper._schedule import DEFAULT_PROFILE, DEFAULT_SCHEDULE

if TYPE_CHECKING:
    from collections.abc import Callable

    from trustfw.driver import FilterEngine
    from trustfw.shaper._schedule import Schedule

logger = logging.getLogger(__name__)

PROFILE_ENV = 'TRUSTFW_PROFILE'


class RateAdjuster:
    """Set or schedule the bandwidth of the pipes of one interface."""

    def __init__(
        self,
        engine: FilterEngine,
        schedule: Schedule = DEFAULT_SCHEDULE,
        profile: str | None = None,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        self.engine = engine
        self.schedule = schedule
        self.profile_name = profile or os.environ.get(PROFILE_ENV) or DEFAULT_PROFILE
        self.clock = clock

    def adjust(
        self,
        index: int,
        in_kbps: int | None = None,
        out_kbps: int | None = None,
    ) -> bool:
        """Reconfigure the pipes of interface *index*.

        With both rates given they are applied as is.  Without rates the
        schedule profile picks them for the current time of day, and the
        pipes are only touched if the inbound bandwidth has to change.
        Returns True if the pipes were reconfigured.

        Raises:
            ValueError: only one of the two rates was given.
            IndexOutOfRangeError: no inbound pipe exists for *index*.
        """
        if (in_kbps is None) != (out_kbps is None):
            raise ValueError('give both inbound and outbound rate, or neither')
        if not 0 <= index < MAX_INTERFACES:
            raise IndexOutOfRangeError(f'interface index {index} outside 0..{MAX_INTERFACES - 1}')

        in_pipe = inbound_pipe(index)
        current = self.engine.pipe_bandwidth(in_pipe)
        if current is None:
            raise IndexOutOfRangeError(f'interface {index} has no pipe {in_pipe}')

        if in_kbps is None:
            profile = self.schedule.profile(self.profile_name)
            in_kbps, out_kbps = profile.rates_at(self.clock().time())
            if rate_to_bits(kbps(in_kbps)) == current:
                logger.info(
                    'Interface %d: inbound rate already %s (profile %s)',
                    index,
                    kbps(in_kbps),
                    profile.name,
                )
                return False

        logger.info('Interface %d: in %s, out %s', index, kbps(in_kbps), kbps(out_kbps))
        self.engine.configure_pipe(PipeConfig(in_pipe, bandwidth=kbps(in_kbps)))
        self.engine.configure_pipe(PipeConfig(outbound_pipe(index), bandwidth=kbps(out_kbps)))
        return True
