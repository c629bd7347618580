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

"""Filter engine interface.

The compiler never talks to a packet filter.  Drivers hand a finished
``RuleProgram`` to a ``FilterEngine``, the only place that knows how to
reach the kernel.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trustfw.compiler import PipeConfig, QueueConfig, RuleProgram


class EngineError(RuntimeError):
    """The packet filter rejected a command; the message is its stderr."""


class FilterEngine:
    """Contact points with the underlying packet filter."""

    def flush(self) -> None:
        """Remove all rules, pipes and queues."""
        raise NotImplementedError

    def install(self, program: RuleProgram) -> None:
        """Add every rule of *program*, in ``program.install_order()``."""
        raise NotImplementedError

    def configure_pipe(self, pipe: PipeConfig) -> None:
        raise NotImplementedError

    def configure_queue(self, queue: QueueConfig) -> None:
        raise NotImplementedError

    def set_enabled(self, set_id: int, enabled: bool) -> None:
        raise NotImplementedError

    def pipe_bandwidth(self, pipe_id: int) -> int | None:
        """Return the bandwidth of a pipe in bit/s, 0 if unlimited.

        Returns None if the pipe does not exist.
        """
        raise NotImplementedError
