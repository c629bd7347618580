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

"""IpfwEngine: runs rule programs through the ipfw command line tool."""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
import sys
from typing import TYPE_CHECKING

from trustfw.core import rate_to_bits
from trustfw.driver._engine import EngineError, FilterEngine
from trustfw.platforms.ipfw._print_rule import PrintRule_ipfw

if TYPE_CHECKING:
    from trustfw.compiler import PipeConfig, QueueConfig, RuleProgram

logger = logging.getLogger(__name__)

IPFW = '/sbin/ipfw'

# 00101: 504.000 Kbit/s    0 ms   50 sl. 0 queues (1 buckets) droptail
_PIPE_SHOW_RE = re.compile(
    r'^0*(?P<pipe_id>\d+):\s+'
    r'(?:(?P<unlimited>unlimited)|(?P<rate>[\d.]+\s*[KkMm]?(?:bit|Byte)/s))'
)


def parse_pipe_show(output: str, pipe_id: int) -> int | None:
    """Return the bandwidth of *pipe_id* in bit/s from ``ipfw pipe show``."""
    for line in output.splitlines():
        m = _PIPE_SHOW_RE.match(line.strip())
        if m is None or int(m.group('pipe_id')) != pipe_id:
            continue
        if m.group('unlimited'):
            return 0
        return rate_to_bits(m.group('rate'))
    return None


class IpfwEngine(FilterEngine):
    """Apply programs with ``/sbin/ipfw -q``.

    With *dry_run* set, commands that would change the firewall are
    printed instead of executed.  Read-only queries still run.
    """

    def __init__(
        self,
        executable: str = IPFW,
        dry_run: bool = False,
        runner=subprocess.run,
        out=None,
    ) -> None:
        self.executable = executable
        self.dry_run = dry_run
        self.printer = PrintRule_ipfw()
        self._runner = runner
        self._out = out

    def _execute(self, args: list[str]) -> str:
        cmd = [self.executable, *args]
        logger.debug('Running %s', shlex.join(cmd))
        try:
            result = self._runner(cmd, capture_output=True, text=True, check=False)
        except OSError as e:
            raise EngineError(f'{self.executable}: {e.strerror or e}') from e
        if result.returncode != 0:
            raise EngineError(
                result.stderr.strip() or f'{shlex.join(cmd)} exited with status {result.returncode}'
            )
        return result.stdout

    def run(self, args: list[str]) -> None:
        """Run one modifying ipfw command."""
        if self.dry_run:
            print(shlex.join(['ipfw', '-q', *args]), file=self._out or sys.stdout)
            return
        self._execute(['-q', *args])

    def flush(self) -> None:
        for args in self.printer.flush():
            self.run(args)

    def install(self, program: RuleProgram) -> None:
        for rule in program.install_order():
            self.run(self.printer.rule(rule))

    def configure_pipe(self, pipe: PipeConfig) -> None:
        self.run(self.printer.pipe(pipe))

    def configure_queue(self, queue: QueueConfig) -> None:
        self.run(self.printer.queue(queue))

    def set_enabled(self, set_id: int, enabled: bool) -> None:
        self.run(self.printer.set_state(set_id, enabled))

    def pipe_bandwidth(self, pipe_id: int) -> int | None:
        output = self._execute(['pipe', 'show'])
        return parse_pipe_show(output, pipe_id)
