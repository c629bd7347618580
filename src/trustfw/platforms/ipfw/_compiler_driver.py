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

"""CompilerDriver_ipfw: ipfw compilation and installation orchestrator.

The run() method orchestrates: registry -> policy compilation ->
either installation through ``IpfwEngine`` followed by host
configuration, or rendering a standalone shell script.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import time
from typing import TYPE_CHECKING

import trustfw
from trustfw.driver._compiler_driver import CompilerDriver
from trustfw.driver._jinja2_template import Jinja2Template
from trustfw.platforms.ipfw._engine import IpfwEngine
from trustfw.platforms.ipfw._os_configurator import OSConfigurator_ipfw
from trustfw.platforms.ipfw._print_rule import PrintRule_ipfw

if TYPE_CHECKING:
    from collections.abc import Iterable

    from trustfw.compiler import CompiledPolicy
    from trustfw.core.options import CompilerOptions
    from trustfw.driver._engine import FilterEngine


class CompilerDriver_ipfw(CompilerDriver):
    """Compiles for ipfw and installs or renders the result."""

    def __init__(
        self,
        options: CompilerOptions,
        engine: FilterEngine | None = None,
        runner=subprocess.run,
    ) -> None:
        super().__init__(options)
        self.engine: FilterEngine = engine or IpfwEngine(dry_run=options.debug, runner=runner)
        self.os_configurator = OSConfigurator_ipfw()
        self._runner = runner

    def create_os_configurator(self) -> OSConfigurator_ipfw:
        return self.os_configurator

    def run(self, tokens: Iterable[str]) -> CompiledPolicy:
        """Main entry point.

        1. Parse tokens and compile the policy
        2. Render to a file if an output file name is set, or
        3. Install through the engine, then configure the host
        """
        tokens = list(tokens)
        policy = self.compile(tokens)

        if self.file_name_setting:
            self.write_output(self.render_script(policy, tokens))
            return policy

        self.install(policy, self.engine)
        if self.options.debug:
            self.info('Debug mode, host configuration left unchanged')
        else:
            self.configure_host(policy)
        return policy

    def configure_host(self, policy: CompiledPolicy) -> None:
        """Apply sysctls and service toggles of an installed policy.

        Failures here leave the installed program in place and are
        reported as warnings.
        """
        commands = [self.os_configurator.sysctl_command(s) for s in policy.sysctls]
        commands += [self.os_configurator.service_command(t) for t in policy.service_actions]
        for cmd in commands:
            result = self._runner(cmd, capture_output=True, text=True, check=False)
            if result.returncode != 0:
                self.warning(f'{shlex.join(cmd)}: {result.stderr.strip()}')
                self.all_warnings.append(f'{shlex.join(cmd)} failed')

    def render_script(self, policy: CompiledPolicy, tokens: Iterable[str] = ()) -> str:
        """Render *policy* as a standalone shell script."""
        printer = PrintRule_ipfw()
        program = policy.program

        def _lines(argvs):
            return [shlex.join(args) for args in argvs]

        context = {
            'version': trustfw.__version__,
            'timestamp': time.strftime('%c'),
            'user': os.environ.get('USER', 'unknown'),
            'args': shlex.join(tokens),
            'warnings': list(policy.warnings),
            'flush': _lines(printer.flush()),
            'pipes': _lines(printer.pipe(p) for p in program.pipes),
            'queues': _lines(printer.queue(q) for q in program.queues),
            'disable_sets': _lines(printer.set_state(s, False) for s, _ in program.set_states),
            'rules': _lines(printer.rule(r) for r in program.install_order()),
            'enable_sets': _lines(printer.set_state(s, True) for s, on in program.set_states if on),
            'sysctls': [
                (shlex.join(self.os_configurator.sysctl_command(s)), s.comment)
                for s in policy.sysctls
            ],
            'services': _lines(
                self.os_configurator.service_command(t) for t in policy.service_actions
            ),
        }
        template = Jinja2Template('ipfw', 'script.sh.j2')
        return template.render(context)
