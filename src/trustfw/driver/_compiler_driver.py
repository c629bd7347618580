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

"""CompilerDriver base class: orchestrates compilation and installation.

Handles registry construction, running the policy compiler, handing
the result to a filter engine, and output file management.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from trustfw.compiler._base import BaseCompiler
from trustfw.compiler._policy_compiler import PolicyCompiler
from trustfw.core import InterfaceRegistry
from trustfw.core.options import COMPILER_DEFAULTS
from trustfw.driver._engine import EngineError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from trustfw.compiler import CompiledPolicy, OSConfigurator
    from trustfw.core.options import CompilerOptions
    from trustfw.driver._engine import FilterEngine

logger = logging.getLogger(__name__)


class CompilerDriver(BaseCompiler):
    """Orchestrates the full compilation process.

    Handles:
    - Interface registry construction
    - Policy compilation
    - Installation through a filter engine, failing closed
    - Output file management
    """

    def __init__(self, options: CompilerOptions = COMPILER_DEFAULTS) -> None:
        super().__init__()
        self.options: CompilerOptions = options
        self.verbose: int = 0
        self.file_name_setting: str = ''

        self.registry: InterfaceRegistry | None = None
        self.policy: CompiledPolicy | None = None

        # Output
        self.all_errors: list[str] = []
        self.all_warnings: list[str] = []

    def create_os_configurator(self) -> OSConfigurator | None:
        """Platform-specific host configuration. Override in subclasses."""
        return None

    def compile(self, tokens: Iterable[str]) -> CompiledPolicy:
        """Parse *tokens*, build the registry and compile the policy.

        Any parse error propagates before a single rule is emitted.
        """
        self.registry = InterfaceRegistry.from_tokens(tokens)
        compiler = PolicyCompiler(self.registry, self.options, self.create_os_configurator())
        compiler.rule_debug_on = self.verbose > 1
        try:
            self.policy = compiler.build()
        finally:
            self.all_errors.extend(compiler.get_errors())
            self.all_warnings.extend(compiler.get_warnings())
        return self.policy

    def install(self, policy: CompiledPolicy, engine: FilterEngine) -> None:
        """Replace the running program with *policy*.

        Order: flush, pipes, queues, install, set toggles.  Toggleable
        sets stay disabled while the rules go in, and the engine adds the
        default-deny set before any allow rule, so a half-installed
        program denies rather than allows.
        If the engine rejects anything, everything is flushed again and
        the error re-raised: a partial program is never left behind.
        """
        program = policy.program
        try:
            engine.flush()
            for pipe in program.pipes:
                engine.configure_pipe(pipe)
            for queue in program.queues:
                engine.configure_queue(queue)
            for set_id, _ in program.set_states:
                engine.set_enabled(set_id, False)
            engine.install(program)
            for set_id, enabled in program.set_states:
                if enabled:
                    engine.set_enabled(set_id, True)
        except EngineError as e:
            self.error(f'Installation failed, flushing: {e}')
            self.all_errors.append(str(e))
            try:
                engine.flush()
            except EngineError as flush_error:
                self.error(f'Flush after failed installation failed: {flush_error}')
            raise

    def write_output(self, text: str) -> str:
        """Write a rendered script and return its path."""
        path = Path(self.file_name_setting or 'trustfw.sh')
        path.write_text(text)
        path.chmod(0o755)
        self.info(f'Wrote {path}')
        return str(path)

    def info(self, msg: str) -> None:
        """Print informational message."""
        if self.verbose:
            logger.info(msg)
