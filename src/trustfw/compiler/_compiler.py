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

"""Compiler base class managing the rule processor pipeline.

Compilation happens in two stages.  The platform-neutral passes of a
concrete compiler *emit* rules into ``self.rules``; the processor chain
then rewrites, checks and orders them and stores the result in
``self.program_rules``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from trustfw.compiler._base import BaseCompiler
from trustfw.compiler._comp_rule import Action, Match, ResponseKind, Rule
from trustfw.compiler._numbering import BANDS, Purpose
from trustfw.compiler._rule_processor import BasicRuleProcessor, Debug

if TYPE_CHECKING:
    from trustfw.core import InterfaceRegistry
    from trustfw.core.options import CompilerOptions


class Compiler(BaseCompiler):
    """Base compiler. Manages the rule processor pipeline."""

    def __init__(
        self,
        registry: InterfaceRegistry,
        options: CompilerOptions,
    ) -> None:
        super().__init__()
        self.registry: InterfaceRegistry = registry
        self.options: CompilerOptions = options

        self.rules: list[Rule] = []
        self.program_rules: list[Rule] = []

        self.rule_processors: list[BasicRuleProcessor] = []
        self.rule_debug_on: bool = False

    # -- Rule emission --

    def emit(
        self,
        purpose: Purpose,
        action: Action,
        match: Match,
        *,
        index: int | None = None,
        log: bool = False,
        response: ResponseKind | None = None,
        target: int | str | None = None,
    ) -> Rule:
        """Append a rule numbered from the band reserved for *purpose*."""
        band = BANDS[purpose]
        rule = Rule(
            set_id=band.set_id,
            number=band.number(index),
            action=action,
            match=match,
            log=log,
            response=response,
            target=target,
            purpose=purpose.value,
        )
        self.rules.append(rule)
        return rule

    # -- Processor chain --

    def add(self, rp: BasicRuleProcessor) -> None:
        """Add a processor to the chain.

        If debugging is ON (rule_debug_on), also adds a Debug processor
        after it, except after the terminal StoreRules processor.
        """
        from trustfw.compiler.processors._generic import StoreRules

        self.rule_processors.append(rp)
        if self.rule_debug_on and not isinstance(rp, StoreRules):
            self.rule_processors.append(Debug())

    def run_rule_processors(self) -> None:
        """Link and execute the processor pipeline."""
        if not self.rule_processors:
            return

        # Set context for all processors and link the chain
        self.rule_processors[0].set_context(self)
        for i in range(1, len(self.rule_processors)):
            self.rule_processors[i].set_context(self)
            self.rule_processors[i].set_data_source(self.rule_processors[i - 1])

        # Execute: call process_next() on the LAST processor
        last = self.rule_processors[-1]
        while last.process_next():
            pass

    # -- Compilation entry point --

    def compile(self) -> None:
        """Override in subclasses to emit rules and add processors."""
        pass

    def debug_print_rule(self, rule: Rule) -> str:
        """Basic debug output for a rule. Override for engine syntax."""
        return f'{rule.label} set {rule.set_id} {rule.action} {rule.match}'
