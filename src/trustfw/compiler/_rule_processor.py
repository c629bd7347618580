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

"""Rule processor chain.

``PolicyCompiler`` emits every rule of the program first and then pulls
them through a fixed chain::

    Begin -> StealthResponses -> CheckRuleNumbers -> SortByRuleNumber -> StoreRules

Each processor pulls from the one before it.  Processors that need the
whole program at once (the numbering check and the sort) buffer it with
``slurp()``; the others pass rules on one at a time.  With
``rule_debug_on`` set, ``Compiler.add`` puts a ``Debug`` processor after
every stage, which logs the program as that stage left it.
"""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trustfw.compiler._comp_rule import Rule
    from trustfw.compiler._compiler import Compiler


class BasicRuleProcessor:
    """One stage of the chain.

    Subclasses implement ``process_next()``: take rules from
    ``prev_processor``, put results on ``tmp_queue`` and return False once
    the upstream is exhausted.
    """

    def __init__(self, name: str = '') -> None:
        self.compiler: Compiler | None = None
        self.prev_processor: BasicRuleProcessor | None = None
        self.tmp_queue: deque[Rule] = deque()
        self.name: str = name
        self._slurped: bool = False

    def set_context(self, compiler: Compiler) -> None:
        self.compiler = compiler

    def set_data_source(self, src: BasicRuleProcessor) -> None:
        self.prev_processor = src

    def get_next_rule(self) -> Rule | None:
        """Return the next rule of this stage, or None when done."""
        while not self.tmp_queue and self.process_next():
            pass
        if self.tmp_queue:
            return self.tmp_queue.popleft()
        return None

    def process_next(self) -> bool:
        raise NotImplementedError

    def slurp(self) -> bool:
        """Move the whole upstream program into ``tmp_queue``.

        Only the first call pulls; it returns True if any rule arrived.
        Later calls return False, which ends the stage.
        """
        if self._slurped:
            return False
        assert self.prev_processor is not None
        rule = self.prev_processor.get_next_rule()
        while rule is not None:
            self.tmp_queue.append(rule)
            rule = self.prev_processor.get_next_rule()
        self._slurped = True
        return len(self.tmp_queue) > 0


class Debug(BasicRuleProcessor):
    """Log the program as the previous stage left it, then pass it on."""

    def process_next(self) -> bool:
        assert self.compiler is not None
        assert self.prev_processor is not None

        self.slurp()
        if not self.tmp_queue:
            return False

        if self.compiler.rule_debug_on:
            stage = self.prev_processor.name
            self.compiler.debug(f'--- {stage} ({len(self.tmp_queue)} rules) ' + '-' * 40)
            for rule in self.tmp_queue:
                self.compiler.debug(self.compiler.debug_print_rule(rule))

        return True
