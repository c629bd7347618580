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

"""Generic rule processors shared across all compilers."""

from __future__ import annotations

from trustfw.compiler._comp_rule import Action, ResponseKind
from trustfw.compiler._numbering import BANDS, Purpose
from trustfw.compiler._rule_processor import BasicRuleProcessor


class Begin(BasicRuleProcessor):
    """Injects the compiler's emitted rules into the pipeline."""

    def __init__(self, name: str = 'Begin') -> None:
        super().__init__(name)
        self._init = False

    def process_next(self) -> bool:
        if not self._init:
            self.tmp_queue.extend(self.compiler.rules)
            self._init = True
            return bool(self.tmp_queue)
        return False


class StealthResponses(BasicRuleProcessor):
    """In stealth mode, silently drop wherever a rule would answer.

    Only the response kind of REJECT rules changes; matches, numbers and
    all other actions are passed through untouched.
    """

    def __init__(self, name: str = 'stealth responses') -> None:
        super().__init__(name)

    def process_next(self) -> bool:
        rule = self.prev_processor.get_next_rule()
        if rule is None:
            return False
        if self.compiler.options.stealth and rule.action == Action.REJECT:
            rule.response = ResponseKind.DROP
        self.tmp_queue.append(rule)
        return True


class CheckRuleNumbers(BasicRuleProcessor):
    """Verify every rule sits in its band and no number is used twice.

    Aborts the compiler on the first violation; a program with a
    colliding rule number would silently shadow one of the two rules.
    """

    def __init__(self, name: str = 'check rule numbers') -> None:
        super().__init__(name)

    def process_next(self) -> bool:
        if not self.slurp():
            return False

        seen: dict[int, str] = {}
        for rule in self.tmp_queue:
            band = BANDS.get(Purpose(rule.purpose)) if rule.purpose else None
            if band is None:
                self.compiler.abort(rule, 'rule has no number band')
                continue
            if rule.set_id != band.set_id or not band.base <= rule.number <= band.last:
                self.compiler.abort(
                    rule,
                    f'number {rule.number} set {rule.set_id} outside band '
                    f'{band.base}-{band.last} set {band.set_id}',
                )
            if rule.number in seen:
                self.compiler.abort(
                    rule, f'rule number {rule.number} already used by {seen[rule.number]}'
                )
            seen[rule.number] = rule.label
        return True


class SortByRuleNumber(BasicRuleProcessor):
    """Order the whole program by rule number (evaluation order)."""

    def __init__(self, name: str = 'sort by rule number') -> None:
        super().__init__(name)

    def process_next(self) -> bool:
        if not self.slurp():
            return False
        ordered = sorted(self.tmp_queue, key=lambda r: r.number)
        self.tmp_queue.clear()
        self.tmp_queue.extend(ordered)
        return True


class StoreRules(BasicRuleProcessor):
    """Terminal processor: collect the final rules on the compiler."""

    def __init__(self, name: str = 'store rules') -> None:
        super().__init__(name)

    def process_next(self) -> bool:
        rule = self.prev_processor.get_next_rule()
        if rule is None:
            return False
        self.compiler.program_rules.append(rule)
        return True
