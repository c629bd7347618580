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

"""BaseCompiler: error and warning collection shared by compiler and drivers.

Messages tied to a rule are prefixed with the rule's label, so a
numbering collision reads ``Rule 2000 (check state): ...``.  Aborting
stops nothing by itself; ``PolicyCompiler.build`` checks the flag after
the processor chain has run and refuses to hand out the program.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class BaseCompiler:
    """Collects errors and warnings and carries the abort flag."""

    def __init__(self) -> None:
        self._errors: list[str] = []
        self._warnings: list[str] = []
        self._aborted: bool = False

    @staticmethod
    def _format(rule_or_msg, msg: str | None) -> str:
        if msg is None:
            return str(rule_or_msg)
        label = getattr(rule_or_msg, 'label', '')
        return f'Rule {label}: {msg}' if label else msg

    def error(self, rule_or_msg, msg: str | None = None) -> None:
        """Record an error, optionally associated with a rule."""
        text = self._format(rule_or_msg, msg)
        self._errors.append(text)
        logger.error(text)

    def warning(self, rule_or_msg, msg: str | None = None) -> None:
        """Record a warning, optionally associated with a rule."""
        text = self._format(rule_or_msg, msg)
        self._warnings.append(text)
        logger.warning(text)

    def info(self, msg: str) -> None:
        logger.info(msg)

    def debug(self, msg: str) -> None:
        logger.debug(msg)

    def get_errors(self) -> list[str]:
        return list(self._errors)

    def get_warnings(self) -> list[str]:
        return list(self._warnings)

    def abort(self, rule_or_msg=None, msg: str | None = None) -> None:
        """Abort compilation, optionally recording an error."""
        self._aborted = True
        if rule_or_msg is not None:
            self.error(rule_or_msg, msg)

    def is_aborted(self) -> bool:
        return self._aborted
