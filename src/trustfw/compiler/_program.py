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

"""Compiler output: the rule program and its companion artifacts.

Everything here is immutable.  The driver hands a ``CompiledPolicy`` to
the filter engine only after compilation finished without errors, so a
partial policy is never installed.
"""

from __future__ import annotations

import dataclasses

from trustfw.compiler._comp_rule import Rule
from trustfw.compiler._numbering import DEFAULT_DENY_SET


@dataclasses.dataclass(frozen=True)
class PipeConfig:
    """A dummynet pipe: bandwidth cap, queue size in slots, delay in ms."""

    pipe_id: int
    bandwidth: str | None = None
    queue_slots: int | None = None
    delay_ms: int | None = None


@dataclasses.dataclass(frozen=True)
class QueueConfig:
    """A weighted queue nested in a pipe."""

    queue_id: int
    pipe_id: int
    weight: int


@dataclasses.dataclass(frozen=True)
class ServiceToggle:
    """Enable or disable an OS service once the program is installed."""

    service: str
    enable: bool


@dataclasses.dataclass(frozen=True)
class SysctlSetting:
    name: str
    value: str | int
    comment: str = ''


@dataclasses.dataclass(frozen=True)
class RuleProgram:
    """Rules in evaluation order, plus the pipes, queues and set states."""

    rules: tuple[Rule, ...] = ()
    pipes: tuple[PipeConfig, ...] = ()
    queues: tuple[QueueConfig, ...] = ()
    set_states: tuple[tuple[int, bool], ...] = ()

    def rules_in_set(self, set_id: int) -> tuple[Rule, ...]:
        return tuple(r for r in self.rules if r.set_id == set_id)

    def install_order(self) -> tuple[Rule, ...]:
        """Rules in the order they are added to a running filter.

        ipfw has no atomic swap and its built-in last rule lets everything
        through, so the default-deny set goes in first, catch-all first.  A
        half-installed program then denies too much rather than allowing
        too much.
        """
        closing = tuple(reversed(self.rules_in_set(DEFAULT_DENY_SET)))
        return closing + tuple(r for r in self.rules if r.set_id != DEFAULT_DENY_SET)

    def rule(self, number: int) -> Rule | None:
        for r in self.rules:
            if r.number == number:
                return r
        return None

    @property
    def set_ids(self) -> tuple[int, ...]:
        return tuple(sorted({r.set_id for r in self.rules}))


@dataclasses.dataclass(frozen=True)
class InterfaceShaping:
    """Pipes and queues allocated for one shaped interface."""

    index: int
    interface: str
    inbound_pipe: PipeConfig
    outbound_pipe: PipeConfig
    high_queue: QueueConfig
    medium_queue: QueueConfig
    low_queue: QueueConfig

    @property
    def queues(self) -> tuple[QueueConfig, QueueConfig, QueueConfig]:
        return (self.high_queue, self.medium_queue, self.low_queue)


@dataclasses.dataclass(frozen=True)
class ShapingPlan:
    interfaces: tuple[InterfaceShaping, ...] = ()

    def for_index(self, index: int) -> InterfaceShaping | None:
        for shaping in self.interfaces:
            if shaping.index == index:
                return shaping
        return None

    @property
    def pipes(self) -> tuple[PipeConfig, ...]:
        return tuple(
            pipe
            for shaping in self.interfaces
            for pipe in (shaping.inbound_pipe, shaping.outbound_pipe)
        )

    @property
    def queues(self) -> tuple[QueueConfig, ...]:
        return tuple(q for shaping in self.interfaces for q in shaping.queues)


@dataclasses.dataclass(frozen=True)
class CompiledPolicy:
    program: RuleProgram
    shaping: ShapingPlan
    service_actions: tuple[ServiceToggle, ...] = ()
    sysctls: tuple[SysctlSetting, ...] = ()
    warnings: tuple[str, ...] = ()
