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

"""Policy compiler: rule model, numbering table and processor pipeline."""

from ._base import BaseCompiler
from ._comp_rule import (
    ANY,
    ME,
    Action,
    Direction,
    Endpoint,
    Match,
    ResponseKind,
    Rule,
    endpoint,
)
from ._program import (
    CompiledPolicy,
    InterfaceShaping,
    PipeConfig,
    QueueConfig,
    RuleProgram,
    ServiceToggle,
    ShapingPlan,
    SysctlSetting,
)
from ._numbering import BANDS, RULE_BANDS, Purpose, RuleBand, rule_number
from ._rule_processor import BasicRuleProcessor, Debug
from ._compiler import Compiler
from ._os_configurator import OSConfigurator
from ._shaping import ShapingAllocator
from ._policy_compiler import MDNS_SERVICE, PolicyCompiler

__all__ = [
    'ANY',
    'BANDS',
    'MDNS_SERVICE',
    'ME',
    'RULE_BANDS',
    'Action',
    'BaseCompiler',
    'BasicRuleProcessor',
    'CompiledPolicy',
    'Compiler',
    'Debug',
    'Direction',
    'Endpoint',
    'InterfaceShaping',
    'Match',
    'OSConfigurator',
    'PipeConfig',
    'PolicyCompiler',
    'Purpose',
    'QueueConfig',
    'ResponseKind',
    'Rule',
    'RuleBand',
    'RuleProgram',
    'ServiceToggle',
    'ShapingAllocator',
    'ShapingPlan',
    'SysctlSetting',
    'endpoint',
    'rule_number',
]
