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

"""OSConfigurator base class.

Produces the host settings that go with a rule program: kernel
parameters and the commands that start or stop services.  Nothing here
touches the system; the driver applies the results once the program is
installed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from trustfw.compiler._base import BaseCompiler

if TYPE_CHECKING:
    from trustfw.compiler._program import ServiceToggle, SysctlSetting
    from trustfw.core.options import CompilerOptions


class OSConfigurator(BaseCompiler):
    """Generates OS-specific host configuration.

    Platform-specific subclasses return kernel parameter settings and
    the command lines for service toggles.
    """

    def kernel_settings(self, options: CompilerOptions) -> tuple[SysctlSetting, ...]:
        return ()

    def sysctl_command(self, setting: SysctlSetting) -> list[str]:
        raise NotImplementedError

    def service_command(self, toggle: ServiceToggle) -> list[str]:
        raise NotImplementedError
