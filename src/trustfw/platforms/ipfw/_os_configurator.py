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

"""OSConfigurator_ipfw: kernel tuning and launchd services on macOS."""

from __future__ import annotations

from typing import TYPE_CHECKING

from trustfw.compiler._os_configurator import OSConfigurator
from trustfw.compiler._program import SysctlSetting

if TYPE_CHECKING:
    from trustfw.compiler._program import ServiceToggle
    from trustfw.core.options import CompilerOptions

LAUNCH_DAEMONS = '/System/Library/LaunchDaemons'

SERVICE_PLISTS = {
    'mDNSResponder': f'{LAUNCH_DAEMONS}/com.apple.mDNSResponder.plist',
}

# Applied on every run, independent of the options.
BASE_SYSCTLS = (
    SysctlSetting('net.inet.ip.fw.verbose', 0),
    SysctlSetting('net.inet.ip.fw.one_pass', 0, 'reinject packets after a pipe'),
    SysctlSetting('net.inet.ip.check_interface', 1, 'packets must match their interface'),
    SysctlSetting('net.inet.tcp.sendspace', 16000),
    SysctlSetting('net.inet.tcp.recvspace', 16000),
    SysctlSetting('net.inet.udp.recvspace', 42080),
    SysctlSetting('net.inet.raw.recvspace', 8192),
    SysctlSetting('net.local.dgram.maxdgram', 4196),
    SysctlSetting('net.local.stream.recvspace', 16000),
    SysctlSetting('net.local.stream.sendspace', 16000),
    SysctlSetting('net.local.dgram.recvspace', 8000),
    SysctlSetting('net.inet.tcp.rfc1323', 1, 'RFC1323 high speed optimization'),
    SysctlSetting('net.inet.icmp.icmplim', 1024),
    SysctlSetting('net.inet.icmp.drop_redirect', 1, 'stop redirects'),
    SysctlSetting('net.inet.icmp.log_redirect', 1),
    SysctlSetting('net.inet.ip.redirect', 0),
    SysctlSetting('net.inet.ip.sourceroute', 0, 'stop source routing'),
    SysctlSetting('net.inet.ip.accept_sourceroute', 0),
    SysctlSetting('net.inet.icmp.bmcastecho', 0, 'no broadcast echo response'),
    SysctlSetting('net.inet.icmp.maskrepl', 0),
    SysctlSetting('net.inet.tcp.delayed_ack', 1),
    SysctlSetting('net.inet.tcp.strict_rfc1948', 1, 'strong TCP sequencing'),
    SysctlSetting('kern.ipc.somaxconn', 1024, 'socket queue defense against SYN floods'),
    SysctlSetting('kern.ipc.maxsockbuf', 523288),
    SysctlSetting('net.link.ether.inet.max_age', 1200, 'ARP cleanup'),
)


class OSConfigurator_ipfw(OSConfigurator):
    """Kernel parameters via sysctl(8), services via launchctl(1)."""

    def kernel_settings(self, options: CompilerOptions) -> tuple[SysctlSetting, ...]:
        if options.blackhole:
            blackhole = (
                SysctlSetting('net.inet.tcp.blackhole', 2, 'blackhole against stealth scans'),
                SysctlSetting('net.inet.udp.blackhole', 1),
            )
        else:
            blackhole = (
                SysctlSetting('net.inet.tcp.blackhole', 0),
                SysctlSetting('net.inet.udp.blackhole', 0),
            )
        forwarding = SysctlSetting('net.inet.ip.forwarding', 1 if options.router else 0)
        return BASE_SYSCTLS + blackhole + (forwarding,)

    def sysctl_command(self, setting: SysctlSetting) -> list[str]:
        return ['sysctl', '-w', f'{setting.name}={setting.value}']

    def service_command(self, toggle: ServiceToggle) -> list[str]:
        plist = SERVICE_PLISTS.get(toggle.service)
        if plist is None:
            raise KeyError(f'unknown service {toggle.service!r}')
        if toggle.enable:
            return ['launchctl', 'load', '-w', plist]
        return ['launchctl', 'unload', plist]
