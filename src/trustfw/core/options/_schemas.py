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

"""Typed option schemas with shared defaults.

These frozen dataclasses are the single source of truth for what the
compiler can be told besides the interface tokens.  They are built once
per invocation (from YAML and/or the command line) and never mutated;
``with_ports()`` returns a new instance.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass

from trustfw.core._descriptor import ANY, parse_network
from trustfw.core._errors import MalformedSpecError
from trustfw.core.options._keys import PortOption

_PORT_RE = re.compile(r'^(\d+)(?:-(\d+))?$')
_ROUTER_RE = re.compile(r'^(?P<external>[^,@\s]+),(?P<client>[^,@\s]+)@(?P<net>\S+)$')


def _check_port(value: str, text: str) -> int:
    port = int(value)
    if not 0 < port <= 65535:
        raise MalformedSpecError(f'port {port} out of range in {text!r}')
    return port


def parse_port_list(text: str) -> tuple[str, ...]:
    """Split a ``PORT[,PORT-PORT...]`` list into validated entries."""
    ports = []
    for item in text.split(','):
        item = item.strip()
        m = _PORT_RE.match(item)
        if m is None:
            raise MalformedSpecError(f'invalid port {item!r} in {text!r}')
        low = _check_port(m.group(1), text)
        if m.group(2) is not None and _check_port(m.group(2), text) < low:
            raise MalformedSpecError(f'invalid port range {item!r} in {text!r}')
        ports.append(item)
    return tuple(ports)


@dataclass(frozen=True)
class RouterConfig:
    """This host routes traffic from *client_interface* over *external_interface*."""

    external_interface: str
    client_interface: str
    client_network: str

    @classmethod
    def parse(cls, text: str) -> RouterConfig:
        """Parse ``EXTERNAL,CLIENT@NET``, e.g. ``en0,en1@192.168.2.0/24``."""
        m = _ROUTER_RE.match(text.strip())
        if m is None:
            raise MalformedSpecError(
                f'invalid router spec {text!r}, expected EXTERNAL,CLIENT@NET'
            )
        network = parse_network(m.group('net'))
        if network == ANY:
            raise MalformedSpecError(f'router client network must be bounded: {text!r}')
        return cls(m.group('external'), m.group('client'), network)


@dataclass(frozen=True)
class PortLists:
    """Operator-opened inbound ports, by trust tier and protocol."""

    trusted_tcp: tuple[str, ...] = ()
    trusted_udp: tuple[str, ...] = ()
    local_tcp: tuple[str, ...] = ()
    local_udp: tuple[str, ...] = ()
    public_tcp: tuple[str, ...] = ()
    public_udp: tuple[str, ...] = ()

    def with_ports(self, option: PortOption | str, text: str) -> PortLists:
        """Return a copy with the ports in *text* appended to one list."""
        key = PortOption(option)
        current = getattr(self, key.value)
        return dataclasses.replace(self, **{key.value: current + parse_port_list(text)})


@dataclass(frozen=True)
class CompilerOptions:
    """Global switches of one compiler invocation.

    ``debug``
        Print the commands instead of changing the system.
    ``log_all``
        Log every rejected packet, not just the suspicious ones.
    ``stealth``
        Silently drop instead of answering with TCP resets or ICMP
        unreachables, everywhere.
    ``blackhole``
        Configure the kernel tcp/udp blackhole against stealth scans.
    ``router``
        Route between an external and a client interface.
    """

    debug: bool = False
    log_all: bool = False
    stealth: bool = False
    blackhole: bool = False
    router: RouterConfig | None = None
    ports: PortLists = dataclasses.field(default_factory=PortLists)


COMPILER_DEFAULTS = CompilerOptions()
