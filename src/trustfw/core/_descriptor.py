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

"""Interface descriptors and the interface token grammar.

One positional command line argument describes one interface, the
network behind it and how far that network is trusted::

    en1{0,0}                      shaped Internet uplink on en1
    en0:192.168.0.0/24            local network on en0
    en0::192.168.0.0/16           trusted network on en0
    en0::192.168.0.0:255.255.0.0  same, netmask notation
    en0+mac::192.168.0.0/16       trusted Mac network on en0
    en0+mac+win::192.168.0.0/16   trusted mixed network on en0
"""

from __future__ import annotations

import dataclasses
import ipaddress
import re
from enum import StrEnum

from ._errors import MalformedRateError, MalformedSpecError
from ._rates import parse_rate

ANY = 'any'

_NAME_RE = re.compile(r'^[A-Za-z0-9_.*-]+$')
_BANDWIDTH_RE = re.compile(r'^(?P<name>[^{}]*)\{(?P<inbw>[^{},]*),(?P<outbw>[^{},]*)\}$')


class OsType(StrEnum):
    """Kind of hosts expected on a network, selects service rule sets."""

    UNKNOWN = 'unknown'
    MAC = 'mac'
    WINDOWS = 'win'
    BOTH = 'both'

    @property
    def includes_mac(self) -> bool:
        return self in (OsType.MAC, OsType.BOTH)

    @property
    def includes_windows(self) -> bool:
        return self in (OsType.WINDOWS, OsType.BOTH)


@dataclasses.dataclass(frozen=True)
class InterfaceDescriptor:
    """Parsed form of one interface token."""

    name: str
    network: str = ANY
    trusted: bool = False
    os_type: OsType = OsType.UNKNOWN
    inbound_rate: str | None = None
    outbound_rate: str | None = None
    index: int = -1

    @property
    def bounded(self) -> bool:
        """True if traffic on this interface is restricted to a network."""
        return self.network != ANY

    @property
    def shaped(self) -> bool:
        return self.inbound_rate is not None

    def __str__(self) -> str:
        text = f'{self.name} {self.network} trusted? {str(self.trusted).lower()} type {self.os_type}'
        if self.shaped:
            text += f' (in {self.inbound_rate} out {self.outbound_rate})'
        return text


def _parse_os_type(markers: list[str], token: str) -> OsType:
    mac = win = False
    for marker in markers:
        if marker == 'mac':
            mac = True
        elif marker == 'win':
            win = True
        else:
            raise MalformedSpecError(f'unknown network type +{marker} in {token!r}')
    if mac and win:
        return OsType.BOTH
    if mac:
        return OsType.MAC
    if win:
        return OsType.WINDOWS
    return OsType.UNKNOWN


def parse_network(text: str) -> str:
    """Normalize a network given as CIDR, ``addr:mask`` or ``any``."""
    if not text or text == ANY:
        return ANY
    candidate = text.replace(':', '/', 1) if ':' in text else text
    try:
        return str(ipaddress.IPv4Network(candidate, strict=False))
    except ValueError as e:
        raise MalformedSpecError(f'invalid network {text!r}: {e}') from e


def parse_interface_spec(token: str) -> InterfaceDescriptor:
    """Parse one interface token into an (unregistered) descriptor.

    Raises:
        MalformedSpecError: empty or invalid interface name, unknown
            ``+type`` marker, or invalid network.
        MalformedRateError: malformed ``{in,out}`` suffix.
    """
    token = token.strip()
    head, sep, tail = token.partition(':')
    name_part, *markers = head.split('+')

    inbw = outbw = None
    if '{' in name_part or '}' in name_part:
        m = _BANDWIDTH_RE.match(name_part)
        if m is None:
            raise MalformedRateError(f'malformed bandwidth suffix in {token!r}')
        name_part = m.group('name')
        inbw = parse_rate(m.group('inbw'))
        outbw = parse_rate(m.group('outbw'))

    if not name_part:
        raise MalformedSpecError(f'missing interface name in {token!r}')
    if not _NAME_RE.match(name_part):
        raise MalformedSpecError(f'invalid interface name {name_part!r} in {token!r}')

    os_type = _parse_os_type(markers, token)

    trusted = False
    network = ANY
    if sep:
        trusted = tail.startswith(':')
        network = parse_network(tail.lstrip(':'))

    return InterfaceDescriptor(
        name=name_part,
        network=network,
        trusted=trusted,
        os_type=os_type,
        inbound_rate=inbw,
        outbound_rate=outbw,
    )
