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

"""Rule dataclass and the engine-neutral match representation.

A ``Rule`` pairs an action with a ``Match``.  Matches are plain data:
nothing in the compiler knows how a match is spelled for a particular
packet filter, that is the job of the platform printer.
"""

from __future__ import annotations

import dataclasses
from enum import StrEnum

ANY = 'any'
ME = 'me'

# RFC 1918 networks, in the order they are checked.
PRIVATE_NETWORKS = ('192.168.0.0/16', '172.16.0.0/12', '10.0.0.0/8')
LOOPBACK_NETWORK = '127.0.0.0/8'
MULTICAST_NETWORK = '224.0.0.0/3'
SSDP_ADDRESS = '239.255.255.253'
BROADCAST_ADDRESS = '255.255.255.255'
DHCP_PORTS = ('67-68',)


class Action(StrEnum):
    ALLOW = 'allow'
    DENY = 'deny'
    REJECT = 'reject'
    SKIPTO = 'skipto'
    PIPE = 'pipe'
    QUEUE = 'queue'
    CHECK_STATE = 'check-state'
    DIVERT = 'divert'


class ResponseKind(StrEnum):
    """What a REJECT rule answers with."""

    DROP = 'drop'
    TCP_RESET = 'reset'
    HOST_UNREACHABLE = 'unreach host'
    HOST_PROHIBITED = 'unreach host-prohib'
    FILTER_PROHIBITED = 'unreach filter-prohib'


class Direction(StrEnum):
    BOTH = ''
    IN = 'in'
    OUT = 'out'


@dataclasses.dataclass(frozen=True)
class Endpoint:
    """Source or destination of a match.

    Empty *ports* means any port.  *negate* inverts the address list,
    *ports_negate* the port list.
    """

    addresses: tuple[str, ...] = (ANY,)
    ports: tuple[str, ...] = ()
    negate: bool = False
    ports_negate: bool = False

    @property
    def is_any(self) -> bool:
        return self.addresses == (ANY,) and not self.negate and not self.ports


ANY_ENDPOINT = Endpoint()


def endpoint(*addresses: str, ports=(), negate=False, ports_negate=False) -> Endpoint:
    """Shorthand for building an Endpoint; no addresses means ``any``."""
    return Endpoint(
        addresses=tuple(addresses) or (ANY,),
        ports=tuple(ports),
        negate=negate,
        ports_negate=ports_negate,
    )


@dataclasses.dataclass(frozen=True)
class Match:
    """Packet predicate: protocol, endpoints, direction, interface, flags."""

    proto: str = 'all'
    src: Endpoint = ANY_ENDPOINT
    dst: Endpoint = ANY_ENDPOINT
    direction: Direction = Direction.BOTH

    # Interface binding.  Several *via* names are alternatives.
    via: tuple[str, ...] = ()
    recv: str | None = None
    xmit: str | None = None

    # TCP/IP flags and state
    setup: bool = False
    established: bool = False
    frag: bool = False
    keep_state: bool = False
    tcpflags: tuple[str, ...] = ()
    ipoptions: str | None = None
    icmptypes: tuple[int, ...] = ()
    iplen: str | None = None
    not_small_ack: bool = False  # no ACK flag, or longer than an empty ACK
    bad_reverse_path: bool = False


@dataclasses.dataclass
class Rule:
    """One numbered rule of the compiled program."""

    set_id: int
    number: int
    action: Action
    match: Match
    log: bool = False
    response: ResponseKind | None = None
    target: int | str | None = None
    purpose: str = ''

    @property
    def label(self) -> str:
        return f'{self.number} ({self.purpose})' if self.purpose else str(self.number)

    @property
    def key(self) -> tuple[int, int]:
        return (self.set_id, self.number)
