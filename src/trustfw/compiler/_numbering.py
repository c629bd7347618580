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

"""Rule number, pipe and queue numbering table.

Every rule the compiler emits takes its number from exactly one band
below.  Per-interface bands are ``MAX_INTERFACES`` numbers wide and the
rule for interface *index* is numbered ``base + index``.  The table is
checked for overlapping bands when this module is imported, so two
interfaces (or two purposes) can never end up with the same number.

ipfw evaluates rules by number, not by set: the shaping rules of set 10
live in the 450-899 range so that they act before state tracking.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from enum import StrEnum

from trustfw.core import MAX_INTERFACES


class Purpose(StrEnum):
    # Set 0: baseline
    LOOPBACK = 'loopback'
    NATD = 'divert to natd'
    SYN_LIMIT = 'rate limit tcp setup'
    RST_DELAY = 'delay tcp reset'
    ICMP_IN_LIMIT = 'rate limit inbound icmp'
    ICMP_OUT_LIMIT = 'rate limit outbound icmp'
    IPOPT_RR = 'deny record-route'
    IPOPT_TS = 'deny timestamp'
    IPOPT_LSRR = 'deny loose source route'
    IPOPT_SSRR = 'deny strict source route'
    TCP_SYN_FIN = 'deny syn+fin'
    TCP_SYN_RST = 'deny syn+rst'
    TCP_SRC_PORT_0 = 'deny tcp from port 0'
    TCP_DST_PORT_0 = 'deny tcp to port 0'
    UDP_SRC_PORT_0 = 'deny udp from port 0'
    UDP_DST_PORT_0 = 'deny udp to port 0'
    # Set 10: shaping
    SHAPE_SKIP_PRIVATE_OUT = 'do not shape outbound private'
    SHAPE_SKIP_PRIVATE_IN = 'do not shape inbound private'
    SHAPE_IN_TCP = 'shape inbound tcp'
    SHAPE_IN_UDP = 'shape inbound udp'
    SHAPE_HIGH_ACK = 'queue small acks'
    SHAPE_MEDIUM_TCP = 'queue interactive tcp'
    SHAPE_MEDIUM_UDP = 'queue interactive udp'
    SHAPE_LOW_TCP = 'queue bulk tcp'
    SHAPE_LOW_UDP = 'queue bulk udp'
    # Set 1: routing
    ROUTE_FROM_CLIENT = 'route from client network'
    ROUTE_TO_CLIENT = 'route to client network'
    FORWARD_FROM_CLIENT = 'forward from client network'
    FORWARD_TO_CLIENT = 'forward to client network'
    CLIENT_TO_ROUTER = 'client network to router'
    ROUTER_TO_CLIENT = 'router to client network'
    # Set 2: state
    CHECK_STATE = 'check state'
    DENY_FRAGMENTS = 'deny fragments'
    RESET_ESTABLISHED = 'reset stale established'
    # Set 3: mac services
    MAC_TCP = 'mac tcp services'
    MAC_UDP = 'mac udp services'
    MAC_MDNS = 'rendezvous'
    MAC_MULTICAST = 'mac multicast'
    MAC_SSDP = 'mac ssdp'
    MAC_BROADCAST = 'mac broadcast'
    # Set 4: windows services
    WIN_TCP = 'windows tcp services'
    WIN_UDP = 'windows udp services'
    WIN_MULTICAST = 'windows multicast'
    WIN_SSDP = 'windows ssdp'
    WIN_BROADCAST = 'windows broadcast'
    # Set 5: trusted icmp, broadcast containment
    TRUSTED_ICMP = 'trusted icmp'
    REJECT_MULTICAST = 'reject multicast'
    REJECT_SSDP = 'reject ssdp'
    REJECT_BROADCAST = 'reject broadcast'
    DENY_SERVICE_UDP = 'deny residual service udp'
    REJECT_SERVICE_TCP = 'reject residual service tcp'
    # Set 6: bootstrap
    BOOTSTRAP_ICMP = 'allow icmp'
    BOOTSTRAP_DHCP = 'allow dhcp'
    # Set 7: inbound filter
    REVERSE_PATH = 'deny reverse path failures'
    NOT_FOR_ME = 'reject not for this host'
    NOT_FROM_ME = 'reject not from this host'
    KNOWN_NETWORK = 'skip known network'
    SPOOF_192 = 'deny 192.168/16 spoof'
    SPOOF_172 = 'deny 172.16/12 spoof'
    SPOOF_10 = 'deny 10/8 spoof'
    SPOOF_LOOPBACK = 'deny loopback spoof'
    REJECT_ZERONET = 'reject 0/8'
    REJECT_LINK_LOCAL = 'reject link-local'
    REJECT_CLASS_DE = 'reject class d/e source'
    AUTH_RESET = 'reset auth'
    # Set 11: outbound
    OUT_KNOWN_TCP = 'allow known outbound tcp'
    OUT_KNOWN_UDP = 'allow known outbound udp'
    OUT_OTHER_TCP = 'allow other outbound tcp'
    OUT_OTHER_IP = 'allow other outbound'
    # Set 20: operator ports
    TRUSTED_TCP = 'trusted tcp ports'
    TRUSTED_UDP = 'trusted udp ports'
    LOCAL_TCP = 'local tcp ports'
    LOCAL_UDP = 'local udp ports'
    PUBLIC_TCP = 'public tcp ports'
    PUBLIC_UDP = 'public udp ports'
    # Set 30: default deny
    REJECT_DNS_FROM = 'reject dns responses'
    REJECT_DNS_TO = 'reject dns queries'
    REJECT_IN_UDP = 'reject inbound udp'
    REJECT_IN_TCP = 'reject inbound tcp'
    REJECT_IN = 'reject inbound'
    REJECT_OUT = 'reject outbound'
    REJECT_ALL = 'reject all'


@dataclasses.dataclass(frozen=True)
class RuleBand:
    """A reserved range of rule numbers for one purpose."""

    set_id: int
    purpose: Purpose
    base: int
    per_interface: bool = False

    @property
    def width(self) -> int:
        return MAX_INTERFACES if self.per_interface else 1

    @property
    def last(self) -> int:
        return self.base + self.width - 1

    def number(self, index: int | None = None) -> int:
        if not self.per_interface:
            if index is not None:
                raise ValueError(f'band {self.purpose!r} is not per interface')
            return self.base
        if index is None or not 0 <= index < MAX_INTERFACES:
            raise ValueError(f'band {self.purpose!r}: bad interface index {index!r}')
        return self.base + index


P = Purpose

RULE_BANDS: tuple[RuleBand, ...] = (
    RuleBand(0, P.LOOPBACK, 100),
    RuleBand(0, P.NATD, 200),
    RuleBand(0, P.SYN_LIMIT, 300),
    RuleBand(0, P.RST_DELAY, 350),
    RuleBand(0, P.ICMP_IN_LIMIT, 410),
    RuleBand(0, P.ICMP_OUT_LIMIT, 415),
    RuleBand(10, P.SHAPE_SKIP_PRIVATE_OUT, 450, True),
    RuleBand(10, P.SHAPE_SKIP_PRIVATE_IN, 460, True),
    RuleBand(10, P.SHAPE_IN_TCP, 500, True),
    RuleBand(10, P.SHAPE_IN_UDP, 510, True),
    RuleBand(10, P.SHAPE_HIGH_ACK, 600, True),
    RuleBand(10, P.SHAPE_MEDIUM_TCP, 700, True),
    RuleBand(10, P.SHAPE_MEDIUM_UDP, 710, True),
    RuleBand(10, P.SHAPE_LOW_TCP, 800, True),
    RuleBand(10, P.SHAPE_LOW_UDP, 810, True),
    RuleBand(0, P.IPOPT_RR, 901),
    RuleBand(0, P.IPOPT_TS, 911),
    RuleBand(0, P.IPOPT_LSRR, 921),
    RuleBand(0, P.IPOPT_SSRR, 931),
    RuleBand(0, P.TCP_SYN_FIN, 941),
    RuleBand(0, P.TCP_SYN_RST, 951),
    RuleBand(0, P.TCP_SRC_PORT_0, 961),
    RuleBand(0, P.TCP_DST_PORT_0, 971),
    RuleBand(0, P.UDP_SRC_PORT_0, 981),
    RuleBand(0, P.UDP_DST_PORT_0, 991),
    RuleBand(1, P.ROUTE_FROM_CLIENT, 1000),
    RuleBand(1, P.ROUTE_TO_CLIENT, 1010),
    RuleBand(1, P.FORWARD_FROM_CLIENT, 1100),
    RuleBand(1, P.FORWARD_TO_CLIENT, 1110),
    RuleBand(1, P.CLIENT_TO_ROUTER, 1200),
    RuleBand(1, P.ROUTER_TO_CLIENT, 1210),
    RuleBand(2, P.CHECK_STATE, 2000),
    RuleBand(2, P.DENY_FRAGMENTS, 2100),
    RuleBand(2, P.RESET_ESTABLISHED, 2110),
    RuleBand(3, P.MAC_TCP, 3100, True),
    RuleBand(3, P.MAC_UDP, 3200, True),
    RuleBand(3, P.MAC_MDNS, 3300, True),
    RuleBand(3, P.MAC_MULTICAST, 3400, True),
    RuleBand(3, P.MAC_SSDP, 3410, True),
    RuleBand(3, P.MAC_BROADCAST, 3420, True),
    RuleBand(4, P.WIN_TCP, 4100, True),
    RuleBand(4, P.WIN_UDP, 4200, True),
    RuleBand(4, P.WIN_MULTICAST, 4300, True),
    RuleBand(4, P.WIN_SSDP, 4320, True),
    RuleBand(4, P.WIN_BROADCAST, 4340, True),
    RuleBand(5, P.TRUSTED_ICMP, 5100, True),
    RuleBand(5, P.REJECT_MULTICAST, 5200),
    RuleBand(5, P.REJECT_SSDP, 5210),
    RuleBand(5, P.REJECT_BROADCAST, 5220),
    RuleBand(5, P.DENY_SERVICE_UDP, 5300),
    RuleBand(5, P.REJECT_SERVICE_TCP, 5310),
    RuleBand(6, P.BOOTSTRAP_ICMP, 6000),
    RuleBand(6, P.BOOTSTRAP_DHCP, 6100),
    RuleBand(7, P.REVERSE_PATH, 7000),
    RuleBand(7, P.NOT_FOR_ME, 7100),
    RuleBand(7, P.NOT_FROM_ME, 7110),
    RuleBand(7, P.KNOWN_NETWORK, 7200, True),
    RuleBand(7, P.SPOOF_192, 7300),
    RuleBand(7, P.SPOOF_172, 7310),
    RuleBand(7, P.SPOOF_10, 7320),
    RuleBand(7, P.SPOOF_LOOPBACK, 7400),
    RuleBand(7, P.REJECT_ZERONET, 7500),
    RuleBand(7, P.REJECT_LINK_LOCAL, 7600),
    RuleBand(7, P.REJECT_CLASS_DE, 7610),
    RuleBand(7, P.AUTH_RESET, 7700),
    RuleBand(11, P.OUT_KNOWN_TCP, 11000),
    RuleBand(11, P.OUT_KNOWN_UDP, 11100),
    RuleBand(11, P.OUT_OTHER_TCP, 11200),
    RuleBand(11, P.OUT_OTHER_IP, 11210),
    RuleBand(20, P.TRUSTED_TCP, 20000, True),
    RuleBand(20, P.TRUSTED_UDP, 20020, True),
    RuleBand(20, P.LOCAL_TCP, 20100, True),
    RuleBand(20, P.LOCAL_UDP, 20120, True),
    RuleBand(20, P.PUBLIC_TCP, 20200, True),
    RuleBand(20, P.PUBLIC_UDP, 20220, True),
    RuleBand(30, P.REJECT_DNS_FROM, 30000),
    RuleBand(30, P.REJECT_DNS_TO, 30010),
    RuleBand(30, P.REJECT_IN_UDP, 30100),
    RuleBand(30, P.REJECT_IN_TCP, 30110),
    RuleBand(30, P.REJECT_IN, 30120),
    RuleBand(30, P.REJECT_OUT, 30200),
    RuleBand(30, P.REJECT_ALL, 30300),
)

# skipto targets
SHAPING_EXIT = 900
KNOWN_NETWORK_EXIT = 7500

# Sets that can be switched on and off as a unit.
TOGGLEABLE_SETS = (10, 11, 20)
DEFAULT_DENY_SET = 30

# Pipes
SYN_PIPE = 300
RST_DELAY_PIPE = 350
ICMP_IN_PIPE = 400
ICMP_OUT_PIPE = 410
INBOUND_PIPE_BASE = 100
OUTBOUND_PIPE_BASE = 200

# Queues, all nested in the outbound pipe of their interface
HIGH_QUEUE_BASE = 100
MEDIUM_QUEUE_BASE = 200
LOW_QUEUE_BASE = 300


def check_bands(bands: Iterable[RuleBand]) -> dict[Purpose, RuleBand]:
    """Index *bands* by purpose, rejecting duplicates and overlaps."""
    by_purpose: dict[Purpose, RuleBand] = {}
    ordered = sorted(bands, key=lambda b: b.base)
    for prev, cur in zip(ordered, ordered[1:]):
        if cur.base <= prev.last:
            raise ValueError(
                f'rule band {cur.purpose!r} ({cur.base}) overlaps '
                f'{prev.purpose!r} ({prev.base}-{prev.last})'
            )
    for band in ordered:
        if band.purpose in by_purpose:
            raise ValueError(f'duplicate rule band {band.purpose!r}')
        by_purpose[band.purpose] = band
    return by_purpose


def _check_id_ranges(ranges: Iterable[tuple[str, int, int]]) -> None:
    ordered = sorted(ranges, key=lambda r: r[1])
    for (prev_name, _, prev_last), (name, first, _) in zip(ordered, ordered[1:]):
        if first <= prev_last:
            raise ValueError(f'{name} ids overlap {prev_name} ids')


BANDS = check_bands(RULE_BANDS)

if not max(b.last for b in RULE_BANDS if b.set_id == 10) < SHAPING_EXIT <= BANDS[P.IPOPT_RR].base:
    raise ValueError('shaping exit target must follow the shaping bands')
if max(RULE_BANDS, key=lambda b: b.base).set_id != DEFAULT_DENY_SET:
    raise ValueError('the catch-all rule must belong to the default-deny set')
if BANDS[P.KNOWN_NETWORK].last >= KNOWN_NETWORK_EXIT or BANDS[P.REJECT_ZERONET].base != KNOWN_NETWORK_EXIT:
    raise ValueError('known network skipto target must be the 0/8 reject rule')

_check_id_ranges(
    [
        ('inbound pipe', INBOUND_PIPE_BASE, INBOUND_PIPE_BASE + MAX_INTERFACES - 1),
        ('outbound pipe', OUTBOUND_PIPE_BASE, OUTBOUND_PIPE_BASE + MAX_INTERFACES - 1),
        ('syn pipe', SYN_PIPE, SYN_PIPE),
        ('rst delay pipe', RST_DELAY_PIPE, RST_DELAY_PIPE),
        ('inbound icmp pipe', ICMP_IN_PIPE, ICMP_IN_PIPE),
        ('outbound icmp pipe', ICMP_OUT_PIPE, ICMP_OUT_PIPE),
    ]
)
_check_id_ranges(
    [
        ('high queue', HIGH_QUEUE_BASE, HIGH_QUEUE_BASE + MAX_INTERFACES - 1),
        ('medium queue', MEDIUM_QUEUE_BASE, MEDIUM_QUEUE_BASE + MAX_INTERFACES - 1),
        ('low queue', LOW_QUEUE_BASE, LOW_QUEUE_BASE + MAX_INTERFACES - 1),
    ]
)


def rule_number(purpose: Purpose, index: int | None = None) -> int:
    return BANDS[purpose].number(index)


def inbound_pipe(index: int) -> int:
    return INBOUND_PIPE_BASE + index


def outbound_pipe(index: int) -> int:
    return OUTBOUND_PIPE_BASE + index
