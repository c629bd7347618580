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

"""Traffic-shaping pipe/queue allocator (rule set 10).

Every descriptor that declares ``{in,out}`` bandwidth gets an inbound
and an outbound pipe and three weighted queues nested in the outbound
pipe.  All identifiers derive from the descriptor index alone, which is
what lets ``tfw-setrate`` find the pipes of a running firewall.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from trustfw.compiler._comp_rule import (
    PRIVATE_NETWORKS,
    Action,
    Direction,
    Match,
    endpoint,
)
from trustfw.compiler._numbering import (
    HIGH_QUEUE_BASE,
    LOW_QUEUE_BASE,
    MEDIUM_QUEUE_BASE,
    SHAPING_EXIT,
    Purpose,
    inbound_pipe,
    outbound_pipe,
)
from trustfw.compiler._program import (
    InterfaceShaping,
    PipeConfig,
    QueueConfig,
    ShapingPlan,
)

if TYPE_CHECKING:
    from trustfw.compiler._compiler import Compiler
    from trustfw.core import InterfaceDescriptor

HIGH_WEIGHT = 7
MEDIUM_WEIGHT = 5
LOW_WEIGHT = 1

# Interactive, DNS and VPN traffic goes to the medium queue.
MEDIUM_TCP_PORTS = ('22', '80', '443', '5900')
MEDIUM_UDP_PORTS = ('53', '1194')

# An empty TCP ACK fits in 80 bytes including options.
SMALL_ACK_IPLEN = '0-80'


class ShapingAllocator:
    """Allocate pipes and queues and emit the set 10 rules."""

    def __init__(self, compiler: Compiler) -> None:
        self.compiler = compiler

    def allocate(self) -> ShapingPlan:
        shaped = []
        for descriptor in self.compiler.registry:
            if not descriptor.shaped:
                continue
            shaping = self._allocate_interface(descriptor)
            self._emit_rules(descriptor, shaping)
            shaped.append(shaping)
        return ShapingPlan(interfaces=tuple(shaped))

    def _allocate_interface(self, descriptor: InterfaceDescriptor) -> InterfaceShaping:
        index = descriptor.index
        in_pipe = PipeConfig(inbound_pipe(index), bandwidth=descriptor.inbound_rate)
        out_pipe = PipeConfig(outbound_pipe(index), bandwidth=descriptor.outbound_rate)
        self.compiler.debug(
            f'shaping {descriptor.name} (index {index}): pipe {in_pipe.pipe_id} '
            f'in {in_pipe.bandwidth}, pipe {out_pipe.pipe_id} out {out_pipe.bandwidth}'
        )
        return InterfaceShaping(
            index=index,
            interface=descriptor.name,
            inbound_pipe=in_pipe,
            outbound_pipe=out_pipe,
            high_queue=QueueConfig(HIGH_QUEUE_BASE + index, out_pipe.pipe_id, HIGH_WEIGHT),
            medium_queue=QueueConfig(MEDIUM_QUEUE_BASE + index, out_pipe.pipe_id, MEDIUM_WEIGHT),
            low_queue=QueueConfig(LOW_QUEUE_BASE + index, out_pipe.pipe_id, LOW_WEIGHT),
        )

    def _emit_rules(self, descriptor: InterfaceDescriptor, shaping: InterfaceShaping) -> None:
        emit = self.compiler.emit
        index = shaping.index
        via = (descriptor.name,)
        private = endpoint(*PRIVATE_NETWORKS)

        # Shaping is per interface, not per network: leave LAN traffic alone.
        emit(
            Purpose.SHAPE_SKIP_PRIVATE_OUT,
            Action.SKIPTO,
            Match(dst=private, direction=Direction.OUT, via=via),
            index=index,
            target=SHAPING_EXIT,
        )
        emit(
            Purpose.SHAPE_SKIP_PRIVATE_IN,
            Action.SKIPTO,
            Match(src=private, direction=Direction.IN, via=via),
            index=index,
            target=SHAPING_EXIT,
        )

        # Connection attempts are already limited by the SYN pipe.
        emit(
            Purpose.SHAPE_IN_TCP,
            Action.PIPE,
            Match(proto='tcp', direction=Direction.IN, via=via, tcpflags=('!syn',)),
            index=index,
            target=shaping.inbound_pipe.pipe_id,
        )
        emit(
            Purpose.SHAPE_IN_UDP,
            Action.PIPE,
            Match(proto='udp', direction=Direction.IN, via=via),
            index=index,
            target=shaping.inbound_pipe.pipe_id,
        )

        emit(
            Purpose.SHAPE_HIGH_ACK,
            Action.QUEUE,
            Match(
                proto='tcp',
                direction=Direction.OUT,
                via=via,
                tcpflags=('ack',),
                iplen=SMALL_ACK_IPLEN,
            ),
            index=index,
            target=shaping.high_queue.queue_id,
        )
        emit(
            Purpose.SHAPE_MEDIUM_TCP,
            Action.QUEUE,
            Match(
                proto='tcp',
                dst=endpoint(ports=MEDIUM_TCP_PORTS),
                direction=Direction.OUT,
                via=via,
                not_small_ack=True,
            ),
            index=index,
            target=shaping.medium_queue.queue_id,
        )
        emit(
            Purpose.SHAPE_MEDIUM_UDP,
            Action.QUEUE,
            Match(proto='udp', dst=endpoint(ports=MEDIUM_UDP_PORTS), direction=Direction.OUT, via=via),
            index=index,
            target=shaping.medium_queue.queue_id,
        )
        emit(
            Purpose.SHAPE_LOW_TCP,
            Action.QUEUE,
            Match(
                proto='tcp',
                dst=endpoint(ports=MEDIUM_TCP_PORTS, ports_negate=True),
                direction=Direction.OUT,
                via=via,
                not_small_ack=True,
            ),
            index=index,
            target=shaping.low_queue.queue_id,
        )
        emit(
            Purpose.SHAPE_LOW_UDP,
            Action.QUEUE,
            Match(
                proto='udp',
                dst=endpoint(ports=MEDIUM_UDP_PORTS, ports_negate=True),
                direction=Direction.OUT,
                via=via,
            ),
            index=index,
            target=shaping.low_queue.queue_id,
        )
