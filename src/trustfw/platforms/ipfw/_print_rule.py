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

"""PrintRule_ipfw: renders compiled rules as ipfw argument vectors.

Matches stay engine-neutral until this point.  Every method returns the
arguments that follow ``ipfw`` on the command line, as a list, so the
engine can run them without a shell and the script renderer can quote
them with ``shlex.join``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from trustfw.compiler._comp_rule import Action, Direction, ResponseKind

if TYPE_CHECKING:
    from trustfw.compiler._comp_rule import Endpoint, Match, Rule
    from trustfw.compiler._program import PipeConfig, QueueConfig

# Larger than any empty ACK, see the shaping allocator.
NOT_SMALL_ACK = ['{', 'tcpflags', '!ack', 'or', 'iplen', '81-65535', '}']


class PrintRule_ipfw:
    """Render rules, pipes, queues and set toggles for ipfw."""

    def rule(self, rule: Rule) -> list[str]:
        args = ['add', str(rule.number), 'set', str(rule.set_id)]
        args += self._print_action(rule)
        if rule.action == Action.CHECK_STATE:
            return args
        if rule.log:
            args.append('log')
        args += self._print_match(rule.match)
        return args

    def pipe(self, pipe: PipeConfig) -> list[str]:
        args = ['pipe', str(pipe.pipe_id), 'config']
        if pipe.bandwidth is not None or pipe.delay_ms is None:
            args += ['bw', pipe.bandwidth or '0']
        if pipe.delay_ms is not None:
            args += ['delay', str(pipe.delay_ms)]
        if pipe.queue_slots is not None:
            args += ['queue', str(pipe.queue_slots)]
        return args

    def queue(self, queue: QueueConfig) -> list[str]:
        return [
            'queue',
            str(queue.queue_id),
            'config',
            'pipe',
            str(queue.pipe_id),
            'weight',
            str(queue.weight),
        ]

    def set_state(self, set_id: int, enabled: bool) -> list[str]:
        return ['set', 'enable' if enabled else 'disable', str(set_id)]

    def flush(self) -> list[list[str]]:
        return [['-f', 'flush'], ['-f', 'pipe', 'flush']]

    # -- Rule parts --

    def _print_action(self, rule: Rule) -> list[str]:
        action = rule.action
        if action == Action.REJECT:
            return self._print_response(rule.response or ResponseKind.DROP)
        if action in (Action.SKIPTO, Action.PIPE, Action.QUEUE, Action.DIVERT):
            return [action.value, str(rule.target)]
        return [action.value]

    def _print_response(self, response: ResponseKind) -> list[str]:
        if response == ResponseKind.DROP:
            return ['deny']
        return response.value.split()

    def _print_match(self, match: Match) -> list[str]:
        args = [match.proto]
        args += ['from'] + self._print_endpoint(match.src)
        args += ['to'] + self._print_endpoint(match.dst)

        if match.direction != Direction.BOTH:
            args.append(match.direction.value)
        args += self._print_interface(match)

        if match.setup:
            args.append('setup')
        if match.established:
            args.append('established')
        if match.frag:
            args.append('frag')
        if match.tcpflags:
            args += ['tcpflags', ','.join(match.tcpflags)]
        if match.ipoptions:
            args += ['ipoptions', match.ipoptions]
        if match.icmptypes:
            args += ['icmptypes', ','.join(str(t) for t in match.icmptypes)]
        if match.iplen:
            args += ['iplen', match.iplen]
        if match.not_small_ack:
            args += NOT_SMALL_ACK
        if match.bad_reverse_path:
            args += ['not', 'verrevpath']
        if match.keep_state:
            args.append('keep-state')
        return args

    def _print_endpoint(self, ep: Endpoint) -> list[str]:
        args = ['not'] if ep.negate else []
        args.append(','.join(ep.addresses))
        if ep.ports:
            if ep.ports_negate:
                args.append('not')
            args.append(','.join(ep.ports))
        return args

    def _print_interface(self, match: Match) -> list[str]:
        args: list[str] = []
        if len(match.via) == 1:
            args += ['via', match.via[0]]
        elif match.via:
            args.append('{')
            for i, name in enumerate(match.via):
                if i:
                    args.append('or')
                args += ['via', name]
            args.append('}')
        if match.recv:
            args += ['recv', match.recv]
        if match.xmit:
            args += ['xmit', match.xmit]
        return args
