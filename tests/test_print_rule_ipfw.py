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

"""Tests for the ipfw rule printer and the ipfw engine."""

import io

import pytest

from trustfw.compiler import PipeConfig, QueueConfig
from trustfw.driver import EngineError
from trustfw.platforms.ipfw import IpfwEngine, PrintRule_ipfw, parse_pipe_show

from .conftest import FakeRunner, compile_policy


@pytest.fixture()
def printer():
    return PrintRule_ipfw()


class TestRules:
    def test_loopback(self, printer):
        rule = compile_policy([]).program.rule(100)
        assert printer.rule(rule) == ['add', '100', 'set', '0', 'allow', 'all', 'from', 'any', 'to', 'any', 'via', 'lo*']

    def test_check_state_has_no_match(self, printer):
        rule = compile_policy([]).program.rule(2000)
        assert printer.rule(rule) == ['add', '2000', 'set', '2', 'check-state']

    def test_negated_address_and_ports(self, printer):
        rule = compile_policy(['en0']).program.rule(7100)
        assert printer.rule(rule) == [
            'add', '7100', 'set', '7', 'unreach', 'host-prohib', 'log',
            'all', 'from', 'any', 'to', 'not', 'me', 'not', '67-68',
            'in', 'via', 'en0',
        ]  # fmt: skip

    def test_several_interfaces(self, printer):
        rule = compile_policy(['en0', 'en1', 'en0::10.0.0.0/8']).program.rule(901)
        assert printer.rule(rule) == [
            'add', '901', 'set', '0', 'deny', 'log',
            'all', 'from', 'any', 'to', 'any',
            'in', '{', 'via', 'en0', 'or', 'via', 'en1', '}', 'ipoptions', 'rr',
        ]  # fmt: skip

    def test_stealth_reject_prints_deny(self, printer):
        rule = compile_policy(['en0'], stealth=True).program.rule(7700)
        assert printer.rule(rule) == [
            'add', '7700', 'set', '7', 'deny',
            'tcp', 'from', 'any', 'to', 'me', '113', 'in', 'setup',
        ]  # fmt: skip

    def test_reset(self, printer):
        rule = compile_policy(['en0']).program.rule(7700)
        assert printer.rule(rule)[4] == 'reset'

    def test_small_ack_exclusion(self, printer):
        rule = compile_policy(['en0', 'en1{504,120}']).program.rule(701)
        assert printer.rule(rule) == [
            'add', '701', 'set', '10', 'queue', '201',
            'tcp', 'from', 'any', 'to', 'any', '22,80,443,5900', 'out', 'via', 'en1',
            '{', 'tcpflags', '!ack', 'or', 'iplen', '81-65535', '}',
        ]  # fmt: skip

    def test_keep_state_and_icmptypes(self, printer):
        rule = compile_policy(['en0']).program.rule(6000)
        assert printer.rule(rule) == [
            'add', '6000', 'set', '6', 'allow',
            'icmp', 'from', 'any', 'to', 'any', 'via', 'en0',
            'icmptypes', '0,3,4,11,12,13,14', 'keep-state',
        ]  # fmt: skip

    def test_routing(self, printer):
        from trustfw.core.options import RouterConfig

        policy = compile_policy(['en0'], router=RouterConfig.parse('en0,en1@192.168.2.0/24'))
        assert printer.rule(policy.program.rule(200)) == [
            'add', '200', 'set', '0', 'divert', 'natd', 'all', 'from', 'any', 'to', 'any', 'via', 'en0',
        ]  # fmt: skip
        assert printer.rule(policy.program.rule(1110))[-7:] == [
            'to', '192.168.2.0/24', 'out', 'recv', 'en0', 'xmit', 'en1',
        ]  # fmt: skip
        assert printer.rule(policy.program.rule(1100))[-5:] == ['out', 'recv', 'en1', 'xmit', 'en0']


class TestPipesAndQueues:
    @pytest.mark.parametrize(
        ('pipe', 'expected'),
        [
            (PipeConfig(300, bandwidth='64Kbit/s', queue_slots=5), ['pipe', '300', 'config', 'bw', '64Kbit/s', 'queue', '5']),
            (PipeConfig(350, delay_ms=500), ['pipe', '350', 'config', 'delay', '500']),
            (PipeConfig(101, bandwidth='0'), ['pipe', '101', 'config', 'bw', '0']),
            (PipeConfig(201), ['pipe', '201', 'config', 'bw', '0']),
        ],
    )
    def test_pipe(self, printer, pipe, expected):
        assert printer.pipe(pipe) == expected

    def test_queue(self, printer):
        assert printer.queue(QueueConfig(101, 201, 7)) == ['queue', '101', 'config', 'pipe', '201', 'weight', '7']

    def test_sets(self, printer):
        assert printer.set_state(20, True) == ['set', 'enable', '20']
        assert printer.set_state(10, False) == ['set', 'disable', '10']


PIPE_SHOW = """\
00101: 504.000 Kbit/s    0 ms   50 sl. 0 queues (1 buckets) droptail
00201: 120.000 Kbit/s    0 ms   50 sl. 0 queues (1 buckets) droptail
00102:   unlimited    0 ms   50 sl. 0 queues (1 buckets) droptail
00300:  64.000 Kbit/s    0 ms    5 sl. 0 queues (1 buckets) droptail
"""


class TestPipeShow:
    @pytest.mark.parametrize(
        ('pipe_id', 'expected'),
        [(101, 504_000), (201, 120_000), (102, 0), (300, 64_000), (103, None)],
    )
    def test_parse(self, pipe_id, expected):
        assert parse_pipe_show(PIPE_SHOW, pipe_id) == expected

    def test_ignores_flow_lines(self):
        output = PIPE_SHOW + 'BKT Prot ___Source IP/port____ ____Dest. IP/port____ Tot_pkt/bytes\n'
        assert parse_pipe_show(output, 201) == 120_000


class TestIpfwEngine:
    def test_commands_run_quietly(self):
        runner = FakeRunner()
        engine = IpfwEngine(runner=runner)
        engine.configure_queue(QueueConfig(101, 201, 7))
        engine.set_enabled(20, True)
        assert runner.commands == [
            ['/sbin/ipfw', '-q', 'queue', '101', 'config', 'pipe', '201', 'weight', '7'],
            ['/sbin/ipfw', '-q', 'set', 'enable', '20'],
        ]

    def test_install_default_deny_set_first(self):
        runner = FakeRunner()
        program = compile_policy([]).program
        IpfwEngine(runner=runner).install(program)
        numbers = [int(cmd[3]) for cmd in runner.commands]
        assert numbers == [r.number for r in program.install_order()]
        assert numbers[0] == 30300
        assert runner.commands[0][4:8] == ['set', '30', 'unreach', 'filter-prohib']
        deny_count = len(program.rules_in_set(30))
        assert all(n >= 30000 for n in numbers[:deny_count])
        assert numbers[deny_count:] == sorted(numbers[deny_count:])

    def test_missing_executable_raises_engine_error(self):
        def missing(cmd, **kwargs):
            raise FileNotFoundError(2, 'No such file or directory', cmd[0])

        engine = IpfwEngine(runner=missing)
        with pytest.raises(EngineError, match='/sbin/ipfw: No such file or directory'):
            engine.flush()
        with pytest.raises(EngineError):
            engine.pipe_bandwidth(101)

    def test_failure_raises_stderr(self):
        runner = FakeRunner(returncode=64, stderr='ipfw: bad command\n')
        with pytest.raises(EngineError, match='ipfw: bad command'):
            IpfwEngine(runner=runner).flush()

    def test_dry_run_prints(self):
        runner = FakeRunner()
        out = io.StringIO()
        engine = IpfwEngine(dry_run=True, runner=runner, out=out)
        engine.flush()
        engine.configure_pipe(PipeConfig(101, bandwidth='504Kbit/s'))
        assert runner.commands == []
        assert out.getvalue().splitlines() == [
            'ipfw -q -f flush',
            'ipfw -q -f pipe flush',
            'ipfw -q pipe 101 config bw 504Kbit/s',
        ]

    def test_pipe_bandwidth_queries_even_in_dry_run(self):
        runner = FakeRunner(stdout=PIPE_SHOW)
        engine = IpfwEngine(dry_run=True, runner=runner)
        assert engine.pipe_bandwidth(101) == 504_000
        assert engine.pipe_bandwidth(109) is None
        assert runner.commands[0] == ['/sbin/ipfw', 'pipe', 'show']
