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

"""Tests for the compiler drivers: install order, fail-closed, scripts."""

import pytest

from trustfw.compiler import ServiceToggle, SysctlSetting
from trustfw.core import MalformedSpecError
from trustfw.core.options import CompilerOptions, RouterConfig
from trustfw.driver import CompilerDriver, EngineError
from trustfw.platforms.ipfw import CompilerDriver_ipfw, IpfwEngine, OSConfigurator_ipfw

from .conftest import FakeEngine, FakeRunner, compile_policy

EXAMPLE = ['en0+mac::192.168.1.0/24', 'en1{504,120}']


class TestInstall:
    def test_order(self, engine, example_policy):
        CompilerDriver().install(example_policy, engine)
        names = engine.names()
        assert names[:3] == ['flush', 'configure_pipe', 'configure_pipe']
        assert names.count('configure_pipe') == 6
        assert names.count('configure_queue') == 3
        install = names.index('install')
        assert names[install - 3:install] == ['set_enabled'] * 3
        assert engine.calls[install - 3:install] == [
            ('set_enabled', 10, False),
            ('set_enabled', 11, False),
            ('set_enabled', 20, False),
        ]
        assert engine.calls[install + 1:] == [
            ('set_enabled', 10, True),
            ('set_enabled', 11, True),
            ('set_enabled', 20, True),
        ]
        assert names.index('configure_queue') > names.index('configure_pipe')

    def test_no_interfaces_leaves_sets_disabled(self, engine):
        CompilerDriver().install(compile_policy([]), engine)
        assert ('set_enabled', 20, True) not in engine.calls
        assert engine.count('set_enabled') == 3

    @pytest.mark.parametrize('fail_on', ['configure_pipe', 'configure_queue', 'install', 'set_enabled'])
    def test_fails_closed(self, example_policy, fail_on):
        engine = FakeEngine(fail_on=fail_on)
        driver = CompilerDriver()
        with pytest.raises(EngineError):
            driver.install(example_policy, engine)
        assert engine.names()[-1] == 'flush'
        assert engine.count('flush') == 2
        assert driver.all_errors == [f'ipfw: {fail_on} rejected']

    def test_first_rule_after_flush_denies(self, runner):
        CompilerDriver().install(compile_policy(['en0']), IpfwEngine(runner=runner))
        adds = [cmd for cmd in runner.commands if cmd[2] == 'add']
        first = adds[0]
        assert runner.commands.index(first) > runner.commands.index(['/sbin/ipfw', '-q', '-f', 'flush'])
        assert first[3:6] == ['30300', 'set', '30']
        assert first[6] in ('deny', 'unreach')
        assert first[-4:] == ['from', 'any', 'to', 'any']
        opening = [cmd[3] for cmd in adds].index('100')
        assert {cmd[5] for cmd in adds[:opening]} == {'30'}

    def test_missing_executable_fails_closed(self):
        def missing(cmd, **kwargs):
            raise FileNotFoundError(2, 'No such file or directory', cmd[0])

        driver = CompilerDriver()
        with pytest.raises(EngineError, match='No such file or directory'):
            driver.install(compile_policy(['en0']), IpfwEngine(runner=missing))
        assert driver.all_errors == ['/sbin/ipfw: No such file or directory']
        assert 'Flush after failed installation failed' in driver.get_errors()[-1]


class TestCompile:
    def test_malformed_token_compiles_nothing(self):
        driver = CompilerDriver()
        with pytest.raises(MalformedSpecError):
            driver.compile(['en0', 'en1{fast,120}'])
        assert driver.policy is None
        assert driver.registry is None

    def test_warnings_collected(self):
        driver = CompilerDriver()
        driver.compile(['en0+win'])
        assert len(driver.all_warnings) == 1
        assert 'en0' in driver.all_warnings[0]

    def test_base_driver_has_no_host_settings(self):
        assert CompilerDriver().compile(['en0']).sysctls == ()


class TestIpfwDriver:
    def test_install_then_configure_host(self, engine, runner):
        driver = CompilerDriver_ipfw(CompilerOptions(), engine=engine, runner=runner)
        policy = driver.run(EXAMPLE)
        assert engine.count('install') == 1
        assert ['sysctl', '-w', 'net.inet.tcp.blackhole=0'] in runner.commands
        assert ['sysctl', '-w', 'net.inet.ip.forwarding=0'] in runner.commands
        assert runner.commands[-1] == [
            'launchctl', 'load', '-w', '/System/Library/LaunchDaemons/com.apple.mDNSResponder.plist',
        ]  # fmt: skip
        assert len(runner.commands) == len(policy.sysctls) + 1

    def test_debug_skips_host_configuration(self, engine, runner):
        driver = CompilerDriver_ipfw(CompilerOptions(debug=True), engine=engine, runner=runner)
        driver.run(EXAMPLE)
        assert engine.count('install') == 1
        assert runner.commands == []

    def test_debug_uses_dry_run_engine(self, runner):
        driver = CompilerDriver_ipfw(CompilerOptions(debug=True), runner=runner)
        assert driver.engine.dry_run is True

    def test_host_failures_are_warnings(self, engine):
        runner = FakeRunner(returncode=1, stderr='sysctl: unknown oid')
        driver = CompilerDriver_ipfw(CompilerOptions(), engine=engine, runner=runner)
        driver.run(['en0'])
        assert engine.count('flush') == 1
        assert any('unknown oid' in w for w in driver.get_warnings())

    def test_engine_failure_skips_host_configuration(self, runner):
        engine = FakeEngine(fail_on='install')
        driver = CompilerDriver_ipfw(CompilerOptions(), engine=engine, runner=runner)
        with pytest.raises(EngineError):
            driver.run(['en0'])
        assert runner.commands == []

    def test_output_file(self, tmp_path, engine, runner):
        driver = CompilerDriver_ipfw(CompilerOptions(), engine=engine, runner=runner)
        driver.file_name_setting = str(tmp_path / 'fw.sh')
        driver.run(EXAMPLE)
        assert engine.calls == []
        assert runner.commands == []
        text = (tmp_path / 'fw.sh').read_text()
        assert text.startswith('#!/bin/sh\n')
        assert (tmp_path / 'fw.sh').stat().st_mode & 0o111


class TestScript:
    @pytest.fixture()
    def script(self, runner):
        driver = CompilerDriver_ipfw(CompilerOptions(blackhole=True), engine=FakeEngine(), runner=runner)
        policy = driver.compile(EXAMPLE)
        return driver.render_script(policy, EXAMPLE)

    def test_sections_in_install_order(self, script):
        lines = script.splitlines()
        flush = lines.index('"$IPFW" -q -f flush')
        pipe = lines.index('"$IPFW" -q pipe 101 config bw 504')
        queue = lines.index('"$IPFW" -q queue 101 config pipe 201 weight 7')
        disable = lines.index('"$IPFW" -q set disable 10')
        check = lines.index('"$IPFW" -q add 2000 set 2 check-state')
        enable = lines.index('"$IPFW" -q set enable 20')
        assert flush < pipe < queue < disable < check < enable

    def test_default_deny_set_added_first(self, script):
        adds = [line.split()[3] for line in script.splitlines() if line.startswith('"$IPFW" -q add ')]
        assert adds[0] == '30300'
        assert adds.index('100') == len([n for n in adds if int(n) >= 30000])

    def test_host_settings(self, script):
        assert '# blackhole against stealth scans\nsysctl -w net.inet.tcp.blackhole=2\n' in script
        assert 'launchctl load -w /System/Library/LaunchDaemons/com.apple.mDNSResponder.plist' in script

    def test_shell_quoting(self, script):
        assert "\"$IPFW\" -q add 100 set 0 allow all from any to any via 'lo*'" in script
        assert "'{' tcpflags '!ack' or iplen 81-65535 '}'" in script

    def test_trailer(self, script):
        assert script.rstrip().endswith("logger \"firewall installed: en0+mac::192.168.1.0/24 'en1{504,120}'\"")

    def test_warnings_in_header(self, runner):
        driver = CompilerDriver_ipfw(CompilerOptions(), engine=FakeEngine(), runner=runner)
        policy = driver.compile(['en0+mac'])
        assert '# Warning: Interface en0 (index 0) is marked +mac' in driver.render_script(policy, ['en0+mac'])


class TestOsConfigurator:
    def test_kernel_settings(self):
        configurator = OSConfigurator_ipfw()
        settings = {
            s.name: s.value
            for s in configurator.kernel_settings(
                CompilerOptions(blackhole=True, router=RouterConfig('en0', 'en1', '10.0.0.0/8'))
            )
        }
        assert settings['net.inet.tcp.blackhole'] == 2
        assert settings['net.inet.udp.blackhole'] == 1
        assert settings['net.inet.ip.forwarding'] == 1
        assert settings['net.inet.ip.fw.one_pass'] == 0

    def test_commands(self):
        configurator = OSConfigurator_ipfw()
        assert configurator.sysctl_command(SysctlSetting('kern.ipc.somaxconn', 1024)) == [
            'sysctl', '-w', 'kern.ipc.somaxconn=1024',
        ]  # fmt: skip
        assert configurator.service_command(ServiceToggle('mDNSResponder', enable=False)) == [
            'launchctl', 'unload', '/System/Library/LaunchDaemons/com.apple.mDNSResponder.plist',
        ]  # fmt: skip
        with pytest.raises(KeyError):
            configurator.service_command(ServiceToggle('sshd', enable=True))
