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

"""Tests for the tfw-ipfw and tfw-setrate command line tools."""

import logging

import pytest

from trustfw.cli import tfw_ipfw, tfw_setrate
from trustfw.core import LoadedConfig
from trustfw.core.options import CompilerOptions, PortLists, RouterConfig
from trustfw.platforms.ipfw import IpfwEngine

from .conftest import FakeEngine


def _ipfw_missing(cmd, **kwargs):
    raise FileNotFoundError(2, 'No such file or directory', cmd[0])


@pytest.fixture()
def fake_ipfw(monkeypatch):
    """Route the ipfw driver's engine to a FakeEngine."""
    engine = FakeEngine()
    monkeypatch.setattr(
        'trustfw.platforms.ipfw._compiler_driver.IpfwEngine',
        lambda **kwargs: engine,
    )
    return engine


@pytest.fixture()
def fake_setrate(monkeypatch):
    engine = FakeEngine(bandwidths={101: 504_000, 201: 120_000})
    monkeypatch.setattr(tfw_setrate, 'IpfwEngine', lambda **kwargs: engine)
    return engine


class TestBuildOptions:
    def test_flags_merge_over_config(self):
        args = tfw_ipfw.parse_args(['--stealth', '--tcp', '80,443', '--tcp', '8080', '--trusted-udp', '53'])
        config = LoadedConfig(
            options=CompilerOptions(
                log_all=True,
                router=RouterConfig('en0', 'en1', '10.0.0.0/8'),
                ports=PortLists(public_tcp=('22',)),
            )
        )
        options = tfw_ipfw.build_options(args, config)
        assert options.stealth and options.log_all
        assert not options.blackhole
        assert options.router == RouterConfig('en0', 'en1', '10.0.0.0/8')
        assert options.ports == PortLists(trusted_udp=('53',), public_tcp=('22', '80', '443', '8080'))

    def test_router_flag_overrides_config(self):
        args = tfw_ipfw.parse_args(['--router', 'ppp0,en1@192.168.2.0/24'])
        config = LoadedConfig(options=CompilerOptions(router=RouterConfig('en0', 'en1', '10.0.0.0/8')))
        assert tfw_ipfw.build_options(args, config).router.external_interface == 'ppp0'


class TestIpfwMain:
    def test_unknown_option(self, capsys):
        assert tfw_ipfw.main(['--frobnicate', 'en0']) == 1
        assert 'Error:' in capsys.readouterr().err

    def test_malformed_interface(self, fake_ipfw, capsys):
        assert tfw_ipfw.main(['--debug', 'en0', 'en1{504}']) == 1
        assert fake_ipfw.calls == []
        assert 'malformed bandwidth' in capsys.readouterr().err

    def test_bad_port(self, capsys):
        assert tfw_ipfw.main(['--tcp', '99999', 'en0']) == 1
        assert 'out of range' in capsys.readouterr().err

    def test_missing_config(self, tmp_path, capsys):
        assert tfw_ipfw.main(['-c', str(tmp_path / 'nope.yml'), 'en0']) == 1
        assert 'failed to load config' in capsys.readouterr().err

    def test_install(self, fake_ipfw, caplog):
        with caplog.at_level(logging.INFO, logger='trustfw'):
            assert tfw_ipfw.main(['--debug', 'en0+mac::192.168.1.0/24', 'en1{504,120}']) == 0
        assert fake_ipfw.count('install') == 1
        assert "firewall installed: en0+mac::192.168.1.0/24 'en1{504,120}'" in caplog.text

    def test_engine_failure(self, monkeypatch, capsys):
        engine = FakeEngine(fail_on='install')
        monkeypatch.setattr(
            'trustfw.platforms.ipfw._compiler_driver.IpfwEngine',
            lambda **kwargs: engine,
        )
        assert tfw_ipfw.main(['--debug', 'en0']) == 1
        assert engine.names()[-1] == 'flush'
        assert 'firewall flushed' in capsys.readouterr().err

    def test_missing_ipfw(self, monkeypatch, capsys):
        monkeypatch.setattr(
            'trustfw.platforms.ipfw._compiler_driver.IpfwEngine',
            lambda **kwargs: IpfwEngine(runner=_ipfw_missing, dry_run=kwargs['dry_run']),
        )
        assert tfw_ipfw.main(['en0']) == 1
        assert '/sbin/ipfw: No such file or directory' in capsys.readouterr().err

    def test_output_script(self, tmp_path, fake_ipfw):
        out = tmp_path / 'fw.sh'
        assert tfw_ipfw.main(['-o', str(out), '--stealth', 'en0::10.0.0.0/8']) == 0
        assert fake_ipfw.calls == []
        script = out.read_text()
        assert '"$IPFW" -q add 7700 set 7 deny tcp from any to me 113 in setup' in script

    def test_config_tokens_come_first(self, tmp_path, fake_ipfw):
        config = tmp_path / 'trustfw.yml'
        config.write_text('interfaces:\n  - en0::10.0.0.0/8\nports:\n  trusted_tcp: 22\n', encoding='utf-8')
        assert tfw_ipfw.main(['-c', str(config), '--debug', 'en1']) == 0
        program = fake_ipfw.calls[[c[0] for c in fake_ipfw.calls].index('install')][1]
        assert program.rule(20000).match.via == ('en0',)
        assert program.rule(7201) is None


class TestSetrateMain:
    def test_explicit_rates(self, fake_setrate):
        assert tfw_setrate.main(['1', '1024', '256']) == 0
        assert fake_setrate.bandwidths == {101: 1_024_000, 201: 256_000}

    def test_one_rate(self, fake_setrate, capsys):
        assert tfw_setrate.main(['1', '1024']) == 1
        assert fake_setrate.calls == []
        assert 'both' in capsys.readouterr().err

    def test_no_index(self, capsys):
        assert tfw_setrate.main([]) == 1

    @pytest.mark.parametrize('index', ['12', '-1', '4'])
    def test_bad_index(self, fake_setrate, index, capsys):
        assert tfw_setrate.main(['--', index, '10', '10']) == 1
        assert fake_setrate.count('configure_pipe') == 0
        assert 'Error:' in capsys.readouterr().err

    def test_scheduled_profile(self, tmp_path, fake_setrate, monkeypatch):
        config = tmp_path / 'trustfw.yml'
        config.write_text('schedule:\n  flat:\n    default: {in: 64, out: 32}\n', encoding='utf-8')
        monkeypatch.setenv('TRUSTFW_PROFILE', 'flat')
        assert tfw_setrate.main(['-c', str(config), '1']) == 0
        assert fake_setrate.bandwidths == {101: 64_000, 201: 32_000}

    def test_unknown_profile(self, fake_setrate, capsys):
        assert tfw_setrate.main(['-p', 'weekend', '1']) == 1
        assert 'weekend' in capsys.readouterr().err

    def test_missing_ipfw(self, monkeypatch, capsys):
        monkeypatch.setattr(
            tfw_setrate,
            'IpfwEngine',
            lambda **kwargs: IpfwEngine(runner=_ipfw_missing, **kwargs),
        )
        assert tfw_setrate.main(['2', '100', '100']) == 1
        assert 'Error: /sbin/ipfw: No such file or directory' in capsys.readouterr().err
