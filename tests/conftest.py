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

"""Shared pytest fixtures: a recording filter engine and compile helpers."""

import subprocess

import pytest

from trustfw.compiler import PolicyCompiler
from trustfw.core import InterfaceRegistry, rate_to_bits
from trustfw.core.options import CompilerOptions
from trustfw.driver import EngineError, FilterEngine


class FakeEngine(FilterEngine):
    """Records every call; optionally fails on one method."""

    def __init__(self, bandwidths=None, fail_on=None):
        self.calls = []
        self.bandwidths = dict(bandwidths or {})
        self.fail_on = fail_on

    def _record(self, name, *args):
        self.calls.append((name, *args))
        if name == self.fail_on:
            raise EngineError(f'ipfw: {name} rejected')

    def flush(self):
        self._record('flush')

    def install(self, program):
        self._record('install', program)

    def configure_pipe(self, pipe):
        self._record('configure_pipe', pipe)
        self.bandwidths[pipe.pipe_id] = rate_to_bits(pipe.bandwidth or '0')

    def configure_queue(self, queue):
        self._record('configure_queue', queue)

    def set_enabled(self, set_id, enabled):
        self._record('set_enabled', set_id, enabled)

    def pipe_bandwidth(self, pipe_id):
        self._record('pipe_bandwidth', pipe_id)
        return self.bandwidths.get(pipe_id)

    def names(self):
        return [call[0] for call in self.calls]

    def count(self, name):
        return self.names().count(name)


class FakeRunner:
    """Stands in for subprocess.run and records the commands."""

    def __init__(self, returncode=0, stdout='', stderr=''):
        self.commands = []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def __call__(self, cmd, **kwargs):
        self.commands.append(list(cmd))
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


def compile_policy(tokens, **options):
    """Compile *tokens* with CompilerOptions(**options) into a CompiledPolicy."""
    registry = InterfaceRegistry.from_tokens(tokens)
    return PolicyCompiler(registry, CompilerOptions(**options)).build()


@pytest.fixture()
def engine():
    return FakeEngine()


@pytest.fixture()
def runner():
    return FakeRunner()


@pytest.fixture()
def example_policy():
    """The mac/trusted plus shaped interface example."""
    return compile_policy(['en0+mac::192.168.1.0/24', 'en1{504,120}'])
