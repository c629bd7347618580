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

"""Tests for the rate adjuster and its schedules."""

import datetime

import pytest
import yaml

from trustfw.compiler import PipeConfig
from trustfw.core import IndexOutOfRangeError, MalformedSpecError
from trustfw.shaper import DEFAULT_SCHEDULE, PROFILE_ENV, RateAdjuster, RateWindow, Schedule

from .conftest import FakeEngine

OFFICE = {
    'office': {
        'default': {'in': 0, 'out': 0},
        'windows': [
            {'start': '08:00', 'end': '18:00', 'in': 512, 'out': 128},
            {'start': '22:00', 'end': '06:00', 'in': 2048, 'out': 512},
        ],
    },
}


def _clock(hour, minute=0):
    return lambda: datetime.datetime(2026, 10, 17, hour, minute)


def _shaped_engine(index=1, in_bits=504_000, out_bits=120_000):
    return FakeEngine(bandwidths={100 + index: in_bits, 200 + index: out_bits})


class TestExplicitRates:
    def test_sets_both_pipes(self):
        engine = _shaped_engine()
        assert RateAdjuster(engine).adjust(1, 1024, 256) is True
        configured = [call[1] for call in engine.calls if call[0] == 'configure_pipe']
        assert configured == [
            PipeConfig(101, bandwidth='1024Kbit/s'),
            PipeConfig(201, bandwidth='256Kbit/s'),
        ]

    def test_zero_means_unlimited(self):
        engine = _shaped_engine()
        RateAdjuster(engine).adjust(1, 0, 0)
        assert engine.bandwidths == {101: 0, 201: 0}

    def test_explicit_rates_applied_even_if_unchanged(self):
        engine = _shaped_engine(in_bits=504_000)
        assert RateAdjuster(engine).adjust(1, 504, 120) is True
        assert engine.count('configure_pipe') == 2

    def test_one_rate_only(self):
        engine = _shaped_engine()
        with pytest.raises(ValueError, match='both'):
            RateAdjuster(engine).adjust(1, 512)
        assert engine.calls == []


class TestIndex:
    @pytest.mark.parametrize('index', [-1, 10, 42])
    def test_outside_range(self, index):
        engine = _shaped_engine()
        with pytest.raises(IndexOutOfRangeError):
            RateAdjuster(engine).adjust(index, 1, 1)
        assert engine.calls == []

    def test_interface_without_pipe(self):
        engine = _shaped_engine(index=1)
        with pytest.raises(IndexOutOfRangeError, match='no pipe 103'):
            RateAdjuster(engine).adjust(3, 512, 128)
        assert engine.count('configure_pipe') == 0


class TestScheduledRates:
    def test_default_schedule_is_unlimited(self):
        engine = _shaped_engine()
        assert RateAdjuster(engine, profile='default', clock=_clock(12)).adjust(1) is True
        assert engine.bandwidths == {101: 0, 201: 0}

    def test_noop_when_inbound_rate_matches(self):
        engine = _shaped_engine(in_bits=0)
        assert RateAdjuster(engine, profile='default', clock=_clock(12)).adjust(1) is False
        assert engine.count('configure_pipe') == 0
        assert engine.names() == ['pipe_bandwidth']

    @pytest.mark.parametrize(
        ('hour', 'expected'),
        [
            (7, (0, 0)),
            (8, (512_000, 128_000)),
            (17, (512_000, 128_000)),
            (18, (0, 0)),
            (23, (2_048_000, 512_000)),
            (3, (2_048_000, 512_000)),
        ],
    )
    def test_windows(self, hour, expected):
        engine = _shaped_engine(in_bits=1)
        schedule = Schedule.from_data(OFFICE)
        RateAdjuster(engine, schedule, 'office', clock=_clock(hour)).adjust(1)
        assert (engine.bandwidths[101], engine.bandwidths[201]) == expected

    def test_window_already_applied(self):
        engine = _shaped_engine(in_bits=512_000)
        schedule = Schedule.from_data(OFFICE)
        assert RateAdjuster(engine, schedule, 'office', clock=_clock(9)).adjust(1) is False

    def test_profile_from_environment(self, monkeypatch):
        monkeypatch.setenv(PROFILE_ENV, 'office')
        adjuster = RateAdjuster(_shaped_engine(), Schedule.from_data(OFFICE))
        assert adjuster.profile_name == 'office'

    def test_explicit_profile_wins(self, monkeypatch):
        monkeypatch.setenv(PROFILE_ENV, 'office')
        assert RateAdjuster(_shaped_engine(), profile='default').profile_name == 'default'

    def test_unknown_profile(self):
        adjuster = RateAdjuster(_shaped_engine(), DEFAULT_SCHEDULE, 'weekend', clock=_clock(9))
        with pytest.raises(MalformedSpecError, match='weekend'):
            adjuster.adjust(1)


class TestSchedule:
    def test_midnight_wrap(self):
        window = RateWindow(datetime.time(22), datetime.time(6), 1, 1)
        assert window.contains(datetime.time(23, 59))
        assert window.contains(datetime.time(0))
        assert not window.contains(datetime.time(6))
        assert not window.contains(datetime.time(12))

    def test_unquoted_yaml_times(self):
        data = yaml.safe_load(
            'office:\n'
            '  windows:\n'
            '    - {start: 08:00, end: 18:30, in: 512, out: 128}\n'
        )
        profile = Schedule.from_data(data).profile('office')
        assert profile.windows[0].start == datetime.time(8, 0)
        assert profile.windows[0].end == datetime.time(18, 30)
        assert (profile.in_kbps, profile.out_kbps) == (0, 0)

    def test_empty_schedule_is_default(self):
        assert Schedule.from_data(None) is DEFAULT_SCHEDULE
        assert Schedule.from_data({}) is DEFAULT_SCHEDULE

    @pytest.mark.parametrize(
        'data',
        [
            {'p': []},
            {'p': {'rates': {}}},
            {'p': {'default': {'in': -1, 'out': 0}}},
            {'p': {'default': {'in': 'fast', 'out': 0}}},
            {'p': {'windows': [{'start': '25:00', 'end': '06:00', 'in': 1, 'out': 1}]}},
            {'p': {'windows': [{'start': 'noon', 'end': '06:00', 'in': 1, 'out': 1}]}},
            {'p': {'windows': [{'start': '08:00', 'end': '09:00', 'in': 1}]}},
        ],
    )
    def test_malformed(self, data):
        with pytest.raises(MalformedSpecError):
            Schedule.from_data(data)
