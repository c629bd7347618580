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

"""Unit tests for the rule number band table."""

import pytest

from trustfw.compiler._numbering import (
    BANDS,
    KNOWN_NETWORK_EXIT,
    RULE_BANDS,
    SHAPING_EXIT,
    Purpose,
    RuleBand,
    check_bands,
    inbound_pipe,
    outbound_pipe,
    rule_number,
)
from trustfw.core import MAX_INTERFACES


class TestBandTable:
    def test_every_purpose_has_a_band(self):
        assert set(BANDS) == set(Purpose)
        assert len(BANDS) == len(RULE_BANDS)

    def test_bands_do_not_overlap(self):
        ordered = sorted(RULE_BANDS, key=lambda b: b.base)
        for prev, cur in zip(ordered, ordered[1:]):
            assert prev.last < cur.base

    def test_per_interface_width(self):
        band = BANDS[Purpose.MAC_TCP]
        assert band.width == MAX_INTERFACES
        assert band.last == band.base + MAX_INTERFACES - 1
        assert BANDS[Purpose.CHECK_STATE].width == 1

    def test_shaping_runs_before_check_state(self):
        shaping = [b for b in RULE_BANDS if b.set_id == 10]
        assert max(b.last for b in shaping) < SHAPING_EXIT < BANDS[Purpose.CHECK_STATE].base

    def test_known_network_exit(self):
        assert BANDS[Purpose.REJECT_ZERONET].base == KNOWN_NETWORK_EXIT


class TestCheckBands:
    def test_overlap(self):
        bands = [
            RuleBand(3, Purpose.MAC_TCP, 3100, per_interface=True),
            RuleBand(3, Purpose.MAC_UDP, 3105),
        ]
        with pytest.raises(ValueError, match='overlaps'):
            check_bands(bands)

    def test_duplicate_purpose(self):
        bands = [RuleBand(0, Purpose.LOOPBACK, 100), RuleBand(0, Purpose.LOOPBACK, 200)]
        with pytest.raises(ValueError, match='duplicate'):
            check_bands(bands)


class TestRuleNumber:
    def test_per_interface(self):
        assert rule_number(Purpose.MAC_TCP, 0) == 3100
        assert rule_number(Purpose.MAC_TCP, 3) == 3103
        assert rule_number(Purpose.TRUSTED_UDP, 9) == 20029

    def test_global(self):
        assert rule_number(Purpose.CHECK_STATE) == 2000
        assert rule_number(Purpose.REJECT_ALL) == 30300

    @pytest.mark.parametrize('index', [None, -1, MAX_INTERFACES])
    def test_bad_index(self, index):
        with pytest.raises(ValueError):
            rule_number(Purpose.MAC_TCP, index)

    def test_index_on_global_band(self):
        with pytest.raises(ValueError):
            rule_number(Purpose.LOOPBACK, 0)

    def test_pipes(self):
        assert inbound_pipe(2) == 102
        assert outbound_pipe(2) == 202
