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

"""CLI entry point for re-tuning the bandwidth of a shaped interface."""

import argparse
import logging
import sys

import trustfw
from trustfw.cli.tfw_ipfw import ArgumentParser
from trustfw.core import ConfigReader, IndexOutOfRangeError, MalformedSpecError, UnknownOptionError
from trustfw.driver import EngineError
from trustfw.platforms.ipfw import IpfwEngine
from trustfw.shaper import PROFILE_ENV, RateAdjuster, Schedule

__author__ = 'Linuxfabrik GmbH, Zurich/Switzerland'

DESCRIPTION = f"""Set the bandwidth of the pipes of a shaped interface, addressed by the
index it had on the tfw-ipfw command line (starting at 0). Rates are in Kbit/s,
0 means unlimited. Without rates, the schedule profile named by --profile or
${PROFILE_ENV} picks them for the current time of day."""


def parse_args(argv=None):
    parser = ArgumentParser(
        prog='tfw-setrate',
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        'INDEX',
        type=int,
        help='interface index',
    )

    parser.add_argument(
        'RATES',
        type=int,
        nargs='*',
        metavar='KBPS',
        help='inbound and outbound rate',
    )

    parser.add_argument(
        '-c',
        '--config',
        default='',
        dest='CONFIG',
        help='YAML config file with a schedule',
    )

    parser.add_argument(
        '-p',
        '--profile',
        default=None,
        dest='PROFILE',
        help=f'schedule profile. Default: ${PROFILE_ENV} or "default"',
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        dest='DEBUG',
        help='print the ipfw commands instead of running them',
    )

    parser.add_argument(
        '-v',
        '--verbose',
        action='count',
        default=0,
        dest='VERBOSE',
        help='verbose output',
    )

    parser.add_argument(
        '-V',
        '--version',
        action='version',
        version=f'%(prog)s: v{trustfw.__version__} by {__author__}',
    )

    args = parser.parse_args(argv)
    if len(args.RATES) not in (0, 2):
        parser.error('give both inbound and outbound rate, or neither')
    return args


def main(argv=None):
    try:
        args = parse_args(argv)
    except UnknownOptionError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.VERBOSE else logging.INFO,
        format='%(message)s',
    )

    try:
        schedule = Schedule()
        if args.CONFIG:
            schedule = Schedule.from_data(ConfigReader().parse(args.CONFIG).schedule)
    except (OSError, MalformedSpecError) as e:
        print(f'Error: failed to load config from {args.CONFIG}: {e}', file=sys.stderr)
        return 1

    adjuster = RateAdjuster(IpfwEngine(dry_run=args.DEBUG), schedule, profile=args.PROFILE)
    in_kbps, out_kbps = args.RATES if args.RATES else (None, None)

    try:
        adjuster.adjust(args.INDEX, in_kbps, out_kbps)
    except (IndexOutOfRangeError, ValueError, EngineError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
