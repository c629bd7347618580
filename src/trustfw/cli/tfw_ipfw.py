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

"""CLI entry point for the ipfw firewall compiler."""

import argparse
import logging
import shlex
import sys
import time

import trustfw
from trustfw.core import (
    ConfigReader,
    LoadedConfig,
    MalformedSpecError,
    RuleNumberingError,
    UnknownOptionError,
)
from trustfw.core.options import CompilerOptions, PortOption, RouterConfig
from trustfw.driver import EngineError

__author__ = 'Linuxfabrik GmbH, Zurich/Switzerland'

DESCRIPTION = """trustfw compiler for ipfw. Builds a stateful firewall from a list of
interface declarations and installs it, or writes it to a shell script.

An interface is declared as NAME[{IN,OUT}][+mac][+win][:NETWORK] or, for a
trusted network, NAME[{IN,OUT}][+mac][+win]::NETWORK. Examples:
en0+mac::192.168.1.0/24  en1{504Kbit/s,120Kbit/s}  tap0"""

logger = logging.getLogger('trustfw')

PORT_FLAGS = {
    PortOption.TRUSTED_TCP: '--trusted-tcp',
    PortOption.TRUSTED_UDP: '--trusted-udp',
    PortOption.LOCAL_TCP: '--local-tcp',
    PortOption.LOCAL_UDP: '--local-udp',
    PortOption.PUBLIC_TCP: '--tcp',
    PortOption.PUBLIC_UDP: '--udp',
}


class ArgumentParser(argparse.ArgumentParser):
    """Raise instead of exiting with status 2 on a bad command line."""

    def error(self, message):
        raise UnknownOptionError(message)


def parse_args(argv=None):
    parser = ArgumentParser(
        prog='tfw-ipfw',
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        'INTERFACES',
        nargs='*',
        help='interface declarations, most specific networks first',
    )

    parser.add_argument(
        '-c',
        '--config',
        default='',
        dest='CONFIG',
        help='YAML config file; its interfaces come before the ones given here',
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        dest='DEBUG',
        help='print the ipfw commands instead of running them, change nothing',
    )

    parser.add_argument(
        '--log-all',
        action='store_true',
        dest='LOG_ALL',
        help='log every rejected packet, not just the suspicious ones',
    )

    parser.add_argument(
        '--stealth',
        action='store_true',
        dest='STEALTH',
        help='silently drop instead of sending resets or ICMP unreachables',
    )

    parser.add_argument(
        '--blackhole',
        action='store_true',
        dest='BLACKHOLE',
        help='enable the kernel tcp/udp blackhole against stealth scans',
    )

    parser.add_argument(
        '--router',
        default='',
        dest='ROUTER',
        metavar='EXT,CLIENT@NET',
        help='route and NAT the client network from CLIENT over EXT',
    )

    for option, flag in PORT_FLAGS.items():
        parser.add_argument(
            flag,
            action='append',
            default=[],
            dest=option.value.upper(),
            metavar='PORT[,PORT...]',
            help=f'open inbound {option.value.replace("_", " ")} ports (repeatable)',
        )

    parser.add_argument(
        '-o',
        '--output',
        default='',
        dest='OUTPUT',
        help='write the firewall to this shell script instead of installing it',
    )

    parser.add_argument(
        '-v',
        '--verbose',
        action='count',
        default=0,
        dest='VERBOSE',
        help='verbose output (repeat for rule processor debugging)',
    )

    parser.add_argument(
        '-V',
        '--version',
        action='version',
        version=f'%(prog)s: v{trustfw.__version__} by {__author__}',
    )

    return parser.parse_args(argv)


def build_options(args, config: LoadedConfig) -> CompilerOptions:
    """Merge command line switches over the config file options."""
    base = config.options
    ports = base.ports
    for option in PORT_FLAGS:
        for text in getattr(args, option.value.upper()):
            ports = ports.with_ports(option, text)

    router = base.router
    if args.ROUTER:
        router = RouterConfig.parse(args.ROUTER)

    return CompilerOptions(
        debug=base.debug or args.DEBUG,
        log_all=base.log_all or args.LOG_ALL,
        stealth=base.stealth or args.STEALTH,
        blackhole=base.blackhole or args.BLACKHOLE,
        router=router,
        ports=ports,
    )


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
    t_start = time.monotonic()

    config = LoadedConfig()
    if args.CONFIG:
        print(f'Loading config from {args.CONFIG} ...', file=sys.stderr)
        try:
            config = ConfigReader().parse(args.CONFIG)
        except (OSError, MalformedSpecError) as e:
            print(f'Error: failed to load config from {args.CONFIG}: {e}', file=sys.stderr)
            return 1

    try:
        options = build_options(args, config)
    except MalformedSpecError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    if options.debug:
        print('Debug mode, the firewall will not be changed', file=sys.stderr)
    if options.stealth:
        print('Enabling stealth mode to avoid detection and leakage', file=sys.stderr)
    if options.blackhole:
        print('Enabling blackhole to avoid stealth port scans', file=sys.stderr)

    from trustfw.platforms.ipfw._compiler_driver import CompilerDriver_ipfw

    driver = CompilerDriver_ipfw(options)
    driver.verbose = args.VERBOSE
    if args.OUTPUT:
        driver.file_name_setting = args.OUTPUT

    tokens = list(config.tokens) + list(args.INTERFACES)

    print('Compiling ...', file=sys.stderr)
    try:
        driver.run(tokens)
    except (MalformedSpecError, RuleNumberingError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1
    except EngineError as e:
        print(f'Error: ipfw rejected the program, firewall flushed: {e}', file=sys.stderr)
        return 1

    for warning in driver.all_warnings:
        print(f'Warning: {warning}', file=sys.stderr)

    elapsed = time.monotonic() - t_start
    if args.OUTPUT:
        print(f'Wrote {args.OUTPUT} in {elapsed:.2f}s', file=sys.stderr)
    else:
        logger.info('firewall installed: %s', shlex.join(tokens))

    return 0


if __name__ == '__main__':
    sys.exit(main())
