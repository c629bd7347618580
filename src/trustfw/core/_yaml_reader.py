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

"""YAML reader for trustfw config files.

A config file carries the same information as a command line::

    interfaces:
      - en1:192.168.0.0/24
      - en1{0,0}
      - en0+mac::192.168.2.0/24
    stealth: true
    router: en0,en1@192.168.2.0/24
    ports:
      trusted_tcp: 22
      public_tcp: [80, 443]
    schedule:
      default:
        default: {in: 0, out: 0}
"""

from __future__ import annotations

import dataclasses
import logging
import pathlib

import yaml

from ._errors import MalformedSpecError
from .options import CompilerOptions, ConfigKey, PortLists, PortOption, RouterConfig

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class LoadedConfig:
    """Interface tokens, compiler options and raw rate schedule of one file."""

    tokens: tuple[str, ...] = ()
    options: CompilerOptions = dataclasses.field(default_factory=CompilerOptions)
    schedule: dict | None = None


def _coerce_bool(data: dict, key: ConfigKey) -> bool:
    """Read a boolean switch; quoted ``"true"``/``"false"`` are accepted."""
    value = data.get(key, False)
    if isinstance(value, str):
        low = value.lower()
        if low in ('true', 'yes', 'on', '1'):
            return True
        if low in ('false', 'no', 'off', '0', ''):
            return False
        raise MalformedSpecError(f'{key}: expected a boolean, got {value!r}')
    return bool(value)


def _port_text(value) -> str:
    if isinstance(value, (list, tuple)):
        return ','.join(str(v) for v in value)
    return str(value)


class ConfigReader:
    """Parses a YAML config file into a LoadedConfig."""

    def parse(self, input_path) -> LoadedConfig:
        input_path = pathlib.Path(input_path)
        with pathlib.Path.open(input_path, encoding='utf-8') as f:
            data = yaml.safe_load(f)
        logger.debug('Loaded config from %s', input_path)
        return self.parse_data(data or {}, source=str(input_path))

    def parse_data(self, data, source: str = '<config>') -> LoadedConfig:
        if not isinstance(data, dict):
            raise MalformedSpecError(f'{source}: top level must be a mapping')

        unknown = sorted(set(data) - {k.value for k in ConfigKey})
        if unknown:
            raise MalformedSpecError(f'{source}: unknown keys: {", ".join(unknown)}')

        interfaces = data.get(ConfigKey.INTERFACES) or []
        if not isinstance(interfaces, list):
            raise MalformedSpecError(f'{source}: interfaces must be a list')
        tokens = tuple(str(token) for token in interfaces)

        router = None
        if data.get(ConfigKey.ROUTER):
            router = RouterConfig.parse(str(data[ConfigKey.ROUTER]))

        ports = PortLists()
        port_data = data.get(ConfigKey.PORTS) or {}
        if not isinstance(port_data, dict):
            raise MalformedSpecError(f'{source}: ports must be a mapping')
        for key, value in port_data.items():
            try:
                option = PortOption(key)
            except ValueError:
                raise MalformedSpecError(f'{source}: unknown port list {key!r}') from None
            ports = ports.with_ports(option, _port_text(value))

        options = CompilerOptions(
            debug=_coerce_bool(data, ConfigKey.DEBUG),
            log_all=_coerce_bool(data, ConfigKey.LOG_ALL),
            stealth=_coerce_bool(data, ConfigKey.STEALTH),
            blackhole=_coerce_bool(data, ConfigKey.BLACKHOLE),
            router=router,
            ports=ports,
        )

        schedule = data.get(ConfigKey.SCHEDULE)
        if schedule is not None and not isinstance(schedule, dict):
            raise MalformedSpecError(f'{source}: schedule must be a mapping')

        return LoadedConfig(tokens=tokens, options=options, schedule=schedule)
