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

"""InterfaceRegistry: ordered interface descriptors with index assignment."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable, Iterator

from ._descriptor import InterfaceDescriptor, parse_interface_spec
from ._errors import TooManyInterfacesError

logger = logging.getLogger(__name__)

# Width of every per-interface rule number band.
MAX_INTERFACES = 10


class InterfaceRegistry:
    """Descriptors in registration order plus the deduplicated name list.

    Indices are never deduplicated: the same physical interface may be
    registered several times with different networks, each occurrence
    gets its own index.  Rules are ordered by index, so more specific
    networks of a shared interface have to be registered first.
    """

    def __init__(self) -> None:
        self._descriptors: list[InterfaceDescriptor] = []
        self._unique_names: list[str] = []
        self._frozen: bool = False

    @classmethod
    def from_tokens(cls, tokens: Iterable[str]) -> InterfaceRegistry:
        """Parse and register every token, then freeze the registry.

        Parsing happens for all tokens before anything is registered, so
        a malformed token anywhere in the list leaves nothing behind.
        """
        descriptors = [parse_interface_spec(token) for token in tokens]
        registry = cls()
        for descriptor in descriptors:
            registry.register(descriptor)
        registry.freeze()
        return registry

    def register(self, descriptor: InterfaceDescriptor) -> int:
        """Append *descriptor* and return the index assigned to it."""
        if self._frozen:
            raise RuntimeError('interface registry is frozen')
        index = len(self._descriptors)
        if index >= MAX_INTERFACES:
            raise TooManyInterfacesError(
                f'at most {MAX_INTERFACES} interfaces can be declared'
            )
        descriptor = dataclasses.replace(descriptor, index=index)
        self._descriptors.append(descriptor)
        if descriptor.name not in self._unique_names:
            self._unique_names.append(descriptor.name)
        logger.info('Configuring interface %d: %s', index, descriptor)
        return index

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def descriptors(self) -> tuple[InterfaceDescriptor, ...]:
        return tuple(self._descriptors)

    @property
    def unique_names(self) -> tuple[str, ...]:
        return tuple(self._unique_names)

    def via_clause(
        self,
        predicate: Callable[[InterfaceDescriptor], bool],
    ) -> tuple[str, ...]:
        """Return the ordered, deduplicated names of matching descriptors."""
        names: list[str] = []
        for descriptor in self._descriptors:
            if predicate(descriptor) and descriptor.name not in names:
                names.append(descriptor.name)
        return tuple(names)

    def __len__(self) -> int:
        return len(self._descriptors)

    def __iter__(self) -> Iterator[InterfaceDescriptor]:
        return iter(tuple(self._descriptors))

    def __getitem__(self, index: int) -> InterfaceDescriptor:
        return self._descriptors[index]
