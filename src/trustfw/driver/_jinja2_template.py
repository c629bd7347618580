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

"""Jinja2 templates for rendered firewall scripts.

Templates live in ``trustfw/resources/templates/<platform>/``.  A file of
the same name in ``~/trustfw/templates/<platform>/`` takes precedence,
so a site can change the script layout without touching the package.
Undefined variables are errors: a template that asks for something the
driver does not provide fails loudly instead of printing an empty rule.
"""

from __future__ import annotations

import importlib.resources
from pathlib import Path

import jinja2

USER_TEMPLATE_DIR = Path('trustfw') / 'templates'


def template_dirs(platform: str) -> list[str]:
    """Directories searched for *platform* templates, in lookup order."""
    dirs = []
    user_dir = Path.home() / USER_TEMPLATE_DIR / platform
    if user_dir.is_dir():
        dirs.append(str(user_dir))
    package_dir = importlib.resources.files('trustfw') / 'resources' / 'templates' / platform
    dirs.append(str(package_dir))
    return dirs


class Jinja2Template:
    """One named template of one platform."""

    def __init__(self, platform: str, template_name: str) -> None:
        env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(template_dirs(platform)),
            undefined=jinja2.StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._template = env.get_template(template_name)

    def render(self, context: dict) -> str:
        return self._template.render(context)
