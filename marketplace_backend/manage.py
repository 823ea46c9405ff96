#!/usr/bin/env python
"""
PATH: manage.py

Django management entrypoint for the marketplace backend.

Settings selection when DJANGO_SETTINGS_MODULE is unset (or points at the bare
"backend.settings" package, which loads no INSTALLED_APPS):
- `manage.py test ...`  -> backend.settings.test (in-memory DB, locmem mail,
  fixed Razorpay test keys)
- anything else         -> backend.settings.dev

Production sets DJANGO_SETTINGS_MODULE=backend.settings.prod explicitly.
"""

from __future__ import annotations

import os
import sys


def _default_settings_module(argv: list[str]) -> str:
    if len(argv) > 1 and argv[1] == "test":
        return "backend.settings.test"
    return "backend.settings.dev"


def _ensure_settings_module(argv: list[str]) -> None:
    current = (os.environ.get("DJANGO_SETTINGS_MODULE") or "").strip()
    if not current or current == "backend.settings":
        os.environ["DJANGO_SETTINGS_MODULE"] = _default_settings_module(argv)


def main() -> None:
    _ensure_settings_module(sys.argv)

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Is it installed in the active virtualenv? "
            "Try `pip install -e .[test]` from the repository root."
        ) from exc

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
