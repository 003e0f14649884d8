"""
GRUB text handling: ``/etc/default/grub`` upserts and ``grub.cfg`` parsing.

Pure functions over strings; the GRUB adapter does the file I/O.

``/etc/default/grub`` is treated as ``KEY=VALUE`` lines. An upsert
rewrites the first line that starts with ``KEY=``, drops any later
duplicates, and appends ``KEY=VALUE`` when the key is absent, so after
an upsert the key appears exactly once. Comments (``#KEY=...``) are
not assignments and are left alone.

Menu entry extraction understands one input shape, the quoted title in
a ``menuentry`` line as written by ``grub-mkconfig``::

    menuentry 'Windows Boot Manager (on /dev/sda2)' --class windows ... {

The first matching entry wins.
"""

from __future__ import annotations

import re


def _is_assignment(line: str, key: str) -> bool:
    return line.startswith(f"{key}=")


def upsert_key(text: str, key: str, value: str) -> str:
    """Set ``key`` to ``value`` in a ``KEY=VALUE`` document."""
    lines = text.splitlines()
    new_line = f"{key}={value}"

    out: list[str] = []
    replaced = False
    for line in lines:
        if _is_assignment(line, key):
            if not replaced:
                out.append(new_line)
                replaced = True
            continue
        out.append(line)

    if not replaced:
        out.append(new_line)

    return "\n".join(out) + "\n"


def upsert_keys(text: str, values: dict[str, str]) -> str:
    """Apply ``upsert_key`` for every pair, in order."""
    for key, value in values.items():
        text = upsert_key(text, key, value)
    return text


def read_keys(text: str) -> dict[str, str]:
    """Parse the active assignments of a ``KEY=VALUE`` document.

    Later assignments override earlier ones, like the shell sourcing
    the file would.
    """
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = _unquote(value.strip())
    return values


def count_assignments(text: str, key: str) -> int:
    """How many lines assign ``key``."""
    return sum(1 for line in text.splitlines() if _is_assignment(line, key))


def find_menu_entry(cfg_text: str, prefix: str) -> str | None:
    """Return the title of the first menu entry whose title starts with ``prefix``.

    Returns None when no entry matches.
    """
    pattern = re.compile(r"menuentry\s+'(" + re.escape(prefix) + r"[^']*)'")
    for line in cfg_text.splitlines():
        match = pattern.search(line)
        if match:
            return match.group(1)
    return None


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value
