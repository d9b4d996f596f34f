"""Group naming helpers."""

import re
from typing import Iterable

DEFAULT_PREFIX = 'Group'
CHIP_COLORS = ('primary', 'secondary', 'success', 'warning', 'info', 'error')


def _numbers_in_use(existing: Iterable[str], prefix: str) -> set:
    pattern = re.compile(rf'^{re.escape(prefix)}\s+(\d+)$', re.IGNORECASE)
    used = set()
    for name in existing:
        m = pattern.match((name or '').strip())
        if m:
            used.add(int(m.group(1)))
    return used


def next_group_name(existing: Iterable[str], prefix: str = DEFAULT_PREFIX) -> str:
    """Return `<prefix> N` with N one above the highest number in use."""
    used = _numbers_in_use(existing, prefix)
    return f'{prefix} {max(used, default=0) + 1}'


def chip_color_for(index: int) -> str:
    return CHIP_COLORS[index % len(CHIP_COLORS)]
