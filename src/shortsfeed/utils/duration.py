"""Parsing helpers for the compact ISO 8601 durations returned by YouTube."""

from __future__ import annotations

import re
from typing import Optional

_DURATION_PATTERN = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def is_parseable_duration(value: Optional[str]) -> bool:
    """Return ``True`` when ``value`` starts with a ``PT[nH][nM][nS]`` encoding."""

    if not value:
        return False
    return _DURATION_PATTERN.match(value) is not None


def parse_duration(value: Optional[str]) -> int:
    """Convert ``PT[nH][nM][nS]`` into whole seconds.

    Missing components count as zero. Inputs that do not match at all (``None``, ``""``,
    ``"P1D"``) yield ``0`` rather than raising, which downstream classification rejects.
    """

    if not value:
        return 0
    match = _DURATION_PATTERN.match(value)
    if not match:
        return 0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 3600 + minutes * 60 + seconds


__all__ = ["is_parseable_duration", "parse_duration"]
