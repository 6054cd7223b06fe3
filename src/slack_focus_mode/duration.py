"""Parsing and formatting of human-entered focus durations ("2h", "1h30m")."""

import re

_DURATION_RE = re.compile(r"(?:(\d+)h)?(?:(\d+)m)?", re.IGNORECASE | re.ASCII)

MS_PER_MINUTE = 60_000


def parse_duration(text: str) -> int | None:
    """Parse a duration string into milliseconds.

    Accepts an optional hour part followed by an optional minute part, e.g.
    ``"2h"``, ``"30m"`` or ``"1h30m"``. Returns ``None`` when the string is
    empty, has neither part, or contains anything else.
    """
    match = _DURATION_RE.fullmatch(text)
    if match is None:
        return None
    hours, minutes = match.groups()
    if hours is None and minutes is None:
        return None
    return (int(hours or 0) * 60 + int(minutes or 0)) * MS_PER_MINUTE


def format_duration(ms: int | float) -> str:
    """Render milliseconds as ``"1h 30m"``, ``"2h"`` or ``"45m"``."""
    minutes = int(ms // MS_PER_MINUTE)
    hours, remaining_minutes = divmod(minutes, 60)
    if hours > 0 and remaining_minutes > 0:
        return f"{hours}h {remaining_minutes}m"
    if hours > 0:
        return f"{hours}h"
    return f"{minutes}m"


def describe_duration(ms: int | float) -> str:
    """Render milliseconds in words: ``"8 hours"``, ``"1 hour 30 minutes"``."""
    minutes = int(ms // MS_PER_MINUTE)
    hours, remaining_minutes = divmod(minutes, 60)
    parts = []
    if hours:
        parts.append(f"{hours} hour" if hours == 1 else f"{hours} hours")
    if remaining_minutes or not hours:
        parts.append(f"{remaining_minutes} minute" if remaining_minutes == 1 else f"{remaining_minutes} minutes")
    return " ".join(parts)
