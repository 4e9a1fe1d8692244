"""Duration parsing for prune age thresholds.

Accepts human shorthand (``30d``, ``2w``, ``6M``, ``1y``, ``12h``, ``30m``,
``45s``) and ISO 8601 durations (``P30D``, ``P1DT12H``). Months and years
are fixed-length approximations, not calendar arithmetic.
"""

import re

from grove.exceptions import DurationParseError

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR
MS_PER_WEEK = 7 * MS_PER_DAY
MS_PER_MONTH = 30 * MS_PER_DAY
MS_PER_YEAR = 365 * MS_PER_DAY

FORMAT_HINT = "use formats like: 30d, 2w, 6M, 1y, 12h, 30m or ISO 8601 like P30D, P1Y, P2W, PT1H"

_SHORTHAND_RE = re.compile(r"^(\d+(?:\.\d+)?)\s*([dDwWMmyYhHsS])$")
_DATE_PART_RE = re.compile(r"(\d+(?:\.\d+)?)([YMWD])")
_TIME_PART_RE = re.compile(r"(\d+(?:\.\d+)?)([HMS])")

# Shorthand unit -> (ISO unit, belongs after the T separator)
_SHORTHAND_UNITS = {
    "d": ("D", False),
    "D": ("D", False),
    "w": ("W", False),
    "W": ("W", False),
    "M": ("M", False),  # months
    "y": ("Y", False),
    "Y": ("Y", False),
    "h": ("H", True),
    "H": ("H", True),
    "m": ("M", True),  # minutes
    "s": ("S", True),
    "S": ("S", True),
}

_DATE_UNIT_MS = {"Y": MS_PER_YEAR, "M": MS_PER_MONTH, "W": MS_PER_WEEK, "D": MS_PER_DAY}
_TIME_UNIT_MS = {"H": MS_PER_HOUR, "M": MS_PER_MINUTE, "S": MS_PER_SECOND}


def normalize_duration(duration_str: str) -> str:
    """Convert shorthand like ``30d`` into ISO 8601 (``P30D``).

    Strings that already start with ``P`` and strings that are not
    recognised are returned unchanged (trimmed), leaving rejection to
    :func:`parse_duration`.
    """
    if not duration_str or not duration_str.strip():
        return duration_str

    normalized = duration_str.strip()
    if normalized.upper().startswith("P"):
        return normalized

    match = _SHORTHAND_RE.match(normalized)
    if not match:
        return normalized

    value, unit = match.groups()
    iso_unit, is_time_unit = _SHORTHAND_UNITS[unit]
    if is_time_unit:
        return f"PT{value}{iso_unit}"
    return f"P{value}{iso_unit}"


def iso8601_to_milliseconds(iso: str) -> int:
    """Sum the components of an ISO 8601 duration. Returns 0 if nothing parses."""
    upper = iso.upper()
    if not upper.startswith("P"):
        return 0

    remaining = upper[1:]
    date_part, _, time_part = remaining.partition("T")

    total = 0.0
    for value, unit in _DATE_PART_RE.findall(date_part):
        total += float(value) * _DATE_UNIT_MS[unit]
    for value, unit in _TIME_PART_RE.findall(time_part):
        total += float(value) * _TIME_UNIT_MS[unit]

    return int(total)


def parse_duration(duration_str: str) -> int:
    """Parse a duration string into milliseconds.

    Raises:
        DurationParseError: For empty input, unknown formats, and zero-length durations.
    """
    if not duration_str or not duration_str.strip():
        raise DurationParseError(f"Duration cannot be empty ({FORMAT_HINT})")

    milliseconds = iso8601_to_milliseconds(normalize_duration(duration_str))
    if milliseconds > 0:
        return milliseconds

    raise DurationParseError(f"Invalid duration format: {duration_str} ({FORMAT_HINT})")
