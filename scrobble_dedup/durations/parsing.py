"""Conversions between track durations and their text forms.

Durations are persisted (cache values, the track-durations file) in the
compact unit-suffixed form ``4m3s`` / ``3m45.5s`` / ``1h2m0s`` / ``0s``.
Track pages show lengths as ``m:ss`` or ``h:mm:ss``.
"""

import re
from datetime import timedelta

_UNIT_MICROSECONDS = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "μs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}

_COMPONENT = r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION_RE = re.compile(rf"^([+-]?)((?:{_COMPONENT})+)$")
_COMPONENT_RE = re.compile(_COMPONENT)

_US_PER_SECOND = 1_000_000
_US_PER_MINUTE = 60 * _US_PER_SECOND
_US_PER_HOUR = 60 * _US_PER_MINUTE


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``4m3s`` or ``-1.5h``.

    Raises:
        ValueError: if the text is not a valid duration
    """
    value = text.strip()
    if value in {"0", "+0", "-0"}:
        return timedelta(0)

    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"invalid duration {text!r}")

    sign, body = match.group(1), match.group(2)
    total_us = 0.0
    for number, unit in _COMPONENT_RE.findall(body):
        total_us += float(number) * _UNIT_MICROSECONDS[unit]

    duration = timedelta(microseconds=total_us)
    return -duration if sign == "-" else duration


def _with_fraction(value: int, unit: int) -> str:
    whole, frac = divmod(value, unit)
    if not frac:
        return str(whole)
    width = len(str(unit)) - 1
    return f"{whole}.{str(frac).rjust(width, '0').rstrip('0')}"


def format_duration(duration: timedelta) -> str:
    """Format a duration the way parse_duration reads it back (``4m0s``)."""
    us = duration // timedelta(microseconds=1)
    if us == 0:
        return "0s"

    sign = "-" if us < 0 else ""
    us = abs(us)

    if us < _US_PER_SECOND:
        if us < 1_000:
            return f"{sign}{us}µs"
        return f"{sign}{_with_fraction(us, 1_000)}ms"

    hours, rest = divmod(us, _US_PER_HOUR)
    minutes, rest = divmod(rest, _US_PER_MINUTE)

    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + f"{_with_fraction(rest, _US_PER_SECOND)}s"


def parse_track_length(text: str) -> timedelta:
    """Parse a clock-style track length (``3:45`` or ``1:02:03``)."""
    parts = text.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.strip().isdigit() for p in parts):
        raise ValueError(f"invalid track length {text!r}")

    numbers = [int(p) for p in parts]
    if len(numbers) == 2:
        minutes, seconds = numbers
        return timedelta(minutes=minutes, seconds=seconds)
    hours, minutes, seconds = numbers
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)
