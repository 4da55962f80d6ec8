"""Scaling-window checks and the small value parsers the controller relies on."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone as _timezone, tzinfo
from fractions import Fraction
from typing import Iterable, Optional, Protocol, Sequence
from zoneinfo import ZoneInfo

log = logging.getLogger(__name__)

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_INT64_MAX = 2**63 - 1

_INT_PATTERN = re.compile(r"[+-]?[0-9]+", re.ASCII)
_CLOCK_PATTERN = re.compile(r"([0-9]{1,2}):([0-9]{2})", re.ASCII)
_DURATION_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)", re.ASCII)

_NANOSECOND_UNITS = {
    "ns": 1,
    "us": 1_000,
    "\u00b5s": 1_000,
    "\u03bcs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}


class _Schedule(Protocol):
    days: Sequence[str]
    start_time: str
    end_time: str


def _weekday_abbrev(now: datetime) -> str:
    return ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")[now.weekday()]


def is_day_active(days: Iterable[str], now: datetime) -> bool:
    """True if ``now`` falls on one of ``days`` ("Mon", "tue", ... or "*")."""
    today = _weekday_abbrev(now)
    for day in days:
        if day == "*" or day.casefold() == today.casefold():
            log.debug("Day is active: %s", day)
            return True
    log.debug("Day %s is not active in %s", today, list(days))
    return False


def _parse_clock(text: str) -> tuple[int, int]:
    match = _CLOCK_PATTERN.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid time {text!r}: expected HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23:
        raise ValueError(f"invalid time {text!r}: hour out of range")
    if minute > 59:
        raise ValueError(f"invalid time {text!r}: minute out of range")
    return hour, minute


def is_time_within_range(start_time: str, end_time: str, now: datetime) -> bool:
    """True if ``now`` lies strictly between two HH:MM times of its own day.

    A window whose end is earlier than its start runs across midnight.
    An unparsable time gives False.
    """
    try:
        start_clock = _parse_clock(start_time)
    except ValueError as err:
        log.error("Invalid start time format %r: %s", start_time, err)
        return False
    try:
        end_clock = _parse_clock(end_time)
    except ValueError as err:
        log.error("Invalid end time format %r: %s", end_time, err)
        return False

    start = now.replace(hour=start_clock[0], minute=start_clock[1], second=0, microsecond=0)
    end = now.replace(hour=end_clock[0], minute=end_clock[1], second=0, microsecond=0)

    if end_clock < start_clock:
        end_next_day = end + timedelta(days=1)
        return (
            now > start
            or (now < end and now.day != end_next_day.day)
            or (now < end_next_day and now.day == end_next_day.day)
        )
    return start < now < end


def _load_timezone(name: str) -> tzinfo:
    if name in ("", "UTC"):
        return _timezone.utc
    if name == "Local":
        local = datetime.now().astimezone().tzinfo
        return local if local is not None else _timezone.utc
    return ZoneInfo(name)


def is_scaling_time(
    schedules: Iterable[Optional[_Schedule]], timezone: str, now: datetime
) -> bool:
    """True if ``now``, seen in ``timezone``, is inside any of the schedules.

    ``None`` entries are skipped; an unknown timezone gives False.
    """
    try:
        location = _load_timezone(timezone)
    except Exception as err:  # unknown or malformed zone names
        log.error("Failed to load timezone %r, skipping: %s", timezone, err)
        return False

    local_now = now.astimezone(location)
    for schedule in schedules:
        if schedule is None:
            continue
        if is_day_active(schedule.days, local_now) and is_time_within_range(
            schedule.start_time, schedule.end_time, local_now
        ):
            log.info("Current time %s is within schedule %s", local_now, schedule)
            return True
        log.info("Current time %s is NOT within schedule %s", local_now, schedule)
    return False


def parse_int32(text: str) -> int:
    """Parse a base-10 signed 32-bit integer, raising ValueError otherwise."""
    if _INT_PATTERN.fullmatch(text) is None:
        raise ValueError(f"invalid syntax for int32: {text!r}")
    value = int(text)
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(f"value out of range for int32: {text!r}")
    return value


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "5m", "1h30m" or "-1.5s".

    Units are ns, us (or µs), ms, s, m and h. Precision below a
    microsecond is truncated. Raises ValueError on malformed input.
    """
    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")

    total = Fraction(0)
    pos = 0
    while pos < len(rest):
        match = _DURATION_COMPONENT.match(rest, pos)
        whole, fraction, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not fraction:
            raise ValueError(f"invalid duration {text!r}")
        if not unit:
            raise ValueError(f"missing unit in duration {text!r}")
        scale = _NANOSECOND_UNITS.get(unit)
        if scale is None:
            raise ValueError(f"unknown unit {unit!r} in duration {text!r}")
        amount = Fraction(int(whole or "0"))
        if fraction:
            amount += Fraction(int(fraction), 10 ** len(fraction))
        total += amount * scale
        pos = match.end()

    nanoseconds = int(total)
    limit = _INT64_MAX + 1 if negative else _INT64_MAX
    if nanoseconds > limit:
        raise ValueError(f"invalid duration {text!r}: out of range")
    microseconds = nanoseconds // 1000
    return timedelta(microseconds=-microseconds if negative else microseconds)