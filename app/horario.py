import re
from typing import Iterable

HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def is_time(s) -> bool:
    return isinstance(s, str) and HHMM_RE.match(s) is not None


def parse_time(s: str) -> int:
    """'HH:MM' -> minutes since midnight. Raises ValueError on bad input."""
    m = HHMM_RE.match(s) if isinstance(s, str) else None
    if m is None:
        raise ValueError(f"Invalid time: {s!r} (expected HH:MM)")
    return int(m.group(1)) * 60 + int(m.group(2))


def format_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return max(a_start, b_start) < min(a_end, b_end)


def total_minutes(slots: Iterable) -> int:
    # slots expose .inicio / .fin as HH:MM strings
    return sum(parse_time(s.fin) - parse_time(s.inicio) for s in slots)


def to_hours(minutes: int) -> float:
    # minutes/60 never lands on an exact half cent for integer minutes,
    # so round() behaves like round-half-up here.
    return round(minutes / 60, 2)


def hours_from_slots(slots: Iterable) -> float:
    return to_hours(total_minutes(slots))
