"""Parsing of the duration and clock strings found in attendance exports."""
from __future__ import annotations

import math
import re

_HOURS_RE = re.compile(r"(\d+)\s*h")
_MINUTES_RE = re.compile(r"(\d+)\s*min")
_CLOCK12_RE = re.compile(r"(\d+):(\d+)\s*(a|p)", re.I)


def parse_duration(text) -> int:
    """Convert "1 h 23 min" style durations to whole minutes.

    Seconds-only values ("5 s") and anything unrecognised count as 0.
    """
    if not text or not isinstance(text, str):
        return 0
    h = _HOURS_RE.search(text)
    m = _MINUTES_RE.search(text)
    hours = int(h.group(1)) if h else 0
    minutes = int(m.group(1)) if m else 0
    return hours * 60 + minutes


def parse_time12(text) -> int:
    """Minutes since midnight for "2:30 p.m." / "10:15 AM"; 0 when unparseable."""
    if not text or not isinstance(text, str):
        return 0
    m = _CLOCK12_RE.search(text)
    if not m:
        return 0
    hours = int(m.group(1))
    minutes = int(m.group(2))
    is_pm = m.group(3).lower() == "p"
    if is_pm and hours != 12:
        hours += 12
    if not is_pm and hours == 12:
        hours = 0
    return hours * 60 + minutes


def join_hour(text) -> int | None:
    m = _CLOCK12_RE.search(text or "")
    if not m:
        return None
    return parse_time12(text) // 60


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def fmt_mins(total_minutes: float) -> str:
    rounded = int(round_half_up(total_minutes))
    if rounded < 60:
        return f"{rounded}m"
    hours, minutes = divmod(rounded, 60)
    return f"{hours}h {minutes:02d}m"
