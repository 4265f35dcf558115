"""Scoring formulas.

Engagement (per student, filter scoped)::

    0.40 * attendance + 0.35 * duration + 0.25 * consistency tier

Unified ranking (across the filtered sessions)::

    0.40 * attendance + 0.35 * duration + 0.25 * punctuality

Class ranking (one session)::

    0.50 * duration + 0.50 * punctuality

Sub-scores are on a 0-100 scale. Duration saturates at the reference length
(two hours by default) and punctuality loses two points per minute of delay.
"""
from __future__ import annotations

from typing import AbstractSet, Iterable, List, Mapping

from .identity import get_student_key, resolve_student_sede
from .models import ClassScore, RankedStudent, Session, StudentMetrics
from .timeparse import parse_duration, parse_time12, round_half_up

DURATION_REFERENCE_MINUTES = 120.0
DELAY_PENALTY_PER_MINUTE = 2.0

# -------------------- sub-scores --------------------

def attendance_score(attended: int, total_sessions: int) -> float:
    return attended / total_sessions * 100 if total_sessions > 0 else 0.0


def duration_score(avg_minutes: float, reference: float = DURATION_REFERENCE_MINUTES) -> float:
    return min(avg_minutes / reference, 1) * 100


def punctuality_score(avg_delay: float) -> float:
    return max(0.0, 100 - avg_delay * DELAY_PENALTY_PER_MINUTE)


def consistency_tier(attended: int, total_sessions: int) -> int:
    if total_sessions <= 0:
        return 0
    if attended >= total_sessions * 0.8:
        return 100
    if attended >= total_sessions * 0.5:
        return 70
    return 30


def delay_minutes(join_minutes: int, reference_start: int) -> int:
    # unparseable join times (0) are not "on time at midnight"
    if join_minutes <= 0 or reference_start <= 0:
        return 0
    return max(0, join_minutes - reference_start)


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))

# -------------------- engagement --------------------

def engagement_score(attended: int, total_sessions: int, avg_duration: float,
                     reference: float = DURATION_REFERENCE_MINUTES) -> int:
    raw = (
        attendance_score(attended, total_sessions) * 0.40
        + duration_score(avg_duration, reference) * 0.35
        + consistency_tier(attended, total_sessions) * 0.25
    )
    return int(_clamp(round_half_up(raw)))

# -------------------- unified ranking --------------------

def earliest_join(session: Session) -> int:
    joins = [t for t in (parse_time12(r.join_time_text) for r in session.rows) if t > 0]
    return min(joins) if joins else 0


def reference_start(sessions: Iterable[Session]) -> int:
    """Mean of each session's earliest join, over sessions that have one."""
    starts = [t for t in (earliest_join(s) for s in sessions) if t > 0]
    if not starts:
        return 0
    return int(round_half_up(sum(starts) / len(starts)))


def compute_unified_score(student: StudentMetrics, reference_start: int, total_sessions: int,
                          reference: float = DURATION_REFERENCE_MINUTES) -> float:
    punctuality = 100.0
    if student.sessions and reference_start > 0:
        delays = [delay_minutes(e.join_minutes, reference_start) for e in student.sessions]
        punctuality = punctuality_score(sum(delays) / len(delays))
    raw = (
        attendance_score(student.attended, total_sessions) * 0.40
        + duration_score(student.avg_duration, reference) * 0.35
        + punctuality * 0.25
    )
    return _clamp(round_half_up(raw, 1))


def global_ranking(metrics: Mapping[str, StudentMetrics], sessions: List[Session],
                   reference: float = DURATION_REFERENCE_MINUTES) -> List[RankedStudent]:
    start = reference_start(sessions)
    total = len(sessions)
    ranked = [
        RankedStudent(student=s, score=compute_unified_score(s, start, total, reference))
        for s in metrics.values()
    ]
    ranked.sort(key=lambda r: r.score, reverse=True)
    return ranked

# -------------------- class ranking --------------------

def compute_class_scores(session: Session, excluded_accounts: AbstractSet[str] = frozenset(),
                         reference: float = DURATION_REFERENCE_MINUTES) -> List[ClassScore]:
    """Rank one session's attendees by duration and punctuality only."""
    valid = []
    for row in session.rows:
        key = get_student_key(row)
        if key in excluded_accounts:
            continue
        duration = parse_duration(row.duration_text)
        if duration < 1:
            continue
        valid.append((key, row, duration, parse_time12(row.join_time_text)))

    joins = [j for _, _, _, j in valid if j > 0]
    start = min(joins) if joins else 0

    scored = []
    for key, row, duration, join in valid:
        delay = delay_minutes(join, start)
        raw = duration_score(duration, reference) * 0.5 + punctuality_score(delay) * 0.5
        scored.append(ClassScore(
            name=key,
            email=row.email,
            sede=resolve_student_sede(row, session),
            duration=duration,
            duration_text=row.duration_text,
            join_time=row.join_time_text,
            leave_time=row.leave_time_text,
            join_minutes=join,
            delay=delay,
            score=_clamp(round_half_up(raw, 1)),
        ))
    scored.sort(key=lambda c: c.score, reverse=True)
    return scored
