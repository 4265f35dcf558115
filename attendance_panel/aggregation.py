"""Per-student aggregation under the sede and area filters.

The area filter drops whole sessions; the sede filter drops individual
attendee rows, because one session can mix students from several sedes.
The result is always built from scratch.
"""
from __future__ import annotations

import logging
from typing import AbstractSet, Dict, Iterable, List

from .areas import DEFAULT_AREA, get_session_area
from .identity import get_student_key, resolve_student_sede
from .models import ALL, AttendanceEntry, FilterState, Session, StudentMetrics
from .scoring import DURATION_REFERENCE_MINUTES, engagement_score
from .timeparse import parse_duration, parse_time12

logger = logging.getLogger(__name__)


def filter_sessions(sessions: Iterable[Session], filters: FilterState) -> List[Session]:
    if filters.area == ALL:
        return list(sessions)
    return [s for s in sessions if get_session_area(s) == filters.area]


def aggregate(sessions: Iterable[Session], excluded_accounts: AbstractSet[str],
              filters: FilterState,
              duration_reference: float = DURATION_REFERENCE_MINUTES) -> Dict[str, StudentMetrics]:
    filtered = filter_sessions(sessions, filters)
    total_sessions = len(filtered)

    students: Dict[str, StudentMetrics] = {}
    area_counts: Dict[str, Dict[str, int]] = {}

    for session in filtered:
        session_area = get_session_area(session)
        for row in session.rows:
            key = get_student_key(row)
            if key in excluded_accounts:
                continue
            sede = resolve_student_sede(row, session)
            if filters.sede != ALL and sede.value != filters.sede:
                continue

            student = students.get(key)
            if student is None:
                student = students[key] = StudentMetrics(
                    name=key, email=row.email or "", sede=sede, area=session_area,
                )
                area_counts[key] = {}
            counts = area_counts[key]
            counts[session_area] = counts.get(session_area, 0) + 1

            student.attended += 1
            student.sessions.append(AttendanceEntry(
                session_id=session.id,
                session_name=session.name,
                date=session.date,
                duration=parse_duration(row.duration_text),
                duration_text=row.duration_text or "",
                join_time=row.join_time_text or "",
                leave_time=row.leave_time_text or "",
                join_minutes=parse_time12(row.join_time_text),
            ))

    for key, student in students.items():
        attended = len(student.sessions)
        student.total_duration = sum(e.duration for e in student.sessions)
        student.att_rate = attended / total_sessions if total_sessions > 0 else 0.0
        student.avg_duration = student.total_duration / attended if attended > 0 else 0.0
        # max() keeps the first-seen area on ties
        counts = area_counts[key]
        student.area = max(counts, key=counts.get) if counts else DEFAULT_AREA
        student.engagement = engagement_score(
            attended, total_sessions, student.avg_duration, duration_reference
        )

    logger.debug("Aggregated %d student(s) over %d session(s) for %s",
                 len(students), total_sessions, filters)
    return students
