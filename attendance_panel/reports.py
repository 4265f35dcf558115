"""Read-only projections of the aggregated metrics: dashboard summaries and exports."""
from __future__ import annotations

import csv
import io
import logging
from datetime import date
from typing import AbstractSet, Any, Callable, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from .areas import get_session_area
from .errors import InvalidFilterError
from .followups import FollowUps
from .identity import get_student_key, resolve_student_sede
from .models import ALL, FilterState, Session, StudentMetrics
from .stats import DURATION_BUCKETS, ENGAGEMENT_BUCKETS, histogram, median, std_dev
from .timeparse import fmt_mins, join_hour, parse_duration, parse_time12, round_half_up

logger = logging.getLogger(__name__)

RISK_RATE = 0.5
EXCELLENT_RATE = 0.8
RETENTION_MINUTES = 60

PUNCTUALITY_LABELS = ("Temprano (≤5m)", "A tiempo (5-15m)", "Tarde (15-30m)", "Muy tarde (>30m)")

STUDENT_COLUMNS = [
    "Estudiante", "Sede", "Correo", "Sesiones Asistidas", "Total Sesiones",
    "% Asistencia", "Duración Promedio", "Engagement", "Estado", "Contactado", "Nota",
]
HISTORY_COLUMNS = ["Sesión", "Fecha", "Estudiante", "Sede", "Duración", "Ingreso", "Salida"]


def status_label(att_rate: float) -> str:
    pct = int(round_half_up(att_rate * 100))
    if pct >= EXCELLENT_RATE * 100:
        return "Excelente"
    if pct >= RISK_RATE * 100:
        return "Atención"
    return "Riesgo"


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _pct(part: float, whole: float) -> int:
    return int(round_half_up(part / whole * 100)) if whole else 0


def _all_durations(metrics: Mapping[str, StudentMetrics]) -> List[int]:
    return [e.duration for s in metrics.values() for e in s.sessions]

# -------------------- dashboard summaries --------------------

def summary(metrics: Mapping[str, StudentMetrics], sessions: Sequence[Session]) -> Dict[str, Any]:
    students = list(metrics.values())
    total_sessions = len(sessions)
    return {
        "total_students": len(students),
        "total_sessions": total_sessions,
        "avg_duration": _mean([s.avg_duration for s in students]),
        "median_duration": median(_all_durations(metrics)),
        "full_attendance": sum(1 for s in students if s.attended == total_sessions),
        "at_risk": sum(1 for s in students if s.att_rate < RISK_RATE),
        "avg_rate": _mean([s.att_rate for s in students]) * 100,
        "avg_engagement": _mean([s.engagement for s in students]),
        "duration_distribution": histogram(_all_durations(metrics), DURATION_BUCKETS),
        "sede_distribution": sede_distribution(metrics),
    }


def advanced(metrics: Mapping[str, StudentMetrics], followups: FollowUps) -> Dict[str, Any]:
    durations = _all_durations(metrics)
    return {
        "median_duration": median(durations),
        "std_duration": std_dev(durations),
        "over_1h": sum(1 for d in durations if d >= 60),
        "under_30": sum(1 for d in durations if d < 30),
        "records": len(durations),
        "contacted": followups.contacted_count(),
        "with_notes": followups.notes_count(),
        "sedes": sede_distribution(metrics),
        "engagement_distribution": histogram([s.engagement for s in metrics.values()],
                                             ENGAGEMENT_BUCKETS),
    }


def sede_distribution(metrics: Mapping[str, StudentMetrics]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for s in metrics.values():
        counts[s.sede.value] = counts.get(s.sede.value, 0) + 1
    return counts


def alerts(metrics: Mapping[str, StudentMetrics], total_sessions: int) -> Dict[str, List[StudentMetrics]]:
    students = list(metrics.values())
    risk = sorted((s for s in students if s.att_rate < RISK_RATE), key=lambda s: s.attended)
    warning = [s for s in students if s.avg_duration < 45 and s.att_rate >= RISK_RATE]
    excellent = sorted(
        (s for s in students if s.attended == total_sessions and s.avg_duration >= 90),
        key=lambda s: s.total_duration, reverse=True,
    )
    return {"risk": risk, "warning": warning, "excellent": excellent}


STUDENT_STATUSES = ("excellent", "warning", "risk")

STUDENT_SORT_KEYS: Dict[str, Callable[[StudentMetrics], Any]] = {
    "name": lambda s: s.name,
    "sede": lambda s: s.sede.value,
    "attended": lambda s: s.attended,
    "avg_duration": lambda s: s.avg_duration,
    "att_rate": lambda s: s.att_rate,
    "engagement": lambda s: s.engagement,
}


def _status_matches(att_rate: float, status: str) -> bool:
    if status == "excellent":
        return att_rate >= EXCELLENT_RATE
    if status == "warning":
        return RISK_RATE <= att_rate < EXCELLENT_RATE
    return att_rate < RISK_RATE


def filter_students(metrics: Mapping[str, StudentMetrics], query: str = "", sede: str = ALL,
                    status: str = ALL, sort: Optional[str] = None,
                    ascending: bool = True) -> List[StudentMetrics]:
    """Student table rows: search by key or email, sede and status filters, optional sort.

    Status uses the raw attendance rate, unlike the rounded ``status_label``.
    """
    if status != ALL and status not in STUDENT_STATUSES:
        raise InvalidFilterError(f"Unknown status filter: {status!r}")
    if sort is not None and sort not in STUDENT_SORT_KEYS:
        raise InvalidFilterError(f"Unknown sort column: {sort!r}")

    needle = (query or "").strip().upper()
    rows = []
    for s in metrics.values():
        if needle and needle not in s.name and needle not in (s.email or "").upper():
            continue
        if sede != ALL and s.sede.value != sede:
            continue
        if status != ALL and not _status_matches(s.att_rate, status):
            continue
        rows.append(s)

    if sort is not None:
        rows.sort(key=STUDENT_SORT_KEYS[sort], reverse=not ascending)
    return rows


def session_overview(sessions: Sequence[Session],
                     excluded_accounts: AbstractSet[str] = frozenset()) -> List[Dict[str, Any]]:
    out = []
    for session in sessions:
        durations = [
            parse_duration(r.duration_text) for r in session.rows
            if get_student_key(r) not in excluded_accounts
        ]
        valid = [d for d in durations if d >= 1]
        retained = sum(1 for d in valid if d >= RETENTION_MINUTES)
        out.append({
            "session_id": session.id,
            "name": session.name,
            "date": session.date,
            "area": get_session_area(session),
            "attendees": len(valid),
            "avg_duration": _mean(valid),
            "median_duration": median(valid),
            "retention_pct": _pct(retained, len(valid)),
            "desertion_pct": _pct(len(valid) - retained, len(valid)),
        })
    return out


def punctuality_breakdown(sessions: Sequence[Session]) -> Dict[str, int]:
    """Delay of each attendee relative to the earliest join in the same session."""
    counts = dict.fromkeys(PUNCTUALITY_LABELS, 0)
    for session in sessions:
        joins = [parse_time12(r.join_time_text) for r in session.rows]
        valid = [j for j in joins if j > 0]
        if not valid:
            continue
        earliest = min(valid)
        for join in valid:
            delay = join - earliest
            if delay <= 5:
                counts[PUNCTUALITY_LABELS[0]] += 1
            elif delay <= 15:
                counts[PUNCTUALITY_LABELS[1]] += 1
            elif delay <= 30:
                counts[PUNCTUALITY_LABELS[2]] += 1
            else:
                counts[PUNCTUALITY_LABELS[3]] += 1
    return counts


def join_hour_slots(sessions: Sequence[Session]) -> Dict[str, int]:
    slots: Dict[str, int] = {}
    for session in sessions:
        for row in session.rows:
            hour = join_hour(row.join_time_text)
            if hour is None:
                continue
            slot = f"{hour}:00-{hour}:59"
            slots[slot] = slots.get(slot, 0) + 1
    return dict(sorted(slots.items()))


def selector_counts(sessions: Sequence[Session],
                    excluded_accounts: AbstractSet[str] = frozenset()) -> Dict[str, Dict[str, int]]:
    """Unique students per sede and sessions per area over the whole history."""
    everyone = set()
    by_sede: Dict[str, set] = {}
    by_area: Dict[str, int] = {ALL: len(sessions)}
    for session in sessions:
        area = get_session_area(session)
        by_area[area] = by_area.get(area, 0) + 1
        for row in session.rows:
            key = get_student_key(row)
            if key in excluded_accounts:
                continue
            everyone.add(key)
            by_sede.setdefault(resolve_student_sede(row, session).value, set()).add(key)
    sede_counts = {ALL: len(everyone)}
    sede_counts.update({sede: len(keys) for sede, keys in by_sede.items()})
    return {"sede": sede_counts, "area": by_area}


def attendance_matrix(metrics: Mapping[str, StudentMetrics], sessions: Sequence[Session]) -> pd.DataFrame:
    """Students x sessions, minutes attended (NaN where absent)."""
    columns = [s.id for s in sessions]
    data = {
        name: {e.session_id: e.duration for e in student.sessions}
        for name, student in sorted(metrics.items())
    }
    frame = pd.DataFrame.from_dict(data, orient="index", dtype="float64")
    return frame.reindex(index=sorted(metrics), columns=columns)


def heatmap(metrics: Mapping[str, StudentMetrics], sessions: Sequence[Session]) -> Dict[str, Any]:
    """JSON form of the attendance matrix; absent cells are None."""
    frame = attendance_matrix(metrics, sessions)
    return {
        "sessions": [{"id": s.id, "name": s.name, "date": s.date} for s in sessions],
        "students": [
            {"name": name, "durations": [None if pd.isna(v) else int(v) for v in values]}
            for name, values in zip(frame.index, frame.itertuples(index=False, name=None))
        ],
    }

# -------------------- exports --------------------

def export_filename(prefix: str, filters: FilterState, ext: str, today: Optional[date] = None) -> str:
    sede = f"_{filters.sede}" if filters.sede != ALL else ""
    return f"{prefix}{sede}_{(today or date.today()).isoformat()}.{ext}"


def students_frame(metrics: Mapping[str, StudentMetrics], total_sessions: int,
                   followups: FollowUps) -> pd.DataFrame:
    rows = []
    for s in metrics.values():
        rows.append([
            s.name, s.sede.value, s.email, s.attended, total_sessions,
            f"{_pct(s.att_rate, 1)}%", fmt_mins(s.avg_duration), s.engagement,
            status_label(s.att_rate),
            "Sí" if followups.is_contacted(s.name) else "No",
            followups.note(s.name),
        ])
    return pd.DataFrame(rows, columns=STUDENT_COLUMNS)


def history_frame(sessions: Sequence[Session],
                  excluded_accounts: AbstractSet[str] = frozenset()) -> pd.DataFrame:
    rows = []
    for session in sessions:
        for r in session.rows:
            key = get_student_key(r)
            if key in excluded_accounts:
                continue
            rows.append([session.name, session.date, key, resolve_student_sede(r, session).value,
                         r.duration_text, r.join_time_text, r.leave_time_text])
    return pd.DataFrame(rows, columns=HISTORY_COLUMNS)


def export_csv(metrics: Mapping[str, StudentMetrics], total_sessions: int, followups: FollowUps) -> str:
    frame = students_frame(metrics, total_sessions, followups)
    frame["Nota"] = frame["Nota"].str.replace(",", ";", regex=False).str.replace("\n", " ", regex=False)
    return "\ufeff" + frame.to_csv(index=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")


def export_workbook(metrics: Mapping[str, StudentMetrics], sessions: Sequence[Session],
                    filters: FilterState, followups: FollowUps,
                    excluded_accounts: AbstractSet[str] = frozenset(),
                    today: Optional[date] = None) -> bytes:
    """Resumen sheet, one sheet per sede, and the session history."""
    total_sessions = len(sessions)
    students = list(metrics.values())
    n = max(len(students), 1)
    summary_df = pd.DataFrame([
        ["Reporte de Asistencia", (today or date.today()).isoformat()],
        ["Sede Filtrada", filters.sede if filters.sede != ALL else "Todas"],
        ["Total Estudiantes", len(students)],
        ["Total Sesiones", total_sessions],
        ["Tasa Promedio", f"{_pct(sum(s.att_rate for s in students), n)}%"],
        ["Duración Promedio", fmt_mins(sum(s.avg_duration for s in students) / n)],
        ["Engagement Promedio", int(round_half_up(sum(s.engagement for s in students) / n))],
        [f"En Riesgo (<{int(RISK_RATE * 100)}%)", sum(1 for s in students if s.att_rate < RISK_RATE)],
        ["Contactados", followups.contacted_count()],
    ], columns=["Métrica", "Valor"])

    by_sede: Dict[str, Dict[str, StudentMetrics]] = {}
    for s in students:
        by_sede.setdefault(s.sede.value, {})[s.name] = s
    history_df = history_frame(sessions, excluded_accounts)

    last_err: Optional[Exception] = None
    for engine in ("openpyxl", "xlsxwriter"):
        buf = io.BytesIO()
        try:
            with pd.ExcelWriter(buf, engine=engine) as w:
                summary_df.to_excel(w, index=False, sheet_name="Resumen")
                for sede, group in by_sede.items():
                    frame = students_frame(group, total_sessions, followups).drop(columns=["Sede"])
                    frame["Nota"] = frame["Nota"].str.slice(0, 200)
                    frame.to_excel(w, index=False, sheet_name=sede[:31])
                history_df.to_excel(w, index=False, sheet_name="Historial")
        except Exception as e:
            logger.warning("Excel engine %s failed: %s", engine, e)
            last_err = e
            continue
        return buf.getvalue()
    raise RuntimeError("No Excel engine could write the workbook") from last_err
