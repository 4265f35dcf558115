from __future__ import annotations

import re

from .models import AttendeeRow, Sede, Session

# "SG - VALERIA", "SG-VALENTINA", "SG MATHIAS", "IETAC—ALEXANDRA", "IETAC–Janer"
SEDE_PREFIX_RE = re.compile(r"^(SG|IETAC)\s*[-–—]?\s*", re.I)

# -------------------- student identity --------------------

def strip_sede_prefix(first_name: str) -> str:
    return SEDE_PREFIX_RE.sub("", (first_name or "").strip(), count=1).strip()


def get_student_key(row: AttendeeRow) -> str:
    """Canonical identity shared by every row of the same person."""
    first = strip_sede_prefix(row.first_name)
    last = (row.last_name or "").strip()
    full = f"{first} {last}" if last else first
    return full.upper()


def get_student_sede_from_prefix(row: AttendeeRow) -> str:
    m = SEDE_PREFIX_RE.match((row.first_name or "").strip())
    return m.group(1).upper() if m else ""

# -------------------- sede resolution --------------------

def get_session_sede(session: Session) -> Sede:
    text = f"{session.name or ''} {session.program or ''}".upper()
    if "SG" in text:
        return Sede.SG
    if "IETAC" in text:
        return Sede.IETAC
    return Sede.OTRO


def resolve_student_sede(row: AttendeeRow, session: Session) -> Sede:
    """Name prefix first, then the session name/program, then OTRO."""
    prefix = get_student_sede_from_prefix(row)
    if prefix:
        return Sede(prefix)
    return get_session_sede(session)
