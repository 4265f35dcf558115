from __future__ import annotations

from typing import List, Tuple

from .models import Session

DEFAULT_AREA = "General"

# Checked in order; first match wins.
AREA_RULES: List[Tuple[str, Tuple[str, ...]]] = [
    ("Ciencias Naturales", ("CIENCIA",)),
    ("Inglés", ("INGLÉ", "ENGLISH")),
    ("Lectura Crítica", ("LECTURA", "CRÍTICA", "CRITICA")),
    ("Matemáticas", ("MATEMÁ", "MATE")),
    ("Sociales", ("SOCIAL", "SOCIO")),
]

AREAS: Tuple[str, ...] = tuple(area for area, _ in AREA_RULES) + (DEFAULT_AREA,)


def classify_area(name: str) -> str:
    upper = (name or "").upper()
    for area, keywords in AREA_RULES:
        if any(k in upper for k in keywords):
            return area
    return DEFAULT_AREA


def get_session_area(session: Session) -> str:
    return classify_area(session.name)
