import pytest

from attendance_panel.areas import AREAS, get_session_area
from attendance_panel.identity import (
    get_session_sede,
    get_student_key,
    get_student_sede_from_prefix,
    resolve_student_sede,
    strip_sede_prefix,
)
from attendance_panel.models import AttendeeRow, Sede

from conftest import row, session


@pytest.mark.parametrize("first, last, expected", [
    ("SG - VALERIA", "AUSECHA CAMPO", "VALERIA AUSECHA CAMPO"),
    ("SG-VALENTINA", "RUIZ", "VALENTINA RUIZ"),
    ("SG MATHIAS JOSÉ", "LÓPEZ", "MATHIAS JOSÉ LÓPEZ"),
    ("IETAC - JORGE ANDRÉS", "PÉREZ MESTRA", "JORGE ANDRÉS PÉREZ MESTRA"),
    ("IETAC—ALEXANDRA", "PÉREZ", "ALEXANDRA PÉREZ"),
    ("IETAC–Janer", "Gómez", "JANER GÓMEZ"),
    ("  valeria ", " ausecha campo ", "VALERIA AUSECHA CAMPO"),
    ("Diana Carolina Ruiz", "", "DIANA CAROLINA RUIZ"),
])
def test_get_student_key(first, last, expected):
    assert get_student_key(row(first, last, "1 h")) == expected


def test_prefix_variants_share_one_key():
    variants = ["SG - VALERIA", "SG-VALERIA", "SG VALERIA", "SG—VALERIA", "SG–VALERIA", "VALERIA"]
    keys = {get_student_key(row(v, "AUSECHA", "1 h")) for v in variants}
    assert keys == {"VALERIA AUSECHA"}


def test_prefix_stripping_is_idempotent():
    r = row("IETAC - JORGE", "PÉREZ", "1 h")
    once = AttendeeRow(strip_sede_prefix(r.first_name), r.last_name, r.email,
                       r.duration_text, r.join_time_text, r.leave_time_text)
    assert get_student_key(once) == get_student_key(r)
    assert strip_sede_prefix(strip_sede_prefix("SG - ANA")) == "ANA"


def test_sede_from_prefix():
    assert get_student_sede_from_prefix(row("sg - ana", "ruiz", "1 h")) == "SG"
    assert get_student_sede_from_prefix(row("IETAC-Janer", "Gómez", "1 h")) == "IETAC"
    assert get_student_sede_from_prefix(row("ANA", "RUIZ", "1 h")) == ""


def test_session_sede_fallback_order():
    assert get_session_sede(session(1, "PREICFES INTENSIVO SG", [])) is Sede.SG
    assert get_session_sede(session(1, "TALLER IETAC", [])) is Sede.IETAC
    # SG is checked first
    assert get_session_sede(session(1, "SG E IETAC", [])) is Sede.SG
    assert get_session_sede(session(1, "TALLER - CIENCIAS", [])) is Sede.OTRO


def test_resolve_student_sede_prefers_name_prefix():
    s = session(1, "PREICFES INTENSIVO SG", [])
    assert resolve_student_sede(row("IETAC - ANA", "RUIZ", "1 h"), s) is Sede.IETAC
    assert resolve_student_sede(row("ANA", "RUIZ", "1 h"), s) is Sede.SG
    assert resolve_student_sede(row("ANA", "RUIZ", "1 h"), session(2, "TALLER", [])) is Sede.OTRO


@pytest.mark.parametrize("name, expected", [
    ("DINÁMICA II - CIENCIAS", "Ciencias Naturales"),
    ("Inglés básico", "Inglés"),
    ("ENGLISH CLUB", "Inglés"),
    ("TEXTOS DISCONTINUOS - LECTURA CRÍTICA", "Lectura Crítica"),
    ("Pensamiento critica", "Lectura Crítica"),
    ("TEÓRICA 12 - MATEMÁTICAS", "Matemáticas"),
    ("Sociales y ciudadanas", "Sociales"),
    ("Ciencias sociales", "Ciencias Naturales"),
    ("Orientación vocacional", "General"),
    ("", "General"),
])
def test_get_session_area(name, expected):
    assert get_session_area(session(1, name, [])) == expected


def test_area_keys_include_default():
    assert AREAS[-1] == "General"
    assert "Matemáticas" in AREAS
