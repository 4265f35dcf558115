from attendance_panel.aggregation import aggregate, filter_sessions
from attendance_panel.models import FilterState, Sede

from conftest import row, session

NONE_EXCLUDED = frozenset()


def test_two_session_scenario_engagement_96():
    sessions = [
        session(1, "TEÓRICA 1 - MATEMÁTICAS", [row("ANA", "RUIZ", "1 h 40 min")]),
        session(2, "TEÓRICA 2 - MATEMÁTICAS", [row("ANA", "RUIZ", "1 h 50 min")]),
    ]
    metrics = aggregate(sessions, NONE_EXCLUDED, FilterState())
    ana = metrics["ANA RUIZ"]
    assert ana.attended == 2
    assert ana.att_rate == 1.0
    assert ana.avg_duration == 105
    assert ana.total_duration == 210
    assert ana.engagement == 96
    assert ana.area == "Matemáticas"
    assert [e.session_id for e in ana.sessions] == [1, 2]
    assert ana.sessions[0].join_minutes == 840


def test_one_of_four_scenario_engagement_23():
    sessions = [
        session(1, "CLASE 1", [row("ANA", "RUIZ", "20 min"), row("LUIS", "MORA", "2 h")]),
        session(2, "CLASE 2", [row("LUIS", "MORA", "2 h")]),
        session(3, "CLASE 3", [row("LUIS", "MORA", "2 h")]),
        session(4, "CLASE 4", [row("LUIS", "MORA", "2 h")]),
    ]
    metrics = aggregate(sessions, NONE_EXCLUDED, FilterState())
    assert metrics["ANA RUIZ"].att_rate == 0.25
    assert metrics["ANA RUIZ"].engagement == 23
    assert metrics["LUIS MORA"].engagement == 100


def test_sede_filter_is_row_level_and_area_filter_session_level():
    mixed = session(1, "DINÁMICA - CIENCIAS", [
        row("SG - VALERIA", "AUSECHA", "1 h"),
        row("IETAC - JORGE", "PÉREZ", "1 h"),
    ])
    english = session(2, "ENGLISH CLUB", [row("SG - VALERIA", "AUSECHA", "30 min")])

    sg_only = FilterState(sede="SG")
    metrics = aggregate([mixed, english], NONE_EXCLUDED, sg_only)
    assert set(metrics) == {"VALERIA AUSECHA"}
    assert metrics["VALERIA AUSECHA"].attended == 2
    assert filter_sessions([mixed, english], sg_only) == [mixed, english]

    science = FilterState(area="Ciencias Naturales")
    assert filter_sessions([mixed, english], science) == [mixed]
    metrics = aggregate([mixed, english], NONE_EXCLUDED, science)
    assert set(metrics) == {"VALERIA AUSECHA", "JORGE PÉREZ"}
    assert metrics["VALERIA AUSECHA"].attended == 1
    assert metrics["VALERIA AUSECHA"].att_rate == 1.0


def test_student_filtered_out_everywhere_does_not_appear():
    s = session(1, "TALLER", [row("IETAC - JORGE", "PÉREZ", "1 h")])
    assert aggregate([s], NONE_EXCLUDED, FilterState(sede="SG")) == {}


def test_sede_resolved_from_session_when_no_prefix():
    s = session(1, "PREICFES INTENSIVO SG", [row("ANA", "RUIZ", "1 h")])
    metrics = aggregate([s], NONE_EXCLUDED, FilterState(sede="SG"))
    assert metrics["ANA RUIZ"].sede is Sede.SG
    assert aggregate([s], NONE_EXCLUDED, FilterState(sede="OTRO")) == {}


def test_excluded_accounts_never_appear():
    s = session(1, "TALLER", [row("DANIEL", "SOLARTE", "2 h"), row("ANA", "RUIZ", "1 h")])
    metrics = aggregate([s], frozenset({"DANIEL SOLARTE"}), FilterState())
    assert list(metrics) == ["ANA RUIZ"]


def test_zero_filtered_sessions_gives_empty_map():
    s = session(1, "TALLER", [row("ANA", "RUIZ", "1 h")])
    assert aggregate([s], NONE_EXCLUDED, FilterState(area="Sociales")) == {}
    assert aggregate([], NONE_EXCLUDED, FilterState()) == {}


def test_most_frequent_area_ties_go_to_first_seen():
    sessions = [
        session(1, "CIENCIAS 1", [row("ANA", "RUIZ", "1 h")]),
        session(2, "MATEMÁTICAS 1", [row("ANA", "RUIZ", "1 h")]),
        session(3, "MATEMÁTICAS 2", [row("LUIS", "MORA", "1 h")]),
    ]
    metrics = aggregate(sessions, NONE_EXCLUDED, FilterState())
    assert metrics["ANA RUIZ"].area == "Ciencias Naturales"

    sessions.append(session(4, "MATEMÁTICAS 3", [row("ANA", "RUIZ", "1 h")]))
    metrics = aggregate(sessions, NONE_EXCLUDED, FilterState())
    assert metrics["ANA RUIZ"].area == "Matemáticas"


def test_email_and_sede_come_from_first_row():
    sessions = [
        session(1, "TALLER", [row("SG - ANA", "RUIZ", "1 h", email="ana@sg.co")]),
        session(2, "TALLER", [row("IETAC - ANA", "RUIZ", "1 h", email="ana@ietac.co")]),
    ]
    ana = aggregate(sessions, NONE_EXCLUDED, FilterState())["ANA RUIZ"]
    assert ana.email == "ana@sg.co"
    assert ana.sede is Sede.SG
    assert ana.attended == 2


def test_aggregate_is_repeatable_and_bounded():
    sessions = [
        session(1, "CLASE 1", [row("ANA", "RUIZ", "1 h"), row("SG - LUIS", "MORA", "3 h")]),
        session(2, "CLASE 2", [row("ANA", "RUIZ", "bogus", join="??")]),
        session(3, "CLASE 3", []),
    ]
    before = [s.rows for s in sessions]
    first = aggregate(sessions, NONE_EXCLUDED, FilterState())
    second = aggregate(sessions, NONE_EXCLUDED, FilterState())
    assert {k: v.to_dict() for k, v in first.items()} == {k: v.to_dict() for k, v in second.items()}
    assert [s.rows for s in sessions] == before
    for student in first.values():
        assert 0 <= student.att_rate <= 1
        assert isinstance(student.engagement, int)
        assert 0 <= student.engagement <= 100
    assert sum(s.attended for s in first.values()) <= 3 * len(first)
    assert first["ANA RUIZ"].sessions[1].duration == 0
    assert first["ANA RUIZ"].sessions[1].join_minutes == 0
