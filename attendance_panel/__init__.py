from .aggregation import aggregate, filter_sessions
from .areas import AREAS, get_session_area
from .errors import AttendancePanelError, EmptyExportError, InvalidFilterError
from .identity import get_session_sede, get_student_key, get_student_sede_from_prefix, resolve_student_sede
from .models import AttendeeRow, FilterState, Sede, Session, StudentMetrics
from .panel import AttendancePanel
from .scoring import compute_class_scores, compute_unified_score, engagement_score, reference_start
from .timeparse import parse_duration, parse_time12

__all__ = [
    "AREAS",
    "AttendancePanel",
    "AttendancePanelError",
    "AttendeeRow",
    "EmptyExportError",
    "FilterState",
    "InvalidFilterError",
    "Sede",
    "Session",
    "StudentMetrics",
    "aggregate",
    "compute_class_scores",
    "compute_unified_score",
    "engagement_score",
    "filter_sessions",
    "get_session_area",
    "get_session_sede",
    "get_student_key",
    "get_student_sede_from_prefix",
    "parse_duration",
    "parse_time12",
    "reference_start",
    "resolve_student_sede",
]
