from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple

ALL = "todas"


class Sede(str, Enum):
    SG = "SG"
    IETAC = "IETAC"
    OTRO = "OTRO"


SEDE_FILTERS: Tuple[str, ...] = (ALL,) + tuple(s.value for s in Sede)

# -------------------- raw input --------------------

@dataclass(frozen=True)
class AttendeeRow:
    first_name: str
    last_name: str
    email: str
    duration_text: str
    join_time_text: str
    leave_time_text: str

    @classmethod
    def from_fields(cls, fields: List[str]) -> "AttendeeRow":
        return cls(*(f.strip() for f in fields[:6]))


@dataclass(frozen=True)
class Session:
    id: int
    name: str
    date: str
    time: str = ""
    rows: Tuple[AttendeeRow, ...] = ()
    program: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "program": self.program,
            "date": self.date,
            "time": self.time,
            "attendees": len(self.rows),
        }


@dataclass(frozen=True)
class FilterState:
    sede: str = ALL
    area: str = ALL

# -------------------- aggregation output --------------------

@dataclass
class AttendanceEntry:
    session_id: int
    session_name: str
    date: str
    duration: int
    duration_text: str
    join_time: str
    leave_time: str
    join_minutes: int = 0


@dataclass
class StudentMetrics:
    name: str
    email: str
    sede: Sede
    area: str
    attended: int = 0
    sessions: List[AttendanceEntry] = field(default_factory=list)
    avg_duration: float = 0.0
    att_rate: float = 0.0
    engagement: int = 0
    total_duration: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["sede"] = self.sede.value
        return data


@dataclass(frozen=True)
class RankedStudent:
    student: StudentMetrics
    score: float

    def to_dict(self) -> Dict[str, Any]:
        data = self.student.to_dict()
        data.pop("sessions")
        data["score"] = self.score
        return data


@dataclass(frozen=True)
class ClassScore:
    name: str
    email: str
    sede: Sede
    duration: int
    duration_text: str
    join_time: str
    leave_time: str
    join_minutes: int
    delay: int
    score: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["sede"] = self.sede.value
        return data
