"""The panel: owned state plus the operations the dashboard calls.

Every mutation (filter change or ingestion) is followed by a full recompute
and a single notification to subscribers.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import AbstractSet, Callable, Dict, Iterable, List, Optional

from .aggregation import aggregate, filter_sessions
from .areas import AREAS
from .config import Settings, get_settings
from .errors import InvalidFilterError
from .followups import FollowUps
from .models import ALL, SEDE_FILTERS, ClassScore, FilterState, RankedStudent, Session, StudentMetrics
from .scoring import compute_class_scores, compute_unified_score, global_ranking, reference_start
from .sessions import BatchResult, Content, SessionStore, Upload

logger = logging.getLogger(__name__)

Listener = Callable[["AttendancePanel"], None]


class AttendancePanel:
    def __init__(self, sessions: Iterable[Session] = (), *,
                 excluded_accounts: Optional[AbstractSet[str]] = None,
                 settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.store = SessionStore(sessions)
        self.excluded_accounts = frozenset(
            self.settings.excluded_accounts if excluded_accounts is None else excluded_accounts
        )
        self.filters = FilterState()
        self.followups = FollowUps()
        self._listeners: List[Listener] = []
        self._metrics: Dict[str, StudentMetrics] = {}
        self.recompute()

    # -------------------- queries --------------------

    def get_sessions(self) -> List[Session]:
        return list(self.store)

    def get_filtered_sessions(self) -> List[Session]:
        return filter_sessions(self.store, self.filters)

    def get_student_metrics(self) -> Dict[str, StudentMetrics]:
        return self._metrics

    def get_student(self, key: str) -> Optional[StudentMetrics]:
        return self._metrics.get(key)

    def get_session(self, session_id: int) -> Optional[Session]:
        return self.store.get(session_id)

    # -------------------- state changes --------------------

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def recompute(self) -> None:
        # built aside and swapped in, never patched in place
        self._metrics = aggregate(
            self.store.snapshot(), self.excluded_accounts, self.filters,
            self.settings.duration_reference_minutes,
        )

    def _refresh(self) -> None:
        self.recompute()
        for listener in self._listeners:
            listener(self)

    def set_filters(self, sede: Optional[str] = None, area: Optional[str] = None) -> FilterState:
        new_sede = self.filters.sede if sede is None else sede
        new_area = self.filters.area if area is None else area
        if new_sede not in SEDE_FILTERS:
            raise InvalidFilterError(f"Unknown sede filter: {new_sede!r}")
        if new_area != ALL and new_area not in AREAS:
            raise InvalidFilterError(f"Unknown area filter: {new_area!r}")
        self.filters = FilterState(sede=new_sede, area=new_area)
        self._refresh()
        return self.filters

    def set_sede_filter(self, value: str) -> FilterState:
        return self.set_filters(sede=value)

    def set_area_filter(self, value: str) -> FilterState:
        return self.set_filters(area=value)

    def ingest_file(self, content: Content, name: str, today: Optional[date] = None) -> Session:
        session = self.store.ingest(content, name, today=today)
        self._refresh()
        return session

    async def ingest_batch(self, uploads: List[Upload], today: Optional[date] = None) -> BatchResult:
        result = await self.store.ingest_batch(uploads, today=today)
        self._refresh()
        return result

    # -------------------- scoring --------------------

    def compute_unified_score(self, student: StudentMetrics, reference_start: int,
                              total_sessions: int) -> float:
        return compute_unified_score(student, reference_start, total_sessions,
                                     self.settings.duration_reference_minutes)

    def reference_start(self) -> int:
        return reference_start(self.get_filtered_sessions())

    def global_ranking(self) -> List[RankedStudent]:
        return global_ranking(self._metrics, self.get_filtered_sessions(),
                              self.settings.duration_reference_minutes)

    def compute_class_scores(self, session: Session) -> List[ClassScore]:
        return compute_class_scores(session, self.excluded_accounts,
                                    self.settings.duration_reference_minutes)
