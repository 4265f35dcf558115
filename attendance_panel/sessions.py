from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol, Tuple, Union

from .errors import EmptyExportError
from .models import AttendeeRow, Session

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"Asistencia de (.+?)\s*\(")
_DATE_RE = re.compile(r"\((\d{4}_\d{2}_\d{2})")
_LINE_SPLIT_RE = re.compile(r"\r?\n")
_UTF16_BOMS = (b"\xff\xfe", b"\xfe\xff")

MIN_FIELDS = 6

Content = Union[str, bytes]

# -------------------- decoding --------------------

def decode_content(content: Content) -> str:
    if isinstance(content, str):
        return content
    # utf-16 only when BOM-marked
    encodings = ("utf-16",) if content[:2] in _UTF16_BOMS else ()
    for enc in encodings + ("utf-8-sig", "cp1252"):
        try:
            return content.decode(enc)
        except UnicodeError:
            continue
    return content.decode("utf-8", errors="replace")

# -------------------- export parsing --------------------

def session_name_from_filename(file_name: str) -> str:
    m = _NAME_RE.search(file_name)
    return m.group(1).strip() if m else file_name


def session_date_from_filename(file_name: str, today: Optional[date] = None) -> str:
    m = _DATE_RE.search(file_name)
    if m:
        return m.group(1).replace("_", "-")
    return (today or date.today()).isoformat()


def parse_rows(text: str) -> Tuple[List[AttendeeRow], str]:
    """Attendee rows plus the "join - leave" window of the first timed row.

    Fields are split on bare commas; quoted values containing commas are not
    supported and will be split apart.
    """
    lines = [ln for ln in _LINE_SPLIT_RE.split(text) if ln.strip()]
    if len(lines) < 2:
        raise EmptyExportError("Export has no attendee rows after the header line.")
    rows: List[AttendeeRow] = []
    window = ""
    for line in lines[1:]:
        cols = line.split(",")
        if len(cols) < MIN_FIELDS:
            continue
        row = AttendeeRow.from_fields(cols)
        rows.append(row)
        if not window and row.join_time_text:
            window = f"{row.join_time_text} - {row.leave_time_text}"
    return rows, window


def parse_export(content: Content, file_name: str, *, session_id: int,
                 today: Optional[date] = None) -> Session:
    rows, window = parse_rows(decode_content(content))
    return Session(
        id=session_id,
        name=session_name_from_filename(file_name),
        date=session_date_from_filename(file_name, today),
        time=window,
        rows=tuple(rows),
    )

# -------------------- store --------------------

class Upload(Protocol):
    filename: Optional[str]

    async def read(self) -> Content: ...


@dataclass
class PathUpload:
    path: Path

    @property
    def filename(self) -> str:
        return self.path.name

    async def read(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)


@dataclass
class BatchResult:
    loaded: List[Session] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.loaded) + len(self.failed)

    def to_dict(self) -> dict:
        return {
            "loaded": [s.to_dict() for s in self.loaded],
            "failed": [{"file": name, "error": err} for name, err in self.failed],
        }


class SessionStore:
    """Append-only, ordered sequence of sessions."""

    def __init__(self, sessions: Iterable[Session] = ()):
        self._sessions: List[Session] = list(sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(self._sessions)

    def snapshot(self) -> Tuple[Session, ...]:
        return tuple(self._sessions)

    def get(self, session_id: int) -> Optional[Session]:
        for s in self._sessions:
            if s.id == session_id:
                return s
        return None

    def next_id(self) -> int:
        return len(self._sessions) + 1

    def append(self, session: Session) -> Session:
        self._sessions.append(session)
        logger.info("Session %d appended: %s (%s, %d rows)",
                    session.id, session.name, session.date, len(session.rows))
        return session

    def ingest(self, content: Content, file_name: str, today: Optional[date] = None) -> Session:
        session = parse_export(content, file_name, session_id=self.next_id(), today=today)
        return self.append(session)

    async def ingest_batch(self, uploads: List[Upload], today: Optional[date] = None) -> BatchResult:
        """Read every upload concurrently, then append in batch order.

        A failed read or parse is recorded and skipped; it still counts as
        handled so the batch always completes.
        """
        reads = await asyncio.gather(*(u.read() for u in uploads), return_exceptions=True)
        result = BatchResult()
        for upload, content in zip(uploads, reads):
            name = upload.filename or "upload.csv"
            if isinstance(content, BaseException):
                logger.warning("Could not read %s: %s", name, content)
                result.failed.append((name, str(content) or type(content).__name__))
                continue
            try:
                session = self.ingest(content, name, today=today)
            except EmptyExportError as exc:
                logger.warning("Skipping %s: %s", name, exc)
                result.failed.append((name, str(exc)))
                continue
            result.loaded.append(session)
        logger.info("Batch finished: %d of %d file(s) loaded", len(result.loaded), result.total)
        return result
