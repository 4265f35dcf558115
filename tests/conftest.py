import asyncio

import pytest
from fastapi.testclient import TestClient

from attendance_panel.config import Settings
from attendance_panel.models import AttendeeRow, Session
from attendance_panel.panel import AttendancePanel

HEADER = "Nombre,Apellido,Correo,Duración,Hora de ingreso,Hora de salida"


def export_text(rows, header=HEADER, newline="\n"):
    return newline.join([header] + [",".join(r) for r in rows]) + newline


def export_name(session_name, day="2024_03_05"):
    return f"Asistencia de {session_name} ({day} 14_02 GMT-05_00) - Asistentes.csv"


class MemoryUpload:
    def __init__(self, filename, content):
        self.filename = filename
        self._content = content

    async def read(self):
        await asyncio.sleep(0)
        return self._content


def row(first, last, duration, join="2:00 p.m.", leave="4:00 p.m.", email=None):
    email = email if email is not None else f"{first.split()[-1].lower()}@example.com"
    return AttendeeRow(first, last, email, duration, join, leave)


def session(session_id, name, rows, date="2024-03-05"):
    return Session(id=session_id, name=name, date=date, time="", rows=tuple(rows))


@pytest.fixture()
def settings():
    return Settings(
        excluded_accounts=frozenset({"DANIEL SOLARTE"}),
        duration_reference_minutes=120.0,
        log_level="DEBUG",
        log_file=None,
    )


@pytest.fixture()
def panel(settings):
    return AttendancePanel(settings=settings)


@pytest.fixture()
def client(panel):
    from attendance_panel.handler import app, get_panel

    app.dependency_overrides[get_panel] = lambda: panel
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
