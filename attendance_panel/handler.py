from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response
from mangum import Mangum
from pydantic import BaseModel

from . import reports
from .config import get_settings
from .errors import InvalidFilterError
from .log import setup_logger
from .models import ALL
from .panel import AttendancePanel

settings = get_settings()
setup_logger(settings.log_level, settings.log_file)

app = FastAPI(title=settings.app_name)

_panel: Optional[AttendancePanel] = None


def get_panel() -> AttendancePanel:
    global _panel
    if _panel is None:
        _panel = AttendancePanel(settings=settings)
    return _panel


class FilterUpdate(BaseModel):
    sede: Optional[str] = None
    area: Optional[str] = None


def _not_found(what: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": f"{what} not found"})


def _filters_payload(panel: AttendancePanel) -> dict:
    return {"sede": panel.filters.sede, "area": panel.filters.area}


@app.get("/api/health")
def health():
    return {"ok": True}


@app.post("/api/sessions")
async def upload_sessions(files: List[UploadFile] = File(...),
                          panel: AttendancePanel = Depends(get_panel)):
    result = await panel.ingest_batch(files)
    payload = result.to_dict()
    payload["total_sessions"] = len(panel.store)
    return payload


@app.get("/api/sessions")
def list_sessions(panel: AttendancePanel = Depends(get_panel)):
    return {
        "filters": _filters_payload(panel),
        "sessions": [s.to_dict() for s in panel.get_filtered_sessions()],
        "overview": reports.session_overview(panel.get_filtered_sessions(), panel.excluded_accounts),
    }


@app.get("/api/students")
def list_students(q: str = "", sede: str = ALL, status: str = ALL,
                  sort: Optional[str] = None, ascending: bool = True,
                  panel: AttendancePanel = Depends(get_panel)):
    try:
        students = reports.filter_students(panel.get_student_metrics(), q, sede, status,
                                           sort, ascending)
    except InvalidFilterError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    return {
        "filters": _filters_payload(panel),
        "total_sessions": len(panel.get_filtered_sessions()),
        "students": [s.to_dict() for s in students],
    }


@app.get("/api/students/{key}")
def get_student(key: str, panel: AttendancePanel = Depends(get_panel)):
    student = panel.get_student(key.upper())
    if student is None:
        return _not_found("Student")
    data = student.to_dict()
    data["note"] = panel.followups.note(student.name)
    data["contacted"] = panel.followups.is_contacted(student.name)
    return data


@app.post("/api/students/{key}/note")
def save_note(key: str, text: str = Form(""), panel: AttendancePanel = Depends(get_panel)):
    if not panel.followups.set_note(key.upper(), text, panel.get_student_metrics()):
        return _not_found("Student")
    return {"ok": True}


@app.post("/api/students/{key}/contacted")
def toggle_contacted(key: str, panel: AttendancePanel = Depends(get_panel)):
    name = key.upper()
    if not panel.followups.toggle_contacted(name, panel.get_student_metrics()):
        return _not_found("Student")
    return {"ok": True, "contacted": panel.followups.is_contacted(name)}


@app.put("/api/filters")
def set_filters(update: FilterUpdate, panel: AttendancePanel = Depends(get_panel)):
    try:
        panel.set_filters(sede=update.sede, area=update.area)
    except InvalidFilterError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    return _filters_payload(panel)


@app.get("/api/ranking")
def ranking(panel: AttendancePanel = Depends(get_panel)):
    return {
        "reference_start": panel.reference_start(),
        "total_sessions": len(panel.get_filtered_sessions()),
        "ranking": [r.to_dict() for r in panel.global_ranking()],
    }


@app.get("/api/ranking/{session_id}")
def class_ranking(session_id: int, panel: AttendancePanel = Depends(get_panel)):
    session = panel.get_session(session_id)
    if session is None:
        return _not_found("Session")
    return {
        "session": session.to_dict(),
        "ranking": [c.to_dict() for c in panel.compute_class_scores(session)],
    }


@app.get("/api/summary")
def summary(panel: AttendancePanel = Depends(get_panel)):
    sessions = panel.get_filtered_sessions()
    metrics = panel.get_student_metrics()
    return {
        "summary": reports.summary(metrics, sessions),
        "advanced": reports.advanced(metrics, panel.followups),
        "punctuality": reports.punctuality_breakdown(sessions),
        "join_hours": reports.join_hour_slots(sessions),
    }


@app.get("/api/alerts")
def alerts(panel: AttendancePanel = Depends(get_panel)):
    found = reports.alerts(panel.get_student_metrics(), len(panel.get_filtered_sessions()))
    return {level: [s.name for s in students] for level, students in found.items()}


@app.get("/api/heatmap")
def heatmap(panel: AttendancePanel = Depends(get_panel)):
    return reports.heatmap(panel.get_student_metrics(), panel.get_filtered_sessions())


@app.get("/api/counts")
def counts(panel: AttendancePanel = Depends(get_panel)):
    return reports.selector_counts(panel.get_sessions(), panel.excluded_accounts)


@app.get("/api/export.csv")
def export_csv(panel: AttendancePanel = Depends(get_panel)):
    body = reports.export_csv(panel.get_student_metrics(), len(panel.get_filtered_sessions()),
                              panel.followups)
    filename = reports.export_filename(settings.export_filename_prefix, panel.filters, "csv")
    return Response(
        content=body.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@app.get("/api/export.xlsx")
def export_xlsx(panel: AttendancePanel = Depends(get_panel)):
    out_bytes = reports.export_workbook(
        panel.get_student_metrics(), panel.get_filtered_sessions(), panel.filters,
        panel.followups, panel.excluded_accounts,
    )
    filename = reports.export_filename(settings.export_filename_prefix, panel.filters, "xlsx")
    return Response(
        content=out_bytes,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )

handler = Mangum(app)
