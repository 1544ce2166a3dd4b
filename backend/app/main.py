from __future__ import annotations

import json
import logging

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from sqlmodel import Session, select

from classroom_chart.errors import ExportError, SnapshotError
from classroom_chart.export import export_filename, render_pdf
from classroom_chart.geometry import default_rows
from classroom_chart.snapshot import LayoutSnapshot

from .db import get_session, init_db
from .models import ProfessorNote, RoomLayout, Student, _utc_now
from .schemas import LayoutOut, LayoutWrite, StudentCreate

log = logging.getLogger(__name__)

app = FastAPI(title="Classroom Seating API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup() -> None:
    init_db()


def _session() -> Session:
    return get_session()


def _get_layout(session: Session, instructor_id: str, layout_id: int) -> RoomLayout:
    layout = session.get(RoomLayout, layout_id)
    # Layouts are private to their instructor; someone else's id looks missing.
    if not layout or layout.instructor_id != instructor_id:
        raise HTTPException(status_code=404, detail="layout not found")
    return layout


def _validated(payload: LayoutWrite) -> tuple[str, str]:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="layout name is required")
    try:
        snap = LayoutSnapshot.parse(payload.snapshot)
    except SnapshotError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    data = snap.to_payload(include_layout_id=False)
    data["layout_name"] = name
    return name, json.dumps(data)


def _seated(layout: RoomLayout) -> int:
    try:
        return LayoutSnapshot.parse(layout.snapshot()).seated_count()
    except (SnapshotError, ValueError):
        return 0


def _student_payload(s: Student, notes: list[ProfessorNote]) -> dict:
    return {
        "id": s.id,
        "full_name": s.full_name,
        "email": s.email,
        "pronoun": s.pronoun,
        "major": s.major,
        "picture_url": s.picture_url,
        "hobbies": s.hobbies(),
        "favorite_media": s.favorite_media(),
        "bio": s.bio,
        "notes": [{"text": n.notes, "created_at": n.created_at.isoformat()} for n in notes],
    }


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.post("/instructors/{instructor_id}/students")
def create_student(instructor_id: str, payload: StudentCreate, session: Session = Depends(_session)) -> dict:
    data = payload.model_dump(mode="json", exclude={"hobbies", "favorite_media"})
    s = Student(
        instructor_id=instructor_id,
        hobbies_json=json.dumps(payload.hobbies),
        favorite_media_json=json.dumps([m.model_dump(mode="json") for m in payload.favorite_media]),
        **data,
    )
    session.add(s)
    session.commit()
    session.refresh(s)
    return {"id": s.id, "full_name": s.full_name}


@app.get("/instructors/{instructor_id}/roster")
def get_roster(instructor_id: str, session: Session = Depends(_session)) -> list[dict]:
    students = session.exec(
        select(Student).where(Student.instructor_id == instructor_id).order_by(Student.full_name)
    ).all()
    notes = session.exec(
        select(ProfessorNote)
        .where(ProfessorNote.instructor_id == instructor_id)
        .order_by(ProfessorNote.created_at.desc())
    ).all()
    notes_by_student: dict[str, list[ProfessorNote]] = {}
    for n in notes:
        notes_by_student.setdefault(n.student_id, []).append(n)
    return [_student_payload(s, notes_by_student.get(s.id, [])) for s in students]


@app.get("/instructors/{instructor_id}/layouts", response_model=list[LayoutOut])
def list_layouts(instructor_id: str, session: Session = Depends(_session)) -> list[LayoutOut]:
    layouts = session.exec(
        select(RoomLayout).where(RoomLayout.instructor_id == instructor_id).order_by(RoomLayout.created_at.desc())
    ).all()
    return [
        LayoutOut(
            id=l.id,
            name=l.layout_name,
            created_at=l.created_at,
            updated_at=l.updated_at,
            seated=_seated(l),
            snapshot=l.snapshot(),
        )
        for l in layouts
    ]


@app.post("/instructors/{instructor_id}/layouts")
def create_layout(instructor_id: str, payload: LayoutWrite, session: Session = Depends(_session)) -> dict:
    name, data = _validated(payload)
    layout = RoomLayout(instructor_id=instructor_id, layout_name=name, layout_data=data)
    session.add(layout)
    session.commit()
    session.refresh(layout)
    log.info("instructor %s created layout #%s %r", instructor_id, layout.id, name)
    return {"id": layout.id, "name": layout.layout_name}


@app.put("/instructors/{instructor_id}/layouts/{layout_id}")
def update_layout(
    instructor_id: str, layout_id: int, payload: LayoutWrite, session: Session = Depends(_session)
) -> dict:
    layout = _get_layout(session, instructor_id, layout_id)
    name, data = _validated(payload)
    layout.layout_name = name
    layout.layout_data = data
    layout.updated_at = _utc_now()
    session.add(layout)
    session.commit()
    return {"ok": True}


@app.delete("/instructors/{instructor_id}/layouts/{layout_id}")
def delete_layout(instructor_id: str, layout_id: int, session: Session = Depends(_session)) -> dict:
    layout = _get_layout(session, instructor_id, layout_id)
    session.delete(layout)
    session.commit()
    return {"deleted": True}


@app.get("/instructors/{instructor_id}/layouts/{layout_id}/export.pdf")
def export_layout_pdf(instructor_id: str, layout_id: int, session: Session = Depends(_session)) -> Response:
    layout = _get_layout(session, instructor_id, layout_id)
    try:
        snap = LayoutSnapshot.parse(layout.snapshot())
    except SnapshotError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    chart = snap.build_chart(default_rows())
    try:
        content = render_pdf(chart, layout.layout_name)
    except ExportError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"content-disposition": f'attachment; filename="{export_filename(layout.layout_name)}"'},
    )
