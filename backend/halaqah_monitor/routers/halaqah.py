# backend/halaqah_monitor/routers/halaqah.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import require_coordinator
from ..services.snapshot import assigned_teacher_ids
from .. import crud, models, schemas

router = APIRouter(prefix="/halaqah", tags=["Halaqah"])


def _out(h: models.Halaqah) -> schemas.HalaqahOut:
    teacher_ids = assigned_teacher_ids(h)
    return schemas.HalaqahOut(
        id=h.id,
        class_id=h.class_id,
        name=h.name,
        teacher_id=teacher_ids[0] if teacher_ids else None,
        teacher_ids=teacher_ids,
        teacher_name=h.guru.name if h.guru else None,
        student_count=h.student_count or 0,
    )


def _check_refs(db: Session, class_id=None, teacher_id=None):
    if class_id is not None and not crud.get_class(db, class_id):
        raise HTTPException(status_code=404, detail="Class not found")
    if teacher_id and not crud.get_user(db, teacher_id):
        raise HTTPException(status_code=404, detail="Teacher not found")


@router.post("/", response_model=schemas.HalaqahOut)
def create_halaqah(
    payload: schemas.HalaqahCreate,
    db: Session = Depends(get_db),
    _: schemas.Viewer = Depends(require_coordinator),
):
    _check_refs(db, payload.class_id, payload.teacher_id)
    try:
        h = crud.create_halaqah(db, payload)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Halaqah could not be saved")
    return _out(h)


@router.patch("/{halaqah_id}", response_model=schemas.HalaqahOut)
def update_halaqah(
    halaqah_id: str,
    payload: schemas.HalaqahUpdate,
    db: Session = Depends(get_db),
    _: schemas.Viewer = Depends(require_coordinator),
):
    h = crud.get_halaqah(db, halaqah_id)
    if not h:
        raise HTTPException(status_code=404, detail="Halaqah not found")
    _check_refs(db, teacher_id=payload.teacher_id)
    try:
        h = crud.update_halaqah(db, h, payload)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Halaqah could not be saved")
    return _out(h)


@router.delete("/{halaqah_id}")
def delete_halaqah(halaqah_id: str, db: Session = Depends(get_db), _: schemas.Viewer = Depends(require_coordinator)):
    h = crud.get_halaqah(db, halaqah_id)
    if not h:
        raise HTTPException(status_code=404, detail="Halaqah not found")
    crud.delete_halaqah(db, h)
    return {"status": "ok", "id": halaqah_id}
