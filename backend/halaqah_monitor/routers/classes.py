# backend/halaqah_monitor/routers/classes.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from ..db import get_db
from ..deps import require_coordinator
from .. import crud, models, schemas

router = APIRouter(prefix="/classes", tags=["Classes"])


def _out(c: models.SchoolClass) -> schemas.SchoolClassOut:
    # admin screens list classes without their reports
    return schemas.SchoolClassOut(id=c.id, name=c.name, short_name=c.short_name, gender=c.gender)


@router.post("/", response_model=schemas.SchoolClassOut)
def create_class(
    payload: schemas.ClassCreate,
    db: Session = Depends(get_db),
    _: schemas.Viewer = Depends(require_coordinator),
):
    if not payload.name.strip():
        raise HTTPException(status_code=400, detail="name must not be empty")
    return _out(crud.create_class(db, payload))


@router.get("/", response_model=List[schemas.SchoolClassOut])
def list_classes(db: Session = Depends(get_db), _: schemas.Viewer = Depends(require_coordinator)):
    rows = db.query(models.SchoolClass).order_by(models.SchoolClass.name).all()
    return [_out(c) for c in rows]


@router.patch("/{class_id}", response_model=schemas.SchoolClassOut)
def update_class(
    class_id: str,
    payload: schemas.ClassUpdate,
    db: Session = Depends(get_db),
    _: schemas.Viewer = Depends(require_coordinator),
):
    c = crud.get_class(db, class_id)
    if not c:
        raise HTTPException(status_code=404, detail="Class not found")
    return _out(crud.update_class(db, c, payload))


@router.delete("/{class_id}")
def delete_class(class_id: str, db: Session = Depends(get_db), _: schemas.Viewer = Depends(require_coordinator)):
    c = crud.get_class(db, class_id)
    if not c:
        raise HTTPException(status_code=404, detail="Class not found")
    crud.delete_class(db, c)
    return {"status": "ok", "id": class_id}
