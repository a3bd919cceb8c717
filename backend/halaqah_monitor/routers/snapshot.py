# backend/halaqah_monitor/routers/snapshot.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..db import get_db
from ..deps import get_viewer
from ..period_utils import current_period, ensure_valid_period
from ..services.snapshot import period_summary

router = APIRouter(prefix="/snapshot", tags=["Snapshot"])


def _load(db: Session, viewer: schemas.Viewer):
    # nothing partial is returned: either the whole tree or an error
    try:
        return crud.load_snapshot(db, viewer)
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="Gagal memuat data dari database.")


@router.get("", response_model=List[schemas.SchoolClassOut])
@router.get("/", response_model=List[schemas.SchoolClassOut])
def get_snapshot(viewer: schemas.Viewer = Depends(get_viewer), db: Session = Depends(get_db)):
    return _load(db, viewer)


@router.get("/summary", response_model=schemas.PeriodSummary)
def get_summary(
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None),
    viewer: schemas.Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    cur_year, cur_month = current_period()
    try:
        year, month = ensure_valid_period(year or cur_year, month or cur_month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return period_summary(_load(db, viewer), year, month)
