# backend/halaqah_monitor/routers/users.py
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List

from .. import crud, schemas
from ..db import get_db
from ..deps import require_coordinator

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=schemas.UserOut)
def create_user(
    payload: schemas.UserCreate,
    db: Session = Depends(get_db),
    _: schemas.Viewer = Depends(require_coordinator),
):
    try:
        return crud.create_user(db, payload)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Email already registered")

@router.get("", response_model=List[schemas.UserOut])
@router.get("/", response_model=List[schemas.UserOut])
def list_users(db: Session = Depends(get_db), _: schemas.Viewer = Depends(require_coordinator)):
    return crud.get_all_users(db)

@router.delete("/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db), _: schemas.Viewer = Depends(require_coordinator)):
    user = crud.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if crud.is_teacher_assigned(db, user_id):
        raise HTTPException(
            status_code=409,
            detail="Tidak dapat menghapus user ini karena masih terdaftar sebagai pengajar di salah satu halaqah.",
        )
    crud.delete_user(db, user)
    return {"status": "ok", "user_id": user_id}

@router.patch("/{user_id}", response_model=schemas.UserOut)
def update_user(
    user_id: str,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    _: schemas.Viewer = Depends(require_coordinator),
):
    user = crud.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        return crud.update_user(db, user, payload)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Email already registered")
