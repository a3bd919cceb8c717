# backend/halaqah_monitor/deps.py
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from . import crud, schemas
from .db import get_db


def get_viewer(
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> schemas.Viewer:
    """The user id comes from the upstream authenticator; refresh the role from the store."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    user = crud.get_user(db, x_user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return schemas.Viewer.model_validate(user)


def require_coordinator(viewer: schemas.Viewer = Depends(get_viewer)) -> schemas.Viewer:
    if viewer.role != schemas.ROLE_COORDINATOR:
        raise HTTPException(status_code=403, detail="Coordinator role required")
    return viewer
