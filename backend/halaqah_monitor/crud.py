# backend/halaqah_monitor/crud.py
import logging
from typing import List, Optional, Sequence

from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .security import hash_password, is_password_hash, verify_password
from .services.snapshot import assigned_teacher_ids, build_snapshot
from .services.upsert import CONFLICT_TARGET

logger = logging.getLogger(__name__)

# never touched by an upsert update
_INSERT_ONLY = ("id", "created_at")


def _as_dict(obj) -> dict:
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


# ---------- SNAPSHOT READS ----------
def fetch_users(db: Session) -> List[dict]:
    return [_as_dict(u) for u in db.query(models.User).order_by(models.User.name).all()]


def fetch_classes_with_groups(db: Session) -> List[dict]:
    classes = (
        db.query(models.SchoolClass)
        .options(
            selectinload(models.SchoolClass.halaqah)
            .selectinload(models.Halaqah.guru)
        )
        .order_by(models.SchoolClass.name)
        .all()
    )
    rows = []
    for c in classes:
        row = _as_dict(c)
        row["halaqah"] = []
        for h in c.halaqah:
            h_row = _as_dict(h)
            h_row["guru"] = _as_dict(h.guru) if h.guru else None
            row["halaqah"].append(h_row)
        rows.append(row)
    return rows


def fetch_reports(db: Session, halaqah_ids: Optional[Sequence[str]] = None) -> List[dict]:
    q = db.query(models.Report)
    if halaqah_ids is not None:
        if not halaqah_ids:
            return []
        q = q.filter(models.Report.halaqah_id.in_(list(halaqah_ids)))
    return [_as_dict(r) for r in q.order_by(models.Report.created_at).all()]


def _assigned_halaqah_ids(classes: List[dict], teacher_id: str) -> List[str]:
    return [
        h["id"]
        for c in classes
        for h in c["halaqah"]
        if teacher_id in assigned_teacher_ids(h)
    ]


def load_snapshot(db: Session, viewer: schemas.Viewer) -> List[schemas.SchoolClassOut]:
    """Fetch everything the viewer may see and build the tree. Raises on any fetch error."""
    users = fetch_users(db)
    classes = fetch_classes_with_groups(db)
    if viewer.role == schemas.ROLE_TEACHER:
        # a teacher sees every report of the halaqah assigned now, whoever wrote it
        reports = fetch_reports(db, halaqah_ids=_assigned_halaqah_ids(classes, viewer.id))
    else:
        reports = fetch_reports(db)
    return build_snapshot(users, classes, reports, viewer)


# ---------- REPORT WRITES ----------
def get_report_by_key(db: Session, halaqah_id: str, year: int, month: int) -> Optional[models.Report]:
    return (
        db.query(models.Report)
        .filter(
            models.Report.halaqah_id == halaqah_id,
            models.Report.year == year,
            models.Report.month == month,
        )
        .first()
    )


def _upsert_statement(dialect_name: str, row: dict):
    insert = postgresql.insert if dialect_name == "postgresql" else sqlite.insert
    # the natural key alone decides insert vs update; new ids come from the column default
    values = {k: v for k, v in row.items() if k != "id"}
    stmt = insert(models.Report).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=list(CONFLICT_TARGET),
        set_={
            k: stmt.excluded[k]
            for k in values
            if k not in CONFLICT_TARGET and k not in _INSERT_ONLY
        },
    )


def _upsert_orm(db: Session, row: dict) -> None:
    existing = get_report_by_key(db, row["halaqah_id"], row["year"], row["month"])
    if existing is None:
        db.add(models.Report(**row))
        return
    for k, v in row.items():
        if k not in _INSERT_ONLY:
            setattr(existing, k, v)


def upsert_reports(db: Session, payloads: Sequence[schemas.UpsertPayload]) -> List[models.Report]:
    """
    Insert-or-update each payload on (halaqah_id, year, month), all or nothing.
    Returns the stored rows in payload order.
    """
    dialect_name = db.get_bind().dialect.name
    try:
        for payload in payloads:
            row = payload.to_row()
            if dialect_name in ("postgresql", "sqlite"):
                db.execute(_upsert_statement(dialect_name, row))
            else:
                _upsert_orm(db, row)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Report upsert failed for %d row(s)", len(payloads))
        raise

    return [
        get_report_by_key(db, p.halaqah_id, p.year, p.month)
        for p in payloads
    ]


# ---------- CLASS CRUD ----------
def get_class(db: Session, class_id: str) -> Optional[models.SchoolClass]:
    return db.query(models.SchoolClass).filter(models.SchoolClass.id == class_id).first()


def create_class(db: Session, payload: schemas.ClassCreate) -> models.SchoolClass:
    c = models.SchoolClass(name=payload.name, short_name=payload.short_name, gender=payload.gender)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def update_class(db: Session, c: models.SchoolClass, payload: schemas.ClassUpdate) -> models.SchoolClass:
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(c, k, v)
    db.commit()
    db.refresh(c)
    return c


def delete_class(db: Session, c: models.SchoolClass) -> None:
    # halaqah and their reports go with the class
    db.delete(c)
    db.commit()


# ---------- HALAQAH CRUD ----------
def get_halaqah(db: Session, halaqah_id: str) -> Optional[models.Halaqah]:
    return db.query(models.Halaqah).filter(models.Halaqah.id == halaqah_id).first()


def create_halaqah(db: Session, payload: schemas.HalaqahCreate) -> models.Halaqah:
    h = models.Halaqah(
        class_id=payload.class_id,
        name=payload.name,
        teacher_id=payload.teacher_id,
        student_count=payload.student_count,
    )
    try:
        db.add(h)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(h)
    return h


def update_halaqah(db: Session, h: models.Halaqah, payload: schemas.HalaqahUpdate) -> models.Halaqah:
    try:
        for k, v in payload.model_dump(exclude_unset=True).items():
            setattr(h, k, v)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(h)
    return h


def delete_halaqah(db: Session, h: models.Halaqah) -> None:
    db.delete(h)
    db.commit()


# ---------- USER CRUD ----------
def get_user(db: Session, user_id: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email.strip().lower()).first()


def get_all_users(db: Session) -> List[models.User]:
    return db.query(models.User).order_by(models.User.name).all()


def create_user(db: Session, payload: schemas.UserCreate) -> models.User:
    user = models.User(
        name=payload.name,
        email=payload.email.strip().lower(),
        password=hash_password(payload.password),
        role=payload.role,
        gender=payload.gender,
    )
    try:
        db.add(user)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return user


def update_user(db: Session, user: models.User, payload: schemas.UserUpdate) -> models.User:
    data = payload.model_dump(exclude_unset=True)
    if data.get("password"):
        data["password"] = hash_password(data["password"])
    else:
        data.pop("password", None)
    if data.get("email"):
        data["email"] = data["email"].strip().lower()
    try:
        for k, v in data.items():
            setattr(user, k, v)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)
    return user


def is_teacher_assigned(db: Session, user_id: str) -> bool:
    if db.query(models.Halaqah).filter(models.Halaqah.teacher_id == user_id).first():
        return True
    # older rows list their teachers in a JSON column
    for (ids,) in db.query(models.Halaqah.teacher_ids).filter(models.Halaqah.teacher_ids.isnot(None)):
        if isinstance(ids, list) and user_id in ids:
            return True
    return False


def delete_user(db: Session, user: models.User) -> None:
    db.delete(user)
    db.commit()


def authenticate(db: Session, email: str, password: str) -> Optional[models.User]:
    user = get_user_by_email(db, email or "")
    if user is None:
        logger.warning("Login failed: unknown email %s", email)
        return None
    if not is_password_hash(user.password):
        logger.warning("Login refused for user %s: stored credential is not hashed", user.id)
        return None
    if not verify_password(password, user.password):
        logger.warning("Login failed: wrong password for user %s", user.id)
        return None
    return user
