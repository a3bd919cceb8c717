# backend/halaqah_monitor/routers/reports.py
import io
from typing import Optional

import openpyxl
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import crud, schemas
from ..db import get_db
from ..deps import get_viewer
from ..period_utils import ensure_valid_period, period_label, previous_period
from ..services.merge import SaveContext, apply_field_permissions, is_blank_report, resolve_for_save
from ..services.snapshot import assigned_teacher_ids, reports_for_period
from ..services.upsert import translate_for_upsert

router = APIRouter(prefix="/reports", tags=["Reports"])


def _valid_period(year: int, month: int):
    try:
        return ensure_valid_period(year, month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _context(db: Session, viewer: schemas.Viewer, halaqah_id: str, year: int, month: int) -> SaveContext:
    halaqah = crud.get_halaqah(db, halaqah_id)
    stored = crud.get_report_by_key(db, halaqah_id, year, month)
    teacher_ids = assigned_teacher_ids(halaqah) if halaqah else []
    return SaveContext(
        halaqah_id=halaqah_id,
        year=year,
        month=month,
        current_user=viewer,
        known_halaqah_teacher=teacher_ids[0] if teacher_ids else None,
        halaqah_exists=halaqah is not None,
        stored=schemas.Report.from_stored(stored) if stored else None,
    )


def _write(db: Session, payloads):
    try:
        return crud.upsert_reports(db, payloads)
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="Gagal menyimpan laporan: halaqah tidak ditemukan atau data bentrok. Muat ulang data lalu coba lagi.",
        )
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="Gagal menyimpan laporan: database tidak dapat dihubungi.")


# =========================================================
# SINGLE REPORT
# =========================================================
@router.get("/{halaqah_id}/{year}/{month}", response_model=schemas.Report)
def get_report(
    halaqah_id: str,
    year: int,
    month: int,
    viewer: schemas.Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    """Stored report for the period, or a blank draft when nothing was saved yet."""
    year, month = _valid_period(year, month)
    row = crud.get_report_by_key(db, halaqah_id, year, month)
    if row is None:
        return schemas.Report(halaqah_id=halaqah_id, year=year, month=month)
    return schemas.Report.from_stored(row)


@router.put("", response_model=schemas.ReportSaveResult)
@router.put("/", response_model=schemas.ReportSaveResult)
def save_report(
    payload: schemas.Report,
    viewer: schemas.Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    if not payload.halaqah_id:
        raise HTTPException(status_code=400, detail="halaqah_id is required")
    year, month = _valid_period(payload.year, payload.month)

    resolved = resolve_for_save(payload, _context(db, viewer, payload.halaqah_id, year, month))
    rows = _write(db, translate_for_upsert(resolved.report))
    return schemas.ReportSaveResult(
        report=schemas.Report.from_stored(rows[0]),
        warnings=resolved.warnings,
    )


# =========================================================
# BULK INPUT (one period, many halaqah)
# =========================================================
@router.post("/bulk", response_model=schemas.BulkSaveResult)
def save_reports_bulk(
    payload: schemas.BulkReportSave,
    viewer: schemas.Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    year, month = _valid_period(payload.year, payload.month)
    result = schemas.BulkSaveResult(year=year, month=month)

    to_save = []
    for halaqah_id, edit in payload.reports.items():
        ctx = _context(db, viewer, halaqah_id, year, month)
        # untouched drafts must not create rows; judged on what the writer may actually set
        writable = apply_field_permissions(edit, viewer, ctx.stored)
        if ctx.stored is None and not edit.id and is_blank_report(writable):
            result.skipped.append(halaqah_id)
            continue
        resolved = resolve_for_save(edit, ctx)
        result.warnings.extend(resolved.warnings)
        to_save.append(resolved.report)

    if to_save:
        _write(db, translate_for_upsert(to_save))
    result.saved = [r.halaqah_id for r in to_save]
    return result


# =========================================================
# EXPORT RESUME
# =========================================================
@router.get("/resume.xlsx")
def export_resume_xlsx(
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None),
    viewer: schemas.Viewer = Depends(get_viewer),
    db: Session = Depends(get_db),
):
    if year is None and month is None:
        year, month = previous_period()

    try:
        snapshot = crud.load_snapshot(db, viewer)
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="Gagal memuat data dari database.")

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Resume Laporan"

    header = ["Periode", "Kelas", "Halaqah", "Guru", "Sudah Dibaca", "Status Tindak Lanjut", "Catatan Guru"]
    ws.append(header)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for c, h, r in reports_for_period(snapshot, year, month):
        ws.append([
            period_label(r.year, r.month),
            c.name,
            h.name,
            h.teacher_name or "N/A",
            "Ya" if r.is_read else "Belum",
            r.follow_up_status,
            r.teacher_notes,
        ])

    for i, width in enumerate([18, 32, 16, 28, 14, 22, 40], start=1):
        ws.column_dimensions[get_column_letter(i)].width = width

    stream = io.BytesIO()
    wb.save(stream)
    stream.seek(0)

    filename = f"resume_{year or 'all'}_{month or 'all'}.xlsx"

    return StreamingResponse(
        stream,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
