# backend/halaqah_monitor/services/merge.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..period_utils import ensure_valid_period
from ..schemas import (
    Report,
    Viewer,
    ROLE_TEACHER,
    TEACHER_ONLY_FIELDS,
)
from ..sections import SECTION_FIELDS, has_content

logger = logging.getLogger(__name__)


@dataclass
class SaveContext:
    """Where an edit is being saved: the natural key plus who is saving it."""
    halaqah_id: str
    year: int
    month: int
    current_user: Viewer
    # teacher currently assigned to the halaqah, if the caller knows it
    known_halaqah_teacher: Optional[str] = None
    # False when the halaqah is missing from the caller's snapshot (deleted concurrently)
    halaqah_exists: bool = True
    # row currently stored under the natural key, if any
    stored: Optional[Report] = None


@dataclass
class ResolvedSave:
    report: Report
    warnings: List[str] = field(default_factory=list)


def apply_field_permissions(report: Report, writer: Viewer, stored: Optional[Report] = None) -> Report:
    """
    Only teachers write is_read, follow_up_status and teacher_notes. For anyone
    else those fields keep their stored values (or defaults for a new report).
    """
    if writer.role == ROLE_TEACHER:
        return report

    baseline = stored or Report()
    updates = {}
    for name in TEACHER_ONLY_FIELDS:
        kept = getattr(baseline, name)
        if getattr(report, name) != kept:
            logger.info(
                "Ignoring %s change from %s user %s on halaqah %s",
                name, writer.role, writer.id, report.halaqah_id,
            )
        updates[name] = kept
    return report.model_copy(update=updates)


def resolve_for_save(local_edit: Report, context: SaveContext) -> ResolvedSave:
    """
    Build the report to send to storage. The local edit wins for every field
    it carries; identity comes from the context, never from the edit.
    """
    year, month = ensure_valid_period(context.year, context.month)
    warnings: List[str] = []

    report_id = local_edit.id or ""
    if context.stored is not None and context.stored.id:
        report_id = context.stored.id

    if context.halaqah_exists and context.known_halaqah_teacher:
        teacher_id = context.known_halaqah_teacher
    else:
        teacher_id = context.current_user.id
        if not context.halaqah_exists:
            msg = f"Halaqah {context.halaqah_id} not found in current data; saving with best-effort attribution"
            logger.warning(msg)
            warnings.append(msg)

    report = local_edit.model_copy(update={
        "id": report_id,
        "halaqah_id": context.halaqah_id,
        "year": year,
        "month": month,
        "teacher_id": teacher_id,
    })
    report = apply_field_permissions(report, context.current_user, context.stored)
    return ResolvedSave(report=report, warnings=warnings)


def is_blank_report(report: Report) -> bool:
    """True for a draft nobody has written anything into."""
    if any(has_content(getattr(report, name)) for name in SECTION_FIELDS):
        return False
    if report.teacher_notes.strip():
        return False
    return not (report.average_attendance or report.fluent_students or report.students_needing_attention)
