# backend/halaqah_monitor/services/snapshot.py
"""
Builds the classes -> halaqah -> reports tree from the three collections the
store hands back. Pure: no I/O, tolerant of missing nested data.
"""
import json
import logging
from collections import OrderedDict
from typing import Iterable, List, Optional, Tuple

from ..schemas import (
    FOLLOW_UP_STATUSES,
    HalaqahOut,
    PeriodSummary,
    Report,
    SchoolClassOut,
    Viewer,
    ROLE_TEACHER,
)

logger = logging.getLogger(__name__)


def _get(row, key, default=None):
    if isinstance(row, dict):
        return row.get(key, default)
    return getattr(row, key, default)


def assigned_teacher_ids(halaqah) -> List[str]:
    """
    All teachers assigned to a halaqah row, current ``teacher_id`` first.
    Older rows carry a ``teacher_ids`` list (sometimes JSON-encoded).
    """
    ids: List[str] = []

    def add(value):
        if value and str(value) not in ids:
            ids.append(str(value))

    add(_get(halaqah, "teacher_id"))
    add(_get(_get(halaqah, "guru") or {}, "id"))

    legacy = _get(halaqah, "teacher_ids")
    if isinstance(legacy, str):
        try:
            legacy = json.loads(legacy) if legacy.strip().startswith("[") else [legacy]
        except ValueError:
            legacy = []
    if isinstance(legacy, (list, tuple)):
        for value in legacy:
            if isinstance(value, (str, int)):
                add(value)
    return ids


def _group_reports(reports: Iterable) -> "OrderedDict[str, list]":
    by_halaqah: "OrderedDict[str, list]" = OrderedDict()
    for r in reports or []:
        hid = _get(r, "halaqah_id")
        if hid:
            by_halaqah.setdefault(str(hid), []).append(r)
    return by_halaqah


def build_snapshot(users, classes_with_groups, reports, viewer: Viewer) -> List[SchoolClassOut]:
    names = {str(_get(u, "id")): _get(u, "name") for u in users or []}
    by_halaqah = _group_reports(reports)
    teacher_view = viewer.role == ROLE_TEACHER

    classes = sorted(classes_with_groups or [], key=lambda c: _get(c, "name") or "")
    snapshot: List[SchoolClassOut] = []
    attached = 0

    for c in classes:
        groups: List[HalaqahOut] = []
        for h in _get(c, "halaqah") or []:
            teacher_ids = assigned_teacher_ids(h)
            if teacher_view and viewer.id not in teacher_ids:
                continue
            hid = str(_get(h, "id"))
            laporan = [Report.from_stored(r) for r in by_halaqah.get(hid, [])]
            attached += len(laporan)
            primary = teacher_ids[0] if teacher_ids else None
            groups.append(HalaqahOut(
                id=hid,
                class_id=str(_get(h, "class_id") or _get(c, "id")),
                name=_get(h, "name") or "",
                teacher_id=primary,
                teacher_ids=teacher_ids,
                teacher_name=names.get(primary) if primary else None,
                student_count=_get(h, "student_count") or 0,
                laporan=laporan,
            ))

        if teacher_view and not groups:
            continue
        snapshot.append(SchoolClassOut(
            id=str(_get(c, "id")),
            name=_get(c, "name") or "",
            short_name=_get(c, "short_name"),
            gender=_get(c, "gender") or "Ikhwan",
            halaqah=groups,
        ))

    logger.debug(
        "snapshot for %s %s: %d classes, %d reports attached",
        viewer.role, viewer.id, len(snapshot), attached,
    )
    return snapshot


def find_halaqah(snapshot: List[SchoolClassOut], halaqah_id: str) -> Optional[HalaqahOut]:
    for c in snapshot:
        for h in c.halaqah:
            if h.id == halaqah_id:
                return h
    return None


def find_report(halaqah: Optional[HalaqahOut], year: int, month: int) -> Optional[Report]:
    if halaqah is None:
        return None
    for r in halaqah.laporan:
        if r.year == year and r.month == month:
            return r
    return None


def reports_for_period(
    snapshot: List[SchoolClassOut],
    year: Optional[int] = None,
    month: Optional[int] = None,
) -> List[Tuple[SchoolClassOut, HalaqahOut, Report]]:
    """Flat list for review screens, newest period first. None means any."""
    rows = [
        (c, h, r)
        for c in snapshot
        for h in c.halaqah
        for r in h.laporan
        if (year is None or r.year == year) and (month is None or r.month == month)
    ]
    rows.sort(key=lambda row: (row[2].year, row[2].month), reverse=True)
    return rows


def period_summary(snapshot: List[SchoolClassOut], year: int, month: int) -> PeriodSummary:
    summary = PeriodSummary(
        year=year,
        month=month,
        follow_up_counts={status: 0 for status in FOLLOW_UP_STATUSES},
    )
    for c in snapshot:
        for h in c.halaqah:
            summary.total_halaqah += 1
            summary.total_students += h.student_count or 0
            report = find_report(h, year, month)
            if report is None:
                continue
            summary.submitted += 1
            if report.is_read:
                summary.read += 1
            summary.follow_up_counts[report.follow_up_status] += 1
    return summary
