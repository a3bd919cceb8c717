# backend/halaqah_monitor/services/upsert.py
from typing import List, Sequence, Union

from ..schemas import Report, UpsertPayload
from ..sections import SECTION_FIELDS

# rows in ``laporan`` are unique on this triple; the store updates on conflict
CONFLICT_TARGET = ("halaqah_id", "year", "month")


def _payload(report: Report) -> UpsertPayload:
    if not report.halaqah_id:
        raise ValueError("report has no halaqah_id")
    data = report.model_dump()
    # sections go out as native lists, never JSON strings
    for name in SECTION_FIELDS:
        data[name] = [dict(s) for s in data[name]]
    data["id"] = report.id or None
    return UpsertPayload(**data)


def translate_for_upsert(edits: Union[Report, Sequence[Report]]) -> List[UpsertPayload]:
    """
    One payload per report. When several edits share a natural key the
    last one wins, so a bulk save never writes a key twice.
    """
    if isinstance(edits, Report):
        edits = [edits]

    by_key = {}
    for report in edits:
        key = tuple(getattr(report, k) for k in CONFLICT_TARGET)
        by_key.pop(key, None)
        by_key[key] = _payload(report)
    return list(by_key.values())
