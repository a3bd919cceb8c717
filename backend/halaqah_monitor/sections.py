# backend/halaqah_monitor/sections.py
"""
Report section normalization.

Report fields went through three storage generations:

  1. one free-text blob per field ("Catatan penting")
  2. a JSON-encoded string of section objects ('[{"id": .., "title": .., "content": ..}]'),
     sometimes with the content itself encoded a second time
  3. a native list of section objects

``normalize_sections`` accepts any of these (and garbage) and returns the
canonical list of ``{"id", "title", "content"}`` dicts. It never raises.
"""
import json
import logging
import uuid
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)

SECTION_FIELDS = (
    "main_insight",
    "student_segmentation",
    "identified_challenges",
    "follow_up_recommendations",
    "next_month_target",
    "coordinator_notes",
)

# used only when legacy or malformed data has to be wrapped
DEFAULT_TITLES = {
    "main_insight": "Insight Utama",
    "student_segmentation": "Segmentasi Murid",
    "identified_challenges": "Tantangan",
    "follow_up_recommendations": "Rekomendasi",
    "next_month_target": "Target",
    "coordinator_notes": "Catatan Koordinator",
}

# labels shown on input screens, also the base for titles of added sections
FIELD_LABELS = {
    "main_insight": "Insight Utama",
    "student_segmentation": "Segmentasi Murid",
    "identified_challenges": "Tantangan yang Teridentifikasi",
    "follow_up_recommendations": "Rekomendasi Tindak Lanjut",
    "next_month_target": "Target Bulan Depan",
    "coordinator_notes": "Catatan Koordinator",
}

IdFactory = Callable[[str], str]


def new_section_id(prefix: str = "sec") -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def _carries_id(item: Any) -> bool:
    if isinstance(item, dict):
        return "id" in item
    # pydantic section models and similar objects
    return not isinstance(item, (str, bytes, list, tuple)) and hasattr(item, "id")


def _looks_like_json_list(value: Any) -> bool:
    return isinstance(value, str) and value.strip().startswith("[")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _unwrap_double_encoded(content: Any) -> Any:
    """Old write paths stored a JSON list of sections inside ``content``; take the first one's text."""
    if not _looks_like_json_list(content):
        return content
    try:
        nested = json.loads(content)
    except (ValueError, RecursionError):
        return content
    if isinstance(nested, list) and nested and isinstance(nested[0], dict) and nested[0].get("content"):
        return nested[0]["content"]
    return content


def _conform(items: list, default_title: str, id_factory: IdFactory) -> List[dict]:
    sections = []
    for item in items:
        if not isinstance(item, dict):
            continue
        content = _unwrap_double_encoded(item.get("content") or "")
        sections.append({
            "id": _as_text(item.get("id")) or id_factory("migrated-json"),
            "title": _as_text(item.get("title")) or default_title,
            "content": _as_text(content),
        })
    return sections


def normalize_sections(value: Any, default_title: str, id_factory: Optional[IdFactory] = None) -> list:
    id_factory = id_factory or new_section_id

    if isinstance(value, (list, tuple)):
        if all(_carries_id(item) for item in value):
            # already canonical (an empty list included)
            return value if isinstance(value, list) else list(value)
        # partially shaped objects written by older clients
        return _conform(list(value), default_title, id_factory)

    if not isinstance(value, str):
        return []

    if _looks_like_json_list(value):
        try:
            parsed = json.loads(value)
        except (ValueError, RecursionError):
            parsed = None
        if isinstance(parsed, list):
            sections = _conform(parsed, default_title, id_factory)
            if sections:
                return sections
        logger.debug("unparseable section list, wrapping as plain text: %.40r", value)

    if value.strip():
        return [{"id": id_factory("migrated-str"), "title": default_title, "content": value}]

    return []


def normalize_report_fields(row: dict, id_factory: Optional[IdFactory] = None) -> dict:
    """Return a copy of ``row`` with every section field in canonical form."""
    out = dict(row)
    for field in SECTION_FIELDS:
        out[field] = normalize_sections(row.get(field), DEFAULT_TITLES[field], id_factory)
    return out


def new_section(field: str, existing: list, id_factory: Optional[IdFactory] = None) -> dict:
    """Blank section appended by the "add section" action."""
    id_factory = id_factory or new_section_id
    label = FIELD_LABELS.get(field, DEFAULT_TITLES.get(field, "Bagian"))
    taken = {s["id"] if isinstance(s, dict) else getattr(s, "id", None) for s in existing}
    section_id = id_factory("sec")
    while section_id in taken:
        section_id = id_factory("sec")
    return {"id": section_id, "title": f"{label} #{len(existing) + 1}", "content": ""}


def has_content(sections: list) -> bool:
    for s in sections or []:
        content = s.get("content") if isinstance(s, dict) else getattr(s, "content", "")
        if content and str(content).strip():
            return True
    return False
