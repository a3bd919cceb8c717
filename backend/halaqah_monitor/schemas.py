# backend/halaqah_monitor/schemas.py
from pydantic import BaseModel, ConfigDict, Field, field_validator, ValidationInfo
from typing import Dict, List, Optional, Literal

from .sections import DEFAULT_TITLES, normalize_sections

# --------------------------------------------
# Enums
# --------------------------------------------
FollowUpStatus = Literal["Belum Dimulai", "Sedang Berjalan", "Selesai", "Butuh Diskusi"]
FOLLOW_UP_STATUSES = ("Belum Dimulai", "Sedang Berjalan", "Selesai", "Butuh Diskusi")
DEFAULT_FOLLOW_UP_STATUS = "Belum Dimulai"

Role = Literal["Koordinator", "Guru", "Kepala Sekolah"]
ROLE_COORDINATOR = "Koordinator"
ROLE_TEACHER = "Guru"
ROLE_PRINCIPAL = "Kepala Sekolah"

Gender = Literal["Ikhwan", "Akhwat"]

# report fields only a teacher may change
TEACHER_ONLY_FIELDS = ("is_read", "follow_up_status", "teacher_notes")


# --------------------------------------------
# Report Schemas
# --------------------------------------------
class ReportSection(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str = ""
    content: str = ""

    @field_validator("id", "title", "content", mode="before")
    @classmethod
    def _text(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)


class Report(BaseModel):
    """
    A monthly report in canonical form. Whatever shape the stored section
    fields have, they come out of validation as lists of ReportSection.
    """
    model_config = ConfigDict(from_attributes=True)

    id: str = ""
    halaqah_id: str = ""
    teacher_id: Optional[str] = None
    year: int = 0
    month: int = 0

    main_insight: List[ReportSection] = []
    student_segmentation: List[ReportSection] = []
    identified_challenges: List[ReportSection] = []
    follow_up_recommendations: List[ReportSection] = []
    next_month_target: List[ReportSection] = []
    coordinator_notes: List[ReportSection] = []

    average_attendance: float = 0
    fluent_students: int = 0
    students_needing_attention: int = 0

    is_read: bool = False
    follow_up_status: FollowUpStatus = DEFAULT_FOLLOW_UP_STATUS
    teacher_notes: str = ""

    @field_validator(
        "main_insight",
        "student_segmentation",
        "identified_challenges",
        "follow_up_recommendations",
        "next_month_target",
        "coordinator_notes",
        mode="before",
    )
    @classmethod
    def _normalize_sections(cls, v, info: ValidationInfo):
        sections = normalize_sections(v, DEFAULT_TITLES[info.field_name])
        # passthrough keeps unknown objects; hand pydantic plain data
        return [s.model_dump() if isinstance(s, BaseModel) else s for s in sections]

    @field_validator("id", "halaqah_id", "teacher_notes", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("year", "month", "average_attendance", "fluent_students", "students_needing_attention", mode="before")
    @classmethod
    def _none_to_zero(cls, v):
        return 0 if v is None or v == "" else v

    @field_validator("is_read", mode="before")
    @classmethod
    def _none_to_false(cls, v):
        return False if v is None else v

    @field_validator("follow_up_status", mode="before")
    @classmethod
    def _known_status(cls, v, info: ValidationInfo):
        if v is None or v == "":
            return DEFAULT_FOLLOW_UP_STATUS
        # stored rows may hold retired statuses; edits must use the current list
        if info.context and info.context.get("stored") and v not in FOLLOW_UP_STATUSES:
            return DEFAULT_FOLLOW_UP_STATUS
        return v

    @classmethod
    def from_stored(cls, row) -> "Report":
        """Validate a row read back from storage, tolerating legacy values."""
        return cls.model_validate(row, context={"stored": True})


class UpsertPayload(BaseModel):
    """One row for the natural-key upsert into ``laporan``."""
    id: Optional[str] = None
    halaqah_id: str
    year: int
    month: int
    teacher_id: Optional[str] = None

    main_insight: List[dict] = []
    student_segmentation: List[dict] = []
    identified_challenges: List[dict] = []
    follow_up_recommendations: List[dict] = []
    next_month_target: List[dict] = []
    coordinator_notes: List[dict] = []

    average_attendance: float = 0
    fluent_students: int = 0
    students_needing_attention: int = 0

    is_read: bool = False
    follow_up_status: FollowUpStatus = DEFAULT_FOLLOW_UP_STATUS
    teacher_notes: str = ""

    def to_row(self) -> dict:
        row = self.model_dump()
        if not row.get("id"):
            # the store assigns ids for new rows
            row.pop("id", None)
        return row


class BulkReportSave(BaseModel):
    year: int
    month: int
    # keyed by halaqah id
    reports: Dict[str, Report]


class ReportSaveResult(BaseModel):
    report: Report
    warnings: List[str] = []


class BulkSaveResult(BaseModel):
    year: int
    month: int
    saved: List[str] = []      # halaqah ids written
    skipped: List[str] = []    # blank drafts never submitted
    warnings: List[str] = []


class PeriodSummary(BaseModel):
    year: int
    month: int
    total_halaqah: int = 0
    total_students: int = 0
    submitted: int = 0
    read: int = 0
    follow_up_counts: Dict[str, int] = {}


# --------------------------------------------
# User Schemas
# --------------------------------------------
class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: Role
    gender: Optional[Gender] = None


class UserCreate(BaseModel):
    name: str
    email: str
    password: str = Field(min_length=6)
    role: Role = ROLE_TEACHER
    gender: Optional[Gender] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[Role] = None
    gender: Optional[Gender] = None


class LoginPayload(BaseModel):
    email: str
    password: str


class Viewer(BaseModel):
    """The already-authenticated user a request acts for."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    role: Role


# --------------------------------------------
# Class / Halaqah Schemas
# --------------------------------------------
class HalaqahOut(BaseModel):
    id: str
    class_id: str
    name: str
    teacher_id: Optional[str] = None
    # one-or-more assigned teachers; single-teacher rows are the one-element case
    teacher_ids: List[str] = []
    teacher_name: Optional[str] = None
    student_count: int = 0
    laporan: List[Report] = []


class SchoolClassOut(BaseModel):
    id: str
    name: str
    short_name: Optional[str] = None
    gender: Gender = "Ikhwan"
    halaqah: List[HalaqahOut] = []


class ClassCreate(BaseModel):
    name: str
    short_name: Optional[str] = None
    gender: Gender = "Ikhwan"


class ClassUpdate(BaseModel):
    name: Optional[str] = None
    short_name: Optional[str] = None
    gender: Optional[Gender] = None


class HalaqahCreate(BaseModel):
    class_id: str
    name: str
    teacher_id: Optional[str] = None
    student_count: int = 0


class HalaqahUpdate(BaseModel):
    name: Optional[str] = None
    teacher_id: Optional[str] = None
    student_count: Optional[int] = None
