# backend/halaqah_monitor/models.py
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Float, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from .db import Base
from datetime import datetime
import uuid


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "guru"

    id = Column("id", String(36), primary_key=True, default=_uuid)
    name = Column("name", String, nullable=False)
    email = Column("email", String, nullable=False, unique=True, index=True)
    # bcrypt hash; legacy rows may still hold plaintext and will never authenticate
    password = Column("password", String, nullable=True)
    role = Column("role", String, nullable=False, default="Guru")
    gender = Column("gender", String, nullable=True)

    halaqahs = relationship("Halaqah", back_populates="guru")


class SchoolClass(Base):
    __tablename__ = "kelas"

    id = Column("id", String(36), primary_key=True, default=_uuid)
    name = Column("name", String, nullable=False)
    short_name = Column("short_name", String, nullable=True)
    gender = Column("gender", String, nullable=False, default="Ikhwan")   # Ikhwan | Akhwat

    halaqah = relationship(
        "Halaqah",
        back_populates="kelas",
        cascade="all, delete-orphan",
        order_by="Halaqah.created_at",
    )


class Halaqah(Base):
    __tablename__ = "halaqah"

    id = Column("id", String(36), primary_key=True, default=_uuid)
    class_id = Column("class_id", String(36), ForeignKey("kelas.id", ondelete="CASCADE"), nullable=False)
    name = Column("name", String, nullable=False)
    # current generation: one teacher per halaqah
    teacher_id = Column("teacher_id", String(36), ForeignKey("guru.id"), nullable=True)
    # earlier generation: list of teacher ids, read-only from here on
    teacher_ids = Column("teacher_ids", JSON, nullable=True)
    student_count = Column("student_count", Integer, default=0)

    created_at = Column("created_at", DateTime, default=datetime.utcnow)

    kelas = relationship("SchoolClass", back_populates="halaqah")
    guru = relationship("User", back_populates="halaqahs")
    laporan = relationship("Report", back_populates="halaqah", cascade="all, delete-orphan")


class Report(Base):
    __tablename__ = "laporan"

    id = Column("id", String(36), primary_key=True, default=_uuid)
    halaqah_id = Column("halaqah_id", String(36), ForeignKey("halaqah.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column("teacher_id", String(36), nullable=True, index=True)
    year = Column("year", Integer, nullable=False)
    month = Column("month", Integer, nullable=False)   # 1..12

    # section lists; older rows hold a plain string or a JSON-encoded string
    main_insight = Column("main_insight", JSON, nullable=True)
    student_segmentation = Column("student_segmentation", JSON, nullable=True)
    identified_challenges = Column("identified_challenges", JSON, nullable=True)
    follow_up_recommendations = Column("follow_up_recommendations", JSON, nullable=True)
    next_month_target = Column("next_month_target", JSON, nullable=True)
    coordinator_notes = Column("coordinator_notes", JSON, nullable=True)

    average_attendance = Column("average_attendance", Float, nullable=True)
    fluent_students = Column("fluent_students", Integer, nullable=True)
    students_needing_attention = Column("students_needing_attention", Integer, nullable=True)

    is_read = Column("is_read", Boolean, default=False)
    follow_up_status = Column("follow_up_status", String, default="Belum Dimulai")
    teacher_notes = Column("teacher_notes", Text, nullable=True)

    created_at = Column("created_at", DateTime, default=datetime.utcnow)

    halaqah = relationship("Halaqah", back_populates="laporan")

    __table_args__ = (
        UniqueConstraint("halaqah_id", "year", "month", name="unique_report_per_period"),
    )
