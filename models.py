"""
Database Models
SQLAlchemy ORM models for MediCare Reminder
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Date, Enum, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum

from database import Base


# ==================== ENUMS ====================

class DoseStatus(str, PyEnum):
    """Lifecycle status of a single scheduled dose"""
    PENDING = "pending"
    TAKEN = "taken"
    MISSED = "missed"
    SUSPECTED = "suspected"

    @property
    def is_terminal(self) -> bool:
        return self is not DoseStatus.PENDING


class TimeSlot(str, PyEnum):
    """Daily dosing slots"""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    NIGHT = "night"


class MedicineColor(str, PyEnum):
    """Cosmetic color tags for medicine cards"""
    PRIMARY = "primary"
    SECONDARY = "secondary"
    ACCENT = "accent"
    LAVENDER = "lavender"
    SUNNY = "sunny"
    CARE = "care"


class CaretakerNotificationKind(str, PyEnum):
    """Kinds of email a caretaker can receive"""
    MISSED_DOSE = "missed_dose"
    WEEKLY_REPORT = "weekly_report"


TERMINAL_STATUSES = (DoseStatus.TAKEN, DoseStatus.MISSED, DoseStatus.SUSPECTED)


# ==================== MODELS ====================

class User(Base):
    """Account profile; owns medicines and dose logs"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    age = Column(Integer)
    gender = Column(String(30))

    # Caretaker who receives missed-dose alerts and weekly reports
    caretaker_email = Column(String(255))

    # Cached snapshot, always recomputable from dose_logs
    adherence_score = Column(Integer, default=100, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    medicines = relationship("Medicine", back_populates="user", cascade="all, delete-orphan")
    dose_logs = relationship("DoseLog", back_populates="user", cascade="all, delete-orphan")
    shares = relationship("CaretakerShare", back_populates="patient", cascade="all, delete-orphan")


class Medicine(Base):
    """A prescribed medicine with up to three daily time slots"""
    __tablename__ = "medicines"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    name = Column(String(255), nullable=False)
    dosage = Column(String(100), nullable=False)  # e.g., "500mg"

    # Time slots ("HH:MM")
    morning = Column(Boolean, default=False, nullable=False)
    morning_time = Column(String(5), default="08:00")
    afternoon = Column(Boolean, default=False, nullable=False)
    afternoon_time = Column(String(5), default="13:00")
    night = Column(Boolean, default=False, nullable=False)
    night_time = Column(String(5), default="21:00")

    before_food = Column(Boolean, default=False, nullable=False)
    days_remaining = Column(Integer, default=0, nullable=False)
    start_date = Column(Date, nullable=False)
    color = Column(Enum(MedicineColor), default=MedicineColor.PRIMARY, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="medicines")
    dose_logs = relationship("DoseLog", back_populates="medicine", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_medicines_user", "user_id"),
    )

    def slot_enabled(self, slot: TimeSlot) -> bool:
        return bool(getattr(self, slot.value))

    def slot_time(self, slot: TimeSlot) -> str:
        return getattr(self, f"{slot.value}_time")

    @property
    def enabled_slots(self) -> list:
        return [slot for slot in TimeSlot if self.slot_enabled(slot)]


class DoseLog(Base):
    """One scheduled dose of a medicine in a given slot on a given day"""
    __tablename__ = "dose_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    medicine_id = Column(Integer, ForeignKey("medicines.id"), nullable=False)

    # Timing
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(DateTime, nullable=False)
    taken_time = Column(DateTime)
    response_time_seconds = Column(Integer)

    # Status
    status = Column(Enum(DoseStatus), default=DoseStatus.PENDING, nullable=False)
    time_slot = Column(Enum(TimeSlot), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="dose_logs")
    medicine = relationship("Medicine", back_populates="dose_logs")

    __table_args__ = (
        UniqueConstraint("medicine_id", "scheduled_date", "time_slot", name="uq_dose_per_slot_day"),
        Index("ix_dose_logs_user_time", "user_id", "scheduled_time"),
        Index("ix_dose_logs_status", "status"),
    )


class CaretakerShare(Base):
    """Token granting a caretaker read-only access to a patient's progress"""
    __tablename__ = "caretaker_shares"

    id = Column(Integer, primary_key=True, index=True)
    patient_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    share_token = Column(String(64), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    patient = relationship("User", back_populates="shares")
