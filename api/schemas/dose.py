"""
Dose Schemas
Pydantic models for dose log actions and responses
"""

from typing import Optional, List
from datetime import datetime, date
from pydantic import BaseModel, Field, ConfigDict

from models import DoseStatus, TimeSlot


# ==================== REQUEST SCHEMAS ====================

class DoseAction(BaseModel):
    """A user action on a dose card"""
    # Client clock in epoch milliseconds; server time is used when omitted
    action_at_ms: Optional[int] = Field(None, ge=0)


class DoseConfirm(BaseModel):
    """Answer to a quick-confirm prompt"""
    confirmed: bool


# ==================== RESPONSE SCHEMAS ====================

class DoseLogResponse(BaseModel):
    """Schema for dose log response"""
    id: int
    user_id: int
    medicine_id: int
    scheduled_date: date
    scheduled_time: datetime
    taken_time: Optional[datetime] = None
    status: DoseStatus
    time_slot: TimeSlot
    response_time_seconds: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class DoseLogList(BaseModel):
    """A day's dose logs"""
    date: date
    doses: List[DoseLogResponse]
    total: int


class DoseActionResult(BaseModel):
    """Result of a mark-taken / confirm / missed action"""
    dose_log_id: int
    requires_confirmation: bool = False
    committed: bool = False
    dose: Optional[DoseLogResponse] = None
    message: str
    caretaker_notified: Optional[bool] = None


class GeneratedDoses(BaseModel):
    """Result of dose generation for a day"""
    date: date
    created: int
    reminders_scheduled: int
    doses: List[DoseLogResponse]


class ScheduledDose(BaseModel):
    dose_log_id: int
    medicine_id: int
    medicine_name: str
    dosage: str
    before_food: bool
    color: str
    status: str
    scheduled_time: str


class ScheduleSlot(BaseModel):
    """One time slot of the daily schedule"""
    time_slot: str
    time: str
    doses: List[ScheduledDose]


class DailySchedule(BaseModel):
    date: date
    slots: List[ScheduleSlot]
