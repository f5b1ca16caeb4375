"""
Medicine Schemas
Pydantic models for medicine-related API requests and responses
"""

from typing import Optional, List
from datetime import datetime, date
from pydantic import BaseModel, Field, ConfigDict

from models import MedicineColor


# ==================== BASE SCHEMAS ====================

class MedicineBase(BaseModel):
    """Base medicine schema"""
    name: str = Field(..., min_length=1, max_length=255)
    dosage: str = Field(..., min_length=1, max_length=100)
    morning: bool = False
    morning_time: Optional[str] = Field(None, max_length=8)
    afternoon: bool = False
    afternoon_time: Optional[str] = Field(None, max_length=8)
    night: bool = False
    night_time: Optional[str] = Field(None, max_length=8)
    before_food: bool = False
    days_remaining: int = Field(default=0, ge=0)
    start_date: Optional[date] = None


# ==================== REQUEST SCHEMAS ====================

class MedicineCreate(MedicineBase):
    """Schema for creating a medicine"""
    pass


class MedicineBulkCreate(BaseModel):
    """Schema for adding several medicines, e.g. after a prescription scan"""
    medicines: List[MedicineCreate] = Field(..., min_length=1)


# ==================== RESPONSE SCHEMAS ====================

class MedicineResponse(MedicineBase):
    """Schema for medicine response"""
    id: int
    user_id: int
    morning_time: str
    afternoon_time: str
    night_time: str
    start_date: date
    color: MedicineColor
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MedicineList(BaseModel):
    """List of a user's medicines"""
    medicines: List[MedicineResponse]
    total: int


class MedicineCreated(BaseModel):
    """Medicine plus the number of doses generated for today"""
    medicine: MedicineResponse
    doses_generated: int
    reminders_scheduled: int
