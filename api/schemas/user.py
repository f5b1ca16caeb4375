"""
User Schemas
Pydantic models for user profile API requests and responses
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict


# ==================== REQUEST SCHEMAS ====================

class UserCreate(BaseModel):
    """Schema for creating a user profile"""
    name: str = Field(..., min_length=1, max_length=200)
    # Plain string so test/special-use domains are accepted
    email: str = Field(..., min_length=3, max_length=255)
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = Field(None, max_length=30)
    caretaker_email: Optional[str] = Field(None, max_length=255)


class UserUpdate(BaseModel):
    """Schema for updating a user profile"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = Field(None, max_length=30)
    caretaker_email: Optional[str] = Field(None, max_length=255)


# ==================== RESPONSE SCHEMAS ====================

class UserResponse(BaseModel):
    """Schema for user response"""
    id: int
    name: str
    email: str
    age: Optional[int] = None
    gender: Optional[str] = None
    caretaker_email: Optional[str] = None
    adherence_score: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
