"""
Share Schemas
Pydantic models for caretaker share links
"""

from typing import List
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from api.schemas.adherence import HistoryEntry


class ShareResponse(BaseModel):
    """Issued share token"""
    id: int
    patient_user_id: int
    share_token: str
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SharedMedicine(BaseModel):
    id: int
    name: str
    dosage: str


class SharedView(BaseModel):
    """Read-only snapshot for a caretaker"""
    patient_name: str
    adherence_score: int
    medicines: List[SharedMedicine]
    recent_logs: List[HistoryEntry]
