"""
Prescription Schemas
Pydantic models for prescription scanning
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class PrescriptionAnalyzeRequest(BaseModel):
    """Base64 image, optionally as a data: URL"""
    image_base64: Optional[str] = Field(None, alias="imageBase64")

    model_config = {"populate_by_name": True}


class PrescriptionAnalyzeResponse(BaseModel):
    """Candidate medicine names for the user to review"""
    medicines: List[str]
