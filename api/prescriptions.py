"""
Prescriptions API Router
Endpoint for extracting medicine names from a prescription photo
"""

import logging
from fastapi import APIRouter, HTTPException, status

from api.deps import services
from api.schemas.prescription import PrescriptionAnalyzeRequest, PrescriptionAnalyzeResponse
from tools.prescription_extractor import (
    ExtractionError,
    RateLimitedError,
    PaymentRequiredError,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prescriptions", tags=["prescriptions"])


@router.post("/analyze", response_model=PrescriptionAnalyzeResponse)
async def analyze_prescription(request: PrescriptionAnalyzeRequest):
    """
    Suggest medicine names found in a prescription image.

    Results are candidates for the user to review; nothing is saved.
    Every failure response carries `manual_entry: true` so the client can
    fall back to the manual form.
    """
    extractor = services.get_prescription_extractor()

    if not request.image_base64:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No image provided"
        )

    try:
        names = await extractor.extract(request.image_base64)
    except RateLimitedError as e:
        code = status.HTTP_429_TOO_MANY_REQUESTS
        error = e
    except PaymentRequiredError as e:
        code = status.HTTP_402_PAYMENT_REQUIRED
        error = e
    except ExtractionError as e:
        code = status.HTTP_502_BAD_GATEWAY
        error = e
    else:
        return PrescriptionAnalyzeResponse(medicines=names)

    logger.warning(f"Prescription extraction failed: {error}")
    raise HTTPException(
        status_code=code,
        detail={"message": error.user_message, "manual_entry": True}
    )
