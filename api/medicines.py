"""
Medicines API Router
Endpoints for a user's medicines
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from config import settings
from api.deps import get_db, get_current_user_id, services
from api.schemas.medicine import (
    MedicineCreate,
    MedicineBulkCreate,
    MedicineResponse,
    MedicineList,
    MedicineCreated,
)
import models


router = APIRouter(prefix="/users/{user_id}/medicines", tags=["medicines"])


async def _schedule_today(medicines: List[models.Medicine], db: Session):
    """Generate today's doses for new medicines and arm their reminders"""
    schedule_service = services.get_schedule_service()

    results = []
    for medicine in medicines:
        logs = await schedule_service.generate_dose_logs(medicine, db=db)
        armed = 0
        if settings.REMINDERS_ENABLED:
            armed = schedule_service.arm_reminders(logs, {medicine.id: medicine.name})
        results.append((medicine, len(logs), armed))
    return results


@router.post("/", response_model=MedicineCreated, status_code=status.HTTP_201_CREATED)
async def add_medicine(
    medicine_data: MedicineCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Add a medicine

    - **name**: Medicine name
    - **dosage**: Dosage (e.g., "500mg")
    - **morning / afternoon / night**: Enabled slots, at least one required
    """
    medicine_service = services.get_medicine_service()

    try:
        medicine = await medicine_service.add_medicine(
            user_id,
            medicine_data.model_dump(),
            db=db
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    [(medicine, generated, armed)] = await _schedule_today([medicine], db)
    return MedicineCreated(
        medicine=MedicineResponse.model_validate(medicine),
        doses_generated=generated,
        reminders_scheduled=armed
    )


@router.post("/bulk", response_model=List[MedicineCreated], status_code=status.HTTP_201_CREATED)
async def add_medicines_bulk(
    payload: MedicineBulkCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Add several medicines at once; one invalid entry rejects the batch"""
    medicine_service = services.get_medicine_service()

    try:
        medicines = await medicine_service.add_multiple_medicines(
            user_id,
            [item.model_dump() for item in payload.medicines],
            db=db
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    return [
        MedicineCreated(
            medicine=MedicineResponse.model_validate(medicine),
            doses_generated=generated,
            reminders_scheduled=armed
        )
        for medicine, generated, armed in await _schedule_today(medicines, db)
    ]


@router.get("/", response_model=MedicineList)
async def list_medicines(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all medicines for a user"""
    medicine_service = services.get_medicine_service()

    medicines = await medicine_service.get_user_medicines(user_id, db=db)
    return MedicineList(
        medicines=[MedicineResponse.model_validate(m) for m in medicines],
        total=len(medicines)
    )


@router.delete("/{medicine_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_medicine(
    medicine_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Delete a medicine, its dose logs and any reminders for them"""
    medicine_service = services.get_medicine_service()
    reminder_engine = services.get_reminder_engine()

    removed = await medicine_service.delete_medicine(user_id, medicine_id, db=db)
    if removed is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Medicine {medicine_id} not found"
        )

    for dose_log_id in removed:
        reminder_engine.cancel(dose_log_id)
