"""
API Dependencies
Common dependencies for FastAPI endpoints
"""

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_db


async def get_current_user_id(
    user_id: int,
    db: Session = Depends(get_db)
) -> int:
    """
    Validate user exists and return user ID
    """
    from models import User

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found"
        )

    return user_id


class ServiceDependency:
    """
    Dependency injection for services
    """

    @staticmethod
    def get_user_service():
        from services.user_service import user_service
        return user_service

    @staticmethod
    def get_medicine_service():
        from services.medicine_service import medicine_service
        return medicine_service

    @staticmethod
    def get_schedule_service():
        from services.schedule_service import schedule_service
        return schedule_service

    @staticmethod
    def get_dose_service():
        from services.dose_service import dose_service
        return dose_service

    @staticmethod
    def get_adherence_service():
        from services.adherence_service import adherence_service
        return adherence_service

    @staticmethod
    def get_share_service():
        from services.share_service import share_service
        return share_service

    @staticmethod
    def get_reminder_engine():
        from actions.reminder_engine import reminder_engine
        return reminder_engine

    @staticmethod
    def get_prescription_extractor():
        from tools.prescription_extractor import prescription_extractor
        return prescription_extractor

    @staticmethod
    def get_caretaker_notifier():
        from tools.caretaker_notifier import caretaker_notifier
        return caretaker_notifier


# Service dependency instances
services = ServiceDependency()
