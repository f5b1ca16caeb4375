"""
Services Module
Business logic layer for the MediCare Reminder application
"""

from services.user_service import UserService, user_service
from services.medicine_service import MedicineService, MedicineValidationError, medicine_service
from services.adherence_service import AdherenceService, adherence_service
from services.schedule_service import ScheduleService, schedule_service
from services.dose_service import DoseService, DoseLogNotFoundError, DoseTransitionError, dose_service
from services.share_service import ShareService, ShareNotFoundError, ShareInactiveError, share_service


__all__ = [
    # Service classes
    "UserService",
    "MedicineService",
    "AdherenceService",
    "ScheduleService",
    "DoseService",
    "ShareService",
    # Errors
    "MedicineValidationError",
    "DoseLogNotFoundError",
    "DoseTransitionError",
    "ShareNotFoundError",
    "ShareInactiveError",
    # Singleton instances
    "user_service",
    "medicine_service",
    "adherence_service",
    "schedule_service",
    "dose_service",
    "share_service",
]
