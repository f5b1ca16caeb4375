"""
Medicine Service
Creation, validation and removal of a user's medicines
"""

import logging
import random
from typing import Dict, List, Optional, Any
from datetime import date
from sqlalchemy.orm import Session
from sqlalchemy import and_

from config import adherence_config
from database import get_db_context, commit_or_raise
import models
from models import MedicineColor, TimeSlot
from tools.schedule_generator import parse_slot_time


logger = logging.getLogger(__name__)


class MedicineValidationError(ValueError):
    """Medicine definition rejected before any dose generation"""
    pass


def validate_medicine_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize and validate a medicine definition.

    Fills default slot times for enabled slots without one and checks that
    at least one slot is enabled and every enabled time parses.
    """
    cleaned = dict(data)

    name = (cleaned.get("name") or "").strip()
    dosage = (cleaned.get("dosage") or "").strip()
    if not name:
        raise MedicineValidationError("Medicine name is required")
    if not dosage:
        raise MedicineValidationError("Dosage is required")
    cleaned["name"] = name
    cleaned["dosage"] = dosage

    if not any(cleaned.get(slot.value) for slot in TimeSlot):
        raise MedicineValidationError(
            "At least one time slot (morning, afternoon or night) must be enabled"
        )

    for slot in TimeSlot:
        key = f"{slot.value}_time"
        if not cleaned.get(key):
            cleaned[key] = adherence_config.DEFAULT_SLOT_TIMES[slot.value]
        if cleaned.get(slot.value):
            try:
                cleaned[key] = parse_slot_time(cleaned[key]).strftime("%H:%M")
            except ValueError as e:
                raise MedicineValidationError(f"Invalid {slot.value} time: {cleaned[key]}") from e

    if (cleaned.get("days_remaining") or 0) < 0:
        raise MedicineValidationError("days_remaining cannot be negative")

    cleaned.setdefault("start_date", date.today())
    if cleaned["start_date"] is None:
        cleaned["start_date"] = date.today()
    return cleaned


class MedicineService:
    """
    Service for medicine management
    """

    MEDICINE_FIELDS = {
        'name', 'dosage', 'morning', 'morning_time', 'afternoon', 'afternoon_time',
        'night', 'night_time', 'before_food', 'days_remaining', 'start_date'
    }

    def _build(self, user_id: int, data: Dict[str, Any]) -> models.Medicine:
        cleaned = validate_medicine_data(data)
        fields = {k: v for k, v in cleaned.items() if k in self.MEDICINE_FIELDS}
        return models.Medicine(
            user_id=user_id,
            color=MedicineColor(random.choice(adherence_config.MEDICINE_COLORS)),
            **fields
        )

    async def add_medicine(
        self,
        user_id: int,
        data: Dict[str, Any],
        db: Optional[Session] = None
    ) -> models.Medicine:
        """
        Add a medicine for a user

        Raises:
            MedicineValidationError: invalid definition (nothing is stored)
            StoreError: persistence failure
        """
        def _add(session: Session) -> models.Medicine:
            medicine = self._build(user_id, data)
            session.add(medicine)
            commit_or_raise(session, "add medicine")
            session.refresh(medicine)

            logger.info(f"Added medicine {medicine.id} ({medicine.name}) for user {user_id}")
            return medicine

        if db:
            return _add(db)

        with get_db_context() as session:
            return _add(session)

    async def add_multiple_medicines(
        self,
        user_id: int,
        items: List[Dict[str, Any]],
        db: Optional[Session] = None
    ) -> List[models.Medicine]:
        """Add several medicines at once; one invalid item rejects the batch"""
        def _add(session: Session) -> List[models.Medicine]:
            medicines = [self._build(user_id, item) for item in items]
            session.add_all(medicines)
            commit_or_raise(session, "add medicines")
            for medicine in medicines:
                session.refresh(medicine)

            logger.info(f"Added {len(medicines)} medicines for user {user_id}")
            return medicines

        if db:
            return _add(db)

        with get_db_context() as session:
            return _add(session)

    async def get_medicine(
        self,
        medicine_id: int,
        db: Optional[Session] = None
    ) -> Optional[models.Medicine]:
        """Get medicine by ID"""
        def _get(session: Session) -> Optional[models.Medicine]:
            return session.query(models.Medicine).filter(
                models.Medicine.id == medicine_id
            ).first()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_user_medicines(
        self,
        user_id: int,
        db: Optional[Session] = None
    ) -> List[models.Medicine]:
        """Get all medicines for a user"""
        def _get(session: Session) -> List[models.Medicine]:
            return session.query(models.Medicine).filter(
                models.Medicine.user_id == user_id
            ).order_by(models.Medicine.id).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def delete_medicine(
        self,
        user_id: int,
        medicine_id: int,
        db: Optional[Session] = None
    ) -> Optional[List[int]]:
        """
        Delete a medicine and its dose logs.

        Returns the ids of the removed dose logs, or None if not found.
        """
        def _delete(session: Session) -> Optional[List[int]]:
            medicine = session.query(models.Medicine).filter(
                and_(
                    models.Medicine.id == medicine_id,
                    models.Medicine.user_id == user_id
                )
            ).first()
            if not medicine:
                return None

            log_ids = [log.id for log in medicine.dose_logs]
            session.delete(medicine)
            commit_or_raise(session, "delete medicine")

            logger.info(f"Deleted medicine {medicine_id} for user {user_id}")
            return log_ids

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)


# Singleton instance
medicine_service = MedicineService()
