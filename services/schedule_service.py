"""
Schedule Service
Persists the daily dose logs produced by the schedule generator and arms
their reminders
"""

import logging
from typing import Dict, List, Optional, Any
from datetime import date
from sqlalchemy.orm import Session
from sqlalchemy import and_

from database import get_db_context, commit_or_raise
import models
from models import DoseStatus, TimeSlot
from tools.schedule_generator import build_dose_slots
from tools.caretaker_notifier import format_clock_time
from actions.reminder_engine import reminder_engine


logger = logging.getLogger(__name__)


class ScheduleService:
    """
    Service for dose log generation and the daily schedule view
    """

    def _generate(
        self,
        session: Session,
        medicine: models.Medicine,
        target_date: date
    ) -> List[models.DoseLog]:
        slots = build_dose_slots(medicine, target_date)
        if not slots:
            return []

        existing = {
            log.time_slot
            for log in session.query(models.DoseLog).filter(
                and_(
                    models.DoseLog.medicine_id == medicine.id,
                    models.DoseLog.scheduled_date == target_date
                )
            ).all()
        }

        created = []
        for slot in slots:
            if slot.time_slot in existing:
                continue
            log = models.DoseLog(
                user_id=medicine.user_id,
                medicine_id=medicine.id,
                scheduled_date=slot.scheduled_date,
                scheduled_time=slot.scheduled_time,
                status=DoseStatus.PENDING,
                time_slot=slot.time_slot
            )
            session.add(log)
            created.append(log)
        return created

    async def generate_dose_logs(
        self,
        medicine: models.Medicine,
        target_date: Optional[date] = None,
        db: Optional[Session] = None
    ) -> List[models.DoseLog]:
        """
        Create the pending dose logs for one medicine on one day.

        Idempotent: slots that already have a log for that day are left
        untouched. Returns only the newly created logs.
        """
        def _run(session: Session) -> List[models.DoseLog]:
            target = target_date or date.today()
            created = self._generate(session, medicine, target)
            if created:
                commit_or_raise(session, "generate dose logs")
                for log in created:
                    session.refresh(log)
                logger.info(
                    f"Generated {len(created)} dose logs for medicine {medicine.id} on {target}"
                )
            return created

        if db:
            return _run(db)

        with get_db_context() as session:
            return _run(session)

    async def generate_logs_for_user(
        self,
        user_id: int,
        target_date: Optional[date] = None,
        db: Optional[Session] = None
    ) -> List[models.DoseLog]:
        """Run generation for every medicine the user owns"""
        def _run(session: Session) -> List[models.DoseLog]:
            target = target_date or date.today()
            medicines = session.query(models.Medicine).filter(
                models.Medicine.user_id == user_id
            ).all()

            created = []
            for medicine in medicines:
                created.extend(self._generate(session, medicine, target))

            if created:
                commit_or_raise(session, "generate dose logs")
                for log in created:
                    session.refresh(log)
            logger.info(f"Generated {len(created)} dose logs for user {user_id} on {target}")
            return created

        if db:
            return _run(db)

        with get_db_context() as session:
            return _run(session)

    async def get_logs_for_day(
        self,
        user_id: int,
        target_date: Optional[date] = None,
        db: Optional[Session] = None
    ) -> List[models.DoseLog]:
        """All dose logs scheduled on a day"""
        def _get(session: Session) -> List[models.DoseLog]:
            target = target_date or date.today()
            return session.query(models.DoseLog).filter(
                and_(
                    models.DoseLog.user_id == user_id,
                    models.DoseLog.scheduled_date == target
                )
            ).order_by(models.DoseLog.scheduled_time).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_daily_schedule(
        self,
        user_id: int,
        target_date: Optional[date] = None,
        db: Optional[Session] = None
    ) -> List[Dict[str, Any]]:
        """
        Day's doses grouped by slot in morning/afternoon/night order.
        Slots without doses are omitted.
        """
        logs = await self.get_logs_for_day(user_id, target_date, db=db)

        grouped: Dict[TimeSlot, List[models.DoseLog]] = {slot: [] for slot in TimeSlot}
        for log in logs:
            grouped[log.time_slot].append(log)

        schedule = []
        for slot, slot_logs in grouped.items():
            if not slot_logs:
                continue
            schedule.append({
                "time_slot": slot.value,
                "time": format_clock_time(min(l.scheduled_time for l in slot_logs)),
                "doses": [
                    {
                        "dose_log_id": log.id,
                        "medicine_id": log.medicine_id,
                        "medicine_name": log.medicine.name,
                        "dosage": log.medicine.dosage,
                        "before_food": log.medicine.before_food,
                        "color": log.medicine.color.value,
                        "status": log.status.value,
                        "scheduled_time": log.scheduled_time.isoformat(),
                    }
                    for log in slot_logs
                ]
            })
        return schedule

    def arm_reminders(self, logs: List[models.DoseLog], medicine_names: Dict[int, str]) -> int:
        """
        Schedule reminders for pending logs; past ones are skipped by the
        engine. Must run on the event loop.
        """
        armed = 0
        for log in logs:
            if log.status != DoseStatus.PENDING:
                continue
            name = medicine_names.get(log.medicine_id, "your medicine")
            if reminder_engine.schedule(log.id, name, log.scheduled_time):
                armed += 1
        return armed


# Singleton instance
schedule_service = ScheduleService()
