"""
Dose Service
Lifecycle transitions for dose logs (pending -> taken / missed / suspected)
"""

import logging
from typing import List, Optional
from datetime import datetime, timedelta
from sqlalchemy.orm import Session
from sqlalchemy import and_

from database import get_db_context, commit_or_raise
import models
from models import DoseStatus
from services.adherence_service import adherence_service
from tools.caretaker_notifier import CaretakerResult, caretaker_notifier


logger = logging.getLogger(__name__)


class DoseLogNotFoundError(ValueError):
    pass


class DoseTransitionError(ValueError):
    """Raised when an outcome is recorded on a dose that is no longer pending"""
    pass


class DoseService:
    """
    Service applying outcomes to dose logs.

    Transitions only move forward from pending. Recording an outcome on a
    log that is already taken, missed or suspected is rejected.
    """

    async def get_dose_log(
        self,
        dose_log_id: int,
        db: Optional[Session] = None
    ) -> Optional[models.DoseLog]:
        """Get dose log by ID"""
        def _get(session: Session) -> Optional[models.DoseLog]:
            return session.query(models.DoseLog).filter(
                models.DoseLog.id == dose_log_id
            ).first()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    def _apply(
        self,
        log: models.DoseLog,
        outcome: DoseStatus,
        response_time_seconds: Optional[int],
        now: datetime
    ):
        if not outcome.is_terminal:
            raise DoseTransitionError("Outcome must be taken, missed or suspected")
        if log.status != DoseStatus.PENDING:
            raise DoseTransitionError(
                f"Dose {log.id} is already {log.status.value}"
            )

        log.status = outcome
        if outcome in (DoseStatus.TAKEN, DoseStatus.SUSPECTED):
            log.taken_time = now
        if response_time_seconds is not None:
            log.response_time_seconds = max(0, int(response_time_seconds))

    async def record_outcome(
        self,
        dose_log_id: int,
        outcome: DoseStatus,
        response_time_seconds: Optional[int] = None,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> models.DoseLog:
        """
        Move a pending dose log to a terminal status

        Args:
            dose_log_id: Dose log ID
            outcome: taken, missed or suspected
            response_time_seconds: Seconds between reminder and user action
            now: Action time (defaults to the wall clock)
            db: Database session

        Returns:
            Updated DoseLog

        Raises:
            DoseLogNotFoundError: unknown id
            DoseTransitionError: log is not pending or outcome is pending
        """
        def _record(session: Session) -> models.DoseLog:
            log = session.query(models.DoseLog).filter(
                models.DoseLog.id == dose_log_id
            ).first()
            if not log:
                raise DoseLogNotFoundError(f"Dose log {dose_log_id} not found")

            self._apply(log, outcome, response_time_seconds, now or datetime.now())
            commit_or_raise(session, "update dose status")
            session.refresh(log)

            logger.info(f"Dose {dose_log_id} recorded as {outcome.value}")
            return log

        if db:
            log = _record(db)
            await adherence_service.refresh_cached_score(log.user_id, db=db)
            return log

        with get_db_context() as session:
            log = _record(session)
            await adherence_service.refresh_cached_score(log.user_id, db=session)
            return log

    async def notify_caretaker_missed(
        self,
        dose_log_id: int,
        db: Optional[Session] = None
    ) -> CaretakerResult:
        """Email the caretaker about a missed or ignored dose"""
        def _load(session: Session):
            log = session.query(models.DoseLog).filter(
                models.DoseLog.id == dose_log_id
            ).first()
            if not log:
                raise DoseLogNotFoundError(f"Dose log {dose_log_id} not found")
            return log.user.name, log.user.caretaker_email, log.medicine.name, log.scheduled_time

        if db:
            patient_name, caretaker_email, medicine_name, scheduled_time = _load(db)
        else:
            with get_db_context() as session:
                patient_name, caretaker_email, medicine_name, scheduled_time = _load(session)

        return await caretaker_notifier.notify_missed_dose(
            patient_name=patient_name,
            caretaker_email=caretaker_email,
            medicine_name=medicine_name,
            scheduled_time=scheduled_time
        )

    async def handle_ignored_reminder(self, reminder) -> Optional[CaretakerResult]:
        """Reminder escalation callback: alert the caretaker if the dose is still pending"""
        with get_db_context() as session:
            log = await self.get_dose_log(reminder.dose_log_id, db=session)
            if log is None or log.status != DoseStatus.PENDING:
                return None

            logger.info(f"Dose {reminder.dose_log_id} ignored after follow-up, notifying caretaker")
            return await self.notify_caretaker_missed(reminder.dose_log_id, db=session)

    async def expire_overdue_doses(
        self,
        user_id: int,
        grace_minutes: int,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> List[models.DoseLog]:
        """
        Mark pending doses older than the grace period as missed.

        Opt-in policy, driven by the AUTO_MISS_AFTER_MINUTES setting.
        """
        def _expire(session: Session) -> List[models.DoseLog]:
            current = now or datetime.now()
            cutoff = current - timedelta(minutes=grace_minutes)
            overdue = session.query(models.DoseLog).filter(
                and_(
                    models.DoseLog.user_id == user_id,
                    models.DoseLog.status == DoseStatus.PENDING,
                    models.DoseLog.scheduled_time < cutoff
                )
            ).all()

            for log in overdue:
                self._apply(log, DoseStatus.MISSED, None, current)

            if overdue:
                commit_or_raise(session, "expire overdue doses")
                logger.info(f"Auto-marked {len(overdue)} overdue doses missed for user {user_id}")
            return overdue

        if db:
            expired = _expire(db)
            if expired:
                await adherence_service.refresh_cached_score(user_id, db=db)
            return expired

        with get_db_context() as session:
            expired = _expire(session)
            if expired:
                await adherence_service.refresh_cached_score(user_id, db=session)
            return expired


# Singleton instance
dose_service = DoseService()
