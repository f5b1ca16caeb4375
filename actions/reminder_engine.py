"""
Reminder Engine
Fires dose reminders at their scheduled time and escalates unacknowledged
ones with a follow-up after a fixed delay
"""

import asyncio
import inspect
import logging
from collections import OrderedDict
from typing import Dict, Any, Optional, Callable, List
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.orm import Session

from config import settings
import models
from models import DoseStatus
from actions.quick_confirm import CardSessionRegistry, card_sessions
from tools.notification_service import NotificationService, NotificationType, notification_service


logger = logging.getLogger(__name__)

# Late jobs still run; a reminder is never silently dropped
JOB_DEFAULTS = {"misfire_grace_time": None, "coalesce": True, "max_instances": 1}


class ReminderStatus(str, Enum):
    """Reminder status"""
    SCHEDULED = "scheduled"
    FIRED = "fired"
    ESCALATED = "escalated"


@dataclass
class ScheduledReminder:
    """In-flight reminder for one dose log"""
    dose_log_id: int
    medicine_name: str
    scheduled_time: datetime
    status: ReminderStatus = ReminderStatus.SCHEDULED
    fired_at: Optional[datetime] = None
    on_ignored: Optional[Callable] = None
    acknowledged: bool = False
    follow_up_job_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dose_log_id": self.dose_log_id,
            "medicine_name": self.medicine_name,
            "scheduled_time": self.scheduled_time.isoformat(),
            "status": self.status.value,
            "fired_at": self.fired_at.isoformat() if self.fired_at else None,
            "follow_up_pending": self.follow_up_pending
        }

    @property
    def primary_job_id(self) -> str:
        return f"dose-{self.dose_log_id}-primary"

    @property
    def follow_up_pending(self) -> bool:
        return self.follow_up_job_id is not None


class ReminderEngine:
    """
    Reminders run as APScheduler date jobs on the running asyncio loop.

    A reminder stays registered until its dose is acted on or nothing is
    left to fire for it. Fire times outlive the reminder in a bounded
    history so response times can still be computed. State lives only for
    the life of the process; `rebuild_from_store` recreates it from
    pending dose logs at startup.
    """

    def __init__(
        self,
        notifier: Optional[NotificationService] = None,
        follow_up_minutes: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
        sessions: Optional[CardSessionRegistry] = None,
        history_limit: Optional[int] = None
    ):
        self.notifier = notifier or notification_service
        minutes = settings.REMINDER_FOLLOW_UP_MINUTES if follow_up_minutes is None else follow_up_minutes
        self.follow_up_seconds = minutes * 60
        self.clock = clock
        self.sessions = sessions or card_sessions
        self.history_limit = settings.REMINDER_HISTORY_LIMIT if history_limit is None else history_limit
        self._reminders: Dict[int, ScheduledReminder] = {}
        self._fired_at: "OrderedDict[int, datetime]" = OrderedDict()
        self._ignored_handler: Optional[Callable] = None
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def scheduler(self) -> AsyncIOScheduler:
        """Scheduler bound to the running loop, started on first use"""
        loop = asyncio.get_running_loop()
        if self._scheduler is None or self._loop is not loop:
            self._scheduler = AsyncIOScheduler(event_loop=loop, job_defaults=JOB_DEFAULTS)
            self._scheduler.start()
            self._loop = loop
            logger.info("Reminder scheduler started")
        return self._scheduler

    def register_ignored_handler(self, handler: Callable[[ScheduledReminder], Any]):
        """Set the callback used when a reminder has no per-call on_ignored"""
        self._ignored_handler = handler
        logger.info("Registered ignored-reminder handler")

    def schedule(
        self,
        dose_log_id: int,
        medicine_name: str,
        scheduled_time: datetime,
        on_ignored: Optional[Callable] = None
    ) -> Optional[ScheduledReminder]:
        """
        Arrange a reminder for `scheduled_time`.

        Past times are skipped and return None. Must be called from code
        running on the event loop. Rescheduling an id replaces its jobs.
        """
        if scheduled_time < self.clock():
            logger.debug(f"Skipping past reminder for dose {dose_log_id}")
            return None

        previous = self._reminders.pop(dose_log_id, None)
        if previous is not None:
            self._remove_jobs(previous)

        reminder = ScheduledReminder(
            dose_log_id=dose_log_id,
            medicine_name=medicine_name,
            scheduled_time=scheduled_time,
            on_ignored=on_ignored
        )
        self.scheduler.add_job(
            self._fire_primary,
            "date",
            run_date=scheduled_time,
            args=[reminder],
            id=reminder.primary_job_id
        )
        self._reminders[dose_log_id] = reminder

        logger.info(f"Scheduled reminder for dose {dose_log_id} ({medicine_name}) at {scheduled_time}")
        return reminder

    def cancel(self, dose_log_id: int) -> bool:
        """Cancel primary and follow-up jobs. Unknown or finished ids are a no-op."""
        self._fired_at.pop(dose_log_id, None)
        self.sessions.discard(dose_log_id)

        reminder = self._reminders.pop(dose_log_id, None)
        if reminder is None:
            return False

        self._remove_jobs(reminder)
        logger.debug(f"Cancelled reminder for dose {dose_log_id}")
        return True

    def cancel_follow_up(self, dose_log_id: int) -> bool:
        """
        Cancel only the escalation. Before the primary fires this marks the
        reminder acknowledged so no follow-up is armed when it does.
        """
        reminder = self._reminders.get(dose_log_id)
        if reminder is None or reminder.acknowledged:
            return False

        reminder.acknowledged = True
        if reminder.follow_up_pending:
            self._remove_job(reminder.follow_up_job_id)
            reminder.follow_up_job_id = None
            self._release(reminder)

        logger.debug(f"Cancelled follow-up for dose {dose_log_id}")
        return True

    def get(self, dose_log_id: int) -> Optional[ScheduledReminder]:
        return self._reminders.get(dose_log_id)

    def get_fired_at(self, dose_log_id: int) -> Optional[datetime]:
        """When the primary notification fired, if it has"""
        reminder = self._reminders.get(dose_log_id)
        if reminder is not None and reminder.fired_at is not None:
            return reminder.fired_at
        return self._fired_at.get(dose_log_id)

    def list_reminders(self) -> List[ScheduledReminder]:
        return list(self._reminders.values())

    def rebuild_from_store(self, db: Session, now: Optional[datetime] = None) -> int:
        """
        Re-create jobs for every pending dose log scheduled in the future.

        Returns the number of reminders scheduled.
        """
        now = now or self.clock()
        rows = db.query(models.DoseLog, models.Medicine.name).join(
            models.Medicine, models.DoseLog.medicine_id == models.Medicine.id
        ).filter(
            models.DoseLog.status == DoseStatus.PENDING,
            models.DoseLog.scheduled_time > now
        ).all()

        count = 0
        for log, medicine_name in rows:
            if self.schedule(log.id, medicine_name, log.scheduled_time):
                count += 1

        logger.info(f"Rebuilt {count} pending reminders from store")
        return count

    def shutdown(self):
        """Cancel every in-flight reminder and stop the scheduler"""
        for dose_log_id in list(self._reminders):
            self.cancel(dose_log_id)
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self._loop = None

    def _remove_job(self, job_id: str):
        if self._scheduler is None:
            return
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            pass

    def _remove_jobs(self, reminder: ScheduledReminder):
        self._remove_job(reminder.primary_job_id)
        if reminder.follow_up_job_id:
            self._remove_job(reminder.follow_up_job_id)
            reminder.follow_up_job_id = None

    def _release(self, reminder: ScheduledReminder, discard_session: bool = False):
        """Forget a reminder with nothing left to fire, keeping its fire time"""
        if self._reminders.get(reminder.dose_log_id) is not reminder:
            return
        del self._reminders[reminder.dose_log_id]

        if reminder.fired_at is not None:
            self._fired_at[reminder.dose_log_id] = reminder.fired_at
            self._fired_at.move_to_end(reminder.dose_log_id)
            while len(self._fired_at) > self.history_limit:
                self._fired_at.popitem(last=False)
        if discard_session:
            self.sessions.discard(reminder.dose_log_id)

    async def _fire_primary(self, reminder: ScheduledReminder):
        self.notifier.show_template(
            NotificationType.MEDICATION_REMINDER,
            medicine_name=reminder.medicine_name,
            dose_log_id=reminder.dose_log_id
        )
        reminder.fired_at = self.clock()
        reminder.status = ReminderStatus.FIRED
        self.sessions.get(reminder.dose_log_id).note_action(
            int(reminder.fired_at.timestamp() * 1000)
        )

        if reminder.acknowledged:
            self._release(reminder)
            return

        reminder.follow_up_job_id = f"dose-{reminder.dose_log_id}-follow-up"
        self.scheduler.add_job(
            self._fire_follow_up,
            "date",
            run_date=reminder.fired_at + timedelta(seconds=self.follow_up_seconds),
            args=[reminder],
            id=reminder.follow_up_job_id
        )

    async def _fire_follow_up(self, reminder: ScheduledReminder):
        reminder.follow_up_job_id = None
        self.notifier.show_template(
            NotificationType.FOLLOW_UP_REMINDER,
            urgent=True,
            medicine_name=reminder.medicine_name,
            dose_log_id=reminder.dose_log_id
        )
        reminder.status = ReminderStatus.ESCALATED
        logger.info(f"Reminder for dose {reminder.dose_log_id} ignored, escalating")

        try:
            handler = reminder.on_ignored or self._ignored_handler
            if handler is None:
                return
            try:
                result = handler(reminder)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Ignored-reminder handler failed for dose {reminder.dose_log_id}")
        finally:
            self._release(reminder, discard_session=True)


# Singleton instance
reminder_engine = ReminderEngine()
