"""
Adherence Service
Scoring, streaks and summaries computed from dose log history
"""

import logging
from typing import Dict, List, Optional, Any, Iterable
from datetime import datetime, date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from collections import defaultdict
from sqlalchemy.orm import Session
from sqlalchemy import and_, desc

from config import adherence_config
from database import get_db_context, commit_or_raise
import models
from models import DoseStatus, TERMINAL_STATUSES


logger = logging.getLogger(__name__)


def _end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), datetime.max.time())


def round_half_up(value) -> int:
    """Round to the nearest integer, .5 going up. Floats go through their repr."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def calculate_score(logs: Iterable) -> int:
    """
    Adherence score 0-100 over the given logs.

    Pending logs are not yet resolved and are left out of the denominator.
    With no resolved logs the score is 100. Suspected doses earn half credit.
    """
    taken = suspected = terminal = 0
    for log in logs:
        if log.status not in TERMINAL_STATUSES:
            continue
        terminal += 1
        if log.status == DoseStatus.TAKEN:
            taken += 1
        elif log.status == DoseStatus.SUSPECTED:
            suspected += 1

    if terminal == 0:
        return 100

    credit = taken + Decimal(str(adherence_config.SUSPECTED_CREDIT)) * suspected
    return round_half_up(credit * 100 / terminal)


def calculate_streak(
    logs: Iterable,
    today: Optional[date] = None,
    lookback_days: int = adherence_config.STREAK_LOOKBACK_DAYS
) -> int:
    """
    Count consecutive all-taken days walking back from today.

    Days without resolved logs are skipped without breaking the streak.
    The walk stops at the first day holding any non-taken resolved log.
    """
    today = today or date.today()

    daily = defaultdict(list)
    for log in logs:
        if log.status in TERMINAL_STATUSES:
            daily[log.scheduled_time.date()].append(log)

    streak = 0
    for offset in range(lookback_days):
        day_logs = daily.get(today - timedelta(days=offset))
        if not day_logs:
            continue
        if all(log.status == DoseStatus.TAKEN for log in day_logs):
            streak += 1
        else:
            break
    return streak


def calculate_today_stats(logs: Iterable) -> Dict[str, int]:
    """Counts by status for a day's logs; suspected only shows in the total"""
    logs = list(logs)
    return {
        "total": len(logs),
        "taken": sum(1 for l in logs if l.status == DoseStatus.TAKEN),
        "missed": sum(1 for l in logs if l.status == DoseStatus.MISSED),
        "pending": sum(1 for l in logs if l.status == DoseStatus.PENDING),
    }


class AdherenceService:
    """
    Service for adherence scoring and history
    """

    def _logs_since(
        self,
        session: Session,
        user_id: int,
        start: datetime,
        end: Optional[datetime] = None
    ) -> List[models.DoseLog]:
        query = session.query(models.DoseLog).filter(
            and_(
                models.DoseLog.user_id == user_id,
                models.DoseLog.scheduled_time >= start
            )
        )
        if end is not None:
            query = query.filter(models.DoseLog.scheduled_time <= end)
        return query.order_by(models.DoseLog.scheduled_time).all()

    async def get_score(
        self,
        user_id: int,
        days: int = adherence_config.SCORE_WINDOW_DAYS,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """Score over the last `days` days"""
        def _get(session: Session) -> Dict[str, Any]:
            current = now or datetime.now()
            logs = self._logs_since(session, user_id, current - timedelta(days=days), _end_of_day(current))
            terminal = [l for l in logs if l.status in TERMINAL_STATUSES]
            return {
                "score": calculate_score(logs),
                "terminal_doses": len(terminal),
                "pending_doses": len(logs) - len(terminal),
                "days_analyzed": days
            }

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_streak(
        self,
        user_id: int,
        today: Optional[date] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """Current all-taken streak"""
        def _get(session: Session) -> Dict[str, Any]:
            day = today or date.today()
            lookback = adherence_config.STREAK_LOOKBACK_DAYS
            start = datetime.combine(day - timedelta(days=lookback - 1), datetime.min.time())
            end = datetime.combine(day, datetime.max.time())
            logs = self._logs_since(session, user_id, start, end)
            return {
                "streak": calculate_streak(logs, today=day, lookback_days=lookback),
                "lookback_days": lookback
            }

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_weekly_summary(
        self,
        user_id: int,
        now: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Weekly progress card: score, taken, missed and total over the last
        seven days, plus the current streak
        """
        def _get(session: Session) -> Dict[str, Any]:
            current = now or datetime.now()
            week_start = current - timedelta(days=adherence_config.WEEKLY_WINDOW_DAYS)
            logs = self._logs_since(session, user_id, week_start, _end_of_day(current))

            streak_start = datetime.combine(
                current.date() - timedelta(days=adherence_config.STREAK_LOOKBACK_DAYS - 1),
                datetime.min.time()
            )
            streak_logs = self._logs_since(session, user_id, streak_start, _end_of_day(current))

            return {
                "score": calculate_score(logs),
                "taken": sum(1 for l in logs if l.status == DoseStatus.TAKEN),
                "missed": sum(1 for l in logs if l.status == DoseStatus.MISSED),
                "suspected": sum(1 for l in logs if l.status == DoseStatus.SUSPECTED),
                "total": len(logs),
                "streak": calculate_streak(streak_logs, today=current.date())
            }

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_today_stats(
        self,
        user_id: int,
        target_date: Optional[date] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """Status counts for the day's doses"""
        def _get(session: Session) -> Dict[str, Any]:
            target = target_date or date.today()
            logs = session.query(models.DoseLog).filter(
                and_(
                    models.DoseLog.user_id == user_id,
                    models.DoseLog.scheduled_date == target
                )
            ).all()
            stats = calculate_today_stats(logs)
            stats["date"] = target.isoformat()
            return stats

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def refresh_cached_score(
        self,
        user_id: int,
        db: Optional[Session] = None
    ) -> Optional[int]:
        """Recompute the profile's score snapshot from history"""
        def _refresh(session: Session) -> Optional[int]:
            user = session.query(models.User).filter(models.User.id == user_id).first()
            if not user:
                return None

            start = datetime.now() - timedelta(days=adherence_config.SCORE_WINDOW_DAYS)
            logs = self._logs_since(session, user_id, start)
            user.adherence_score = calculate_score(logs)
            commit_or_raise(session, "update adherence score")

            logger.debug(f"Refreshed cached score for user {user_id}: {user.adherence_score}")
            return user.adherence_score

        if db:
            return _refresh(db)

        with get_db_context() as session:
            return _refresh(session)

    async def get_recent_history(
        self,
        user_id: int,
        limit: int = adherence_config.RECENT_HISTORY_LIMIT,
        db: Optional[Session] = None
    ) -> List[Dict[str, Any]]:
        """Most recent dose logs with their medicine names"""
        def _get(session: Session) -> List[Dict[str, Any]]:
            rows = session.query(models.DoseLog, models.Medicine.name).join(
                models.Medicine, models.DoseLog.medicine_id == models.Medicine.id
            ).filter(
                models.DoseLog.user_id == user_id
            ).order_by(desc(models.DoseLog.scheduled_time)).limit(limit).all()

            return [
                {
                    "id": log.id,
                    "medicine_id": log.medicine_id,
                    "medicine_name": name or "Unknown",
                    "status": log.status.value,
                    "time_slot": log.time_slot.value,
                    "scheduled_time": log.scheduled_time.isoformat(),
                    "taken_time": log.taken_time.isoformat() if log.taken_time else None
                }
                for log, name in rows
            ]

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)


# Singleton instance
adherence_service = AdherenceService()
