"""
Doses API Router
Endpoints for dose generation, the daily schedule and dose card actions
"""

import time
from datetime import date, datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import settings
from api.deps import get_db, get_current_user_id, services
from api.schemas.dose import (
    DoseAction,
    DoseConfirm,
    DoseLogResponse,
    DoseLogList,
    DoseActionResult,
    GeneratedDoses,
    DailySchedule,
    ScheduleSlot,
)
from actions.quick_confirm import GuardDecision, card_sessions
from models import DoseStatus
from services.dose_service import DoseLogNotFoundError, DoseTransitionError


router = APIRouter(tags=["doses"])


def _now_ms(action: Optional[DoseAction]) -> int:
    if action is not None and action.action_at_ms is not None:
        return action.action_at_ms
    return int(time.time() * 1000)


def _response_time(dose_log_id: int, now: datetime) -> Optional[int]:
    """Seconds since the reminder fired, when one did"""
    fired_at = services.get_reminder_engine().get_fired_at(dose_log_id)
    if fired_at is None:
        return None
    return int((now - fired_at).total_seconds())


async def _load_pending(dose_log_id: int, db: Session):
    dose_service = services.get_dose_service()

    log = await dose_service.get_dose_log(dose_log_id, db=db)
    if not log:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Dose log {dose_log_id} not found"
        )
    if log.status != DoseStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Dose {dose_log_id} is already {log.status.value}"
        )
    return log


async def _commit(dose_log_id: int, outcome: DoseStatus, db: Session):
    """Record the outcome and clear reminder and guard state for the dose"""
    dose_service = services.get_dose_service()
    reminder_engine = services.get_reminder_engine()

    now = datetime.now()
    try:
        log = await dose_service.record_outcome(
            dose_log_id,
            outcome,
            response_time_seconds=_response_time(dose_log_id, now),
            now=now,
            db=db
        )
    except DoseLogNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DoseTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    reminder_engine.cancel(dose_log_id)
    card_sessions.discard(dose_log_id)
    return log


# ==================== GENERATION & VIEWS ====================

@router.post("/users/{user_id}/doses/generate", response_model=GeneratedDoses)
async def generate_doses(
    target_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Create pending dose logs for every medicine on a day.
    Safe to call repeatedly; existing slots are not duplicated.
    """
    schedule_service = services.get_schedule_service()
    medicine_service = services.get_medicine_service()

    target = target_date or date.today()
    created = await schedule_service.generate_logs_for_user(user_id, target, db=db)

    armed = 0
    if settings.REMINDERS_ENABLED and created:
        names = {m.id: m.name for m in await medicine_service.get_user_medicines(user_id, db=db)}
        armed = schedule_service.arm_reminders(created, names)

    return GeneratedDoses(
        date=target,
        created=len(created),
        reminders_scheduled=armed,
        doses=[DoseLogResponse.model_validate(log) for log in created]
    )


@router.get("/users/{user_id}/doses/today", response_model=DoseLogList)
async def get_today_doses(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Today's dose logs in scheduled order"""
    schedule_service = services.get_schedule_service()

    today = date.today()
    logs = await schedule_service.get_logs_for_day(user_id, today, db=db)
    return DoseLogList(
        date=today,
        doses=[DoseLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )


@router.get("/users/{user_id}/schedule/today", response_model=DailySchedule)
async def get_today_schedule(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Today's doses grouped into morning, afternoon and night"""
    schedule_service = services.get_schedule_service()

    today = date.today()
    slots = await schedule_service.get_daily_schedule(user_id, today, db=db)
    return DailySchedule(date=today, slots=[ScheduleSlot(**slot) for slot in slots])


# ==================== DOSE CARD ACTIONS ====================

@router.post("/doses/{dose_log_id}/taken", response_model=DoseActionResult)
async def mark_taken(
    dose_log_id: int,
    action: Optional[DoseAction] = None,
    db: Session = Depends(get_db)
):
    """
    Mark a dose taken.

    A tap that follows the reminder or a previous tap too quickly is held
    back and answered with 202 until the user confirms it.
    """
    await _load_pending(dose_log_id, db)

    decision = card_sessions.get(dose_log_id).mark_taken(_now_ms(action))
    if decision == GuardDecision.REQUIRE_CONFIRMATION:
        result = DoseActionResult(
            dose_log_id=dose_log_id,
            requires_confirmation=True,
            message="That was quick! Did you really take this dose?"
        )
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=result.model_dump(mode="json")
        )

    log = await _commit(dose_log_id, DoseStatus.TAKEN, db)
    return DoseActionResult(
        dose_log_id=dose_log_id,
        committed=True,
        dose=DoseLogResponse.model_validate(log),
        message="Dose marked as taken"
    )


@router.post("/doses/{dose_log_id}/confirm", response_model=DoseActionResult)
async def confirm_taken(
    dose_log_id: int,
    answer: DoseConfirm,
    db: Session = Depends(get_db)
):
    """Answer a quick-confirm prompt; a confirmed take is recorded as suspected"""
    await _load_pending(dose_log_id, db)

    try:
        outcome = card_sessions.get(dose_log_id).resolve(answer.confirmed)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if outcome is None:
        return DoseActionResult(
            dose_log_id=dose_log_id,
            message="No change recorded"
        )

    log = await _commit(dose_log_id, outcome, db)
    return DoseActionResult(
        dose_log_id=dose_log_id,
        committed=True,
        dose=DoseLogResponse.model_validate(log),
        message="Dose recorded, flagged for a quick confirmation"
    )


@router.post("/doses/{dose_log_id}/missed", response_model=DoseActionResult)
async def mark_missed(
    dose_log_id: int,
    db: Session = Depends(get_db)
):
    """Mark a dose missed and alert the caretaker"""
    dose_service = services.get_dose_service()

    await _load_pending(dose_log_id, db)
    log = await _commit(dose_log_id, DoseStatus.MISSED, db)
    notified = await dose_service.notify_caretaker_missed(dose_log_id, db=db)

    return DoseActionResult(
        dose_log_id=dose_log_id,
        committed=True,
        dose=DoseLogResponse.model_validate(log),
        message="Dose marked as missed",
        caretaker_notified=notified.sent
    )


@router.post("/doses/{dose_log_id}/acknowledge")
async def acknowledge_reminder(dose_log_id: int):
    """Dismiss a reminder so its follow-up does not escalate, before or after it fires"""
    reminder_engine = services.get_reminder_engine()

    cancelled = reminder_engine.cancel_follow_up(dose_log_id)
    return {
        "dose_log_id": dose_log_id,
        "follow_up_cancelled": cancelled
    }
