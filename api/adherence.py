"""
Adherence API Router
Endpoints for scores, streaks and the weekly caretaker report
"""

from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config import adherence_config
from api.deps import get_db, get_current_user_id, services
from api.schemas.adherence import (
    AdherenceScore,
    AdherenceStreak,
    WeeklySummary,
    TodayStats,
    HistoryEntry,
    WeeklyReportResult,
)


router = APIRouter(prefix="/users/{user_id}/adherence", tags=["adherence"])


@router.get("/score", response_model=AdherenceScore)
async def get_adherence_score(
    days: int = Query(adherence_config.SCORE_WINDOW_DAYS, ge=1, le=365),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """
    Adherence score over a window

    Only taken, missed and suspected doses count; suspected earns half credit.
    A user with no resolved doses scores 100.
    """
    adherence_service = services.get_adherence_service()
    return await adherence_service.get_score(user_id, days=days, db=db)


@router.get("/weekly", response_model=WeeklySummary)
async def get_weekly_summary(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Weekly progress card"""
    adherence_service = services.get_adherence_service()
    return await adherence_service.get_weekly_summary(user_id, db=db)


@router.get("/today", response_model=TodayStats)
async def get_today_stats(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    adherence_service = services.get_adherence_service()
    return await adherence_service.get_today_stats(user_id, db=db)


@router.get("/streak", response_model=AdherenceStreak)
async def get_streak(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Consecutive days, ending today, on which every resolved dose was taken"""
    adherence_service = services.get_adherence_service()
    return await adherence_service.get_streak(user_id, db=db)


@router.get("/history", response_model=List[HistoryEntry])
async def get_history(
    limit: int = Query(adherence_config.RECENT_HISTORY_LIMIT, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    adherence_service = services.get_adherence_service()
    return await adherence_service.get_recent_history(user_id, limit=limit, db=db)


@router.post("/weekly-report", response_model=WeeklyReportResult)
async def send_weekly_report(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Email the weekly summary to the user's caretaker"""
    adherence_service = services.get_adherence_service()
    user_service = services.get_user_service()
    caretaker_notifier = services.get_caretaker_notifier()

    user = await user_service.get_user(user_id, db=db)
    summary = await adherence_service.get_weekly_summary(user_id, db=db)

    result = await caretaker_notifier.send_weekly_report(
        patient_name=user.name,
        caretaker_email=user.caretaker_email,
        weekly_score=summary["score"],
        taken=summary["taken"],
        missed=summary["missed"],
        total=summary["total"]
    )
    return WeeklyReportResult(
        sent=result.sent,
        weekly_score=summary["score"],
        skipped_reason=result.skipped_reason,
        error=result.error
    )
