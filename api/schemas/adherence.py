"""
Adherence Schemas
Pydantic models for adherence scoring API responses
"""

from typing import Optional, List
from pydantic import BaseModel, Field


class AdherenceScore(BaseModel):
    """Score over a window"""
    score: int = Field(..., ge=0, le=100)
    terminal_doses: int
    pending_doses: int
    days_analyzed: int


class WeeklySummary(BaseModel):
    """Weekly progress"""
    score: int = Field(..., ge=0, le=100)
    taken: int
    missed: int
    suspected: int
    total: int
    streak: int


class TodayStats(BaseModel):
    """Status counts for a day; suspected doses only count toward total"""
    date: str
    total: int
    taken: int
    missed: int
    pending: int


class AdherenceStreak(BaseModel):
    streak: int
    lookback_days: int


class HistoryEntry(BaseModel):
    """Single recent dose"""
    id: int
    medicine_id: int
    medicine_name: str
    status: str
    time_slot: str
    scheduled_time: str
    taken_time: Optional[str] = None


class WeeklyReportResult(BaseModel):
    """Outcome of sending the weekly caretaker report"""
    sent: bool
    weekly_score: int
    skipped_reason: Optional[str] = None
    error: Optional[str] = None
