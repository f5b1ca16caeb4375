"""
Actions Module
Engines for reminders and the quick-confirm guard
"""

from .reminder_engine import (
    ScheduledReminder,
    ReminderStatus,
    ReminderEngine,
    reminder_engine
)

from .quick_confirm import (
    GuardState,
    GuardDecision,
    DoseCardSession,
    CardSessionRegistry,
    card_sessions,
    is_quick_repeat
)


__all__ = [
    # Reminder Engine
    "ScheduledReminder",
    "ReminderStatus",
    "ReminderEngine",
    "reminder_engine",

    # Quick-Confirm Guard
    "GuardState",
    "GuardDecision",
    "DoseCardSession",
    "CardSessionRegistry",
    "card_sessions",
    "is_quick_repeat"
]
