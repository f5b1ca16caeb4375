"""
Quick-Confirm Guard
Catches "taken" taps that arrive implausibly fast after a previous action on
the same dose card and asks the user to confirm before committing.
"""

import logging
from collections import OrderedDict
from typing import Optional
from dataclasses import dataclass
from enum import Enum

from config import adherence_config
from models import DoseStatus


logger = logging.getLogger(__name__)


class GuardState(str, Enum):
    """Guard states for a single dose card"""
    NORMAL = "normal"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


class GuardDecision(str, Enum):
    """What the caller should do with a mark-taken action"""
    COMMIT = "commit"
    REQUIRE_CONFIRMATION = "require_confirmation"


def is_quick_repeat(
    previous_action_ms: Optional[int],
    current_action_ms: int,
    threshold_ms: int = adherence_config.QUICK_CONFIRM_THRESHOLD_MS
) -> bool:
    """True when the current action follows the previous one within the threshold"""
    if previous_action_ms is None:
        return False
    return current_action_ms - previous_action_ms < threshold_ms


@dataclass
class DoseCardSession:
    """Per-card guard state, passed explicitly instead of living in the UI"""
    dose_log_id: int
    state: GuardState = GuardState.NORMAL
    last_action_ms: Optional[int] = None
    threshold_ms: int = adherence_config.QUICK_CONFIRM_THRESHOLD_MS

    def note_action(self, now_ms: int):
        """Record a non-taken action on the card (e.g. its reminder being shown)"""
        self.last_action_ms = now_ms

    def mark_taken(self, now_ms: int) -> GuardDecision:
        """Evaluate a mark-taken action. Every attempt becomes the new previous action."""
        quick = is_quick_repeat(self.last_action_ms, now_ms, self.threshold_ms)
        self.last_action_ms = now_ms

        if quick:
            self.state = GuardState.AWAITING_CONFIRMATION
            logger.info(f"Quick repeat on dose {self.dose_log_id}, confirmation required")
            return GuardDecision.REQUIRE_CONFIRMATION
        return GuardDecision.COMMIT

    def resolve(self, confirmed: bool) -> Optional[DoseStatus]:
        """
        Resolve a pending confirmation prompt.

        Returns the outcome to record: SUSPECTED when the user confirms the
        anomalous take, None when they decline. Raises if nothing is pending.
        """
        if self.state != GuardState.AWAITING_CONFIRMATION:
            raise ValueError(f"Dose {self.dose_log_id} has no pending confirmation")

        self.state = GuardState.NORMAL
        return DoseStatus.SUSPECTED if confirmed else None

    @property
    def awaiting_confirmation(self) -> bool:
        return self.state == GuardState.AWAITING_CONFIRMATION


class CardSessionRegistry:
    """
    In-memory store of guard sessions keyed by dose log id.

    Holds at most `max_sessions`; the least recently used session is evicted.
    """

    def __init__(
        self,
        threshold_ms: int = adherence_config.QUICK_CONFIRM_THRESHOLD_MS,
        max_sessions: int = adherence_config.MAX_CARD_SESSIONS
    ):
        self.threshold_ms = threshold_ms
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[int, DoseCardSession]" = OrderedDict()

    def get(self, dose_log_id: int) -> DoseCardSession:
        session = self._sessions.get(dose_log_id)
        if session is None:
            session = DoseCardSession(dose_log_id=dose_log_id, threshold_ms=self.threshold_ms)
            self._sessions[dose_log_id] = session
            while len(self._sessions) > self.max_sessions:
                self._sessions.popitem(last=False)
        else:
            self._sessions.move_to_end(dose_log_id)
        return session

    def discard(self, dose_log_id: int):
        self._sessions.pop(dose_log_id, None)

    def clear(self):
        self._sessions.clear()


# Singleton instance
card_sessions = CardSessionRegistry()
