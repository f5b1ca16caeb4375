"""
Tests for Dose Service
Dose lifecycle transitions and caretaker escalation
"""

import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import patch, AsyncMock

from models import DoseStatus, TimeSlot
from services.dose_service import DoseService, DoseLogNotFoundError, DoseTransitionError
from tools.caretaker_notifier import CaretakerResult


@pytest.fixture
def dose_service():
    return DoseService()


class TestRecordOutcome:

    @pytest.mark.asyncio
    async def test_taken_sets_taken_time_and_response(self, dose_service, db_session, test_dose_log):
        now = datetime.now()
        log = await dose_service.record_outcome(
            test_dose_log.id, DoseStatus.TAKEN, response_time_seconds=42, now=now, db=db_session
        )

        assert log.status == DoseStatus.TAKEN
        assert log.taken_time == now
        assert log.response_time_seconds == 42

    @pytest.mark.asyncio
    async def test_suspected_sets_taken_time(self, dose_service, db_session, test_dose_log):
        log = await dose_service.record_outcome(test_dose_log.id, DoseStatus.SUSPECTED, db=db_session)

        assert log.status == DoseStatus.SUSPECTED
        assert log.taken_time is not None

    @pytest.mark.asyncio
    async def test_missed_has_no_taken_time(self, dose_service, db_session, test_dose_log):
        log = await dose_service.record_outcome(test_dose_log.id, DoseStatus.MISSED, db=db_session)

        assert log.status == DoseStatus.MISSED
        assert log.taken_time is None

    @pytest.mark.asyncio
    async def test_negative_response_time_clamped(self, dose_service, db_session, test_dose_log):
        log = await dose_service.record_outcome(
            test_dose_log.id, DoseStatus.TAKEN, response_time_seconds=-5, db=db_session
        )
        assert log.response_time_seconds == 0

    @pytest.mark.asyncio
    async def test_terminal_log_cannot_change(self, dose_service, db_session, test_dose_log):
        await dose_service.record_outcome(test_dose_log.id, DoseStatus.TAKEN, db=db_session)

        with pytest.raises(DoseTransitionError):
            await dose_service.record_outcome(test_dose_log.id, DoseStatus.MISSED, db=db_session)

    @pytest.mark.asyncio
    async def test_pending_is_not_an_outcome(self, dose_service, db_session, test_dose_log):
        with pytest.raises(DoseTransitionError):
            await dose_service.record_outcome(test_dose_log.id, DoseStatus.PENDING, db=db_session)

    @pytest.mark.asyncio
    async def test_unknown_log(self, dose_service, db_session):
        with pytest.raises(DoseLogNotFoundError):
            await dose_service.record_outcome(9999, DoseStatus.TAKEN, db=db_session)

    @pytest.mark.asyncio
    async def test_refreshes_cached_score(self, dose_service, db_session, test_user, test_dose_log):
        await dose_service.record_outcome(test_dose_log.id, DoseStatus.MISSED, db=db_session)

        db_session.refresh(test_user)
        assert test_user.adherence_score == 0


class TestCaretakerEscalation:

    @pytest.mark.asyncio
    async def test_notify_missed_uses_patient_details(self, dose_service, db_session, test_dose_log):
        sent = CaretakerResult(sent=True, message_id="abc")
        with patch("services.dose_service.caretaker_notifier") as notifier:
            notifier.notify_missed_dose = AsyncMock(return_value=sent)
            result = await dose_service.notify_caretaker_missed(test_dose_log.id, db=db_session)

        assert result is sent
        kwargs = notifier.notify_missed_dose.call_args.kwargs
        assert kwargs["patient_name"] == "Asha Rao"
        assert kwargs["caretaker_email"] == "ravi.rao@example.com"
        assert kwargs["medicine_name"] == "Metformin"
        assert kwargs["scheduled_time"] == test_dose_log.scheduled_time

    @pytest.mark.asyncio
    async def test_notify_unknown_log(self, dose_service, db_session):
        with pytest.raises(DoseLogNotFoundError):
            await dose_service.notify_caretaker_missed(9999, db=db_session)

    @pytest.mark.asyncio
    async def test_ignored_reminder_skips_resolved_dose(self, dose_service, db_session, test_dose_log):
        await dose_service.record_outcome(test_dose_log.id, DoseStatus.TAKEN, db=db_session)

        with patch("services.dose_service.get_db_context") as ctx:
            ctx.return_value.__enter__.return_value = db_session
            with patch.object(dose_service, "notify_caretaker_missed", new=AsyncMock()) as notify:
                result = await dose_service.handle_ignored_reminder(
                    SimpleNamespace(dose_log_id=test_dose_log.id)
                )

        assert result is None
        notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ignored_reminder_notifies_for_pending_dose(self, dose_service, db_session, test_dose_log):
        with patch("services.dose_service.get_db_context") as ctx:
            ctx.return_value.__enter__.return_value = db_session
            with patch.object(dose_service, "notify_caretaker_missed", new=AsyncMock()) as notify:
                await dose_service.handle_ignored_reminder(
                    SimpleNamespace(dose_log_id=test_dose_log.id)
                )

        notify.assert_awaited_once_with(test_dose_log.id, db=db_session)


class TestAutoMiss:

    @pytest.mark.asyncio
    async def test_expires_only_overdue_pending(self, dose_service, db_session, test_user, make_dose_log):
        now = datetime.now().replace(second=0, microsecond=0)
        overdue = make_dose_log(DoseStatus.PENDING, now - timedelta(hours=3), time_slot=TimeSlot.MORNING)
        recent = make_dose_log(DoseStatus.PENDING, now - timedelta(minutes=10), time_slot=TimeSlot.AFTERNOON)

        expired = await dose_service.expire_overdue_doses(test_user.id, grace_minutes=60, now=now, db=db_session)

        assert [log.id for log in expired] == [overdue.id]
        db_session.refresh(recent)
        assert recent.status == DoseStatus.PENDING
        db_session.refresh(overdue)
        assert overdue.status == DoseStatus.MISSED
