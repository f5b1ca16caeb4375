"""
Tests for Medicine Service
Validation, creation and removal of medicines
"""

import pytest
from datetime import date

from models import Medicine, DoseLog, MedicineColor
from services.medicine_service import (
    MedicineService,
    MedicineValidationError,
    validate_medicine_data,
)
from services.schedule_service import ScheduleService


@pytest.fixture
def medicine_service():
    return MedicineService()


class TestValidateMedicineData:

    def test_requires_a_slot(self):
        with pytest.raises(MedicineValidationError):
            validate_medicine_data({"name": "Aspirin", "dosage": "75mg"})

    def test_requires_name_and_dosage(self):
        with pytest.raises(MedicineValidationError):
            validate_medicine_data({"name": "  ", "dosage": "75mg", "morning": True})
        with pytest.raises(MedicineValidationError):
            validate_medicine_data({"name": "Aspirin", "dosage": "", "morning": True})

    def test_fills_default_times(self):
        cleaned = validate_medicine_data({"name": "Aspirin", "dosage": "75mg", "night": True})

        assert cleaned["morning_time"] == "08:00"
        assert cleaned["afternoon_time"] == "13:00"
        assert cleaned["night_time"] == "21:00"
        assert cleaned["start_date"] == date.today()

    def test_normalizes_seconds(self):
        cleaned = validate_medicine_data({
            "name": "Aspirin", "dosage": "75mg", "morning": True, "morning_time": "07:30:00"
        })
        assert cleaned["morning_time"] == "07:30"

    def test_rejects_bad_time_on_enabled_slot(self):
        with pytest.raises(MedicineValidationError):
            validate_medicine_data({
                "name": "Aspirin", "dosage": "75mg", "morning": True, "morning_time": "7am"
            })

    def test_rejects_negative_days_remaining(self):
        with pytest.raises(MedicineValidationError):
            validate_medicine_data({
                "name": "Aspirin", "dosage": "75mg", "morning": True, "days_remaining": -1
            })


class TestMedicineService:

    @pytest.mark.asyncio
    async def test_add_medicine(self, medicine_service, db_session, test_user):
        medicine = await medicine_service.add_medicine(
            test_user.id,
            {"name": "Aspirin", "dosage": "75mg", "morning": True},
            db=db_session
        )

        assert medicine.id is not None
        assert medicine.user_id == test_user.id
        assert isinstance(medicine.color, MedicineColor)
        assert medicine.enabled_slots[0].value == "morning"

    @pytest.mark.asyncio
    async def test_invalid_medicine_not_stored(self, medicine_service, db_session, test_user):
        with pytest.raises(MedicineValidationError):
            await medicine_service.add_medicine(
                test_user.id, {"name": "Aspirin", "dosage": "75mg"}, db=db_session
            )
        assert db_session.query(Medicine).count() == 0

    @pytest.mark.asyncio
    async def test_bulk_add_is_all_or_nothing(self, medicine_service, db_session, test_user):
        items = [
            {"name": "Aspirin", "dosage": "75mg", "morning": True},
            {"name": "Broken", "dosage": "1"},
        ]
        with pytest.raises(MedicineValidationError):
            await medicine_service.add_multiple_medicines(test_user.id, items, db=db_session)
        assert db_session.query(Medicine).count() == 0

    @pytest.mark.asyncio
    async def test_bulk_add(self, medicine_service, db_session, test_user):
        items = [
            {"name": "Aspirin", "dosage": "75mg", "morning": True},
            {"name": "Atorvastatin", "dosage": "10mg", "night": True},
        ]
        medicines = await medicine_service.add_multiple_medicines(test_user.id, items, db=db_session)

        assert [m.name for m in medicines] == ["Aspirin", "Atorvastatin"]
        listed = await medicine_service.get_user_medicines(test_user.id, db=db_session)
        assert len(listed) == 2

    @pytest.mark.asyncio
    async def test_delete_removes_dose_logs(self, medicine_service, db_session, test_user, test_medicine):
        created = await ScheduleService().generate_dose_logs(test_medicine, db=db_session)

        removed = await medicine_service.delete_medicine(test_user.id, test_medicine.id, db=db_session)

        assert sorted(removed) == sorted(log.id for log in created)
        assert db_session.query(DoseLog).count() == 0

    @pytest.mark.asyncio
    async def test_delete_other_users_medicine(self, medicine_service, db_session, test_medicine):
        assert await medicine_service.delete_medicine(9999, test_medicine.id, db=db_session) is None
