"""
Tests for Schedule Generator Tool
"""

import pytest
from datetime import date, datetime, time
from types import SimpleNamespace

from models import DoseStatus, TimeSlot, Medicine
from tools.schedule_generator import parse_slot_time, build_dose_slots


def make_medicine(**overrides):
    fields = dict(
        id=7,
        morning=True, morning_time="08:00",
        afternoon=False, afternoon_time="13:00",
        night=True, night_time="21:30",
    )
    fields.update(overrides)
    return Medicine(**fields)


class TestParseSlotTime:
    """Tests for slot time parsing"""

    def test_hh_mm(self):
        assert parse_slot_time("08:00") == time(8, 0)

    def test_hh_mm_ss(self):
        assert parse_slot_time("21:30:15") == time(21, 30, 15)

    def test_time_passthrough(self):
        assert parse_slot_time(time(13, 0)) == time(13, 0)

    def test_none(self):
        assert parse_slot_time(None) is None

    @pytest.mark.parametrize("value", ["8am", "25:00", "", "noon"])
    def test_invalid_raises(self, value):
        with pytest.raises(ValueError):
            parse_slot_time(value)


class TestBuildDoseSlots:
    """Tests for turning a medicine into the day's dose instances"""

    def test_one_slot_per_enabled_slot(self):
        target = date(2024, 3, 10)
        slots = build_dose_slots(make_medicine(), target)

        assert [s.time_slot for s in slots] == [TimeSlot.MORNING, TimeSlot.NIGHT]
        assert slots[0].scheduled_time == datetime(2024, 3, 10, 8, 0)
        assert slots[1].scheduled_time == datetime(2024, 3, 10, 21, 30)
        assert all(s.status == DoseStatus.PENDING for s in slots)
        assert all(s.scheduled_date == target for s in slots)

    def test_all_three_slots(self):
        slots = build_dose_slots(make_medicine(afternoon=True), date(2024, 3, 10))
        assert len(slots) == 3

    def test_no_enabled_slot_yields_nothing(self):
        medicine = make_medicine(morning=False, night=False)
        assert build_dose_slots(medicine, date(2024, 3, 10)) == []

    def test_identities_are_unique(self):
        slots = build_dose_slots(make_medicine(afternoon=True), date(2024, 3, 10))
        assert len({s.identity for s in slots}) == len(slots)

    def test_works_with_any_medicine_like_object(self):
        medicine = SimpleNamespace(
            id=1,
            slot_enabled=lambda slot: slot == TimeSlot.AFTERNOON,
            slot_time=lambda slot: "13:15",
        )
        slots = build_dose_slots(medicine, date(2024, 1, 1))
        assert len(slots) == 1
        assert slots[0].scheduled_time == datetime(2024, 1, 1, 13, 15)
