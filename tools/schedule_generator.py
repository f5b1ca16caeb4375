"""
Schedule Generator Tool
Turns a medicine's recurring time slots into the dose instances for one day
"""

import logging
from typing import List, Optional, Union
from dataclasses import dataclass
from datetime import datetime, date, time

from models import DoseStatus, TimeSlot


logger = logging.getLogger(__name__)


def parse_slot_time(val: Union[str, time, None]) -> Optional[time]:
    """Ensure the provided value is a datetime.time.

    Accepts a time object or a string like 'HH:MM' or 'HH:MM:SS'.
    Raises ValueError if it cannot be converted.
    """
    if val is None:
        return None
    if isinstance(val, time):
        return val
    if isinstance(val, str):
        for fmt in ("%H:%M", "%H:%M:%S"):
            try:
                return datetime.strptime(val.strip(), fmt).time()
            except ValueError:
                continue
        raise ValueError(f"Cannot parse slot time: {val!r}")
    raise ValueError(f"Unsupported slot time type: {type(val)}")


@dataclass(frozen=True)
class DoseSlot:
    """A dose instance to be persisted as a DoseLog"""
    medicine_id: int
    time_slot: TimeSlot
    scheduled_date: date
    scheduled_time: datetime
    status: DoseStatus = DoseStatus.PENDING

    @property
    def identity(self) -> tuple:
        """Natural key: one dose per medicine, slot and day"""
        return (self.medicine_id, self.time_slot, self.scheduled_date)


def build_dose_slots(medicine, target_date: date) -> List[DoseSlot]:
    """
    Build one pending dose per enabled slot of `medicine` on `target_date`.

    A medicine with no enabled slot yields an empty list.
    """
    slots = []
    for slot in TimeSlot:
        if not medicine.slot_enabled(slot):
            continue
        slot_time = parse_slot_time(medicine.slot_time(slot))
        slots.append(DoseSlot(
            medicine_id=medicine.id,
            time_slot=slot,
            scheduled_date=target_date,
            scheduled_time=datetime.combine(target_date, slot_time),
        ))

    if not slots:
        logger.warning(f"Medicine {medicine.id} has no enabled time slots")
    return slots
