"""
Tools Package
Utility tools and external collaborators for the MediCare Reminder system
"""

from .schedule_generator import (
    DoseSlot,
    build_dose_slots,
    parse_slot_time
)

from .notification_service import (
    NotificationService,
    NotificationChannel,
    NotificationType,
    NotificationResult,
    InAppNotification,
    notification_service
)

from .caretaker_notifier import (
    CaretakerNotifier,
    CaretakerPayload,
    CaretakerResult,
    caretaker_notifier,
    format_clock_time
)

from .prescription_extractor import (
    PrescriptionExtractor,
    ExtractionError,
    RateLimitedError,
    PaymentRequiredError,
    ExtractionFailedError,
    prescription_extractor,
    parse_medicine_names
)

__all__ = [
    # Schedule Generator
    "DoseSlot",
    "build_dose_slots",
    "parse_slot_time",

    # Notification Service
    "NotificationService",
    "NotificationChannel",
    "NotificationType",
    "NotificationResult",
    "InAppNotification",
    "notification_service",

    # Caretaker Notifier
    "CaretakerNotifier",
    "CaretakerPayload",
    "CaretakerResult",
    "caretaker_notifier",
    "format_clock_time",

    # Prescription Extractor
    "PrescriptionExtractor",
    "ExtractionError",
    "RateLimitedError",
    "PaymentRequiredError",
    "ExtractionFailedError",
    "prescription_extractor",
    "parse_medicine_names"
]
