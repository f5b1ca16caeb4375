"""
Caretaker Notifier Tool
Emails a patient's caretaker about missed doses and weekly adherence
"""

import logging
from typing import Dict, Optional
from dataclasses import dataclass
from datetime import datetime

import httpx

from config import settings, adherence_config
from models import CaretakerNotificationKind


logger = logging.getLogger(__name__)


@dataclass
class CaretakerPayload:
    """Structured content for a caretaker email"""
    patient_name: str
    kind: CaretakerNotificationKind
    medicine_name: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    weekly_score: Optional[int] = None
    taken: int = 0
    missed: int = 0
    total: int = 0


@dataclass
class CaretakerResult:
    """Outcome of a caretaker notification attempt"""
    sent: bool
    skipped_reason: Optional[str] = None
    message_id: Optional[str] = None
    error: Optional[str] = None


EMAIL_TEMPLATES: Dict[CaretakerNotificationKind, Dict[str, str]] = {
    CaretakerNotificationKind.MISSED_DOSE: {
        "subject": "⚠️ Missed Dose Alert: {patient_name}",
        "html": """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1>⚠️ Missed Dose Alert</h1>
  <h2>{patient_name} missed their medication</h2>
  <p><strong>Medicine:</strong> {medicine_name}<br>
     <strong>Scheduled Time:</strong> {scheduled_time}</p>
  <p>Please check in with them to ensure they take their medication.</p>
  <p style="color: #aaa; font-size: 12px;">Sent by MediCare Reminder App 💊</p>
</div>
""",
    },
    CaretakerNotificationKind.WEEKLY_REPORT: {
        "subject": "📊 Weekly Report: {patient_name}'s Medication Adherence",
        "html": """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1>📊 Weekly Adherence Report</h1>
  <h2>{patient_name}'s Progress</h2>
  <div style="font-size: 48px; font-weight: bold;">{weekly_score}%</div>
  <p>Doses Taken: {taken} | Doses Missed: {missed} | Total Doses: {total}</p>
  <p>{encouragement}</p>
  <p style="color: #aaa; font-size: 12px;">Sent by MediCare Reminder App 💊</p>
</div>
""",
    },
}


def format_clock_time(value: Optional[datetime]) -> str:
    """Render a timestamp as e.g. '8:05 PM'"""
    if value is None:
        return "unknown time"
    return value.strftime("%I:%M %p").lstrip("0")


def weekly_encouragement(score: int) -> str:
    if score >= adherence_config.REPORT_GOOD_SCORE:
        return "Great job! Keep up the excellent work! 🎉"
    if score >= adherence_config.REPORT_FAIR_SCORE:
        return "There's room for improvement. Consider checking in more often. 💪"
    return "Please check in with them regularly to help improve adherence. ❤️"


class CaretakerNotifier:
    """
    Sends caretaker emails through the Resend HTTP API.

    Silently skips when the patient has no caretaker address or when email
    delivery is not configured.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        sender: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.api_url = api_url or settings.RESEND_API_URL
        self.sender = sender or settings.EMAIL_FROM
        self._transport = transport

    def render(self, payload: CaretakerPayload) -> Dict[str, str]:
        """Build subject and HTML body for a payload"""
        template = EMAIL_TEMPLATES[payload.kind]
        data = {
            "patient_name": payload.patient_name or "Your loved one",
            "medicine_name": payload.medicine_name or "their medicine",
            "scheduled_time": format_clock_time(payload.scheduled_time),
            "weekly_score": payload.weekly_score if payload.weekly_score is not None else 100,
            "taken": payload.taken,
            "missed": payload.missed,
            "total": payload.total,
            "encouragement": weekly_encouragement(
                payload.weekly_score if payload.weekly_score is not None else 100
            ),
        }
        return {
            "subject": template["subject"].format(**data),
            "html": template["html"].format(**data),
        }

    async def send(
        self,
        payload: CaretakerPayload,
        caretaker_email: Optional[str]
    ) -> CaretakerResult:
        """Deliver one caretaker email"""
        if not caretaker_email:
            logger.info("No caretaker email configured for user")
            return CaretakerResult(sent=False, skipped_reason="no_caretaker_email")

        if not self.api_key:
            logger.warning("RESEND_API_KEY not configured, caretaker email skipped")
            return CaretakerResult(sent=False, skipped_reason="email_not_configured")

        content = self.render(payload)
        body = {
            "from": self.sender,
            "to": [caretaker_email],
            "subject": content["subject"],
            "html": content["html"],
        }

        try:
            async with httpx.AsyncClient(timeout=15.0, transport=self._transport) as client:
                response = await client.post(
                    self.api_url,
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"}
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Caretaker email send error: {e}")
            return CaretakerResult(sent=False, error=str(e))

        # Accepted even when the body carries no message id
        try:
            data = response.json()
        except ValueError:
            logger.warning("Caretaker email accepted with a non-JSON response body")
            data = None

        logger.info(f"Caretaker {payload.kind.value} email sent for {payload.patient_name}")
        message_id = data.get("id") if isinstance(data, dict) else None
        return CaretakerResult(sent=True, message_id=message_id)

    async def notify_missed_dose(
        self,
        patient_name: str,
        caretaker_email: Optional[str],
        medicine_name: str,
        scheduled_time: datetime
    ) -> CaretakerResult:
        """Convenience method for a missed-dose alert"""
        return await self.send(
            CaretakerPayload(
                patient_name=patient_name,
                kind=CaretakerNotificationKind.MISSED_DOSE,
                medicine_name=medicine_name,
                scheduled_time=scheduled_time
            ),
            caretaker_email
        )

    async def send_weekly_report(
        self,
        patient_name: str,
        caretaker_email: Optional[str],
        weekly_score: int,
        taken: int,
        missed: int,
        total: int
    ) -> CaretakerResult:
        """Convenience method for the weekly adherence report"""
        return await self.send(
            CaretakerPayload(
                patient_name=patient_name,
                kind=CaretakerNotificationKind.WEEKLY_REPORT,
                weekly_score=weekly_score,
                taken=taken,
                missed=missed,
                total=total
            ),
            caretaker_email
        )


# Singleton instance
caretaker_notifier = CaretakerNotifier()
