"""
Prescription Extractor Tool
Sends a prescription photo to a vision model and returns candidate
medicine names for the user to review
"""

import json
import logging
import re
from typing import List, Optional, Any

import httpx

from config import settings, adherence_config


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are a medical prescription analyzer. Extract ONLY medicine names from prescription images.

Rules:
- Return ONLY a JSON array of medicine name strings
- Extract medicine/drug names only (not dosages, frequencies, or instructions)
- Include both brand names and generic names if visible
- Clean up any OCR-like errors in medicine names
- If no medicines are found, return an empty array []
- Do NOT include dosage amounts (mg, ml, etc.) in the names
- Do NOT include instructions like "twice daily" or "after food"

Example output: ["Paracetamol", "Amoxicillin", "Omeprazole"]"""

USER_PROMPT = (
    "Extract all medicine names from this prescription image. "
    "Return only a JSON array of medicine name strings."
)

# Tokens that are dosage or frequency noise rather than medicine names
NOISE_PATTERN = re.compile(r"^\d+$|^mg$|^ml$|^tablet|^capsule|^daily|^twice|^once", re.IGNORECASE)
JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*?\]")


class ExtractionError(Exception):
    """Base class for prescription extraction failures"""
    user_message = "We couldn't read that prescription. You can add medicines manually."

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.user_message)
        self.detail = detail


class RateLimitedError(ExtractionError):
    user_message = "Too many scans right now. Please try again later or add medicines manually."


class PaymentRequiredError(ExtractionError):
    user_message = "Prescription scanning is unavailable (credits exhausted). Please add medicines manually."


class ExtractionFailedError(ExtractionError):
    pass


def parse_medicine_names(content: str) -> List[str]:
    """Pull a cleaned list of medicine names out of a model reply"""
    medicines: List[Any] = []
    match = JSON_ARRAY_PATTERN.search(content or "")
    try:
        if match:
            medicines = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.warning(f"Failed to parse model reply as JSON: {content[:100]}")
        medicines = [
            part.strip().replace('"', "").replace("[", "").replace("]", "")
            for part in re.split(r"[,\n]", content)
        ]
        medicines = [m for m in medicines if len(m) > 2]

    names = []
    for name in medicines:
        if not isinstance(name, str) or len(name) < 2:
            continue
        name = name.strip()
        if NOISE_PATTERN.match(name.lower()):
            continue
        names.append(name)
    return names[:adherence_config.MAX_EXTRACTED_MEDICINES]


class PrescriptionExtractor:
    """Client for an OpenAI-compatible chat completions gateway"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key if api_key is not None else settings.EXTRACTION_API_KEY
        self.api_url = api_url or settings.EXTRACTION_API_URL
        self.model = model or settings.EXTRACTION_MODEL
        self._transport = transport

    def _build_request(self, image_base64: str) -> dict:
        image_url = image_base64 if image_base64.startswith("data:") else f"data:image/jpeg;base64,{image_base64}"
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": USER_PROMPT},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                },
            ],
        }

    @staticmethod
    def _reply_content(data) -> str:
        """Assistant text from a chat-completions body, \"[]\" when it has none"""
        if not isinstance(data, dict):
            raise ExtractionFailedError("Gateway reply is not a JSON object")

        choices = data.get("choices") or [{}]
        choice = choices[0] if isinstance(choices, list) else None
        if not isinstance(choice, dict):
            raise ExtractionFailedError("Gateway reply has an unexpected shape")

        message = choice.get("message") or {}
        if not isinstance(message, dict):
            raise ExtractionFailedError("Gateway reply has an unexpected shape")

        content = message.get("content") or "[]"
        if not isinstance(content, str):
            raise ExtractionFailedError("Gateway reply content is not text")
        return content

    async def extract(self, image_base64: str) -> List[str]:
        """
        Extract candidate medicine names from a base64 image.

        Raises:
            ValueError: no image supplied
            RateLimitedError: gateway returned 429
            PaymentRequiredError: gateway returned 402
            ExtractionFailedError: any other failure
        """
        if not image_base64:
            raise ValueError("No image provided")
        if not self.api_key:
            raise ExtractionFailedError("EXTRACTION_API_KEY is not configured")

        try:
            async with httpx.AsyncClient(
                timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
                transport=self._transport
            ) as client:
                response = await client.post(
                    self.api_url,
                    json=self._build_request(image_base64),
                    headers={"Authorization": f"Bearer {self.api_key}"}
                )
        except httpx.HTTPError as e:
            logger.error(f"Extraction gateway unreachable: {e}")
            raise ExtractionFailedError(str(e)) from e

        if response.status_code == 429:
            raise RateLimitedError("Rate limit exceeded")
        if response.status_code == 402:
            raise PaymentRequiredError("Payment required")
        if response.is_error:
            logger.error(f"Extraction gateway error: {response.status_code} {response.text[:200]}")
            raise ExtractionFailedError(f"Gateway error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ExtractionFailedError("Gateway returned invalid JSON") from e

        medicines = parse_medicine_names(self._reply_content(data))

        logger.info(f"Extracted {len(medicines)} medicines from prescription")
        return medicines


# Singleton instance
prescription_extractor = PrescriptionExtractor()
