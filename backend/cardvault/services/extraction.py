"""
LLM-backed extraction collaborators.

Both calls go to an OpenAI-compatible chat-completions endpoint and ask
for a JSON object. Anything that goes wrong (no key configured, HTTP
error, malformed JSON, a payload that fails validation) is logged and
turned into ``None``; callers treat the extractor as best-effort.
"""

import json
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from cardvault.core.config import settings
from cardvault.schemas.extraction import EmailAnalysis, ExtractedTransaction

logger = logging.getLogger(__name__)

SMS_SYSTEM_PROMPT = (
    "You extract card transactions from bank SMS alerts. "
    "Respond with a JSON object: "
    '{"merchantName": string, "amount": string (digits and decimal point only), '
    '"category": one of Shopping, Food, Travel, Fuel, Groceries, Utilities, '
    'Entertainment, Healthcare, Other, "lastFourDigits": string (if the card number is mentioned), '
    '"description": string}. '
    'If the message is not a card transaction, respond with {"transaction": null}.'
)

EMAIL_SYSTEM_PROMPT = (
    "You read emails from credit card issuers and explain them to the cardholder. "
    "Respond with a JSON object: "
    '{"type": "statement" | "offer" | "bill" | "other", '
    '"summary": plain-language explanation of what the email means for the user, '
    '"changes": [{"field": string, "oldValue": string, "newValue": string, "impact": string}] '
    "(only when an offer or terms changed), "
    '"billAmount": string (bills only), "dueDate": string (bills only)}. '
    "Focus on changes to rewards, fees, interest rates and offers."
)


class LLMExtractor:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.base_url = (base_url or settings.OPENAI_BASE_URL).rstrip("/")
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout or settings.EXTRACTION_TIMEOUT
        self._transport = transport

    async def _complete_json(self, system_prompt: str, user_content: str) -> Optional[dict]:
        if not self.api_key:
            logger.warning("OPENAI_API_KEY is not set, skipping extraction")
            return None

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}/chat/completions", json=payload, headers=headers)
                response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
            result = json.loads(content or "null")
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("Extraction request failed: %s", e)
            return None

        return result if isinstance(result, dict) else None

    async def extract_transaction(self, sms_text: str) -> Optional[ExtractedTransaction]:
        data = await self._complete_json(SMS_SYSTEM_PROMPT, sms_text)
        if not data or data.get("transaction", True) is None:
            return None
        try:
            return ExtractedTransaction.model_validate(data)
        except ValidationError as e:
            logger.warning("Extractor returned an unusable transaction: %s", e.errors())
            return None

    async def analyze_email(self, subject: str, body: str) -> Optional[EmailAnalysis]:
        data = await self._complete_json(EMAIL_SYSTEM_PROMPT, f"Subject: {subject}\n\nBody: {body}")
        if not data:
            return None
        try:
            return EmailAnalysis.model_validate(data)
        except ValidationError as e:
            logger.warning("Extractor returned an unusable email analysis: %s", e.errors())
            return None
