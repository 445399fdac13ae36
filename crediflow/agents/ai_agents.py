"""
AI Agents for CrediFlow

CRITICAL BOUNDARIES:

1. PAYMENT EXTRACTION AGENT:
   - CAN: Read a pasted SMS/e-mail and propose amount, card and month
   - CANNOT: Create payments (it only prefills a draft)
   - CANNOT: Invent cards that are not in the provided list

2. FUNDING ADVICE AGENT:
   - CAN: Turn already-computed BankSummary rows into short advice
   - CANNOT: Compute totals or dates itself - it only sees our numbers

The LLM is a TRANSLATOR, not an ORACLE.
Every number the household relies on comes from the deterministic engine.

Both agents fail soft: a broken or unreachable model yields None (or a
fallback sentence) and the user continues with manual entry.
"""

import json
from collections.abc import Sequence
from datetime import date
from typing import Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field, ValidationError

from crediflow.config import get_settings
from crediflow.models.billing import BankSummary, Card, ExtractedPaymentData


logger = structlog.get_logger(__name__)

ADVICE_EMPTY_MESSAGE = "Could not get advice this time."
ADVICE_UNAVAILABLE_MESSAGE = "AI advice is currently unavailable."
NO_PAYMENTS_MESSAGE = "There are no scheduled payments to prepare for."


class AdviceItem(BaseModel):
    """One account as presented to the advice model."""

    bank_name: str = Field(description="Holder-qualified label, e.g. 'Sumitomo (self)'")
    total_amount: int
    earliest_payment_date: str = Field(description="yyyy-MM-dd")

    @classmethod
    def from_summary(cls, summary: BankSummary) -> "AdviceItem":
        return cls(
            bank_name=summary.label,
            total_amount=summary.total_amount,
            earliest_payment_date=summary.earliest_payment_date.isoformat(),
        )


def _extract_json_object(text: str) -> Optional[dict]:
    """Find the first {...} block in a model response."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    return json.loads(text[start:end])


class PaymentExtractionAgent:
    """
    Extracts a payment proposal from free text.

    RESPONSIBILITIES:
    - Find the amount (required) and, when stated, debit day/month/year
    - Match the text to one of the household's cards

    BOUNDARIES:
    - NEVER persists anything
    - Returns None when the response is unusable
    """

    def __init__(self, model: Optional[genai.GenerativeModel] = None):
        self._settings = get_settings().gemini
        self._model = model or self._configure_genai()

    def _configure_genai(self) -> genai.GenerativeModel:
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": 512,
                "response_mime_type": "application/json",
            }
        )

    @staticmethod
    def build_prompt(text: str, cards: Sequence[Card], today: date) -> str:
        card_list = ", ".join(f"{card.name} (ID: {card.id})" for card in cards)
        return f"""Analyze the following Japanese or English text representing a credit card payment notification.
Extract the payment amount, the payment date (day, month and year if stated), and identify which credit card it belongs to based on the provided list.

Today's date: {today.isoformat()}
Available Cards List: [{card_list}]

If the card is not explicitly named but can be inferred, do so. If unknown, use null for cardId.
Only fill paymentMonth (1-12) and paymentYear when the text states or clearly implies them.

Respond with ONLY a JSON object in this exact format:
{{"amount": 12345, "cardId": "id or null", "paymentDay": 27, "paymentMonth": 1, "paymentYear": 2024}}

Text to analyze: "{text}\""""

    async def parse_payment_text(
        self,
        text: str,
        cards: Sequence[Card],
        today: date,
    ) -> Optional[ExtractedPaymentData]:
        """
        Propose payment details for a pasted notification.

        Unknown card ids are dropped (cardId becomes None) rather than
        trusted.
        """
        if not text.strip():
            return None

        try:
            response = await self._model.generate_content_async(
                self.build_prompt(text, cards, today)
            )
            data = _extract_json_object(response.text.strip())
        except Exception as e:
            logger.warning("extraction_call_failed", error=str(e))
            return None

        if data is None:
            logger.warning("extraction_response_unparseable")
            return None

        try:
            extracted = ExtractedPaymentData(
                amount=data.get("amount"),
                card_id=data.get("cardId"),
                payment_day=data.get("paymentDay"),
                payment_month=data.get("paymentMonth"),
                payment_year=data.get("paymentYear"),
            )
        except ValidationError as e:
            logger.warning("extraction_response_invalid", error=str(e))
            return None

        known_ids = {card.id for card in cards}
        if extracted.card_id not in known_ids:
            extracted.card_id = None

        return extracted


class FundingAdviceAgent:
    """
    Writes a short funding reminder from precomputed account summaries.

    The agent only phrases what the engine computed; it never sees raw
    payments and never does arithmetic the household depends on.
    """

    def __init__(self, model: Optional[genai.GenerativeModel] = None):
        self._settings = get_settings().gemini
        self._language = get_settings().app.advice_language
        self._model = model or self._configure_genai()

    def _configure_genai(self) -> genai.GenerativeModel:
        genai.configure(api_key=self._settings.api_key)
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": 0.3,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    def build_prompt(self, items: Sequence[AdviceItem]) -> str:
        data = json.dumps(
            [
                {
                    "bankName": item.bank_name,
                    "totalAmount": item.total_amount,
                    "earliestPaymentDate": item.earliest_payment_date,
                }
                for item in items
            ],
            ensure_ascii=False,
        )
        return f"""You are a helpful financial assistant.
The user has upcoming credit card payments grouped by bank account.
Here is the summary data: {data}

Please provide a concise, friendly summary in {self._language}.
Focus on:
1. Which bank needs the most money and by when.
2. A gentle reminder to transfer funds a few days before the earliest date.
3. Keep it under 3 sentences.

IMPORTANT: Use ONLY the numbers above. Do NOT add amounts or dates that are not in the data."""

    async def generate_advice(self, items: Sequence[AdviceItem]) -> str:
        if not items:
            return NO_PAYMENTS_MESSAGE

        try:
            response = await self._model.generate_content_async(self.build_prompt(items))
            text = (response.text or "").strip()
        except Exception as e:
            logger.warning("advice_call_failed", error=str(e))
            return ADVICE_UNAVAILABLE_MESSAGE

        return text or ADVICE_EMPTY_MESSAGE
