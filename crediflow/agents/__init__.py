"""AI Agents package."""

from crediflow.agents.ai_agents import (
    ADVICE_EMPTY_MESSAGE,
    ADVICE_UNAVAILABLE_MESSAGE,
    NO_PAYMENTS_MESSAGE,
    AdviceItem,
    FundingAdviceAgent,
    PaymentExtractionAgent,
)

__all__ = [
    "ADVICE_EMPTY_MESSAGE",
    "ADVICE_UNAVAILABLE_MESSAGE",
    "NO_PAYMENTS_MESSAGE",
    "AdviceItem",
    "FundingAdviceAgent",
    "PaymentExtractionAgent",
]
