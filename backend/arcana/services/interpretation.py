"""Card reading generation.

Uses the configured LLM provider when available and falls back to a
deterministic template reading when no provider is configured, mock mode
is on, or the provider call fails.
"""

import json
from datetime import datetime, timezone
from typing import Any

from arcana.core.config import get_settings
from arcana.core.exceptions import LLMProviderError
from arcana.core.logging import get_logger
from arcana.services.llm import LLMService, get_llm_service

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a warm, grounded tarot reader. Reply with JSON only: "
    '{"interpretation": str, "advice": str, "keywords": [str]}'
)

_ADVICE = (
    "Keep the conversation open and let small gestures carry the meaning.",
    "Name what you need plainly; the cards favour honesty over guessing.",
    "Give the situation time; what is reversed now is still turning.",
    "Slow down before deciding; look at what each of you is protecting.",
)


def _describe(card: dict[str, Any]) -> str:
    name = card.get("englishName") or card.get("name") or "Unknown card"
    return f"{name} (reversed)" if card.get("isReversed") else name


def _build_prompt(cards: list[dict[str, Any]], question: str, persona: str | None) -> str:
    lines = [f"{i}. {_describe(card)}" for i, card in enumerate(cards, 1)]
    header = f"Reading type: {persona}\n" if persona else ""
    return f"{header}Question: {question or '(none)'}\nCards:\n" + "\n".join(lines)


def template_reading(cards: list[dict[str, Any]], question: str) -> dict[str, Any]:
    """Deterministic reading used whenever no model answer is available."""
    reversed_count = sum(1 for card in cards if card.get("isReversed"))
    names = ", ".join(_describe(card) for card in cards) or "no cards"
    topic = f'On "{question}": ' if question else ""
    return {
        "interpretation": (
            f"{topic}the spread shows {names}. "
            f"{len(cards) - reversed_count} upright and {reversed_count} reversed cards "
            "suggest where energy flows freely and where it is held back."
        ),
        "advice": _ADVICE[reversed_count % len(_ADVICE)],
        "keywords": [card.get("englishName") or card.get("name", "") for card in cards][:6],
    }


def _parse_model_reply(text: str, cards: list[dict[str, Any]], question: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None

    if not isinstance(data, dict) or not data.get("interpretation"):
        fallback = template_reading(cards, question)
        return {**fallback, "interpretation": text.strip() or fallback["interpretation"]}

    keywords = data.get("keywords")
    return {
        "interpretation": str(data["interpretation"]),
        "advice": str(data.get("advice", "")),
        "keywords": [str(k) for k in keywords] if isinstance(keywords, list) else [],
    }


class InterpretationService:
    """Produces the reading for a set of cards and a question."""

    def __init__(self, llm_service: LLMService | None = None) -> None:
        self.llm_service = llm_service or get_llm_service()

    async def interpret(
        self,
        cards: list[dict[str, Any]],
        question: str,
        persona: str | None = None,
    ) -> dict[str, Any]:
        settings = get_settings()
        provider = None if settings.mock_mode else self.llm_service.configured_provider()
        reading: dict[str, Any] | None = None
        source = "template"

        if provider:
            try:
                adapter = self.llm_service.get_adapter(provider)
                text = await adapter.complete(
                    _build_prompt(cards, question, persona),
                    system_prompt=SYSTEM_PROMPT,
                )
                reading = _parse_model_reply(text, cards, question)
                source = provider
            except LLMProviderError as e:
                logger.warning("Interpretation provider failed, using template", provider=provider, error=e.message)

        if reading is None:
            reading = template_reading(cards, question)

        return {
            **reading,
            "cards": cards,
            "question": question,
            "source": source,
            "generatedAt": datetime.now(timezone.utc).isoformat(),
        }


# Global interpretation service instance
_interpretation_service: InterpretationService | None = None


def get_interpretation_service() -> InterpretationService:
    """Get or create the global interpretation service instance."""
    global _interpretation_service

    if _interpretation_service is None:
        _interpretation_service = InterpretationService()

    return _interpretation_service
