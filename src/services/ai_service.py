"""Suggestion generation and conversation analysis."""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.api.middleware.error_handler import ProviderError
from src.core.config import Settings, get_settings
from src.core.openai import TimedOpenAIClient, get_openai_client
from src.models.suggestion import SuggestionCategory
from src.services.suggestion_cache import SuggestionCache, suggestion_cache_key

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "Você é um assistente de vendas brasileiro. "
    "Dê sugestões concisas (máx 2 frases) para ajudar vendedores."
)
USER_PROMPT_TEMPLATE = 'Cliente disse: "{message}"\n\nDê uma sugestão de resposta.'
EMPTY_COMPLETION_TEXT = "Continue ouvindo ativamente."

# Provider-backed suggestions carry a fixed confidence; the model's output
# is not scored.
PROVIDER_CONFIDENCE = 0.85

# Ordered keyword groups: (type, substrings, confidence, canned sentence).
# The first group with a case-insensitive substring match wins.
KEYWORD_GROUPS: tuple[tuple[str, tuple[str, ...], float, str], ...] = (
    (
        "greeting",
        ("olá", "oi", "bom dia"),
        0.9,
        "Olá! Seja bem-vindo! Como posso ajudá-lo hoje? 😊",
    ),
    (
        "objection",
        ("caro", "preço", "desconto"),
        0.85,
        "Entendo sua preocupação com o investimento. Nosso produto oferece ROI "
        "comprovado em 3 meses. Posso mostrar casos de sucesso similares ao seu?",
    ),
    (
        "closing",
        ("interesse", "gostei", "quero"),
        0.9,
        "Excelente! Vejo que você tem interesse. Que tal agendarmos uma demonstração "
        "personalizada para mostrar como podemos atender suas necessidades específicas?",
    ),
    (
        "question",
        ("?", "como", "qual"),
        0.8,
        "Ótima pergunta! Deixa eu explicar de forma clara...",
    ),
)
GENERAL_TYPE = "general"
GENERAL_CONFIDENCE = 0.7
GENERAL_TEXT = "Entendo. Me conta mais sobre sua situação para eu poder ajudar melhor."

TYPE_TO_CATEGORY: dict[str, SuggestionCategory] = {
    "greeting": SuggestionCategory.GREETING,
    "objection": SuggestionCategory.OBJECTION_HANDLING,
    "closing": SuggestionCategory.CLOSING,
    "question": SuggestionCategory.QUESTION,
    "information": SuggestionCategory.INFORMATION,
    "empathy": SuggestionCategory.EMPATHY,
    "general": SuggestionCategory.GENERAL,
}

POSITIVE_WORDS = ("bom", "ótimo", "excelente", "gostei", "interesse", "sim", "quero")
NEGATIVE_WORDS = ("não", "caro", "difícil", "problema", "ruim", "cancelar")
MAX_KEYWORDS = 5
MIN_KEYWORD_LENGTH = 6


class SuggestionChannel(str, Enum):
    """Channel the trigger message arrived on."""

    CALL = "call"
    CHAT = "chat"

    @property
    def http_name(self) -> str:
        """Name used on the HTTP surface (``phone_call`` / ``whatsapp``)."""
        return "phone_call" if self is SuggestionChannel.CALL else "whatsapp"

    @classmethod
    def from_http_name(cls, value: str | None) -> "SuggestionChannel":
        if value == "whatsapp":
            return cls.CHAT
        return cls.CALL


@dataclass(frozen=True)
class ConversationContext:
    """Input to one suggestion generation.

    ``history`` is newline-joined, oldest first.
    """

    trigger_message: str
    history: str = ""
    channel: SuggestionChannel = SuggestionChannel.CALL


@dataclass(frozen=True)
class Suggestion:
    """One generated reply suggestion."""

    text: str
    confidence: float
    type: str
    generated_at_ms: int
    latency_ms: int
    source_trigger: str
    context: str | None = None

    @property
    def category(self) -> SuggestionCategory:
        return TYPE_TO_CATEGORY.get(self.type, SuggestionCategory.GENERAL)

    def to_response(self) -> dict[str, Any]:
        """Wire shape used by HTTP responses and socket payloads."""
        response: dict[str, Any] = {
            "suggestion": self.text,
            "confidence": self.confidence,
            "type": self.type,
        }
        if self.context:
            response["context"] = self.context
        return response


@dataclass
class ConversationAnalysis:
    """Aggregate sentiment of a transcript."""

    sentiment: str
    score: float
    summary: str
    keywords: list[str] = field(default_factory=list)
    action_items: list[str] = field(default_factory=list)


def classify_message(message: str) -> tuple[str, float, str]:
    """Match a message against the ordered keyword groups.

    Returns:
        tuple: (type, confidence, canned sentence) of the first matching group,
            or the general group when nothing matches.
    """
    lowered = message.lower()
    for suggestion_type, keywords, confidence, text in KEYWORD_GROUPS:
        if any(keyword in lowered for keyword in keywords):
            return suggestion_type, confidence, text
    return GENERAL_TYPE, GENERAL_CONFIDENCE, GENERAL_TEXT


def _now_ms() -> int:
    return int(time.time() * 1000)


class AIService:
    """Produces one suggestion per conversation context.

    Lookup order is cache, then provider (when configured), then the
    rule-based fallback. Every result, fallback included, is cached under
    the trigger message. Provider and cache failures never escape
    ``generate_suggestion``.
    """

    def __init__(
        self,
        cache: SuggestionCache | None = None,
        settings: Settings | None = None,
        client_factory: Callable[[], TimedOpenAIClient] = get_openai_client,
    ) -> None:
        self.cache = cache
        self.settings = settings or get_settings()
        self._client_factory = client_factory

    @property
    def provider_configured(self) -> bool:
        return self.settings.is_ai_provider_configured

    @property
    def model_label(self) -> str:
        """Model name recorded alongside persisted suggestions."""
        return self.settings.openai_model if self.provider_configured else "fallback"

    async def generate_suggestion(self, context: ConversationContext) -> Suggestion:
        """Generate a reply suggestion for the latest customer message.

        Args:
            context: Trigger message, optional history and channel.

        Returns:
            Suggestion: Cached, provider-backed or fallback suggestion.
        """
        start_time = time.perf_counter()
        key = suggestion_cache_key(context.trigger_message)

        cached = self._cache_get(key)
        if cached is not None:
            logger.debug("Suggestion cache hit for %s", key)
            return cached

        suggestion = None
        if self.provider_configured:
            try:
                suggestion = await self._generate_with_provider(context, start_time)
            except ProviderError as e:
                logger.error("OpenAI suggestion failed, using fallback: %s", e.message)

        if suggestion is None:
            suggestion = self.fallback_suggestion(context, start_time)

        self._cache_set(key, suggestion)
        return suggestion

    async def _generate_with_provider(self, context: ConversationContext, start_time: float) -> Suggestion:
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": USER_PROMPT_TEMPLATE.format(message=context.trigger_message)},
        ]
        try:
            client = self._client_factory()
            response = await asyncio.to_thread(
                client.create_chat_completion,
                model=self.settings.openai_model,
                messages=messages,
                max_tokens=self.settings.openai_max_tokens,
                temperature=self.settings.openai_temperature,
            )
            content = response.choices[0].message.content if response.choices else None
        except Exception as e:
            raise ProviderError(f"{type(e).__name__}: {e}") from e

        suggestion_type, _, _ = classify_message(context.trigger_message)
        return Suggestion(
            text=(content or "").strip() or EMPTY_COMPLETION_TEXT,
            confidence=PROVIDER_CONFIDENCE,
            type=suggestion_type,
            generated_at_ms=_now_ms(),
            latency_ms=int((time.perf_counter() - start_time) * 1000),
            source_trigger=context.trigger_message,
            context=context.channel.http_name,
        )

    def fallback_suggestion(self, context: ConversationContext, start_time: float | None = None) -> Suggestion:
        """Rule-based suggestion used when the provider is off or failing."""
        suggestion_type, confidence, text = classify_message(context.trigger_message)
        latency_ms = int((time.perf_counter() - start_time) * 1000) if start_time is not None else 0
        return Suggestion(
            text=text,
            confidence=confidence,
            type=suggestion_type,
            generated_at_ms=_now_ms(),
            latency_ms=latency_ms,
            source_trigger=context.trigger_message,
        )

    def _cache_get(self, key: str) -> Suggestion | None:
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except Exception as e:
            logger.warning("Suggestion cache read failed, treating as miss: %s", e)
            return None

    def _cache_set(self, key: str, suggestion: Suggestion) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set(key, suggestion)
        except Exception as e:
            logger.warning("Suggestion cache write failed: %s", e)

    def analyze(self, transcript: str) -> ConversationAnalysis:
        """Crude keyword sentiment over a whole transcript.

        Tokens are counted once per list when they contain any positive or
        negative word as a substring.
        """
        words = transcript.lower().split()
        positive_count = sum(1 for w in words if any(p in w for p in POSITIVE_WORDS))
        negative_count = sum(1 for w in words if any(n in w for n in NEGATIVE_WORDS))

        score = max(0.0, min(1.0, (positive_count - negative_count + 5) / 10))
        if score > 0.6:
            sentiment = "positive"
        elif score < 0.4:
            sentiment = "negative"
        else:
            sentiment = "neutral"

        keywords: list[str] = []
        for word in words:
            if len(word) >= MIN_KEYWORD_LENGTH and word not in keywords:
                keywords.append(word)
                if len(keywords) == MAX_KEYWORDS:
                    break

        if sentiment == "positive":
            action_items = ["Agendar follow-up", "Enviar proposta"]
        else:
            action_items = ["Investigar objeções", "Oferecer alternativas"]

        return ConversationAnalysis(
            sentiment=sentiment,
            score=score,
            summary=(
                f"Conversa com sentimento {sentiment}. "
                f"{positive_count} sinais positivos, {negative_count} negativos."
            ),
            keywords=keywords,
            action_items=action_items,
        )

    def get_status(self) -> dict[str, Any]:
        """Provider status for the AI health endpoint."""
        return {
            "status": "ok",
            "provider": "openai" if self.provider_configured else "fallback",
            "model": self.settings.openai_model if self.provider_configured else None,
            "cache": self.cache.get_stats() if self.cache is not None else None,
        }
