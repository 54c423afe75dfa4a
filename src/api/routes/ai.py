"""AI suggestion and analysis API routes."""

import logging

from fastapi import APIRouter

from src.api.deps import AIServiceDep, CurrentUser
from src.schemas.ai import (
    AIHealthResponse,
    AnalysisResponse,
    AnalyzeRequest,
    SuggestionRequest,
    SuggestionResponse,
)
from src.services.ai_service import ConversationContext, SuggestionChannel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post(
    "/suggestion",
    response_model=SuggestionResponse,
    summary="Generate a reply suggestion",
    description="Suggests what the agent could say next. Falls back to rule-based suggestions when the provider is unavailable.",
)
async def generate_suggestion(
    data: SuggestionRequest,
    user: CurrentUser,
    service: AIServiceDep,
) -> SuggestionResponse:
    context = ConversationContext(
        trigger_message=data.current_message,
        history=data.conversation_history or "",
        channel=SuggestionChannel.from_http_name(data.context),
    )
    suggestion = await service.generate_suggestion(context)
    logger.debug("Suggestion for user %s: %s (%.2f)", user.user_id, suggestion.type, suggestion.confidence)
    return SuggestionResponse(**suggestion.to_response())


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    summary="Analyze a conversation",
    description="Keyword-based sentiment, summary, keywords and next steps for a transcript.",
)
async def analyze_conversation(
    data: AnalyzeRequest,
    user: CurrentUser,
    service: AIServiceDep,
) -> AnalysisResponse:
    analysis = service.analyze(data.transcript)
    return AnalysisResponse(
        sentiment=analysis.sentiment,
        score=analysis.score,
        summary=analysis.summary,
        keywords=analysis.keywords,
        action_items=analysis.action_items,
    )


@router.get(
    "/health",
    response_model=AIHealthResponse,
    summary="AI provider status",
)
async def ai_health(service: AIServiceDep) -> AIHealthResponse:
    return AIHealthResponse(**service.get_status())
