"""WhatsApp chat API routes."""

from fastapi import APIRouter, status

from src.api.deps import ChatServiceDep, CurrentUser
from src.schemas.ai import SuggestionResponse
from src.schemas.chat import ChatCreate, ChatDetailResponse, ChatResponse, MessageCreate, MessageResponse

router = APIRouter(prefix="/whatsapp", tags=["whatsapp"])


@router.post(
    "/chats",
    response_model=ChatResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a chat",
    description="Reuses the chat for the same customer phone, reopening it when archived or resolved.",
)
async def create_chat(data: ChatCreate, user: CurrentUser, service: ChatServiceDep) -> ChatResponse:
    chat = await service.create_chat(data, user.company_id, user.user_id)
    return ChatResponse.model_validate(chat)


@router.get("/chats/active", response_model=list[ChatResponse], summary="List active chats")
async def list_active_chats(user: CurrentUser, service: ChatServiceDep) -> list[ChatResponse]:
    chats = await service.list_active_chats(user.company_id)
    return [ChatResponse.model_validate(chat) for chat in chats]


@router.get("/chats/{chat_id}", response_model=ChatDetailResponse, summary="Get a chat with messages")
async def get_chat(chat_id: str, user: CurrentUser, service: ChatServiceDep) -> ChatDetailResponse:
    chat = await service.get_chat(chat_id, user.company_id)
    return ChatDetailResponse.model_validate(chat)


@router.post(
    "/chats/{chat_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send or record a message",
)
async def send_message(
    chat_id: str,
    data: MessageCreate,
    user: CurrentUser,
    service: ChatServiceDep,
) -> MessageResponse:
    message = await service.send_message(chat_id, data, user.company_id)
    return MessageResponse.model_validate(message)


@router.get(
    "/chats/{chat_id}/suggestion",
    response_model=SuggestionResponse,
    summary="Suggest a reply for the chat",
)
async def get_chat_suggestion(chat_id: str, user: CurrentUser, service: ChatServiceDep) -> SuggestionResponse:
    suggestion = await service.get_suggestion(chat_id, user.company_id)
    return SuggestionResponse(**suggestion.to_response())
