"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from src.realtime.events import EventBus
from src.schemas.auth import UserContext
from src.services.ai_service import AIService
from src.services.call_service import CallService
from src.services.chat_service import ChatService
from src.services.notification_service import NotificationService


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Extract and validate the current user from the Authorization header.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated agent, scoped to their company.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired.
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Extract the token from "Bearer <token>" format
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_jwt(parts[1])
        return payload.to_user_context()

    except AuthError as e:
        if e.code == AuthErrorCode.TOKEN_EXPIRED:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


# Realtime components live on app.state; they are created once in the lifespan.


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_ai_service(request: Request) -> AIService:
    return request.app.state.ai_service


def get_notification_service(request: Request) -> NotificationService:
    return NotificationService(request.app.state.dispatcher)


def get_call_service(request: Request) -> CallService:
    state = request.app.state
    return CallService(state.ai_service, state.dispatcher, state.task_runner, state.event_bus)


def get_chat_service(request: Request) -> ChatService:
    state = request.app.state
    return ChatService(state.ai_service, state.dispatcher, state.task_runner, state.event_bus)


EventBusDep = Annotated[EventBus, Depends(get_event_bus)]
AIServiceDep = Annotated[AIService, Depends(get_ai_service)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]
CallServiceDep = Annotated[CallService, Depends(get_call_service)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
