"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.error_handler import error_handler_middleware, request_validation_exception_handler
from src.api.middleware.latency_logging import latency_logging_middleware
from src.api.routes import ai, calls, health, notifications, realtime, webhooks, whatsapp
from src.core.config import get_settings
from src.core.task_runner import BackgroundTaskRunner, TaskRunnerConfig
from src.realtime.dispatcher import EventDispatcher
from src.realtime.events import (
    CALL_COMPLETED,
    WHATSAPP_MESSAGE_RECEIVED,
    WHATSAPP_MESSAGE_STATUS,
    EventBus,
)
from src.realtime.gateway import RealtimeGateway
from src.realtime.registry import InMemoryRoomRegistry
from src.services.ai_service import AIService
from src.services.chat_service import ChatService
from src.services.notification_service import NotificationService
from src.services.suggestion_cache import init_suggestion_cache, shutdown_suggestion_cache

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def subscribe_domain_handlers(app: FastAPI) -> list[int]:
    """Wire webhook and call events on the domain bus to their services.

    Returns:
        list[int]: Subscription tokens, released on shutdown.
    """
    state = app.state
    notification_service = NotificationService(state.dispatcher)
    chat_service = ChatService(
        state.ai_service,
        state.dispatcher,
        state.task_runner,
        state.event_bus,
        notifications=notification_service,
    )
    bus: EventBus = state.event_bus
    return [
        bus.subscribe(WHATSAPP_MESSAGE_RECEIVED, chat_service.handle_incoming_message),
        bus.subscribe(WHATSAPP_MESSAGE_STATUS, chat_service.update_message_status),
        bus.subscribe(CALL_COMPLETED, notification_service.on_call_completed),
    ]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the realtime components once per process and stores them on
    ``app.state``; routes reach them through ``src.api.deps``.
    """
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)

    registry = InMemoryRoomRegistry()
    dispatcher = EventDispatcher(registry)
    app.state.registry = registry
    app.state.dispatcher = dispatcher
    app.state.gateway = RealtimeGateway(registry, dispatcher)
    app.state.event_bus = EventBus()
    app.state.task_runner = BackgroundTaskRunner(TaskRunnerConfig.from_settings())

    app.state.suggestion_cache = await init_suggestion_cache()
    logger.info("Suggestion cache initialized")

    app.state.ai_service = AIService(cache=app.state.suggestion_cache, settings=settings)
    logger.info(
        "Suggestion provider: %s",
        settings.openai_model if app.state.ai_service.provider_configured else "rule-based fallback",
    )

    tokens = subscribe_domain_handlers(app)

    yield
    # Shutdown
    for token in tokens:
        app.state.event_bus.unsubscribe(token)
    await app.state.task_runner.shutdown()
    logger.info("Background task runner shutdown")
    await shutdown_suggestion_cache()
    logger.info("Suggestion cache shutdown")
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Sales Copilot API",
        description="Real-time AI sales suggestions for phone calls and WhatsApp chats",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add error handler middleware (outermost - catches all errors)
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    # Add latency logging middleware (tracks request timing)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    # Body validation failures are reported as 400
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    # Health routes and the socket endpoint live at root level
    app.include_router(health.router)
    app.include_router(realtime.router)

    api_v1_router = APIRouter(prefix="/api/v1")
    api_v1_router.include_router(ai.router)
    api_v1_router.include_router(calls.router)
    api_v1_router.include_router(whatsapp.router)
    api_v1_router.include_router(notifications.router)

    # Webhook routes (public)
    api_v1_router.include_router(webhooks.router)

    app.include_router(api_v1_router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
