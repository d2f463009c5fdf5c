from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.v1.middleware.error_handler import ErrorHandlerMiddleware
from src.api.v1.middleware.logging_middleware import LoggingMiddleware
from src.api.v1.router import v1_router
from src.config import settings
from src.core.intent.detector import IntentDetector
from src.core.notifications import LoggingInvitationService, LoggingSessionNotifier
from src.core.pending.pre_session import PreSessionLog
from src.core.pending.store import PendingStateStore
from src.core.responses import ResponseGenerator
from src.core.router import ChatRouter
from src.core.sessions.search import NullSessionSearch
from src.core.sessions.store import InMemorySessionStore
from src.core.witnessing.responder import WitnessingResponder
from src.dependencies import get_llm_client
from src.handlers.context import RouterServices
from src.handlers.registry import HandlerRegistry
from src.utils.logging import get_logger, setup_logging
from src.utils.tasks import drain_background_tasks


def build_chat_router() -> ChatRouter:
    """Wire the router with in-memory stores and the configured models."""
    retention = timedelta(hours=settings.state_retention_hours)
    llm = get_llm_client()
    fast_llm = get_llm_client(fast=True)

    pre_session_log = PreSessionLog(retention=retention)
    services = RouterServices(
        session_store=InMemorySessionStore(),
        pending_store=PendingStateStore(ttl=retention),
        pre_session_log=pre_session_log,
        responder=WitnessingResponder(
            llm,
            pre_session_log,
            max_context_tokens=settings.context_budget_tokens,
            output_reservation=settings.output_reservation_tokens,
        ),
        response_generator=ResponseGenerator(llm),
        invitations=LoggingInvitationService(),
        notifier=LoggingSessionNotifier(),
    )

    registry = HandlerRegistry()
    detector = IntentDetector(
        fast_llm,
        registry,
        max_tokens=settings.classification_max_tokens,
    )
    return ChatRouter(
        registry,
        detector,
        services,
        session_search=NullSessionSearch(),
        recent_sessions_limit=settings.recent_sessions_limit,
        context_sessions_limit=settings.context_sessions_limit,
        extension_dirs=[settings.handlers_user_dir],
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(debug=settings.debug)
    logger = get_logger("startup")
    logger.info("Starting Chat Intent Router", version="0.1.0")

    chat_router = build_chat_router()
    chat_router.initialize()
    app.state.chat_router = chat_router
    logger.info(
        "Chat router initialized",
        handler_count=len(chat_router.registry),
        llm_configured=chat_router.detector.llm is not None,
    )

    yield

    await drain_background_tasks()
    logger.info("Shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Chat Intent Router",
        description="Intent detection and handler dispatch for the relationship chat",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Middleware is applied in reverse order -- outermost first.
    # 1. CORS (outermost -- handles preflight before anything else)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # 2. Error handler (catches exceptions from inner layers)
    app.add_middleware(ErrorHandlerMiddleware)
    # 3. Request/response logger (innermost -- logs timing around handler)
    app.add_middleware(LoggingMiddleware)

    app.include_router(v1_router, prefix="/api/v1")

    return app


app = create_app()
