"""Chat endpoints -- route a message, read the chat context, cancel a pending flow."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.api.v1.schemas.chat import (
    CancelResponse,
    ChatContextResponse,
    PendingCreationInfo,
    SendMessageRequest,
    SendMessageResponse,
)
from src.api.v1.schemas.common import ErrorResponse
from src.core.router import ChatRouter
from src.dependencies import get_chat_router, get_user_id, get_user_name
from src.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/chat/message",
    response_model=SendMessageResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Caller not identified"},
    },
    summary="Send a chat message",
    description=(
        "Detect the intent of the message and dispatch it to the matching "
        "handler.  The response carries the assistant reply, or a "
        "pass-through when the active session's pipeline should answer."
    ),
)
async def send_message(
    request: SendMessageRequest,
    user_id: str = Depends(get_user_id),
    user_name: str | None = Depends(get_user_name),
    chat_router: ChatRouter = Depends(get_chat_router),
) -> SendMessageResponse:
    request_context = {"action_id": request.action_id} if request.action_id else {}
    result = await chat_router.process_message(
        user_id,
        request.content,
        current_session_id=request.current_session_id,
        user_name=user_name,
        request_context=request_context,
    )
    return SendMessageResponse(**result.model_dump())


@router.get(
    "/chat/context",
    response_model=ChatContextResponse,
    summary="Get chat context",
    description="Recent open sessions and whether a session creation is in progress.",
)
async def get_context(
    user_id: str = Depends(get_user_id),
    chat_router: ChatRouter = Depends(get_chat_router),
) -> ChatContextResponse:
    context = await chat_router.get_chat_context(user_id)
    pending = context.pending_creation
    return ChatContextResponse(
        sessions=context.sessions,
        has_pending_creation=context.has_pending_creation,
        pending_creation=(
            PendingCreationInfo(step=pending.step.value, person_name=pending.person_name)
            if pending is not None
            else None
        ),
    )


@router.post(
    "/chat/cancel",
    response_model=CancelResponse,
    summary="Cancel pending flows",
    description="Abandon any in-progress multi-turn flow, such as session creation.",
)
async def cancel_pending(
    user_id: str = Depends(get_user_id),
    chat_router: ChatRouter = Depends(get_chat_router),
) -> CancelResponse:
    cancelled = await chat_router.cancel_pending(user_id)
    logger.info("chat_cancel_requested", user_id=user_id, cancelled=cancelled)
    return CancelResponse(cancelled=cancelled)
