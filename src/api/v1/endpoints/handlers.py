"""Handler introspection endpoint -- lists registered handlers and plugins."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from src.api.v1.schemas.handler import HandlerInfo, HandlersListResponse, PluginInfo
from src.dependencies import get_handler_registry
from src.handlers.registry import HandlerRegistry

router = APIRouter()


@router.get(
    "/chat/handlers",
    response_model=HandlersListResponse,
    summary="List intent handlers",
    description="Return every registered handler in dispatch order, and every detection plugin.",
)
async def list_handlers(
    registry: HandlerRegistry = Depends(get_handler_registry),
) -> HandlersListResponse:
    handlers = [
        HandlerInfo(**h.metadata.model_dump())
        for h in registry.get_all_handlers()
    ]
    plugins = [PluginInfo(**p.metadata.model_dump()) for p in registry.get_plugins()]
    return HandlersListResponse(handlers=handlers, plugins=plugins, total=len(handlers))
