"""Response schemas for the handler introspection endpoint."""

from pydantic import BaseModel


class HandlerInfo(BaseModel):
    """Public-facing description of a registered intent handler."""

    id: str
    name: str
    supported_intents: list[str]
    priority: int
    description: str
    version: str


class PluginInfo(BaseModel):
    id: str
    name: str
    detectable_intents: list[str]
    version: str


class HandlersListResponse(BaseModel):
    """Handlers in dispatch order plus the registered detection plugins."""

    handlers: list[HandlerInfo]
    plugins: list[PluginInfo]
    total: int
