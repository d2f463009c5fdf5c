from fastapi import APIRouter

from src.api.v1.endpoints import chat, handlers, health

v1_router = APIRouter()
v1_router.include_router(health.router, tags=["health"])
v1_router.include_router(chat.router, tags=["chat"])
v1_router.include_router(handlers.router, tags=["handlers"])
