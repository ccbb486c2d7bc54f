from fastapi import APIRouter

from .routers import chat, feed, moderation

api_router = APIRouter()

# Include all API routes
api_router.include_router(moderation.router)
api_router.include_router(chat.router)
api_router.include_router(feed.router)
