"""V1 API router aggregation."""
from fastapi import APIRouter

from betre.api.v1.endpoints import admin, auth, moderation, notifications, posts, users

api_router = APIRouter(prefix="/v1")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(posts.router)
api_router.include_router(notifications.router)
api_router.include_router(moderation.router)
api_router.include_router(admin.router)
