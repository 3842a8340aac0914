"""Main API router aggregating all v1 routes."""

from fastapi import APIRouter

from app.api.v1 import admin, chat, models, users

api_router = APIRouter()

api_router.include_router(users.router)
api_router.include_router(models.router)
api_router.include_router(chat.router)
api_router.include_router(admin.router)
