"""
API v1 Router - Aggregates all v1 endpoints.

This module provides:
- Centralized v1 route registration
- Consistent prefix handling

Usage in main.py:
    from api.routes.v1 import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")
"""

from fastapi import APIRouter

from api.routes.v1 import auth, chat, chats, health

# Create the v1 API router
router = APIRouter()

# Health endpoints (no auth required)
router.include_router(
    health.router,
    tags=["Health"],
)

# Authentication endpoints
router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

# Completions
router.include_router(
    chat.router,
    tags=["Chat"],
)

# Conversation history
router.include_router(
    chats.router,
    prefix="/chats",
    tags=["Chats"],
)

__all__ = ["router"]
