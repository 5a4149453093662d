"""
Authentication endpoints (v1).

Provides signup, login, and profile endpoints with consistent
response patterns and comprehensive OpenAPI documentation.
"""

from __future__ import annotations

from fastapi import APIRouter

from api.dependencies import DB
from api.middleware.auth import CurrentUser
from api.middleware.exception_handlers import AppException, AuthenticationError
from api.services.auth_service import AuthService, UserAlreadyExistsError
from models.error_models import ErrorCode
from models.schemas.auth import (
    LoginRequest,
    LoginResponse,
    SignupRequest,
    SignupResponse,
    UserInfo,
)
from utils.logger import logger

router = APIRouter()


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=201,
    summary="Sign up",
    description="Create a new user account. Log in afterwards to receive a token.",
    responses={
        201: {
            "description": "Registration successful",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "message": "User registered successfully",
                    }
                }
            },
        },
        409: {"description": "Email already registered"},
        422: {"description": "Missing or invalid fields"},
    },
)
async def signup(body: SignupRequest, db: DB) -> SignupResponse:
    """Register a new user."""
    auth = AuthService(db)
    try:
        user = await auth.register(body.name, body.email, body.password, body.mobile)
    except UserAlreadyExistsError as exc:
        raise AppException(
            code=ErrorCode.RESOURCE_ALREADY_EXISTS,
            message=str(exc),
        ) from exc

    logger.info("User registered", user_id=user["id"])
    return SignupResponse(success=True, message="User registered successfully")


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login",
    description="Authenticate with email and password to receive an access token.",
    responses={
        200: {
            "description": "Login successful",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                        "token_type": "bearer",
                        "expires_in": 604800,
                        "user": {
                            "id": "550e8400-e29b-41d4-a716-446655440000",
                            "name": "Jane Doe",
                            "email": "jane@example.com",
                            "mobile": None,
                        },
                    }
                }
            },
        },
        401: {"description": "Invalid credentials"},
    },
)
async def login(body: LoginRequest, db: DB) -> LoginResponse:
    """Login and issue an access token."""
    auth = AuthService(db)
    try:
        result = await auth.login(body.email, body.password)
    except ValueError as exc:
        raise AuthenticationError(
            message=str(exc),
            code=ErrorCode.AUTH_INVALID_CREDENTIALS,
        ) from exc

    return LoginResponse(
        token=result["token"],
        expires_in=result["expires_in"],
        user=UserInfo(**result["user"]),
    )


@router.get(
    "/profile",
    response_model=UserInfo,
    summary="Get current user",
    description="Get information about the currently authenticated user.",
    responses={
        200: {
            "description": "User information",
            "content": {
                "application/json": {
                    "example": {
                        "id": "550e8400-e29b-41d4-a716-446655440000",
                        "name": "Jane Doe",
                        "email": "jane@example.com",
                        "mobile": "+1 555 0100",
                    }
                }
            },
        },
        401: {"description": "Not authenticated"},
    },
)
async def profile(user: CurrentUser) -> UserInfo:
    """Get current user information."""
    return user
