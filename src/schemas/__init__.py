"""Pydantic schemas for API requests and responses."""

from src.schemas.auth import (
    ActionResult,
    AuthResponse,
    MagicLinkRequest,
    UserLogin,
    UserRegister,
    UserResponse,
)

__all__ = [
    "UserRegister",
    "UserLogin",
    "MagicLinkRequest",
    "ActionResult",
    "AuthResponse",
    "UserResponse",
]
