"""Authentication API endpoints."""

import logging
from typing import Annotated, Any
from urllib.parse import urlencode

from authlib.integrations.base_client import OAuthError
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_user
from src.config import get_settings
from src.database import get_db
from src.models.enums import AuthProvider
from src.models.user import User
from src.schemas.auth import (
    ActionResult,
    AuthResponse,
    MagicLinkRequest,
    UserLogin,
    UserResponse,
)
from src.services import auth as auth_service
from src.services.email import EmailDeliveryError, EmailService, get_email_service
from src.services.oauth import get_oauth_client, get_redirect_uri

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])

REDIRECT_SESSION_KEY = "auth_redirect"


def _auth_response(user: User, redirect_to: str | None) -> AuthResponse:
    access_token = auth_service.create_access_token(user.id, user.email)
    return AuthResponse(
        access_token=access_token,
        user=UserResponse.model_validate(user),
        redirect_to=auth_service.resolve_callback_url(redirect_to),
    )


def _action_response(result: ActionResult, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=result.model_dump(exclude_none=True))


@router.post("/register", response_model=ActionResult, status_code=status.HTTP_201_CREATED)
async def register(
    values: Annotated[Any, Body()],
    db: Annotated[Session, Depends(get_db)],
):
    """Register a new credentials account."""
    result = auth_service.register(db, values)

    if result.ok:
        return _action_response(result, status.HTTP_201_CREATED)
    if result.error == auth_service.INVALID_FIELDS:
        return _action_response(result, status.HTTP_400_BAD_REQUEST)
    return _action_response(result, status.HTTP_409_CONFLICT)


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: UserLogin,
    db: Annotated[Session, Depends(get_db)],
    from_: Annotated[str | None, Query(alias="from")] = None,
):
    """Sign in with email and password."""
    user = auth_service.authenticate_user(db, credentials.email, credentials.password)

    if not user:
        logger.info("Failed credentials sign-in")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=auth_service.INVALID_CREDENTIALS,
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _auth_response(user, from_)


@router.post("/magic-link", response_model=ActionResult, response_model_exclude_none=True)
async def request_magic_link(
    request_data: MagicLinkRequest,
    db: Annotated[Session, Depends(get_db)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
    from_: Annotated[str | None, Query(alias="from")] = None,
):
    """Email a one-time sign-in link."""
    email = auth_service.normalize_email(request_data.email)
    token = auth_service.request_magic_link(db, email)

    params = {"token": token, "email": email}
    if from_:
        params["from"] = auth_service.resolve_callback_url(from_)
    url = f"{settings.app_url.rstrip('/')}{router.prefix}/magic-link/verify?{urlencode(params)}"

    try:
        await email_service.send_magic_link(email, url)
    except EmailDeliveryError:
        return _action_response(
            ActionResult(
                error="Something went wrong.",
                description="Your sign in request failed. Please try again.",
            ),
            status.HTTP_502_BAD_GATEWAY,
        )

    return ActionResult(
        success="Check your email",
        description="We sent you a login link. Be sure to check your spam too.",
    )


@router.get("/magic-link/verify", response_model=AuthResponse)
async def verify_magic_link(
    token: str,
    email: str,
    db: Annotated[Session, Depends(get_db)],
    from_: Annotated[str | None, Query(alias="from")] = None,
):
    """Sign in by redeeming a magic link."""
    user = auth_service.consume_magic_link(db, email, token)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This sign in link is invalid or has expired.",
        )

    return _auth_response(user, from_)


def _get_provider(provider: str):
    auth_provider = AuthProvider.from_name(provider)
    client = get_oauth_client(auth_provider) if auth_provider else None
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown provider: {provider}",
        )
    return auth_provider, client


@router.get("/{provider}/login")
async def oauth_login(
    provider: str,
    request: Request,
    from_: Annotated[str | None, Query(alias="from")] = None,
):
    """Redirect to the OAuth provider's consent page."""
    auth_provider, client = _get_provider(provider)
    request.session[REDIRECT_SESSION_KEY] = auth_service.resolve_callback_url(from_)
    return await client.authorize_redirect(request, get_redirect_uri(auth_provider))


@router.get("/{provider}/callback", response_model=AuthResponse)
async def oauth_callback(
    provider: str,
    request: Request,
    db: Annotated[Session, Depends(get_db)],
):
    """Complete the OAuth flow and sign the user in."""
    auth_provider, client = _get_provider(provider)

    try:
        token = await client.authorize_access_token(request)
        userinfo = token.get("userinfo")
        if not userinfo:
            userinfo = await client.userinfo(token=token)
    except OAuthError as e:
        logger.error(f"OAuth callback error from {provider}: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Your sign in request failed. Please try again.",
        ) from e

    user = auth_service.resolve_oauth_user(db, auth_provider.value, userinfo)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This email is already used by another sign in method.",
        )

    return _auth_response(user, request.session.pop(REDIRECT_SESSION_KEY, None))


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Get current user information."""
    return current_user


@router.post("/logout")
async def logout(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Logout (client should discard token)."""
    request.session.clear()
    return {"message": "Logged out successfully"}
