from fastapi import APIRouter, Depends, Request, Query
from fastapi.responses import RedirectResponse
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional, Dict, Any
from urllib.parse import urlencode
import secrets

from irp.core.database import get_db
from irp.core.config import settings
from irp.core.exceptions import (
    IRPError,
    ExternalIdentityError,
    ProviderNotConfiguredError,
)
from irp.core.logging_config import logger, set_user_id
from irp.core.security import create_access_token
from irp.models.user import User
from irp.models.activity_log import ActivityAction, ActivityResource
from irp.modules.auth.identity import get_current_user
from irp.modules.oauth.google_provider import google_oauth
from irp.modules.oauth.linker import ExternalIdentity, link_external_identity
from irp.schemas.auth import (
    GoogleAuthRequest,
    OAuthCodeRequest,
    OAuthUrlResponse,
    OAuthTokenResponse,
    TokenResponse,
    ProfileResponse,
    AuthCheckResponse,
    MessageResponse,
)
from irp.schemas.user import UserResponse, ProfileUpdate
from irp.services.activity_recorder import activity_recorder

router = APIRouter()


def _require_google_configured() -> None:
    if not google_oauth.is_configured:
        logger.log_auth_event(event="google_oauth", success=False, reason="Google OAuth not configured")
        raise ProviderNotConfiguredError("Google")


async def _complete_sign_in(
    request: Request,
    db: AsyncSession,
    profile: Optional[Dict[str, Any]],
    flow: str
) -> OAuthTokenResponse:
    """Link a Google profile to an account and issue its token"""
    client_ip = request.client.host if request.client else "unknown"

    if not profile:
        logger.log_auth_event(event=flow, success=False, reason="Google authentication failed",
                              client_ip=client_ip)
        raise ExternalIdentityError("Failed to authenticate with Google")

    identity = ExternalIdentity.from_google(profile)
    try:
        user = await link_external_identity(db, identity)
    except IRPError as e:
        logger.log_auth_event(event=flow, success=False, user_email=identity.email,
                              reason=e.message, client_ip=client_ip)
        raise

    request.state.user_id = str(user.id)
    set_user_id(str(user.id))

    activity_recorder.record_request(
        request, user, ActivityAction.LOGIN, ActivityResource.USER,
        "User logged in with Google",
        resource_id=str(user.id),
        details={"method": flow},
    )
    logger.log_auth_event(event=flow, success=True, user_email=user.email, client_ip=client_ip)

    return OAuthTokenResponse(
        access_token=create_access_token(str(user.id)),
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )


# ============================================
# OAuth Endpoints - Google
# ============================================

@router.get("/google/url", response_model=OAuthUrlResponse)
async def get_google_auth_url():
    """Get Google OAuth authorization URL."""
    _require_google_configured()

    state = secrets.token_urlsafe(32)
    return OAuthUrlResponse(
        authorization_url=google_oauth.get_authorization_url(state=state),
        state=state
    )


@router.get("/google")
async def google_login_redirect():
    """Send the browser to Google's consent screen."""
    _require_google_configured()
    return RedirectResponse(google_oauth.get_authorization_url(state=secrets.token_urlsafe(32)))


@router.get("/google/callback")
async def google_browser_callback(
    request: Request,
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db)
):
    """
    Browser redirect target registered with Google.

    Finishes sign-in and bounces to the frontend with the token, or with
    ``error=authentication_failed``.
    """
    callback_url = f"{settings.FRONTEND_URL.rstrip('/')}/auth/callback"

    if error or not code:
        logger.log_auth_event(event="google_callback", success=False, reason=error or "missing code")
        return RedirectResponse(f"{callback_url}?{urlencode({'error': 'authentication_failed'})}")

    try:
        _require_google_configured()
        profile = await google_oauth.authenticate(code)
        result = await _complete_sign_in(request, db, profile, "google_callback")
    except IRPError:
        return RedirectResponse(f"{callback_url}?{urlencode({'error': 'authentication_failed'})}")

    return RedirectResponse(f"{callback_url}?{urlencode({'token': result.access_token})}")


@router.post("/google/callback", response_model=OAuthTokenResponse)
async def google_oauth_callback(
    request: Request,
    oauth_request: OAuthCodeRequest,
    db: AsyncSession = Depends(get_db)
):
    """Handle Google OAuth callback with authorization code."""
    _require_google_configured()

    profile = await google_oauth.authenticate(oauth_request.code)
    return await _complete_sign_in(request, db, profile, "google_oauth")


@router.post("/google/token", response_model=OAuthTokenResponse)
async def google_id_token_login(
    request: Request,
    body: GoogleAuthRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Login with Google ID token from frontend Google Sign-In.

    Used when the frontend renders the Google Sign-In button and
    receives an ID token directly.
    """
    _require_google_configured()

    # Fetches Google's signing certs over blocking HTTP
    profile = await run_in_threadpool(google_oauth.verify_id_token, body.credential)
    return await _complete_sign_in(request, db, profile, "google_id_token")


# ============================================
# Session Endpoints
# ============================================

@router.get("/profile", response_model=ProfileResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Current user with a refreshed token"""
    return ProfileResponse(
        user=UserResponse.model_validate(current_user),
        access_token=create_access_token(str(current_user.id)),
    )


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    request: Request,
    profile_update: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update name, department and phone"""
    changes = profile_update.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)

    activity_recorder.record_request(
        request, current_user, ActivityAction.UPDATE, ActivityResource.USER,
        "User updated profile",
        resource_id=str(current_user.id),
        details={"fields": sorted(changes)},
    )
    return UserResponse.model_validate(current_user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user)
):
    """Tokens are stateless; the client discards its copy"""
    activity_recorder.record_request(
        request, current_user, ActivityAction.LOGOUT, ActivityResource.USER,
        "User logged out",
    )
    logger.log_auth_event(event="logout", success=True, user_email=current_user.email)
    return MessageResponse(message="Logged out successfully")


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(current_user: User = Depends(get_current_user)):
    """Issue a new token for the current account"""
    return TokenResponse(access_token=create_access_token(str(current_user.id)))


@router.get("/check", response_model=AuthCheckResponse)
async def check_auth(current_user: User = Depends(get_current_user)):
    return AuthCheckResponse(
        authenticated=True,
        user=UserResponse.model_validate(current_user),
    )
