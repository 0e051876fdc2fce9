from pydantic import BaseModel
from typing import Optional

from irp.schemas.user import UserResponse


# ============================================
# OAuth Schemas
# ============================================

class GoogleAuthRequest(BaseModel):
    """Request for Google sign-in with an ID token (from the Google Sign-In button)."""
    credential: str


class OAuthCodeRequest(BaseModel):
    """Request for Google sign-in with an authorization code."""
    code: str
    state: Optional[str] = None


class OAuthUrlResponse(BaseModel):
    """Response containing the Google authorization URL."""
    authorization_url: str
    state: str


class OAuthTokenResponse(BaseModel):
    """Response after a successful Google sign-in."""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ============================================
# Session Schemas
# ============================================

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ProfileResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"


class AuthCheckResponse(BaseModel):
    authenticated: bool
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
