"""
Custom Exceptions for the IRP API
=================================

Every error the API reports on purpose is an ``IRPError``. Each subclass
carries the HTTP status it maps to, so route handlers raise and the single
exception handler in ``irp.main`` renders.

Usage:
    from irp.core.exceptions import EventNotFoundError, EventCapacityError

    if not event:
        raise EventNotFoundError(event_id)
"""

from typing import Optional, Any, Dict


class IRPError(Exception):
    """Base exception for all IRP errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication Errors (401)
# ============================================

class AuthenticationError(IRPError):
    """Caller could not be authenticated"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", code: str = "AUTH_FAILED"):
        super().__init__(message, code=code)


class MissingCredentialError(AuthenticationError):
    """No bearer token on the request"""

    def __init__(self):
        super().__init__("Access token required", code="MISSING_CREDENTIAL")


class InvalidCredentialError(AuthenticationError):
    """Token is malformed or its signature does not verify"""

    def __init__(self):
        super().__init__("Invalid token", code="INVALID_TOKEN")


class ExpiredCredentialError(AuthenticationError):
    """Token signature is fine but its validity window has passed"""

    def __init__(self):
        super().__init__("Token expired", code="TOKEN_EXPIRED")


class UnauthorizedAccountError(AuthenticationError):
    """Token is valid but the account is gone or deactivated"""

    def __init__(self):
        super().__init__("Invalid or inactive user", code="UNAUTHORIZED_ACCOUNT")


class UnauthenticatedError(AuthenticationError):
    """An authorization guard ran without a resolved account"""

    def __init__(self):
        super().__init__("Authentication required", code="UNAUTHENTICATED")


class ExternalIdentityError(AuthenticationError):
    """Google sign-in could not be turned into an account"""

    def __init__(self, message: str = "External authentication failed"):
        super().__init__(message, code="EXTERNAL_AUTH_FAILED")


# ============================================
# Authorization Errors (403)
# ============================================

class AuthorizationError(IRPError):
    """Caller is known but not allowed to do this"""

    status_code = 403

    def __init__(self, message: str = "Not authorized", code: str = "NOT_AUTHORIZED"):
        super().__init__(message, code=code)


class InsufficientRoleError(AuthorizationError):
    """Account role is not in the operation's allow-list"""

    def __init__(self, role: Optional[str] = None):
        super().__init__("Insufficient permissions", code="INSUFFICIENT_ROLE")
        if role:
            self.details["role"] = role


class NotResourceOwnerError(AuthorizationError):
    """Non-admin account acting on a resource it does not own"""

    def __init__(self, resource_type: Optional[str] = None):
        super().__init__("You can only access your own resources", code="NOT_RESOURCE_OWNER")
        if resource_type:
            self.details["resource_type"] = resource_type


# ============================================
# Infrastructure Errors (500)
# ============================================

class VerifierFaultError(IRPError):
    """Account lookup failed while verifying a token"""

    status_code = 500

    def __init__(self):
        super().__init__("Authentication error", code="AUTH_VERIFIER_FAULT")


# ============================================
# Provider Errors (503)
# ============================================

class ProviderNotConfiguredError(IRPError):
    """Google sign-in requested but no client credentials are configured"""

    status_code = 503

    def __init__(self, provider: str = "Google"):
        super().__init__(f"{provider} OAuth is not configured", code="PROVIDER_NOT_CONFIGURED")


# ============================================
# Resource Errors (404)
# ============================================

class ResourceNotFoundError(IRPError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: str):
        super().__init__("User", user_id)


class ExpertNotFoundError(ResourceNotFoundError):
    def __init__(self, expert_id: str):
        super().__init__("Expert", expert_id)


class EventNotFoundError(ResourceNotFoundError):
    def __init__(self, event_id: str):
        super().__init__("Event", event_id)


class FeedbackNotFoundError(ResourceNotFoundError):
    def __init__(self, feedback_id: str):
        super().__init__("Feedback", feedback_id)


class ActivityNotFoundError(ResourceNotFoundError):
    def __init__(self, activity_id: str):
        super().__init__("Activity", activity_id)


# ============================================
# Validation / Business Rule Errors (400)
# ============================================

class ValidationError(IRPError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InvalidReferenceError(ValidationError):
    """Request points at an expert/event/user that is missing or inactive"""

    def __init__(self, field: str, message: str):
        super().__init__(message, field=field)
        self.code = "INVALID_REFERENCE"


class EventCapacityError(ValidationError):
    """Event is already at full capacity"""

    def __init__(self, capacity: int):
        super().__init__("Event is at full capacity")
        self.code = "EVENT_FULL"
        self.details["capacity"] = capacity


class RegistrationError(ValidationError):
    """Registration state change is not allowed"""

    def __init__(self, message: str):
        super().__init__(message)
        self.code = "REGISTRATION_ERROR"


class DuplicateFeedbackError(ValidationError):
    """Attendee already left feedback for this event"""

    def __init__(self, event_id: str):
        super().__init__("Feedback already submitted for this event")
        self.code = "DUPLICATE_FEEDBACK"
        self.details["event_id"] = str(event_id)


class DuplicateEmailError(ValidationError):
    """Another account already uses this email"""

    def __init__(self, email: str):
        super().__init__(f"Email '{email}' is already registered", field="email")
        self.code = "DUPLICATE_EMAIL"


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: IRPError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }
