from irp.schemas.user import UserResponse, UserBrief
from irp.schemas.auth import OAuthTokenResponse
from irp.schemas.expert import ExpertResponse
from irp.schemas.event import EventResponse
from irp.schemas.feedback import FeedbackResponse
from irp.schemas.activity import ActivityResponse

__all__ = [
    "UserResponse",
    "UserBrief",
    "OAuthTokenResponse",
    "ExpertResponse",
    "EventResponse",
    "FeedbackResponse",
    "ActivityResponse",
]
