"""
Feedback endpoints.

Each attendee leaves at most one active feedback per event. The attendee
owns their feedback; every change to a rating is reflected in the
expert's running average.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import List, Optional

from irp.core.database import get_db
from irp.core.exceptions import (
    FeedbackNotFoundError,
    InvalidReferenceError,
    DuplicateFeedbackError,
)
from irp.core.types import is_valid_uuid
from irp.models.user import User
from irp.models.event import Event
from irp.models.expert import Expert
from irp.models.feedback import Feedback
from irp.models.activity_log import ActivityAction, ActivityResource
from irp.modules.auth.dependencies import authorize_owner
from irp.modules.auth.identity import get_current_user
from irp.schemas.auth import MessageResponse
from irp.schemas.feedback import (
    FeedbackCreate,
    FeedbackUpdate,
    FeedbackResponse,
    FeedbackListResponse,
    FeedbackStats,
    ExpertFeedbackResponse,
)
from irp.services.activity_recorder import activity_recorder
from irp.services.feedback_service import (
    get_feedback_statistics,
    get_expert_rating_summary,
    recalculate_expert_rating,
)
from irp.utils.pagination import paginate

router = APIRouter()

SORT_FIELDS = {
    "created_at": Feedback.created_at,
    "rating": Feedback.rating,
}


async def _get_active_feedback(db: AsyncSession, feedback_id: str) -> Feedback:
    if not is_valid_uuid(feedback_id):
        raise FeedbackNotFoundError(feedback_id)
    result = await db.execute(
        select(Feedback)
        .where(Feedback.id == feedback_id)
        .execution_options(populate_existing=True)
    )
    feedback = result.scalar_one_or_none()
    if feedback is None or not feedback.is_active:
        raise FeedbackNotFoundError(feedback_id)
    return feedback


async def _list_active(db: AsyncSession, *conditions) -> List[Feedback]:
    result = await db.execute(
        select(Feedback)
        .where(Feedback.is_active == True, *conditions)
        .order_by(Feedback.created_at.desc())
    )
    return list(result.scalars().all())


@router.get("", response_model=FeedbackListResponse)
async def list_feedback(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    event_id: Optional[str] = None,
    expert_id: Optional[str] = None,
    rating: Optional[int] = Query(None, ge=1, le=5),
    sort_by: str = Query("created_at", pattern="^(created_at|rating)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    conditions = [Feedback.is_active == True]
    if event_id:
        conditions.append(Feedback.event_id == event_id)
    if expert_id:
        conditions.append(Feedback.expert_id == expert_id)
    if rating:
        conditions.append(Feedback.rating == rating)

    column = SORT_FIELDS[sort_by]
    query = select(Feedback).where(*conditions).order_by(
        column.desc() if sort_order == "desc" else column.asc()
    )
    count_query = select(func.count(Feedback.id)).where(*conditions)
    return await paginate(db, query, page, page_size, count_query=count_query)


@router.get("/stats/overview", response_model=FeedbackStats)
async def feedback_overview(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_feedback_statistics(db)


@router.get("/stats/by-expert/{expert_id}", response_model=ExpertFeedbackResponse)
async def feedback_by_expert(
    expert_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {
        "feedback": await _list_active(db, Feedback.expert_id == expert_id),
        "average_rating": await get_expert_rating_summary(db, expert_id),
    }


@router.get("/stats/by-event/{event_id}", response_model=List[FeedbackResponse])
async def feedback_by_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await _list_active(db, Feedback.event_id == event_id)


@router.get("/{feedback_id}", response_model=FeedbackResponse)
async def get_feedback(
    feedback_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await _get_active_feedback(db, feedback_id)


@router.post("", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def create_feedback(
    request: Request,
    feedback_data: FeedbackCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Submit feedback as the current user"""
    event = await db.get(Event, feedback_data.event_id) if is_valid_uuid(feedback_data.event_id) else None
    if event is None or not event.is_active:
        raise InvalidReferenceError("event_id", "Invalid event")

    expert = await db.get(Expert, feedback_data.expert_id) if is_valid_uuid(feedback_data.expert_id) else None
    if expert is None or not expert.is_active:
        raise InvalidReferenceError("expert_id", "Invalid expert")

    existing = await db.scalar(
        select(Feedback.id).where(
            Feedback.event_id == feedback_data.event_id,
            Feedback.attendee_id == str(current_user.id),
            Feedback.is_active == True,
        )
    )
    if existing:
        raise DuplicateFeedbackError(feedback_data.event_id)

    feedback = Feedback(
        **feedback_data.model_dump(exclude={"aspects"}),
        aspects=feedback_data.aspects.model_dump(exclude_none=True) if feedback_data.aspects else None,
        attendee_id=str(current_user.id),
    )
    db.add(feedback)
    expert.update_rating(feedback_data.rating)
    await db.commit()

    feedback = await _get_active_feedback(db, feedback.id)

    activity_recorder.record_request(
        request, current_user, ActivityAction.CREATE, ActivityResource.FEEDBACK,
        f"Submitted feedback for event: {event.title}",
        resource_id=str(feedback.id),
        details={
            "event_title": event.title,
            "expert_name": expert.name,
            "rating": feedback.rating,
            "is_anonymous": feedback.is_anonymous,
        },
    )
    return feedback


@router.put("/{feedback_id}", response_model=FeedbackResponse)
async def update_feedback(
    request: Request,
    feedback_id: str,
    feedback_update: FeedbackUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    feedback = await _get_active_feedback(db, feedback_id)
    authorize_owner(current_user, "feedback", feedback.attendee_id)

    old_rating = feedback.rating
    changes = feedback_update.model_dump(exclude_unset=True, exclude={"aspects"})
    for field, value in changes.items():
        if value is None and field in ("rating", "would_recommend", "is_anonymous"):
            continue
        setattr(feedback, field, value)
    if "aspects" in feedback_update.model_fields_set:
        feedback.aspects = (
            feedback_update.aspects.model_dump(exclude_none=True) if feedback_update.aspects else None
        )

    if feedback.rating != old_rating:
        await db.flush()
        await recalculate_expert_rating(db, feedback.expert_id)

    await db.commit()
    feedback = await _get_active_feedback(db, feedback_id)

    activity_recorder.record_request(
        request, current_user, ActivityAction.UPDATE, ActivityResource.FEEDBACK,
        f"Updated feedback for event: {feedback.event.title if feedback.event else feedback.event_id}",
        resource_id=str(feedback.id),
        details={"rating": feedback.rating, "old_rating": old_rating},
    )
    return feedback


@router.delete("/{feedback_id}", response_model=MessageResponse)
async def delete_feedback(
    request: Request,
    feedback_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete and drop the rating from the expert's average"""
    feedback = await _get_active_feedback(db, feedback_id)
    authorize_owner(current_user, "feedback", feedback.attendee_id)

    feedback.is_active = False
    await db.flush()
    await recalculate_expert_rating(db, feedback.expert_id)
    await db.commit()

    activity_recorder.record_request(
        request, current_user, ActivityAction.DELETE, ActivityResource.FEEDBACK,
        f"Deleted feedback for event: {feedback.event.title if feedback.event else feedback.event_id}",
        resource_id=str(feedback.id),
        details={"rating": feedback.rating, "expert_id": feedback.expert_id},
    )
    return MessageResponse(message="Feedback deleted successfully")
