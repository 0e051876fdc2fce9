"""
Expert endpoints.

Any signed-in user may manage experts; experts carry no owner.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, String, cast
from typing import List, Optional
import csv
import io

from irp.core.database import get_db, json_serializer
from irp.core.exceptions import ExpertNotFoundError, ValidationError
from irp.core.types import is_valid_uuid
from irp.models.user import User
from irp.models.event import Event
from irp.models.expert import Expert
from irp.models.feedback import Feedback
from irp.models.activity_log import ActivityAction, ActivityResource
from irp.modules.auth.identity import get_current_user
from irp.schemas.auth import MessageResponse
from irp.schemas.event import EventResponse
from irp.schemas.expert import ExpertCreate, ExpertUpdate, ExpertResponse, ExpertsResponse
from irp.schemas.feedback import FeedbackResponse
from irp.services.activity_recorder import activity_recorder
from irp.services.dashboard_service import get_top_rated_experts
from irp.utils.pagination import paginate

router = APIRouter()

SORT_FIELDS = {
    "created_at": Expert.created_at,
    "name": Expert.name,
    "company": Expert.company,
    "rating": Expert.rating_average,
}


def _like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _expertise_contains(value: str):
    # JSON list rendered as text: match the element exactly as it is serialized
    element = json_serializer(value.strip())
    return cast(Expert.expertise, String).ilike(f"%{_like_escape(element)}%", escape="\\")


async def _get_active_expert(db: AsyncSession, expert_id: str) -> Expert:
    if not is_valid_uuid(expert_id):
        raise ExpertNotFoundError(expert_id)
    result = await db.execute(
        select(Expert)
        .where(Expert.id == expert_id)
        .execution_options(populate_existing=True)
    )
    expert = result.scalar_one_or_none()
    if expert is None or not expert.is_active:
        raise ExpertNotFoundError(expert_id)
    return expert


@router.get("", response_model=ExpertsResponse)
async def list_experts(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    expertise: Optional[str] = None,
    company: Optional[str] = None,
    sort_by: str = Query("created_at", pattern="^(created_at|name|company|rating)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    conditions = [Expert.is_active == True]
    if search:
        search_term = f"%{search}%"
        conditions.append(or_(
            Expert.name.ilike(search_term),
            Expert.email.ilike(search_term),
            Expert.company.ilike(search_term),
            Expert.position.ilike(search_term),
        ))
    if expertise:
        conditions.append(_expertise_contains(expertise))
    if company:
        conditions.append(Expert.company.ilike(f"%{company}%"))

    column = SORT_FIELDS[sort_by]
    query = select(Expert).where(*conditions).order_by(
        column.desc() if sort_order == "desc" else column.asc()
    )
    count_query = select(func.count(Expert.id)).where(*conditions)
    return await paginate(db, query, page, page_size, count_query=count_query)


@router.get("/stats/top-rated", response_model=List[ExpertResponse])
async def top_rated_experts(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_top_rated_experts(db, limit)


@router.get("/stats/by-expertise", response_model=List[ExpertResponse])
async def experts_by_expertise(
    expertise: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if not expertise:
        raise ValidationError("Expertise parameter is required", field="expertise")

    result = await db.execute(
        select(Expert)
        .where(Expert.is_active == True, _expertise_contains(expertise))
        .order_by(Expert.name.asc())
    )
    return result.scalars().all()


@router.get("/export/csv")
async def export_experts_csv(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Export active experts as CSV"""
    result = await db.execute(
        select(Expert).where(Expert.is_active == True).order_by(Expert.created_at.desc())
    )
    experts = result.scalars().all()

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "Name", "Email", "Phone", "Company", "Position",
        "Expertise", "Rating", "Added By", "Added Date"
    ])
    for expert in experts:
        writer.writerow([
            expert.name,
            expert.email,
            expert.phone,
            expert.company,
            expert.position,
            "; ".join(expert.expertise or []),
            round(expert.rating_average or 0, 2),
            expert.added_by_user.full_name if expert.added_by_user else "Unknown",
            expert.created_at.date().isoformat() if expert.created_at else "",
        ])
    output.seek(0)

    activity_recorder.record_request(
        request, current_user, ActivityAction.EXPORT, ActivityResource.EXPERT,
        f"Exported {len(experts)} experts to CSV",
        details={"count": len(experts)},
    )

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=experts.csv"}
    )


@router.get("/{expert_id}")
async def get_expert(
    expert_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Expert with their events and feedback"""
    expert = await _get_active_expert(db, expert_id)

    events = await db.execute(
        select(Event)
        .where(Event.expert_id == expert_id, Event.is_active == True)
        .order_by(Event.scheduled_date.desc())
    )
    feedback = await db.execute(
        select(Feedback)
        .where(Feedback.expert_id == expert_id, Feedback.is_active == True)
        .order_by(Feedback.created_at.desc())
    )

    return {
        "expert": ExpertResponse.model_validate(expert),
        "events": [EventResponse.model_validate(e) for e in events.scalars().all()],
        "feedback": [FeedbackResponse.model_validate(f) for f in feedback.scalars().all()],
    }


@router.post("", response_model=ExpertResponse, status_code=status.HTTP_201_CREATED)
async def create_expert(
    request: Request,
    expert_data: ExpertCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    expert = Expert(**expert_data.model_dump(), added_by=str(current_user.id))
    db.add(expert)
    await db.commit()

    expert = await _get_active_expert(db, expert.id)

    activity_recorder.record_request(
        request, current_user, ActivityAction.CREATE, ActivityResource.EXPERT,
        f"Added new expert: {expert.name}",
        resource_id=str(expert.id),
        details={"expert_name": expert.name, "company": expert.company},
    )
    return expert


@router.put("/{expert_id}", response_model=ExpertResponse)
async def update_expert(
    request: Request,
    expert_id: str,
    expert_update: ExpertUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    expert = await _get_active_expert(db, expert_id)

    changes = expert_update.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in ("address", "social_links"):
            value = {}
        setattr(expert, field, value)

    await db.commit()
    expert = await _get_active_expert(db, expert_id)

    activity_recorder.record_request(
        request, current_user, ActivityAction.UPDATE, ActivityResource.EXPERT,
        f"Updated expert: {expert.name}",
        resource_id=str(expert.id),
        details={"expert_name": expert.name, "fields": sorted(changes)},
    )
    return expert


@router.delete("/{expert_id}", response_model=MessageResponse)
async def delete_expert(
    request: Request,
    expert_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete"""
    expert = await _get_active_expert(db, expert_id)
    expert.is_active = False
    await db.commit()

    activity_recorder.record_request(
        request, current_user, ActivityAction.DELETE, ActivityResource.EXPERT,
        f"Deleted expert: {expert.name}",
        resource_id=str(expert.id),
        details={"expert_name": expert.name, "company": expert.company},
    )
    return MessageResponse(message="Expert deleted successfully")
