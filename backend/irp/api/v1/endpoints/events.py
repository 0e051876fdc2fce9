"""
Event endpoints.

The coordinator_id of an event is its owner: coordinators may only create
events for themselves and only change events they coordinate. Admins are
unrestricted.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from datetime import datetime
from typing import List, Optional

from irp.core.database import get_db
from irp.core.exceptions import (
    EventNotFoundError,
    InvalidReferenceError,
    RegistrationError,
    ValidationError,
)
from irp.core.types import is_valid_uuid
from irp.models.user import User
from irp.models.event import Event, EventType, EventStatus
from irp.models.expert import Expert
from irp.models.activity_log import ActivityAction, ActivityResource
from irp.modules.auth.dependencies import authorize_owner
from irp.modules.auth.identity import get_current_user
from irp.schemas.auth import MessageResponse
from irp.schemas.event import (
    EventCreate,
    EventUpdate,
    EventStatusUpdate,
    EventResponse,
    EventsResponse,
    RegistrationResponse,
)
from irp.services.activity_recorder import activity_recorder
from irp.services.dashboard_service import get_upcoming_events
from irp.utils.pagination import paginate

router = APIRouter()

SORT_FIELDS = {
    "scheduled_date": Event.scheduled_date,
    "created_at": Event.created_at,
    "title": Event.title,
}


async def _get_active_event(db: AsyncSession, event_id: str) -> Event:
    if not is_valid_uuid(event_id):
        raise EventNotFoundError(event_id)
    result = await db.execute(
        select(Event)
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()
    if event is None or not event.is_active:
        raise EventNotFoundError(event_id)
    return event


async def _require_active_expert(db: AsyncSession, expert_id: str) -> Expert:
    expert = await db.get(Expert, expert_id) if is_valid_uuid(expert_id) else None
    if expert is None or not expert.is_active:
        raise InvalidReferenceError("expert_id", "Invalid expert selected")
    return expert


async def _require_active_coordinator(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id) if is_valid_uuid(user_id) else None
    if user is None or not user.is_active:
        raise InvalidReferenceError("coordinator_id", "Invalid coordinator selected")
    return user


@router.get("", response_model=EventsResponse)
async def list_events(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    event_type: Optional[EventType] = Query(None, alias="type"),
    event_status: Optional[EventStatus] = Query(None, alias="status"),
    expert_id: Optional[str] = None,
    coordinator_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    sort_by: str = Query("scheduled_date", pattern="^(scheduled_date|created_at|title)$"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    conditions = [Event.is_active == True]
    if search:
        search_term = f"%{search}%"
        conditions.append(or_(
            Event.title.ilike(search_term),
            Event.description.ilike(search_term),
            Event.venue.ilike(search_term),
        ))
    if event_type:
        conditions.append(Event.type == event_type)
    if event_status:
        conditions.append(Event.status == event_status)
    if expert_id:
        conditions.append(Event.expert_id == expert_id)
    if coordinator_id:
        conditions.append(Event.coordinator_id == coordinator_id)
    if start_date:
        conditions.append(Event.scheduled_date >= start_date)
    if end_date:
        conditions.append(Event.scheduled_date <= end_date)

    column = SORT_FIELDS[sort_by]
    query = select(Event).where(*conditions).order_by(
        column.desc() if sort_order == "desc" else column.asc()
    )
    count_query = select(func.count(Event.id)).where(*conditions)
    return await paginate(db, query, page, page_size, count_query=count_query)


@router.get("/stats/upcoming", response_model=List[EventResponse])
async def upcoming_events(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_upcoming_events(db, limit)


@router.get("/stats/by-coordinator/{coordinator_id}", response_model=List[EventResponse])
async def events_by_coordinator(
    coordinator_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Event)
        .where(Event.coordinator_id == coordinator_id, Event.is_active == True)
        .order_by(Event.scheduled_date.desc())
    )
    return result.scalars().all()


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await _get_active_event(db, event_id)


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    request: Request,
    event_data: EventCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Schedule an event. coordinator_id defaults to the caller."""
    authorize_owner(current_user, "event", event_data.coordinator_id)

    coordinator_id = event_data.coordinator_id or str(current_user.id)
    expert = await _require_active_expert(db, event_data.expert_id)
    await _require_active_coordinator(db, coordinator_id)

    event = Event(
        **event_data.model_dump(exclude={"coordinator_id"}),
        coordinator_id=coordinator_id,
        created_by=str(current_user.id),
    )
    db.add(event)
    await db.commit()

    event = await _get_active_event(db, event.id)

    activity_recorder.record_request(
        request, current_user, ActivityAction.CREATE, ActivityResource.EVENT,
        f"Created new event: {event.title}",
        resource_id=str(event.id),
        details={
            "event_title": event.title,
            "expert_name": expert.name,
            "scheduled_date": event.scheduled_date,
            "venue": event.venue,
        },
    )
    return event


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    request: Request,
    event_id: str,
    event_update: EventUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    event = await _get_active_event(db, event_id)
    authorize_owner(current_user, "event", event.coordinator_id)

    changes = event_update.model_dump(exclude_unset=True)
    if "expert_id" in changes:
        await _require_active_expert(db, changes["expert_id"])
    if "capacity" in changes and changes["capacity"] < event.registered_count:
        raise ValidationError("Capacity cannot be below current registrations", field="capacity")

    for field, value in changes.items():
        if value is None and field in ("requirements", "materials"):
            value = []
        setattr(event, field, value)

    await db.commit()
    event = await _get_active_event(db, event_id)

    activity_recorder.record_request(
        request, current_user, ActivityAction.UPDATE, ActivityResource.EVENT,
        f"Updated event: {event.title}",
        resource_id=str(event.id),
        details={"event_title": event.title, "fields": sorted(changes)},
    )
    return event


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    request: Request,
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete"""
    event = await _get_active_event(db, event_id)
    authorize_owner(current_user, "event", event.coordinator_id)

    event.is_active = False
    await db.commit()

    activity_recorder.record_request(
        request, current_user, ActivityAction.DELETE, ActivityResource.EVENT,
        f"Deleted event: {event.title}",
        resource_id=str(event.id),
        details={"event_title": event.title, "scheduled_date": event.scheduled_date},
    )
    return MessageResponse(message="Event deleted successfully")


@router.put("/{event_id}/status", response_model=EventResponse)
async def update_event_status(
    request: Request,
    event_id: str,
    status_update: EventStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    event = await _get_active_event(db, event_id)
    authorize_owner(current_user, "event", event.coordinator_id)

    old_status = event.status
    event.status = status_update.status
    await db.commit()

    activity_recorder.record_request(
        request, current_user, ActivityAction.UPDATE, ActivityResource.EVENT,
        f"Updated event status to {status_update.status.value}",
        resource_id=str(event.id),
        details={
            "event_title": event.title,
            "old_status": old_status,
            "new_status": status_update.status,
        },
    )
    return event


@router.post("/{event_id}/register", response_model=RegistrationResponse)
async def register_for_event(
    request: Request,
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Take one seat. Only scheduled events with free capacity accept registrations."""
    event = await _get_active_event(db, event_id)

    if event.status != EventStatus.SCHEDULED:
        raise RegistrationError("Event is not available for registration")

    event.register()
    await db.commit()

    activity_recorder.record_request(
        request, current_user, ActivityAction.REGISTER, ActivityResource.EVENT,
        f"Registered for event: {event.title}",
        resource_id=str(event.id),
        details={"event_title": event.title, "registered_count": event.registered_count},
    )
    return RegistrationResponse(
        message="Successfully registered for the event",
        registered_count=event.registered_count,
        capacity=event.capacity,
    )
