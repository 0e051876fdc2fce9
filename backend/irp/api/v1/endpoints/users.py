"""
User management endpoints.

Listing, creating, role changes and (de)activation are admin-only.
Accounts are never hard-deleted.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from typing import List, Optional

from irp.core.database import get_db
from irp.core.exceptions import UserNotFoundError, DuplicateEmailError
from irp.core.types import is_valid_uuid
from irp.models.user import User, UserRole
from irp.models.activity_log import ActivityAction, ActivityResource
from irp.modules.auth.dependencies import get_current_admin, authorize_owner
from irp.modules.auth.identity import get_current_user
from irp.schemas.activity import ActivityResponse
from irp.schemas.auth import MessageResponse
from irp.schemas.event import EventResponse
from irp.schemas.expert import ExpertResponse
from irp.schemas.user import (
    UserResponse,
    UsersResponse,
    UserCreate,
    RoleUpdate,
    DashboardResponse,
)
from irp.services.activity_recorder import activity_recorder
from irp.services.activity_service import get_user_activities
from irp.services.dashboard_service import build_dashboard
from irp.utils.pagination import paginate

router = APIRouter()


async def _get_user_or_404(db: AsyncSession, user_id: str) -> User:
    if not is_valid_uuid(user_id):
        raise UserNotFoundError(user_id)
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Headline numbers for the dashboard"""
    data = await build_dashboard(db)
    data["upcoming_events"] = [EventResponse.model_validate(e) for e in data["upcoming_events"]]
    data["top_rated_experts"] = [ExpertResponse.model_validate(e) for e in data["top_rated_experts"]]
    data["recent_activities"] = [ActivityResponse.model_validate(a) for a in data["recent_activities"]]
    return data


@router.get("", response_model=UsersResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """List active users with search and role filter"""
    conditions = [User.is_active == True]
    if search:
        search_term = f"%{search}%"
        conditions.append(or_(
            User.full_name.ilike(search_term),
            User.email.ilike(search_term),
            User.department.ilike(search_term),
        ))
    if role:
        conditions.append(User.role == role)

    query = select(User).where(*conditions).order_by(User.created_at.desc())
    count_query = select(func.count(User.id)).where(*conditions)
    return await paginate(db, query, page, page_size, count_query=count_query)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: Request,
    user_data: UserCreate,
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create an account ahead of its first Google sign-in"""
    email = user_data.email.lower()
    existing = await db.scalar(select(User.id).where(User.email == email))
    if existing:
        raise DuplicateEmailError(email)

    user = User(
        email=email,
        full_name=user_data.full_name,
        role=user_data.role,
        phone=user_data.phone,
        department=user_data.department,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    activity_recorder.record_request(
        request, current_admin, ActivityAction.CREATE, ActivityResource.USER,
        f"Created user account: {user.email}",
        resource_id=str(user.id),
        details={"target_user": user.email, "role": user.role},
    )
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    user = await _get_user_or_404(db, user_id)
    if not user.is_active:
        raise UserNotFoundError(user_id)
    return user


@router.put("/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    request: Request,
    user_id: str,
    role_update: RoleUpdate,
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Change a user's role. Takes effect on the user's next request."""
    user = await _get_user_or_404(db, user_id)
    old_role = user.role
    user.role = role_update.role
    await db.commit()
    await db.refresh(user)

    activity_recorder.record_request(
        request, current_admin, ActivityAction.UPDATE, ActivityResource.USER,
        f"Updated user role to {role_update.role.value}",
        resource_id=str(user.id),
        details={"old_role": old_role, "new_role": role_update.role, "target_user": user.email},
    )
    return user


@router.put("/{user_id}/deactivate", response_model=MessageResponse)
async def deactivate_user(
    request: Request,
    user_id: str,
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Soft-deactivate an account; its tokens stop working immediately"""
    user = await _get_user_or_404(db, user_id)
    user.is_active = False
    await db.commit()

    activity_recorder.record_request(
        request, current_admin, ActivityAction.UPDATE, ActivityResource.USER,
        "Deactivated user account",
        resource_id=str(user.id),
        details={"target_user": user.email},
    )
    return MessageResponse(message="User deactivated successfully")


@router.put("/{user_id}/activate", response_model=MessageResponse)
async def activate_user(
    request: Request,
    user_id: str,
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    user = await _get_user_or_404(db, user_id)
    user.is_active = True
    await db.commit()

    activity_recorder.record_request(
        request, current_admin, ActivityAction.UPDATE, ActivityResource.USER,
        "Activated user account",
        resource_id=str(user.id),
        details={"target_user": user.email},
    )
    return MessageResponse(message="User activated successfully")


@router.get("/{user_id}/activities", response_model=List[ActivityResponse])
async def list_user_activities(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """A user's own activity trail; admins may read anyone's"""
    authorize_owner(current_user, "user", user_id)
    return await get_user_activities(db, user_id, limit)
