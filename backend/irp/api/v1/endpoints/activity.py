"""
Activity log endpoints.

Listing, stats, export and the retention sweep are admin-only. Users may
read their own trail and the trail of any single resource.
"""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from datetime import datetime
from typing import List, Optional
import csv
import io

from irp.core.config import settings
from irp.core.database import get_db
from irp.core.exceptions import ActivityNotFoundError
from irp.core.types import is_valid_uuid
from irp.models.user import User
from irp.models.activity_log import ActivityLog, ActivityAction, ActivityResource
from irp.modules.auth.dependencies import get_current_admin, authorize_owner
from irp.modules.auth.identity import get_current_user
from irp.schemas.activity import (
    ActivityResponse,
    ActivitiesResponse,
    ActivityStat,
    CleanupResponse,
)
from irp.services.activity_service import (
    get_recent_activities,
    get_user_activities,
    get_resource_activities,
    get_activity_stats,
    purge_old_activities,
)
from irp.utils.pagination import paginate

router = APIRouter()


def _filters(
    action: Optional[ActivityAction],
    resource: Optional[ActivityResource],
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    user_id: Optional[str] = None,
) -> list:
    conditions = [ActivityLog.is_active == True]
    if action:
        conditions.append(ActivityLog.action == action)
    if resource:
        conditions.append(ActivityLog.resource == resource)
    if user_id:
        conditions.append(ActivityLog.user_id == user_id)
    if start_date:
        conditions.append(ActivityLog.timestamp >= start_date)
    if end_date:
        conditions.append(ActivityLog.timestamp <= end_date)
    return conditions


@router.get("", response_model=ActivitiesResponse)
async def list_activities(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    action: Optional[ActivityAction] = None,
    resource: Optional[ActivityResource] = None,
    user_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """List activity records with filtering and pagination"""
    conditions = _filters(action, resource, start_date, end_date, user_id)
    query = select(ActivityLog).where(*conditions).order_by(
        ActivityLog.timestamp.desc() if sort_order == "desc" else ActivityLog.timestamp.asc()
    )
    count_query = select(func.count(ActivityLog.id)).where(*conditions)
    return await paginate(db, query, page, page_size, count_query=count_query)


@router.get("/stats/recent", response_model=List[ActivityResponse])
async def recent_activities(
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_recent_activities(db, limit)


@router.get("/stats/overview", response_model=List[ActivityStat])
async def activity_overview(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Counts per action, broken down by resource"""
    return await get_activity_stats(db, start_date, end_date)


@router.get("/user/{user_id}", response_model=List[ActivityResponse])
async def user_activities(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    authorize_owner(current_user, "user", user_id)
    return await get_user_activities(db, user_id, limit)


@router.get("/resource/{resource}/{resource_id}", response_model=List[ActivityResponse])
async def resource_activities(
    resource: ActivityResource,
    resource_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_resource_activities(db, resource, resource_id)


@router.delete("/cleanup", response_model=CleanupResponse)
async def cleanup_activities(
    days_to_keep: int = Query(settings.ACTIVITY_RETENTION_DAYS, ge=1, le=3650),
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Retention sweep: delete records older than ``days_to_keep`` days"""
    deleted = await purge_old_activities(db, days_to_keep)
    return CleanupResponse(
        message=f"Cleaned up {deleted} old activity logs",
        deleted_count=deleted,
    )


@router.get("/export/csv")
async def export_activities_csv(
    action: Optional[ActivityAction] = None,
    resource: Optional[ActivityResource] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Export activity records as CSV, newest first"""
    result = await db.execute(
        select(ActivityLog)
        .where(*_filters(action, resource, start_date, end_date))
        .order_by(ActivityLog.timestamp.desc())
        .limit(settings.ACTIVITY_EXPORT_LIMIT)
    )
    activities = result.scalars().all()

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Timestamp", "User", "Action", "Resource", "Description", "IP Address"])
    for activity in activities:
        writer.writerow([
            activity.timestamp.isoformat(),
            activity.user.full_name if activity.user else "Unknown",
            activity.action.value,
            activity.resource.value,
            activity.description,
            activity.ip_address or "",
        ])
    output.seek(0)

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=activity_logs.csv"}
    )


@router.get("/{activity_id}", response_model=ActivityResponse)
async def get_activity(
    activity_id: str,
    current_admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    activity = await db.get(ActivityLog, activity_id) if is_valid_uuid(activity_id) else None
    if activity is None or not activity.is_active:
        raise ActivityNotFoundError(activity_id)
    return activity
