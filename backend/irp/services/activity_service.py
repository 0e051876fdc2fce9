"""Queries and maintenance over the activity log."""
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from irp.core.logging_config import logger
from irp.models.activity_log import ActivityLog, ActivityResource


async def get_recent_activities(db: AsyncSession, limit: int = 20) -> List[ActivityLog]:
    result = await db.execute(
        select(ActivityLog)
        .where(ActivityLog.is_active == True)
        .order_by(ActivityLog.timestamp.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_user_activities(db: AsyncSession, user_id: str, limit: int = 50) -> List[ActivityLog]:
    result = await db.execute(
        select(ActivityLog)
        .where(ActivityLog.user_id == user_id, ActivityLog.is_active == True)
        .order_by(ActivityLog.timestamp.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_resource_activities(
    db: AsyncSession,
    resource: ActivityResource,
    resource_id: str
) -> List[ActivityLog]:
    result = await db.execute(
        select(ActivityLog)
        .where(
            ActivityLog.resource == resource,
            ActivityLog.resource_id == resource_id,
            ActivityLog.is_active == True,
        )
        .order_by(ActivityLog.timestamp.desc())
    )
    return list(result.scalars().all())


async def get_activity_stats(
    db: AsyncSession,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None
) -> List[Dict]:
    """
    Count records per action, broken down by resource.

    The date range only applies when both ends are given. Actions are
    ordered by their total count, busiest first.
    """
    conditions = [ActivityLog.is_active == True]
    if start_date and end_date:
        conditions.append(ActivityLog.timestamp >= start_date)
        conditions.append(ActivityLog.timestamp <= end_date)

    result = await db.execute(
        select(ActivityLog.action, ActivityLog.resource, func.count(ActivityLog.id))
        .where(*conditions)
        .group_by(ActivityLog.action, ActivityLog.resource)
    )

    grouped: Dict = {}
    for action, resource, count in result.all():
        entry = grouped.setdefault(action, {"action": action, "total_count": 0, "resources": []})
        entry["total_count"] += count
        entry["resources"].append({"resource": resource, "count": count})

    stats = sorted(grouped.values(), key=lambda s: s["total_count"], reverse=True)
    for entry in stats:
        entry["resources"].sort(key=lambda r: r["count"], reverse=True)
    return stats


async def purge_old_activities(db: AsyncSession, days_to_keep: int) -> int:
    """Delete records older than ``days_to_keep`` days. Returns the number removed."""
    cutoff = datetime.utcnow() - timedelta(days=days_to_keep)
    result = await db.execute(
        delete(ActivityLog).where(ActivityLog.timestamp < cutoff)
    )
    await db.commit()

    deleted = result.rowcount or 0
    logger.info(
        f"Purged {deleted} activity records older than {days_to_keep} days",
        extra={"event_type": "activity_purge", "deleted_count": deleted, "days_to_keep": days_to_keep}
    )
    return deleted
