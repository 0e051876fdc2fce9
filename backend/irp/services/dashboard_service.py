"""Dashboard aggregation"""
from datetime import datetime
from typing import Dict, List

from sqlalchemy import select, func, extract
from sqlalchemy.ext.asyncio import AsyncSession

from irp.models.event import Event, EventStatus
from irp.models.expert import Expert
from irp.services.activity_service import get_recent_activities
from irp.services.feedback_service import get_feedback_statistics


async def get_upcoming_events(db: AsyncSession, limit: int = 10) -> List[Event]:
    result = await db.execute(
        select(Event)
        .where(
            Event.scheduled_date >= datetime.utcnow(),
            Event.status == EventStatus.SCHEDULED,
            Event.is_active == True,
        )
        .order_by(Event.scheduled_date.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_top_rated_experts(db: AsyncSession, limit: int = 10) -> List[Expert]:
    result = await db.execute(
        select(Expert)
        .where(Expert.is_active == True, Expert.rating_count > 0)
        .order_by(Expert.rating_average.desc(), Expert.rating_count.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_monthly_event_counts(db: AsyncSession) -> List[Dict]:
    """Active events per month, from the start of the current month onward"""
    now = datetime.utcnow()
    month_start = datetime(now.year, now.month, 1)
    month = extract("month", Event.scheduled_date)

    result = await db.execute(
        select(month, func.count(Event.id))
        .where(Event.is_active == True, Event.scheduled_date >= month_start)
        .group_by(month)
        .order_by(month)
    )
    return [{"month": int(m), "count": c} for m, c in result.all()]


async def build_dashboard(db: AsyncSession) -> Dict:
    total_experts = await db.scalar(
        select(func.count(Expert.id)).where(Expert.is_active == True)
    )
    total_events = await db.scalar(
        select(func.count(Event.id)).where(Event.is_active == True)
    )
    upcoming = await get_upcoming_events(db, 5)
    top_rated = await get_top_rated_experts(db, 5)
    recent = await get_recent_activities(db, 10)
    monthly = await get_monthly_event_counts(db)
    feedback_stats = await get_feedback_statistics(db)

    return {
        "summary": {
            "total_experts": total_experts or 0,
            "total_events": total_events or 0,
            "upcoming_events": len(upcoming),
            "total_feedbacks": feedback_stats["total_feedbacks"],
        },
        "upcoming_events": upcoming,
        "top_rated_experts": top_rated,
        "recent_activities": recent,
        "monthly_events": monthly,
        "feedback_stats": feedback_stats,
    }
