"""Feedback aggregates and expert rating maintenance."""
from typing import Dict, Optional

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from irp.models.expert import Expert
from irp.models.feedback import Feedback, ASPECT_NAMES


def _round(value: Optional[float]) -> Optional[float]:
    return round(float(value), 2) if value is not None else None


async def get_feedback_statistics(db: AsyncSession) -> Dict:
    """Totals over all active feedback"""
    result = await db.execute(
        select(
            func.count(Feedback.id),
            func.avg(Feedback.rating),
            func.sum(case((Feedback.rating >= 4, 1), else_=0)),
            func.sum(case((Feedback.rating <= 2, 1), else_=0)),
            func.sum(case((Feedback.would_recommend == True, 1), else_=0)),
        ).where(Feedback.is_active == True)
    )
    total, average, high, low, recommend = result.one()

    return {
        "total_feedbacks": total or 0,
        "average_rating": _round(average),
        "high_ratings": high or 0,
        "low_ratings": low or 0,
        "recommendations": recommend or 0,
    }


async def get_expert_rating_summary(db: AsyncSession, expert_id: str) -> Dict:
    """
    Average rating and per-aspect averages for one expert.

    Aspects live in a JSON column, so they are averaged here rather than
    in SQL to stay portable across backends.
    """
    result = await db.execute(
        select(Feedback.rating, Feedback.aspects)
        .where(Feedback.expert_id == expert_id, Feedback.is_active == True)
    )
    rows = result.all()

    summary: Dict = {
        "average_rating": None,
        "total_feedbacks": len(rows),
    }
    if rows:
        summary["average_rating"] = _round(sum(r.rating for r in rows) / len(rows))

    for aspect in ASPECT_NAMES:
        values = [
            (r.aspects or {}).get(aspect) for r in rows
            if (r.aspects or {}).get(aspect) is not None
        ]
        summary[f"average_{aspect}"] = _round(sum(values) / len(values)) if values else None

    return summary


async def recalculate_expert_rating(db: AsyncSession, expert_id: str) -> Optional[Expert]:
    """Rebuild an expert's rating from its active feedback"""
    expert = await db.get(Expert, expert_id)
    if expert is None:
        return None

    result = await db.execute(
        select(Feedback.rating)
        .where(Feedback.expert_id == expert_id, Feedback.is_active == True)
    )
    expert.reset_rating(result.scalars().all())
    return expert
