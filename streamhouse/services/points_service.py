"""
Points Service

Derives per-user point totals and breakdowns from the engagement ledger.

Design Decisions:
- Breakdown is a live aggregate over EngagementEvent, never cached, so it
  always agrees with User.total_points (both are written in one transaction
  by the ledger)
- Every engagement type is reported, with zeros for types the user has none of
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from streamhouse.core.exceptions import NotFoundError
from streamhouse.db.models import EngagementEvent, EngagementType, User


class PointsService:
    """
    Service for reading a user's points.
    
    Aggregates ledger rows by engagement type.
    """
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def breakdown(self, user_id: str) -> dict[str, dict[str, int]]:
        """
        Count and sum of points per engagement type.
        
        Returns:
            {"engage": {"count", "total"}, "clip": {...}, "collab": {...}}
        """
        statement = (
            select(
                EngagementEvent.type,
                func.count(EngagementEvent.id),
                func.coalesce(func.sum(EngagementEvent.points), 0),
            )
            .where(EngagementEvent.user_id == user_id)
            .group_by(EngagementEvent.type)
        )
        result = await self.session.execute(statement)
        
        breakdown = {event_type.value: {"count": 0, "total": 0} for event_type in EngagementType}
        for event_type, count, total in result.all():
            if event_type in breakdown:
                breakdown[event_type] = {"count": int(count), "total": int(total)}
        return breakdown
    
    async def get_points(self, user_id: str) -> dict:
        """
        Running total plus breakdown for a user.
        
        Raises:
            NotFoundError: If the user does not exist
        """
        statement = select(User.total_points).where(User.id == user_id)
        result = await self.session.execute(statement)
        total_points = result.scalar_one_or_none()
        if total_points is None:
            raise NotFoundError("user", user_id)
        
        return {
            "user_id": user_id,
            "total_points": total_points,
            "breakdown": await self.breakdown(user_id),
        }
