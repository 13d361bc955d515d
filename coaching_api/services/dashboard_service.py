"""
Dashboard service - headline numbers and chart series.
"""
from datetime import datetime, timedelta
from typing import Dict

from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.repositories.user_repo import UserRepository
from coaching_api.repositories.session_repo import SessionRepository
from coaching_api.repositories.goal_repo import GoalRepository
from coaching_api.repositories.payment_repo import PaymentRepository
from coaching_api.models.goal import GoalStatuses, GoalPriorities
from coaching_api.models.payment import PaymentStatuses, round_money
from coaching_api.models.session import SessionStatuses
from coaching_api.models.user import User, Roles

RANGE_DAYS = {"week": 7, "month": 30, "year": 365}


def range_start(range_name: str, now: datetime = None) -> datetime:
    """Midnight of the first day covered by the range (today included)."""
    now = now or datetime.utcnow()
    today = datetime(now.year, now.month, now.day)
    return today - timedelta(days=RANGE_DAYS[range_name] - 1)


def empty_days(start: datetime, days: int, factory) -> Dict[str, object]:
    return {(start + timedelta(days=i)).strftime("%Y-%m-%d"): factory() for i in range(days)}


class DashboardService:
    """Service for dashboard aggregates."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.session_repo = SessionRepository(session)
        self.goal_repo = GoalRepository(session)
        self.payment_repo = PaymentRepository(session)

    def _coach_scope(self, current_user: User) -> dict:
        return {"coach_id": current_user.id} if current_user.role == Roles.COACH else {}

    async def get_stats(self, current_user: User) -> dict:
        org_id = current_user.organization_id
        scope = self._coach_scope(current_user)

        return {
            "users": {
                "total": await self.user_repo.count_non_admins(org_id),
                "coaches": await self.user_repo.count_by_role(org_id, Roles.COACH),
                "entrepreneurs": await self.user_repo.count_by_role(org_id, Roles.ENTREPRENEUR),
            },
            "sessions": {
                "total": await self.session_repo.count(org_id=org_id, filters=scope),
                "upcoming": await self.session_repo.count_upcoming(org_id, filters=scope),
                "completed": await self.session_repo.count(
                    org_id=org_id, filters={**scope, "status": SessionStatuses.COMPLETED}
                ),
            },
            "revenue": {
                "total": await self.payment_repo.sum_total(
                    org_id, status=PaymentStatuses.PAID, coach_id=scope.get("coach_id")
                ),
            },
        }

    async def get_sessions_series(self, current_user: User, range_name: str) -> dict:
        """Per-day counts of scheduled, completed and cancelled sessions."""
        start = range_start(range_name)
        days = RANGE_DAYS[range_name]
        data = empty_days(start, days, lambda: {"scheduled": 0, "completed": 0, "cancelled": 0})

        sessions = await self.session_repo.list_in_range(
            current_user.organization_id, start, start + timedelta(days=days), self._coach_scope(current_user)
        )
        for s in sessions:
            bucket = data[s.scheduled_at.strftime("%Y-%m-%d")]
            if s.status == SessionStatuses.COMPLETED:
                bucket["completed"] += 1
            elif s.status == SessionStatuses.CANCELLED:
                bucket["cancelled"] += 1
            elif s.status in SessionStatuses.ACTIVE:
                bucket["scheduled"] += 1
        return {"data": data, "range": range_name}

    async def get_goals_breakdown(self, current_user: User) -> dict:
        org_id = current_user.organization_id
        scope = self._coach_scope(current_user)
        by_status = {status: 0 for status in GoalStatuses.ALL}
        by_status.update(await self.goal_repo.count_grouped(org_id, "status", scope))
        by_priority = {priority: 0 for priority in GoalPriorities.ALL}
        by_priority.update(await self.goal_repo.count_grouped(org_id, "priority", scope))
        return {"by_status": by_status, "by_priority": by_priority}

    async def get_revenue_series(self, current_user: User, range_name: str) -> dict:
        """Paid totals per day of payment."""
        start = range_start(range_name)
        data = empty_days(start, RANGE_DAYS[range_name], float)

        payments = await self.payment_repo.list_paid_between(
            current_user.organization_id, start, coach_id=self._coach_scope(current_user).get("coach_id")
        )
        for p in payments:
            key = p.paid_at.strftime("%Y-%m-%d")
            if key in data:
                data[key] = round_money(data[key] + p.total_amount)
        return {"data": data, "total": round_money(sum(data.values())), "range": range_name}
