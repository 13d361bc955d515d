"""
Export service - dashboard snapshot as JSON or CSV.
"""
import csv
import io
from datetime import datetime
from typing import List

from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.repositories.user_repo import UserRepository
from coaching_api.repositories.session_repo import SessionRepository
from coaching_api.repositories.goal_repo import GoalRepository
from coaching_api.repositories.payment_repo import PaymentRepository
from coaching_api.models.payment import PaymentStatuses, round_money
from coaching_api.models.session import SessionStatuses
from coaching_api.models.user import User

EXPORT_FORMATS = ("json", "csv")

USER_COLUMNS = ["id", "email", "first_name", "last_name", "role", "is_active", "created_at"]
SESSION_COLUMNS = ["id", "coach_id", "entrepreneur_id", "scheduled_at", "duration", "status", "payment_id"]
GOAL_COLUMNS = ["id", "title", "entrepreneur_id", "coach_id", "status", "priority", "progress", "target_date"]
PAYMENT_COLUMNS = ["id", "invoice_number", "coach_id", "amount", "tax_amount", "total_amount",
                   "currency", "status", "due_date", "paid_at"]


def _cell(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if value is None:
        return ""
    return str(value) if not isinstance(value, (int, float, bool)) else value


def _rows(records, columns: List[str]) -> List[dict]:
    return [{c: _cell(getattr(r, c)) for c in columns} for r in records]


class ExportService:
    """Service for data exports."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.session_repo = SessionRepository(session)
        self.goal_repo = GoalRepository(session)
        self.payment_repo = PaymentRepository(session)

    async def build_snapshot(self, current_user: User) -> dict:
        org_id = current_user.organization_id
        users = await self.user_repo.list(org_id=org_id)
        sessions = await self.session_repo.list(org_id=org_id, sort="-scheduled_at")
        goals = await self.goal_repo.list(org_id=org_id)
        payments = await self.payment_repo.list(org_id=org_id)

        return {
            "exported_at": datetime.utcnow().isoformat(),
            "users": _rows(users, USER_COLUMNS),
            "sessions": _rows(sessions, SESSION_COLUMNS),
            "goals": _rows(goals, GOAL_COLUMNS),
            "payments": _rows(payments, PAYMENT_COLUMNS),
            "summary": {
                "total_users": len(users),
                "total_sessions": len(sessions),
                "completed_sessions": sum(1 for s in sessions if s.status == SessionStatuses.COMPLETED),
                "total_goals": len(goals),
                "total_payments": len(payments),
                "total_revenue": round_money(sum(
                    p.total_amount for p in payments if p.status == PaymentStatuses.PAID
                )),
            },
        }

    @staticmethod
    def to_csv(snapshot: dict) -> str:
        """One section per entity, each with its own header row."""
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(["exported_at", snapshot["exported_at"]])

        sections = (
            ("users", USER_COLUMNS),
            ("sessions", SESSION_COLUMNS),
            ("goals", GOAL_COLUMNS),
            ("payments", PAYMENT_COLUMNS),
        )
        for name, columns in sections:
            writer.writerow([])
            writer.writerow([name.upper()])
            writer.writerow(columns)
            for row in snapshot[name]:
                writer.writerow([row[c] for c in columns])

        writer.writerow([])
        writer.writerow(["SUMMARY"])
        for key, value in snapshot["summary"].items():
            writer.writerow([key, value])
        return buffer.getvalue()
