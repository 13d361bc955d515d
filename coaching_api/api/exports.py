"""
Export API routes.
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel.ext.asyncio.session import AsyncSession

from coaching_api.config import settings
from coaching_api.database import get_session
from coaching_api.services.export_service import ExportService, EXPORT_FORMATS
from coaching_api.core.exceptions import raise_bad_request
from coaching_api.api.deps import require_staff
from coaching_api.models.user import User

router = APIRouter(prefix=f"{settings.API_PREFIX}/exports", tags=["exports"])


@router.get("/dashboard")
async def export_dashboard(
    format: str = Query("json"),
    current_user: User = Depends(require_staff),
    session: AsyncSession = Depends(get_session)
):
    """Export users, sessions, goals and payments as JSON or CSV."""
    if format not in EXPORT_FORMATS:
        raise_bad_request(f"Unsupported export format '{format}'; use one of: {', '.join(EXPORT_FORMATS)}")

    export_service = ExportService(session)
    snapshot = await export_service.build_snapshot(current_user)
    if format == "json":
        return snapshot

    filename = f"dashboard-export-{datetime.utcnow().strftime('%Y%m%d')}.csv"
    return Response(
        content=export_service.to_csv(snapshot),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
