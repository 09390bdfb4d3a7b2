"""Admin maintenance endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.response import ResponseModel, success_response
from app.core.security import require_roles
from app.db.deps import get_db
from app.services.assignment_lifecycle import close_expired_assignments
from app.utils.enums import Role

admin_guard = require_roles(Role.admin)

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(admin_guard)],
)


@router.post("/assignments/close-expired", response_model=ResponseModel)
async def close_expired(
    dry_run: bool = Query(False, description="Report what would close without writing"),
    db: AsyncSession = Depends(get_db),
):
    """Close expired assignments, and those whose students all completed.

    Method/Path: POST /api/v1/admin/assignments/close-expired?dry_run=
    Auth: admin only. Nothing schedules this; students close expired
    assignments lazily whenever they try to enter.
    """
    report = await close_expired_assignments(db, dry_run=dry_run)
    msg = f"{'Would close' if dry_run else 'Closed'} {report.total_closed} assignments"
    return success_response(msg, data=report.as_dict())
