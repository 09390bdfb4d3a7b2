import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.response import ResponseModel, paginated, success_response
from app.core.security import require_roles
from app.db.deps import get_db
from app.models.user import User
from app.schemas.grading import OpenAnswerAutoGrade, OpenAnswerGrade
from app.services.grading import list_pending_open_answers, regrade_open_answer
from app.utils.enums import Role


router = APIRouter(prefix="/grading", tags=["grading"])
staff_only = require_roles(Role.admin, Role.collaborator)


@router.get("/pending", response_model=ResponseModel)
async def pending_open_answers(
    simulation_id: Optional[uuid.UUID] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    """Open answers waiting for a grade, oldest submission first.

    Method/Path: GET /api/v1/grading/pending?simulation_id=&page=&page_size=
    Each item carries the keyword ``auto_score`` and the points it suggests.
    """
    items, total = await list_pending_open_answers(
        db, current_user, simulation_id=simulation_id, page=page, page_size=page_size
    )
    return success_response(
        "Pending answers fetched",
        data=paginated(items, page=page, page_size=page_size, total=total),
    )


@router.post("/open-answers/{open_answer_id}", response_model=ResponseModel)
async def grade_open_answer(
    open_answer_id: uuid.UUID,
    payload: OpenAnswerGrade,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    data = await regrade_open_answer(
        db,
        open_answer_id,
        current_user,
        earned_points=payload.earned_points,
        notes=payload.notes,
    )
    return success_response("Answer graded", data=data)


@router.post("/open-answers/{open_answer_id}/auto", response_model=ResponseModel)
async def apply_auto_score(
    open_answer_id: uuid.UUID,
    payload: Optional[OpenAnswerAutoGrade] = None,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    """Accept the keyword score as the grade (auto_score x max points)."""
    data = await regrade_open_answer(
        db,
        open_answer_id,
        current_user,
        use_auto_score=True,
        notes=payload.notes if payload else None,
    )
    return success_response("Answer graded from keywords", data=data)
