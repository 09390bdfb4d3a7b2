import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.response import ResponseModel, success_response
from app.core.security import require_roles
from app.db.deps import get_db
from app.models.user import User
from app.schemas.questions import QuestionCreate
from app.services.question_service import (
    create_question,
    get_question,
    publish_question,
    serialize_question,
)
from app.utils.enums import Role


router = APIRouter(prefix="/questions", tags=["questions"])
staff_only = require_roles(Role.admin, Role.collaborator)


@router.post("", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def create(
    payload: QuestionCreate,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    """Create a draft question with its answer options or keywords.

    Method/Path: POST /api/v1/questions
    Auth: admin or collaborator
    """
    question = await create_question(db, payload, current_user)
    return success_response(
        "Question created", data=serialize_question(question), status_code=status.HTTP_201_CREATED
    )


@router.get("/{question_id}", response_model=ResponseModel)
async def detail(
    question_id: uuid.UUID,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    question = await get_question(db, question_id)
    return success_response("Question fetched", data=serialize_question(question))


@router.post("/{question_id}/publish", response_model=ResponseModel)
async def publish(
    question_id: uuid.UUID,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    """Publish a question once its answers or keywords are consistent.

    Method/Path: POST /api/v1/questions/{question_id}/publish
    Returns: 400 with the list of problems when the question is not valid.
    """
    question = await publish_question(db, question_id, current_user)
    return success_response("Question published", data=serialize_question(question))
