from __future__ import annotations

import uuid
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from app.core.logging_config import get_logger
from app.models.question import Question, QuestionAnswer, QuestionKeyword
from app.models.user import User
from app.schemas.questions import QuestionCreate
from app.utils.enums import QuestionStatus, QuestionType, Role


logger = get_logger("questions")


def question_problems(question: Question) -> list[str]:
    """Reasons a question cannot be published; empty when it is valid."""
    problems = []
    if not (question.text or "").strip():
        problems.append("Question text is empty")
    if question.is_choice:
        if len(question.answers) < 2:
            problems.append("Choice questions need at least two answers")
        correct = sum(1 for a in question.answers if a.is_correct)
        if correct == 0:
            problems.append("No answer is marked correct")
        elif question.type == QuestionType.single_choice and correct > 1:
            problems.append("Single-choice questions need exactly one correct answer")
    if any(k.weight < 0 for k in question.keywords):
        problems.append("Keyword weights cannot be negative")
    return problems


async def create_question(db: AsyncSession, payload: QuestionCreate, author: User) -> Question:
    question = Question(
        text=payload.text,
        type=payload.type,
        status=QuestionStatus.draft,
        points=payload.points,
        negative_points=payload.negative_points,
        created_by_id=author.id,
        answers=[
            QuestionAnswer(
                text=a.text,
                is_correct=a.is_correct,
                order=a.order if a.order is not None else index,
            )
            for index, a in enumerate(payload.answers)
        ],
        keywords=[
            QuestionKeyword(keyword=k.keyword, weight=k.weight, is_required=k.is_required)
            for k in payload.keywords
        ],
    )
    db.add(question)
    await db.commit()
    logger.info(f"Question {question.id} ({question.type.value}) created by {author.id}")
    return question


async def get_question(db: AsyncSession, question_id: uuid.UUID) -> Question:
    question = await db.get(Question, question_id)
    if question is None:
        raise NotFoundError("Question not found")
    return question


async def publish_question(db: AsyncSession, question_id: uuid.UUID, user: User) -> Question:
    question = await get_question(db, question_id)
    if user.role == Role.collaborator and question.created_by_id != user.id:
        raise ForbiddenError("You can only publish your own questions")
    problems = question_problems(question)
    if problems:
        raise InvalidInputError("Question is not valid", data={"problems": problems})
    question.status = QuestionStatus.published
    db.add(question)
    await db.commit()
    return question


def serialize_question(question: Question, include_solution: bool = True) -> Dict[str, Any]:
    answers = []
    for a in question.answers:
        item = {"id": a.id, "text": a.text, "order": a.order}
        if include_solution:
            item["is_correct"] = a.is_correct
        answers.append(item)
    out = {
        "id": question.id,
        "text": question.text,
        "type": question.type,
        "status": question.status,
        "points": question.points,
        "negative_points": question.negative_points,
        "answers": answers,
    }
    if include_solution:
        out["keywords"] = [
            {"id": k.id, "keyword": k.keyword, "weight": k.weight, "is_required": k.is_required}
            for k in question.keywords
        ]
    return out
