"""Simulations students build for themselves: quick quizzes and personal ones.

Both are published straight away and stay private. A quick quiz is a
one-shot, randomly drawn set with a direct assignment to its author; a
personal simulation has no assignment and is reached through its author.
"""

from __future__ import annotations

import random
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidInputError
from app.core.logging_config import get_logger
from app.models.question import Question
from app.models.simulation import Simulation, SimulationQuestion
from app.models.simulation_assignment import SimulationAssignment
from app.models.user import Student
from app.schemas.simulations import PersonalSimulationCreate, QuickQuizCreate
from app.utils.datetime_utils import get_current_utc_datetime
from app.utils.enums import (
    AssignmentStatus,
    QuestionStatus,
    SimulationStatus,
    SimulationType,
    SimulationVisibility,
)


logger = get_logger("student_authoring")


def _slots(question_ids: List[uuid.UUID]) -> List[SimulationQuestion]:
    return [
        SimulationQuestion(question_id=question_id, order=index)
        for index, question_id in enumerate(question_ids)
    ]


def _summary(simulation: Simulation, assignment_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
    return {
        "simulation_id": simulation.id,
        "title": simulation.title,
        "type": simulation.type,
        "total_questions": len(simulation.questions),
        "assignment_id": assignment_id,
    }


async def create_quick_quiz(
    db: AsyncSession,
    student: Student,
    payload: QuickQuizCreate,
    rng: Optional[random.Random] = None,
) -> Dict[str, Any]:
    """Draw ``question_count`` published questions at random into a quick quiz.

    Scoring uses the student's own points instead of per-question points.
    The quiz cannot be retaken.
    """
    stmt = select(Question.id).where(Question.status == QuestionStatus.published)
    if payload.question_types:
        stmt = stmt.where(Question.type.in_(payload.question_types))
    available = list((await db.execute(stmt)).scalars().all())
    if len(available) < payload.question_count:
        raise InvalidInputError(
            f"Not enough questions (available: {len(available)}, "
            f"requested: {payload.question_count})",
            error_code="NOT_ENOUGH_QUESTIONS",
        )
    selected = (rng or random).sample(available, payload.question_count)

    assignment = SimulationAssignment(
        student_id=student.id,
        assigned_by_id=student.user_id,
        status=AssignmentStatus.active,
    )
    simulation = Simulation(
        title=f"Quiz Veloce - {get_current_utc_datetime():%d/%m/%Y}",
        type=SimulationType.quick_quiz,
        status=SimulationStatus.published,
        visibility=SimulationVisibility.private,
        is_repeatable=False,
        duration_minutes=payload.duration_minutes,
        use_question_points=False,
        correct_points=payload.correct_points,
        wrong_points=payload.wrong_points,
        blank_points=0.0,
        show_results=payload.show_results,
        show_correct_answers=payload.show_correct_answers,
        created_by_id=student.user_id,
        questions=_slots(selected),
        assignments=[assignment],
        results=[],
        sessions=[],
    )
    db.add(simulation)
    await db.commit()
    logger.info(
        f"Student {student.id} generated quick quiz {simulation.id} "
        f"with {payload.question_count} questions"
    )
    return _summary(simulation, assignment.id)


async def create_personal_simulation(
    db: AsyncSession, student: Student, payload: PersonalSimulationCreate
) -> Dict[str, Any]:
    rows = await db.execute(
        select(Question.id)
        .where(Question.id.in_(payload.question_ids))
        .where(Question.status == QuestionStatus.published)
    )
    found = set(rows.scalars().all())
    missing = [str(i) for i in payload.question_ids if i not in found]
    if missing:
        raise InvalidInputError(
            "One or more questions do not exist or are not published",
            data={"missing": missing},
        )

    simulation = Simulation(
        title=payload.title,
        description=payload.description,
        type=SimulationType.personal,
        status=SimulationStatus.published,
        visibility=SimulationVisibility.private,
        is_repeatable=payload.is_repeatable,
        duration_minutes=payload.duration_minutes,
        use_question_points=False,
        correct_points=payload.correct_points,
        wrong_points=payload.wrong_points,
        blank_points=0.0,
        show_results=payload.show_results,
        show_correct_answers=payload.show_correct_answers,
        created_by_id=student.user_id,
        questions=_slots(payload.question_ids),
        assignments=[],
        results=[],
        sessions=[],
    )
    db.add(simulation)
    await db.commit()
    logger.info(f"Student {student.id} created personal simulation {simulation.id}")
    return _summary(simulation)
