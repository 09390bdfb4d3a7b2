"""Manual and keyword-assisted grading of open-text answers.

Grading an answer rewrites the matching entry of the attempt's stored answers
and recomputes the attempt totals from those entries, so the result stays
consistent however many times an answer is re-graded.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from app.core.logging_config import get_logger
from app.models.simulation import Simulation
from app.models.simulation_result import SimulationOpenAnswer, SimulationResult
from app.models.user import Student, User
from app.services.notifications.notification_service import open_answer_graded_notification
from app.services.scoring import graded_category, percentage, summarize
from app.utils.datetime_utils import as_utc, get_current_utc_datetime
from app.utils.enums import AnswerCategory, Role


logger = get_logger("grading")


def can_grade(grader: User, simulation: Simulation) -> bool:
    if grader.role == Role.admin:
        return True
    return grader.role == Role.collaborator and simulation.created_by_id == grader.id


async def list_pending_open_answers(
    db: AsyncSession,
    grader: User,
    *,
    simulation_id: Optional[uuid.UUID] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[Dict[str, Any]], int]:
    conditions = [SimulationOpenAnswer.is_validated.is_(False)]
    if simulation_id is not None:
        conditions.append(SimulationResult.simulation_id == simulation_id)
    if grader.role != Role.admin:
        conditions.append(Simulation.created_by_id == grader.id)

    def joined(stmt):
        return (
            stmt.join(SimulationResult, SimulationResult.id == SimulationOpenAnswer.result_id)
            .join(Simulation, Simulation.id == SimulationResult.simulation_id)
            .where(*conditions)
        )

    total = (
        await db.execute(
            joined(select(func.count(SimulationOpenAnswer.id)).select_from(SimulationOpenAnswer))
        )
    ).scalar_one()
    rows = await db.execute(
        joined(select(SimulationOpenAnswer, SimulationResult, Simulation))
        .order_by(SimulationResult.completed_at.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    items = [
        {
            "id": open_answer.id,
            "result_id": result.id,
            "simulation_id": simulation.id,
            "simulation_title": simulation.title,
            "student_id": result.student_id,
            "question_id": open_answer.question_id,
            "answer_text": open_answer.answer_text,
            "auto_score": open_answer.auto_score,
            "suggested_points": suggested_points(open_answer),
            "max_points": open_answer.max_points,
            "submitted_at": result.completed_at,
        }
        for open_answer, result, simulation in rows.all()
    ]
    return items, total


def suggested_points(open_answer: SimulationOpenAnswer) -> Optional[float]:
    if open_answer.auto_score is None:
        return None
    return round(open_answer.auto_score * open_answer.max_points, 2)


def _apply_grade(entries: List[dict], question_id: uuid.UUID, earned_points: float) -> List[dict]:
    category = graded_category(earned_points)
    updated = []
    for entry in entries:
        entry = dict(entry)
        if entry.get("question_id") == str(question_id):
            entry["earned_points"] = earned_points
            entry["category"] = category.value
            entry["is_correct"] = category == AnswerCategory.correct
        updated.append(entry)
    return updated


def recompute_result(result: SimulationResult, simulation: Simulation) -> None:
    """Rebuild totals and counters from the stored answer entries."""
    entries = result.answers or []
    summary = summarize(entries)
    max_score = simulation.max_score or sum(float(e.get("max_points") or 0) for e in entries)
    result.total_score = summary.total_score
    result.percentage_score = percentage(summary.total_score, max_score)
    result.correct_answers = summary.correct
    result.wrong_answers = summary.wrong
    result.blank_answers = summary.blank
    result.pending_answers = summary.pending


async def regrade_open_answer(
    db: AsyncSession,
    open_answer_id: uuid.UUID,
    grader: User,
    *,
    earned_points: Optional[float] = None,
    use_auto_score: bool = False,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Grade one open answer and refresh its attempt.

    Either ``earned_points`` (0 to the answer's max points) or
    ``use_auto_score`` must be given; the auto score scales the keyword
    ratio to the answer's max points.
    """
    open_answer = await db.get(SimulationOpenAnswer, open_answer_id)
    if open_answer is None:
        raise NotFoundError("Open answer not found")
    result = await db.get(SimulationResult, open_answer.result_id)
    simulation = await db.get(Simulation, result.simulation_id)
    if not can_grade(grader, simulation):
        raise ForbiddenError("You cannot grade answers for this simulation")

    if use_auto_score:
        earned_points = suggested_points(open_answer)
        if earned_points is None:
            raise InvalidInputError(
                "No keywords configured for this question", error_code="NO_AUTO_SCORE"
            )
    elif earned_points is None:
        raise InvalidInputError("earned_points is required")

    earned_points = float(earned_points)
    if earned_points < 0 or earned_points > open_answer.max_points:
        raise InvalidInputError(
            f"earned_points must be between 0 and {open_answer.max_points:g}"
        )

    open_answer.earned_points = earned_points
    open_answer.validator_notes = notes
    open_answer.is_validated = True
    open_answer.validated_by_id = grader.id
    open_answer.validated_at = as_utc(now or get_current_utc_datetime())
    db.add(open_answer)

    # JSON columns only persist on reassignment
    result.answers = _apply_grade(result.answers or [], open_answer.question_id, earned_points)
    recompute_result(result, simulation)
    db.add(result)

    student = await db.get(Student, result.student_id)
    if student is not None:
        db.add(
            open_answer_graded_notification(
                student.user_id, simulation, result.id, earned_points, open_answer.max_points
            )
        )

    await db.commit()
    logger.info(
        f"{grader.id} graded open answer {open_answer.id} on result {result.id}: "
        f"{earned_points:g}/{open_answer.max_points:g}"
        f"{' (auto)' if use_auto_score else ''}"
    )
    return {
        "open_answer": {
            "id": open_answer.id,
            "question_id": open_answer.question_id,
            "earned_points": open_answer.earned_points,
            "max_points": open_answer.max_points,
            "auto_score": open_answer.auto_score,
            "validator_notes": open_answer.validator_notes,
            "is_validated": open_answer.is_validated,
            "validated_at": open_answer.validated_at,
        },
        "result": {
            "id": result.id,
            "total_score": result.total_score,
            "percentage_score": result.percentage_score,
            "correct_answers": result.correct_answers,
            "wrong_answers": result.wrong_answers,
            "blank_answers": result.blank_answers,
            "pending_answers": result.pending_answers,
        },
    }
