"""Student attempts: start (or resume), save progress, submit and score."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from app.core.logging_config import get_logger
from app.models.simulation import Simulation
from app.models.simulation_assignment import SimulationAssignment
from app.models.simulation_result import SimulationOpenAnswer, SimulationResult
from app.models.user import Student
from app.services.scoring import (
    ScoreSummary,
    ScoringConfig,
    is_passed,
    max_points_for,
    percentage,
    score_answer,
    score_keywords,
)
from app.services.simulation_access import AccessContext, evaluate_access
from app.services.simulation_rules import ACCESS_DENIAL_MESSAGES, attempt_denial_reason
from app.utils.datetime_utils import as_utc, get_current_utc_datetime
from app.utils.enums import AnswerCategory, AssignmentStatus


logger = get_logger("simulation_attempts")

RESULTS_HIDDEN_MESSAGE = "Simulation completed. Results will be available after it closes."


async def attempt_state(
    db: AsyncSession, simulation_id: uuid.UUID, student_id: uuid.UUID
) -> tuple[int, Optional[SimulationResult]]:
    """(completed attempt count, in-progress attempt or None)."""
    rows = await db.execute(
        select(SimulationResult)
        .where(SimulationResult.simulation_id == simulation_id)
        .where(SimulationResult.student_id == student_id)
        .order_by(SimulationResult.started_at.desc())
    )
    results = list(rows.scalars().all())
    completed = sum(1 for r in results if r.completed_at is not None)
    in_progress = next((r for r in results if r.completed_at is None), None)
    return completed, in_progress


async def _open_attempt(db: AsyncSession, context: AccessContext) -> tuple[SimulationResult, bool]:
    simulation_id = context.simulation.id
    student_id = context.student_id

    completed, in_progress = await attempt_state(db, simulation_id, student_id)
    if in_progress is not None:
        return in_progress, True

    reason = attempt_denial_reason(
        context.simulation.is_repeatable,
        completed,
        context.simulation.max_attempts,
        False,
    )
    if reason is not None:
        raise ForbiddenError(ACCESS_DENIAL_MESSAGES[reason], error_code=reason.value)

    result = SimulationResult(
        simulation_id=simulation_id,
        student_id=student_id,
        assignment_id=context.assignment_id,
        answers=[],
    )
    db.add(result)
    try:
        await db.commit()
    except IntegrityError:
        # Lost the race to a concurrent start: the partial unique index kept one row
        await db.rollback()
        _, in_progress = await attempt_state(db, simulation_id, student_id)
        if in_progress is None:
            raise
        logger.info(f"Concurrent start for simulation {simulation_id}; resuming {in_progress.id}")
        return in_progress, True

    logger.info(f"Student {student_id} started attempt {result.id} on simulation {simulation_id}")
    return result, False


async def start_attempt(
    db: AsyncSession,
    simulation_id: uuid.UUID,
    student: Student,
    now: Optional[datetime] = None,
) -> dict:
    context = (await evaluate_access(db, simulation_id, student, now)).ensure_allowed()
    result, resumed = await _open_attempt(db, context)
    return {"result_id": result.id, "resumed": resumed}


async def get_owned_result(
    db: AsyncSession, result_id: uuid.UUID, student_id: uuid.UUID
) -> SimulationResult:
    result = await db.get(SimulationResult, result_id)
    if result is None:
        raise NotFoundError("Attempt not found")
    if result.student_id != student_id:
        raise ForbiddenError("You do not have access to this attempt")
    return result


async def save_progress(
    db: AsyncSession,
    result_id: uuid.UUID,
    student: Student,
    answers: list[dict],
    time_spent: int,
) -> SimulationResult:
    """Overwrite the partial answers of an unfinished attempt."""
    result = await get_owned_result(db, result_id, student.id)
    if result.completed_at is not None:
        raise InvalidInputError("Attempt already completed", error_code="ATTEMPT_COMPLETED")

    result.answers = [_jsonable_answer(a) for a in answers]
    result.duration_seconds = max(int(time_spent or 0), 0)
    db.add(result)
    await db.commit()
    return result


def _jsonable_answer(answer: dict) -> dict:
    out = {}
    for key, value in answer.items():
        if isinstance(value, uuid.UUID):
            value = str(value)
        elif isinstance(value, (list, tuple)):
            value = [str(v) if isinstance(v, uuid.UUID) else v for v in value]
        out[key] = value
    return out


def _index_answers(answers: list[dict]) -> dict[str, dict]:
    return {str(a.get("question_id")): a for a in answers if a.get("question_id") is not None}


def score_submission(simulation: Simulation, answers: list[dict]) -> tuple[list[dict], ScoreSummary, float]:
    """Score every question of ``simulation`` against the submitted answers.

    Returns the per-question entries stored on the result, the totals and the
    sum of effective points (the fallback maximum score). Questions with no
    submitted answer count as blank.
    """
    config = ScoringConfig.from_simulation(simulation)
    submitted = _index_answers(answers)
    summary = ScoreSummary()
    entries: list[dict] = []
    max_possible = 0.0

    for slot in simulation.questions:
        question = slot.question
        answer = submitted.get(str(question.id)) or {}
        score = score_answer(question, answer, config, slot)
        points = max_points_for(question, config, slot)
        max_possible += points
        summary.add(score.category, score.earned_points)

        answer_ids = [str(i) for i in (answer.get("answer_ids") or [])]
        entries.append(
            {
                "question_id": str(question.id),
                "answer_id": str(answer["answer_id"]) if answer.get("answer_id") else None,
                "answer_ids": answer_ids,
                "answer_text": answer.get("answer_text"),
                "category": score.category.value,
                "is_correct": score.is_correct,
                "earned_points": score.earned_points,
                "max_points": points,
                "time_spent": int(answer.get("time_spent") or 0),
            }
        )

    summary.total_score = round(summary.total_score, 4)
    return entries, summary, max_possible


def result_summary(result: SimulationResult, simulation: Simulation) -> dict[str, Any]:
    if not simulation.show_results:
        return {"result_id": result.id, "message": RESULTS_HIDDEN_MESSAGE}

    summary = {
        "result_id": result.id,
        "score": result.total_score,
        "max_score": simulation.max_score,
        "percentage": result.percentage_score,
        "correct_count": result.correct_answers,
        "wrong_count": result.wrong_answers,
        "blank_count": result.blank_answers,
        "pending_count": result.pending_answers,
        "total_questions": simulation.total_questions,
        "passed": is_passed(result.total_score, simulation.passing_score),
        "show_correct_answers": simulation.show_correct_answers,
    }
    if simulation.show_correct_answers:
        summary["answers"] = result.answers
    return summary


async def submit_attempt(
    db: AsyncSession,
    simulation_id: uuid.UUID,
    student: Student,
    answers: list[dict],
    total_time_spent: int,
    now: Optional[datetime] = None,
) -> dict:
    """Finish the student's attempt and score it.

    When no attempt is in progress one is opened first, so the attempt limits
    apply to direct submissions too. Pending open answers get a keyword
    auto-score and wait for a grader.
    """
    now = as_utc(now or get_current_utc_datetime())
    context = (await evaluate_access(db, simulation_id, student, now)).ensure_allowed()
    simulation_id = context.simulation.id
    result, _ = await _open_attempt(db, context)
    simulation = await db.get(Simulation, simulation_id)

    entries, summary, max_possible = score_submission(simulation, answers)
    max_score = simulation.max_score or max_possible

    result.answers = entries
    result.total_score = summary.total_score
    result.percentage_score = percentage(summary.total_score, max_score)
    result.correct_answers = summary.correct
    result.wrong_answers = summary.wrong
    result.blank_answers = summary.blank
    result.pending_answers = summary.pending
    result.duration_seconds = max(int(total_time_spent or 0), 0)
    result.completed_at = now
    db.add(result)

    keywords_by_question = {str(slot.question_id): slot.question.keywords for slot in simulation.questions}
    for entry in entries:
        if entry["category"] != AnswerCategory.pending.value:
            continue
        db.add(
            SimulationOpenAnswer(
                result_id=result.id,
                question_id=uuid.UUID(entry["question_id"]),
                answer_text=entry["answer_text"],
                auto_score=score_keywords(entry["answer_text"], keywords_by_question[entry["question_id"]]),
                max_points=entry["max_points"],
            )
        )

    if context.assignment_id is not None and context.is_direct_assignment:
        await db.execute(
            update(SimulationAssignment)
            .where(SimulationAssignment.id == context.assignment_id)
            .where(SimulationAssignment.status == AssignmentStatus.active)
            .values(status=AssignmentStatus.completed)
        )

    await db.commit()
    logger.info(
        f"Student {context.student_id} submitted attempt {result.id}: "
        f"score={summary.total_score} correct={summary.correct} wrong={summary.wrong} "
        f"blank={summary.blank} pending={summary.pending}"
    )
    return result_summary(result, simulation)
