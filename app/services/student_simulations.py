"""Read side for students: what they can see, its status, and past results."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, NotFoundError
from app.models.simulation import Simulation
from app.models.simulation_assignment import SimulationAssignment
from app.models.simulation_result import SimulationResult
from app.models.user import Student
from app.services.scoring import is_passed
from app.services.simulation_access import (
    assignment_rank,
    evaluate_access,
    student_group_ids,
)
from app.services.simulation_attempts import attempt_state
from app.services.simulation_rules import (
    ACCESS_DENIAL_MESSAGES,
    attempt_denial_reason,
    effective_window,
)
from app.services.simulation_statistics import leaderboard
from app.utils.datetime_utils import as_utc, get_current_utc_datetime
from app.utils.enums import (
    SimulationStatus,
    SimulationType,
    SimulationVisibility,
    StudentSimulationStatus,
)


def student_status(
    now: datetime,
    start: Optional[datetime],
    end: Optional[datetime],
    has_completed: bool,
    has_in_progress: bool,
    kept_open: bool = False,
) -> StudentSimulationStatus:
    if has_completed:
        return StudentSimulationStatus.completed
    if has_in_progress:
        return StudentSimulationStatus.in_progress
    if end is not None and end < now and not kept_open:
        return StudentSimulationStatus.expired
    if start is not None and start > now:
        return StudentSimulationStatus.not_started
    return StudentSimulationStatus.available


def _pick_assignment(assignments: list[SimulationAssignment], student_id: uuid.UUID):
    if not assignments:
        return None
    return sorted(assignments, key=lambda a: assignment_rank(a, student_id))[0]


async def list_available_simulations(
    db: AsyncSession,
    student: Student,
    *,
    status: Optional[StudentSimulationStatus] = None,
    type: Optional[SimulationType] = None,
    page: int = 1,
    page_size: int = 20,
    now: Optional[datetime] = None,
) -> tuple[list[dict], int]:
    """Published simulations reachable by the student, with their status.

    Listing is read-only: expired assignments show as ``expired`` here and
    are only closed when the student actually tries to enter.
    """
    now = as_utc(now or get_current_utc_datetime())
    student_id = student.id
    group_ids = await student_group_ids(db, student_id)

    targets = [SimulationAssignment.student_id == student_id]
    if group_ids:
        targets.append(SimulationAssignment.group_id.in_(group_ids))
    rows = await db.execute(select(SimulationAssignment).where(or_(*targets)))
    assignments_by_sim: dict[uuid.UUID, list[SimulationAssignment]] = {}
    for assignment in rows.scalars().all():
        assignments_by_sim.setdefault(assignment.simulation_id, []).append(assignment)

    reachable = [
        Simulation.visibility == SimulationVisibility.public,
        (Simulation.type == SimulationType.personal) & (Simulation.created_by_id == student.user_id),
    ]
    if assignments_by_sim:
        reachable.append(Simulation.id.in_(list(assignments_by_sim)))
    stmt = (
        select(Simulation)
        .where(Simulation.status == SimulationStatus.published)
        .where(or_(*reachable))
        .order_by(Simulation.created_at.desc())
    )
    if type is not None:
        stmt = stmt.where(Simulation.type == type)
    simulations = list((await db.execute(stmt)).scalars().all())

    result_rows = await db.execute(
        select(SimulationResult.simulation_id, SimulationResult.completed_at)
        .where(SimulationResult.student_id == student_id)
    )
    completed_ids, in_progress_ids = set(), set()
    for simulation_id, completed_at in result_rows.all():
        (completed_ids if completed_at is not None else in_progress_ids).add(simulation_id)

    items = []
    for simulation in simulations:
        assignment = _pick_assignment(assignments_by_sim.get(simulation.id, []), student_id)
        start, end = effective_window(simulation, assignment)
        sim_status = student_status(
            now,
            start,
            end,
            simulation.id in completed_ids,
            simulation.id in in_progress_ids,
            kept_open=bool(assignment is not None and assignment.kept_open),
        )
        if status is not None and sim_status != status:
            continue
        items.append(
            {
                "id": simulation.id,
                "title": simulation.title,
                "description": simulation.description,
                "type": simulation.type,
                "duration_minutes": simulation.duration_minutes,
                "total_questions": simulation.total_questions,
                "is_repeatable": simulation.is_repeatable,
                "start_date": start,
                "end_date": end,
                "due_date": assignment.due_date if assignment is not None else None,
                "assignment_notes": assignment.notes if assignment is not None else None,
                "student_status": sim_status,
            }
        )

    total = len(items)
    offset = (page - 1) * page_size
    return items[offset: offset + page_size], total


def _question_for_student(slot) -> dict:
    question = slot.question
    return {
        "id": question.id,
        "order": slot.order,
        "text": question.text,
        "type": question.type,
        "answers": [
            {"id": a.id, "text": a.text, "order": a.order} for a in question.answers
        ],
    }


async def simulation_for_student(
    db: AsyncSession,
    simulation_id: uuid.UUID,
    student: Student,
    now: Optional[datetime] = None,
) -> dict:
    """Simulation detail for taking it; answer correctness is never included."""
    context = (await evaluate_access(db, simulation_id, student, now)).ensure_allowed()
    simulation = context.simulation
    completed, in_progress = await attempt_state(db, simulation.id, context.student_id)
    reason = attempt_denial_reason(
        simulation.is_repeatable, completed, simulation.max_attempts, in_progress is not None
    )
    if reason is not None:
        raise ForbiddenError(ACCESS_DENIAL_MESSAGES[reason], error_code=reason.value)
    return {
        "id": simulation.id,
        "title": simulation.title,
        "description": simulation.description,
        "type": simulation.type,
        "duration_minutes": simulation.duration_minutes,
        "is_repeatable": simulation.is_repeatable,
        "max_attempts": simulation.max_attempts,
        "start_date": context.effective_start_date,
        "end_date": context.effective_end_date,
        "due_date": context.due_date,
        "completed_attempts": completed,
        "has_in_progress_attempt": in_progress is not None,
        "in_progress_attempt_id": in_progress.id if in_progress is not None else None,
        "saved_answers": in_progress.answers if in_progress is not None else [],
        "questions": [_question_for_student(slot) for slot in simulation.questions],
    }


async def list_results(
    db: AsyncSession,
    student: Student,
    *,
    simulation_id: Optional[uuid.UUID] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[dict], int]:
    conditions = [
        SimulationResult.student_id == student.id,
        SimulationResult.completed_at.is_not(None),
    ]
    if simulation_id is not None:
        conditions.append(SimulationResult.simulation_id == simulation_id)

    total = (
        await db.execute(select(func.count()).select_from(SimulationResult).where(*conditions))
    ).scalar_one()
    rows = await db.execute(
        select(SimulationResult, Simulation)
        .join(Simulation, Simulation.id == SimulationResult.simulation_id)
        .where(*conditions)
        .order_by(SimulationResult.completed_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    items = []
    for result, simulation in rows.all():
        visible = simulation.show_results
        items.append(
            {
                "id": result.id,
                "simulation_id": simulation.id,
                "simulation_title": simulation.title,
                "completed_at": result.completed_at,
                "duration_seconds": result.duration_seconds,
                "score": result.total_score if visible else None,
                "percentage": result.percentage_score if visible else None,
                "max_score": simulation.max_score,
                "passed": is_passed(result.total_score, simulation.passing_score) if visible else None,
                "pending_answers": result.pending_answers,
            }
        )
    return items, total


async def result_detail(db: AsyncSession, result_id: uuid.UUID, student: Student) -> dict[str, Any]:
    result = await db.get(SimulationResult, result_id)
    if result is None or result.completed_at is None:
        raise NotFoundError("Result not found")
    if result.student_id != student.id:
        raise ForbiddenError("You do not have access to this result")
    simulation = await db.get(Simulation, result.simulation_id)

    detail: dict[str, Any] = {
        "id": result.id,
        "simulation": {
            "id": simulation.id,
            "title": simulation.title,
            "type": simulation.type,
            "max_score": simulation.max_score,
            "passing_score": simulation.passing_score,
        },
        "completed_at": result.completed_at,
        "duration_seconds": result.duration_seconds,
        "can_review": bool(simulation.show_results),
    }
    if not simulation.show_results:
        return detail

    detail.update(
        {
            "score": result.total_score,
            "percentage": result.percentage_score,
            "correct_answers": result.correct_answers,
            "wrong_answers": result.wrong_answers,
            "blank_answers": result.blank_answers,
            "pending_answers": result.pending_answers,
            "passed": is_passed(result.total_score, simulation.passing_score),
        }
    )

    show_correct = bool(simulation.show_correct_answers)
    questions = {str(slot.question_id): slot.question for slot in simulation.questions}
    answers = []
    for entry in result.answers or []:
        question = questions.get(entry.get("question_id"))
        answers.append(
            {
                "question_id": entry.get("question_id"),
                "text": question.text if question is not None else None,
                "type": question.type if question is not None else None,
                "options": [
                    {
                        "id": a.id,
                        "text": a.text,
                        **({"is_correct": a.is_correct} if show_correct else {}),
                    }
                    for a in (question.answers if question is not None else [])
                ],
                "answer_id": entry.get("answer_id"),
                "answer_ids": entry.get("answer_ids") or [],
                "answer_text": entry.get("answer_text"),
                "category": entry.get("category"),
                "is_correct": entry.get("is_correct") if show_correct else None,
                "earned_points": entry.get("earned_points"),
                "time_spent": entry.get("time_spent", 0),
            }
        )
    detail["answers"] = answers
    return detail


async def leaderboard_for_student(
    db: AsyncSession, simulation_id: uuid.UUID, student: Student, limit: int = 50
) -> dict[str, Any]:
    """Leaderboard seen by a participant: other students stay anonymous."""
    simulation = await db.get(Simulation, simulation_id)
    if simulation is None or simulation.status == SimulationStatus.draft:
        raise NotFoundError("Simulation not found")
    if not simulation.show_results:
        raise ForbiddenError(
            "Results are not available for this simulation", error_code="RESULTS_HIDDEN"
        )
    completed = (
        await db.execute(
            select(func.count())
            .select_from(SimulationResult)
            .where(SimulationResult.simulation_id == simulation.id)
            .where(SimulationResult.student_id == student.id)
            .where(SimulationResult.completed_at.is_not(None))
        )
    ).scalar_one()
    if not completed:
        raise ForbiddenError("Complete the simulation to see its leaderboard")
    return await leaderboard(
        db, simulation, limit=limit, viewer_student_id=student.id, show_names=False
    )
