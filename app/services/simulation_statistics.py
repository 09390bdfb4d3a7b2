"""Aggregates over completed attempts: per-simulation statistics and leaderboard."""

from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.simulation import Simulation
from app.models.simulation_result import SimulationResult
from app.models.user import Student, User
from app.services.scoring import is_passed


def _mean(values: List[float]) -> float:
    return round(sum(values) / len(values), 2) if values else 0.0


async def _completed_results(
    db: AsyncSession, simulation_id: uuid.UUID
) -> List[SimulationResult]:
    rows = await db.execute(
        select(SimulationResult)
        .where(SimulationResult.simulation_id == simulation_id)
        .where(SimulationResult.completed_at.is_not(None))
    )
    return list(rows.scalars().all())


async def simulation_statistics(db: AsyncSession, simulation: Simulation) -> Dict[str, Any]:
    """Average, best and worst score over every completed attempt.

    ``pass_rate`` is a percentage of attempts, and ``None`` when the
    simulation has no passing score.
    """
    results = await _completed_results(db, simulation.id)
    scores = [r.total_score or 0.0 for r in results]

    pass_rate = None
    if simulation.passing_score is not None:
        passed = sum(1 for score in scores if score >= simulation.passing_score)
        pass_rate = round(passed / len(scores) * 100, 2) if scores else 0.0

    return {
        "simulation_id": simulation.id,
        "completed_attempts": len(results),
        "students": len({r.student_id for r in results}),
        "average_score": _mean(scores),
        "best_score": max(scores) if scores else 0.0,
        "worst_score": min(scores) if scores else 0.0,
        "average_percentage": _mean([r.percentage_score or 0.0 for r in results]),
        "average_correct": _mean([r.correct_answers for r in results]),
        "average_wrong": _mean([r.wrong_answers for r in results]),
        "average_blank": _mean([r.blank_answers for r in results]),
        "average_duration_seconds": _mean([r.duration_seconds for r in results]),
        "pending_answers": sum(r.pending_answers for r in results),
        "pass_rate": pass_rate,
    }


def _rank_key(result: SimulationResult):
    # Higher score first, then the faster attempt
    return (-(result.total_score or 0.0), result.duration_seconds or 0)


def best_results(results: List[SimulationResult]) -> List[SimulationResult]:
    """Each student's best completed result, best first."""
    best: Dict[uuid.UUID, SimulationResult] = {}
    for result in results:
        current = best.get(result.student_id)
        if current is None or _rank_key(result) < _rank_key(current):
            best[result.student_id] = result
    return sorted(best.values(), key=_rank_key)


async def leaderboard(
    db: AsyncSession,
    simulation: Simulation,
    *,
    limit: int = 50,
    viewer_student_id: Optional[uuid.UUID] = None,
    show_names: bool = True,
) -> Dict[str, Any]:
    """Rank students by their best completed result.

    Equal scores share a rank. When ``show_names`` is false, everyone but
    the viewer is listed as an anonymous participant.
    """
    ranked = best_results(await _completed_results(db, simulation.id))
    names: Dict[uuid.UUID, str] = {}
    if ranked:
        rows = await db.execute(
            select(Student.id, User.name)
            .join(User, User.id == Student.user_id)
            .where(Student.id.in_([r.student_id for r in ranked]))
        )
        names = dict(rows.all())

    entries = []
    rank = 0
    previous_score = None
    for position, result in enumerate(ranked[:limit], start=1):
        if result.total_score != previous_score:
            rank = position
            previous_score = result.total_score
        is_viewer = result.student_id == viewer_student_id
        visible = show_names or is_viewer
        name = names.get(result.student_id) if visible else f"Partecipante #{rank}"
        entries.append(
            {
                "rank": rank,
                "student_id": result.student_id if visible else None,
                "student_name": name,
                "is_current_user": is_viewer,
                "result_id": result.id if visible else None,
                "total_score": result.total_score,
                "percentage_score": result.percentage_score,
                "correct_answers": result.correct_answers,
                "wrong_answers": result.wrong_answers,
                "blank_answers": result.blank_answers,
                "duration_seconds": result.duration_seconds,
                "completed_at": result.completed_at,
                "passed": is_passed(result.total_score, simulation.passing_score),
            }
        )

    return {
        "simulation": {
            "id": simulation.id,
            "title": simulation.title,
            "max_score": simulation.max_score,
            "passing_score": simulation.passing_score,
        },
        "leaderboard": entries,
        "total_participants": len(ranked),
        "can_see_all_names": show_names,
    }
