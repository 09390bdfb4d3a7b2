"""Assignment status transitions: lazy auto-close, manual close/reopen, batch close.

Expired assignments are closed opportunistically when a student touches them
(``maybe_auto_close``). Nothing here runs on a timer; the batch variant is an
admin action.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.logging_config import get_logger
from app.models.group import GroupMember
from app.models.simulation_assignment import SimulationAssignment
from app.models.simulation_result import SimulationResult
from app.utils.datetime_utils import as_utc, get_current_utc_datetime
from app.utils.enums import AssignmentStatus, SimulationStatus


logger = get_logger("assignment_lifecycle")


async def maybe_auto_close(
    db: AsyncSession, assignment: SimulationAssignment, now: datetime | None = None
) -> bool:
    """Close ``assignment`` if its end date has passed.

    Returns True only when a close was actually written. Persistence errors
    are logged and swallowed: the caller keeps evaluating access with the
    status it already had, and the next access retries the sweep.
    """
    now = as_utc(now or get_current_utc_datetime())
    end_date = as_utc(assignment.end_date)
    if end_date is None or end_date >= now:
        return False
    if assignment.status != AssignmentStatus.active or assignment.kept_open:
        return False

    assignment_id = assignment.id
    try:
        outcome = await db.execute(
            update(SimulationAssignment)
            .where(SimulationAssignment.id == assignment_id)
            .where(SimulationAssignment.status == AssignmentStatus.active)
            .values(status=AssignmentStatus.closed)
        )
        await db.commit()
    except Exception as e:
        logger.warning(f"Auto-close failed for assignment {assignment_id}: {e}")
        try:
            await db.rollback()
        except Exception as rollback_error:
            logger.warning(f"Rollback after auto-close failure also failed: {rollback_error}")
        return False

    if not outcome.rowcount:
        # Someone else closed it first
        return False
    logger.info(f"Auto-closed expired assignment {assignment_id} (ended {end_date.isoformat()})")
    return True


async def close_assignment(db: AsyncSession, assignment: SimulationAssignment) -> SimulationAssignment:
    assignment.status = AssignmentStatus.closed
    assignment.kept_open = False
    db.add(assignment)
    await db.commit()
    return assignment


async def reopen_assignment(db: AsyncSession, assignment: SimulationAssignment) -> SimulationAssignment:
    """Staff override: ACTIVE again, and immune to the end-date gate and sweep."""
    assignment.status = AssignmentStatus.active
    assignment.kept_open = True
    db.add(assignment)
    await db.commit()
    return assignment


@dataclass
class CloseAssignmentsReport:
    closed_by_date: int = 0
    closed_by_completion: int = 0
    assignments_closed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def total_closed(self) -> int:
        return self.closed_by_date + self.closed_by_completion

    @property
    def success(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "dry_run": self.dry_run,
            "closed_by_date": self.closed_by_date,
            "closed_by_completion": self.closed_by_completion,
            "total_closed": self.total_closed,
            "assignments_closed": self.assignments_closed,
            "errors": self.errors,
        }


async def _targeted_student_ids(db: AsyncSession, student_id, group_id) -> list:
    if student_id is not None:
        return [student_id]
    rows = await db.execute(
        select(GroupMember.student_id).where(GroupMember.group_id == group_id)
    )
    return list(rows.scalars().all())


async def _set_closed(db: AsyncSession, assignment_id, dry_run: bool) -> None:
    if dry_run:
        return
    await db.execute(
        update(SimulationAssignment)
        .where(SimulationAssignment.id == assignment_id)
        .values(status=AssignmentStatus.closed)
    )
    await db.commit()


async def close_expired_assignments(
    db: AsyncSession, now: datetime | None = None, dry_run: bool = False
) -> CloseAssignmentsReport:
    """Close ACTIVE assignments that expired, or whose targets all finished.

    Completion-based closing only applies to published, non-repeatable
    simulations. Assignments kept open by staff are left alone. Errors are
    collected per assignment so one bad row does not stop the batch.
    """
    now = as_utc(now or get_current_utc_datetime())
    report = CloseAssignmentsReport(dry_run=dry_run)

    rows = await db.execute(
        select(SimulationAssignment)
        .options(
            selectinload(SimulationAssignment.simulation),
            selectinload(SimulationAssignment.group),
        )
        .where(SimulationAssignment.status == AssignmentStatus.active)
        .where(SimulationAssignment.kept_open.is_(False))
    )
    candidates = [
        (a.id, a.simulation_id, a.student_id, a.group_id, as_utc(a.end_date),
         a.simulation.title, a.simulation.is_repeatable, a.simulation.status,
         a.group.name if a.group is not None else None)
        for a in rows.scalars().all()
    ]

    for (assignment_id, simulation_id, student_id, group_id, end_date,
         title, is_repeatable, sim_status, group_name) in candidates:
        target = group_name or f"student {student_id}"
        try:
            if end_date is not None and end_date < now:
                await _set_closed(db, assignment_id, dry_run)
                report.closed_by_date += 1
                report.assignments_closed.append(
                    f"{title} -> {target} (expired {end_date.isoformat()})"
                )
                continue

            if is_repeatable or sim_status != SimulationStatus.published:
                continue

            targeted = await _targeted_student_ids(db, student_id, group_id)
            if not targeted:
                continue

            completed = await db.execute(
                select(SimulationResult.student_id)
                .where(SimulationResult.simulation_id == simulation_id)
                .where(SimulationResult.student_id.in_(targeted))
                .where(SimulationResult.completed_at.is_not(None))
            )
            completed_ids = set(completed.scalars().all())
            if all(sid in completed_ids for sid in targeted):
                await _set_closed(db, assignment_id, dry_run)
                report.closed_by_completion += 1
                report.assignments_closed.append(
                    f"{title} -> {target} (all {len(targeted)} students completed)"
                )
        except Exception as e:
            await db.rollback()
            msg = f"Failed to close assignment {assignment_id}: {e}"
            report.errors.append(msg)
            logger.error(msg)

    logger.info(
        f"{'[DRY RUN] ' if dry_run else ''}Closed {report.total_closed} assignments "
        f"({report.closed_by_date} by date, {report.closed_by_completion} by completion)"
    )
    return report
