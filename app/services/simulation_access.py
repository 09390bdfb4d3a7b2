"""Resolve whether a student may enter a simulation right now.

Combines the database lookups (assignment, virtual room) with the pure rules
in ``app.services.simulation_rules``. The lazy auto-close sweep runs here,
once per access evaluation, before the window check.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, NotFoundError
from app.core.logging_config import get_logger
from app.models.group import GroupMember
from app.models.simulation import Simulation
from app.models.simulation_assignment import SimulationAssignment
from app.models.simulation_session import SimulationSession
from app.models.user import Student
from app.services.assignment_lifecycle import maybe_auto_close
from app.services.simulation_rules import (
    ACCESS_DENIAL_MESSAGES,
    AccessDecision,
    can_access,
    effective_window,
)
from app.utils.datetime_utils import as_utc, get_current_utc_datetime
from app.utils.enums import (
    AccessDenialReason,
    AssignmentStatus,
    SimulationStatus,
    SimulationType,
    SimulationVisibility,
    VirtualRoomStatus,
)


logger = get_logger("simulation_access")


@dataclass
class AccessContext:
    simulation: Simulation
    student_id: uuid.UUID
    decision: AccessDecision
    assignment_id: Optional[uuid.UUID] = None
    assignment_status: Optional[AssignmentStatus] = None
    is_direct_assignment: bool = False
    effective_start_date: Optional[datetime] = None
    effective_end_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    has_virtual_room_override: bool = False
    kept_open: bool = False
    auto_closed: bool = False

    @property
    def allowed(self) -> bool:
        return self.decision.allowed

    def ensure_allowed(self) -> "AccessContext":
        if not self.decision.allowed:
            raise ForbiddenError(
                ACCESS_DENIAL_MESSAGES[self.decision.reason],
                error_code=self.decision.reason.value,
            )
        return self


async def student_group_ids(db: AsyncSession, student_id: uuid.UUID) -> list[uuid.UUID]:
    rows = await db.execute(
        select(GroupMember.group_id).where(GroupMember.student_id == student_id)
    )
    return list(rows.scalars().all())


def assignment_rank(assignment: SimulationAssignment, student_id: uuid.UUID):
    created = as_utc(assignment.created_at)
    return (
        0 if assignment.student_id == student_id else 1,
        0 if assignment.status == AssignmentStatus.active else 1,
        -(created.timestamp() if created else 0),
    )


async def resolve_assignment(
    db: AsyncSession,
    simulation_id: uuid.UUID,
    student_id: uuid.UUID,
    group_ids: Optional[list[uuid.UUID]] = None,
) -> Optional[SimulationAssignment]:
    """Pick the assignment that governs the student's access.

    A direct assignment wins over a group one, an ACTIVE one over a closed
    or completed one, and the newest wins among equals.
    """
    if group_ids is None:
        group_ids = await student_group_ids(db, student_id)

    targets = [SimulationAssignment.student_id == student_id]
    if group_ids:
        targets.append(SimulationAssignment.group_id.in_(group_ids))

    rows = await db.execute(
        select(SimulationAssignment)
        .where(SimulationAssignment.simulation_id == simulation_id)
        .where(or_(*targets))
    )
    assignments = list(rows.scalars().all())
    if not assignments:
        return None
    return sorted(assignments, key=lambda a: assignment_rank(a, student_id))[0]


async def has_active_virtual_room(db: AsyncSession, simulation_id: uuid.UUID) -> bool:
    row = await db.execute(
        select(SimulationSession.id)
        .where(SimulationSession.simulation_id == simulation_id)
        .where(SimulationSession.status == VirtualRoomStatus.started)
        .limit(1)
    )
    return row.scalar_one_or_none() is not None


def can_see_without_assignment(simulation: Simulation, student: Student) -> bool:
    if simulation.visibility == SimulationVisibility.public:
        return True
    return (
        simulation.type == SimulationType.personal
        and simulation.created_by_id is not None
        and simulation.created_by_id == student.user_id
    )


async def load_published_simulation(db: AsyncSession, simulation_id: uuid.UUID) -> Simulation:
    simulation = await db.get(Simulation, simulation_id)
    if simulation is None or simulation.status != SimulationStatus.published:
        raise NotFoundError("Simulation not available")
    return simulation


async def evaluate_access(
    db: AsyncSession,
    simulation_id: uuid.UUID,
    student: Student,
    now: Optional[datetime] = None,
) -> AccessContext:
    """Build the access context for ``student`` on a published simulation.

    Raises ``NotFoundError`` for a missing or unpublished simulation and
    ``ForbiddenError`` when the student has no path to it at all. Window and
    closed-assignment denials are reported on ``context.decision``; call
    ``ensure_allowed()`` to turn them into errors.
    """
    now = as_utc(now or get_current_utc_datetime())
    simulation = await load_published_simulation(db, simulation_id)
    simulation_id = simulation.id
    student_id = student.id

    assignment = await resolve_assignment(db, simulation_id, student_id)
    if assignment is None and not can_see_without_assignment(simulation, student):
        raise ForbiddenError(
            ACCESS_DENIAL_MESSAGES[AccessDenialReason.no_access],
            error_code=AccessDenialReason.no_access.value,
        )

    start, end = effective_window(simulation, assignment)
    context = AccessContext(
        simulation=simulation,
        student_id=student_id,
        decision=AccessDecision.allow(),
        effective_start_date=start,
        effective_end_date=end,
    )

    if assignment is not None:
        context.assignment_id = assignment.id
        context.assignment_status = assignment.status
        context.is_direct_assignment = assignment.student_id == student_id
        context.due_date = as_utc(assignment.due_date)
        context.notes = assignment.notes
        context.kept_open = bool(assignment.kept_open)

        if await maybe_auto_close(db, assignment, now):
            context.assignment_status = AssignmentStatus.closed
            context.auto_closed = True
        # A failed sweep rolls back, which expires everything loaded so far
        context.simulation = await db.get(Simulation, simulation_id)

        if context.assignment_status == AssignmentStatus.closed:
            context.decision = AccessDecision.deny(AccessDenialReason.assignment_closed)
            return context

    context.has_virtual_room_override = await has_active_virtual_room(db, simulation_id)
    context.decision = can_access(
        now,
        start,
        end,
        context.has_virtual_room_override,
        # Only a staff reopen keeps the window open past its end date
        context.assignment_status == AssignmentStatus.active and context.kept_open,
    )
    if not context.decision.allowed:
        logger.debug(
            f"Access denied to simulation {simulation_id} for student {student_id}: "
            f"{context.decision.reason.value}"
        )
    return context
