from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from app.core.logging_config import get_logger
from app.models.group import Group, GroupMember
from app.models.question import Question
from app.models.simulation import Simulation, SimulationQuestion
from app.models.simulation_assignment import SimulationAssignment
from app.models.simulation_result import SimulationResult
from app.models.simulation_session import SimulationSession
from app.models.user import Student, User
from app.schemas.simulations import (
    AssignmentTarget,
    SimulationCreate,
    SimulationQuestionIn,
    SimulationUpdate,
)
from app.services import assignment_lifecycle
from app.services.question_service import serialize_question
from app.utils.datetime_utils import get_current_utc_datetime
from app.utils.enums import (
    QuestionStatus,
    Role,
    SimulationStatus,
    SimulationType,
    VirtualRoomStatus,
)


logger = get_logger("simulations")


@dataclass
class AssignmentOutcome:
    created_ids: List[uuid.UUID] = field(default_factory=list)
    skipped: int = 0

    @property
    def created(self) -> int:
        return len(self.created_ids)


class SimulationService:
    """Staff operations on simulations. Collaborators only touch their own."""

    def __init__(self, db: AsyncSession, user: User):
        self.db = db
        self.user = user

    @property
    def is_admin(self) -> bool:
        return self.user.role == Role.admin

    def _ensure_owner(self, simulation: Simulation) -> None:
        if not self.is_admin and simulation.created_by_id != self.user.id:
            raise ForbiddenError("You do not have permission on this simulation")

    async def get(self, simulation_id: uuid.UUID) -> Simulation:
        simulation = await self.db.get(Simulation, simulation_id)
        if simulation is None:
            raise NotFoundError("Simulation not found")
        self._ensure_owner(simulation)
        return simulation

    async def _reload(self, simulation_id: uuid.UUID) -> Simulation:
        # New question slots only carry question_id until reloaded
        rows = await self.db.execute(
            select(Simulation)
            .where(Simulation.id == simulation_id)
            .options(selectinload(Simulation.questions).selectinload(SimulationQuestion.question))
            .execution_options(populate_existing=True)
        )
        return rows.scalar_one()

    async def list_simulations(
        self,
        *,
        type: Optional[SimulationType] = None,
        status: Optional[SimulationStatus] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Simulation], int]:
        conditions = []
        if not self.is_admin:
            conditions.append(Simulation.created_by_id == self.user.id)
        if type is not None:
            conditions.append(Simulation.type == type)
        if status is not None:
            conditions.append(Simulation.status == status)

        total = (
            await self.db.execute(select(func.count()).select_from(Simulation).where(*conditions))
        ).scalar_one()
        rows = await self.db.execute(
            select(Simulation)
            .where(*conditions)
            .order_by(Simulation.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(rows.scalars().all()), total

    async def _question_slots(self, items: List[SimulationQuestionIn]) -> List[SimulationQuestion]:
        if not items:
            return []
        ids = [item.question_id for item in items]
        rows = await self.db.execute(select(Question.id).where(Question.id.in_(ids)))
        found = set(rows.scalars().all())
        missing = [str(i) for i in ids if i not in found]
        if missing:
            raise InvalidInputError("One or more questions do not exist", data={"missing": missing})
        return [
            SimulationQuestion(
                question_id=item.question_id,
                order=item.order if item.order is not None else index,
                custom_points=item.custom_points,
                custom_negative_points=item.custom_negative_points,
            )
            for index, item in enumerate(items)
        ]

    async def create(self, payload: SimulationCreate) -> Simulation:
        data = payload.model_dump(exclude={"questions"})
        simulation = Simulation(
            **data,
            status=SimulationStatus.draft,
            created_by_id=self.user.id,
            questions=await self._question_slots(payload.questions),
        )
        self.db.add(simulation)
        await self.db.commit()
        logger.info(f"Simulation {simulation.id} created by {self.user.id}")
        return await self._reload(simulation.id)

    async def update(self, simulation_id: uuid.UUID, payload: SimulationUpdate) -> Simulation:
        simulation = await self.get(simulation_id)
        if simulation.status == SimulationStatus.archived:
            raise InvalidInputError("Archived simulations cannot be edited")

        changes = payload.model_dump(exclude_unset=True, exclude={"questions"})
        start = changes.get("start_date", simulation.start_date)
        end = changes.get("end_date", simulation.end_date)
        if start is not None and end is not None and end <= start:
            raise InvalidInputError("end_date must be after start_date")
        for key, value in changes.items():
            setattr(simulation, key, value)

        if payload.questions is not None:
            # Flush the removals first: the (simulation, question) pair is unique
            simulation.questions.clear()
            await self.db.flush()
            simulation.questions.extend(await self._question_slots(payload.questions))

        self.db.add(simulation)
        await self.db.commit()
        return await self._reload(simulation.id)

    async def delete(self, simulation_id: uuid.UUID, force: bool = False) -> None:
        simulation = await self.get(simulation_id)
        results = (
            await self.db.execute(
                select(func.count())
                .select_from(SimulationResult)
                .where(SimulationResult.simulation_id == simulation.id)
            )
        ).scalar_one()
        if results and not force:
            raise InvalidInputError(
                "Simulation has results; archive it instead or pass force=true",
                error_code="HAS_RESULTS",
            )
        await self.db.delete(simulation)
        await self.db.commit()
        logger.info(f"Simulation {simulation_id} deleted by {self.user.id} ({results} results)")

    async def publish(self, simulation_id: uuid.UUID) -> Simulation:
        simulation = await self.get(simulation_id)
        if not simulation.questions:
            raise InvalidInputError("The simulation needs at least one question")
        unpublished = [
            slot for slot in simulation.questions
            if slot.question.status != QuestionStatus.published
        ]
        if unpublished:
            raise InvalidInputError(f"{len(unpublished)} questions are not published yet")
        simulation.status = SimulationStatus.published
        self.db.add(simulation)
        await self.db.commit()
        return simulation

    async def archive(self, simulation_id: uuid.UUID) -> Simulation:
        simulation = await self.get(simulation_id)
        simulation.status = SimulationStatus.archived
        self.db.add(simulation)
        await self.db.commit()
        return simulation

    # Assignments

    async def _allowed_targets(self) -> Tuple[set, set]:
        groups = await self.db.execute(
            select(Group.id).where(Group.reference_collaborator_id == self.user.id)
        )
        group_ids = set(groups.scalars().all())
        if not group_ids:
            return set(), set()
        members = await self.db.execute(
            select(GroupMember.student_id).where(GroupMember.group_id.in_(group_ids))
        )
        return group_ids, set(members.scalars().all())

    async def _check_targets_exist(self, targets: List[AssignmentTarget]) -> None:
        student_ids = {t.student_id for t in targets if t.student_id}
        group_ids = {t.group_id for t in targets if t.group_id}
        if student_ids:
            found = set((await self.db.execute(
                select(Student.id).where(Student.id.in_(student_ids))
            )).scalars().all())
            if student_ids - found:
                raise InvalidInputError("Unknown student in assignment targets")
        if group_ids:
            found = set((await self.db.execute(
                select(Group.id).where(Group.id.in_(group_ids))
            )).scalars().all())
            if group_ids - found:
                raise InvalidInputError("Unknown group in assignment targets")

    async def add_assignments(
        self, simulation_id: uuid.UUID, targets: List[AssignmentTarget]
    ) -> AssignmentOutcome:
        """Create assignments, silently skipping targets that already have one."""
        simulation = await self.get(simulation_id)
        if simulation.status == SimulationStatus.archived:
            raise InvalidInputError("Archived simulations cannot be assigned")
        await self._check_targets_exist(targets)

        if not self.is_admin:
            allowed_groups, allowed_students = await self._allowed_targets()
            for target in targets:
                if target.group_id and target.group_id not in allowed_groups:
                    raise ForbiddenError("You can only assign to groups you manage")
                if target.student_id and target.student_id not in allowed_students:
                    raise ForbiddenError("You can only assign to students in your groups")

        rows = await self.db.execute(
            select(SimulationAssignment.student_id, SimulationAssignment.group_id)
            .where(SimulationAssignment.simulation_id == simulation.id)
        )
        existing = {(s, g) for s, g in rows.all()}

        outcome = AssignmentOutcome()
        for target in targets:
            key = (target.student_id, target.group_id)
            if key in existing:
                outcome.skipped += 1
                continue
            existing.add(key)
            assignment = SimulationAssignment(
                simulation_id=simulation.id,
                student_id=target.student_id,
                group_id=target.group_id,
                start_date=target.start_date,
                end_date=target.end_date,
                due_date=target.due_date,
                notes=target.notes,
                assigned_by_id=self.user.id,
            )
            self.db.add(assignment)
            await self.db.flush()
            outcome.created_ids.append(assignment.id)

        await self.db.commit()
        logger.info(
            f"Simulation {simulation.id}: {outcome.created} assignments created, "
            f"{outcome.skipped} duplicates skipped"
        )
        return outcome

    async def get_assignment(self, assignment_id: uuid.UUID) -> SimulationAssignment:
        assignment = await self.db.get(SimulationAssignment, assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        simulation = await self.db.get(Simulation, assignment.simulation_id)
        self._ensure_owner(simulation)
        return assignment

    async def remove_assignment(self, assignment_id: uuid.UUID) -> None:
        assignment = await self.get_assignment(assignment_id)
        await self.db.delete(assignment)
        await self.db.commit()

    async def close_assignment(self, assignment_id: uuid.UUID) -> SimulationAssignment:
        assignment = await self.get_assignment(assignment_id)
        return await assignment_lifecycle.close_assignment(self.db, assignment)

    async def reopen_assignment(self, assignment_id: uuid.UUID) -> SimulationAssignment:
        if not self.is_admin:
            raise ForbiddenError("Only admins can reopen assignments")
        assignment = await self.get_assignment(assignment_id)
        assignment = await assignment_lifecycle.reopen_assignment(self.db, assignment)
        logger.info(f"Assignment {assignment.id} reopened and kept open by {self.user.id}")
        return assignment

    # Virtual room

    async def open_virtual_room(self, simulation_id: uuid.UUID) -> SimulationSession:
        """Start (or return the already started) room; it lifts the start-date gate."""
        simulation = await self.get(simulation_id)
        if simulation.status != SimulationStatus.published:
            raise InvalidInputError("Only published simulations can open a virtual room")
        row = await self.db.execute(
            select(SimulationSession)
            .where(SimulationSession.simulation_id == simulation.id)
            .where(SimulationSession.status == VirtualRoomStatus.started)
        )
        session = row.scalars().first()
        if session is not None:
            return session
        session = SimulationSession(
            simulation_id=simulation.id,
            status=VirtualRoomStatus.started,
            opened_by_id=self.user.id,
            started_at=get_current_utc_datetime(),
        )
        self.db.add(session)
        await self.db.commit()
        logger.info(f"Virtual room {session.id} started for simulation {simulation.id}")
        return session

    async def close_virtual_room(self, simulation_id: uuid.UUID) -> int:
        simulation = await self.get(simulation_id)
        rows = await self.db.execute(
            select(SimulationSession)
            .where(SimulationSession.simulation_id == simulation.id)
            .where(SimulationSession.status != VirtualRoomStatus.completed)
        )
        sessions = list(rows.scalars().all())
        now = get_current_utc_datetime()
        for session in sessions:
            session.status = VirtualRoomStatus.completed
            session.ended_at = now
            self.db.add(session)
        await self.db.commit()
        return len(sessions)


def serialize_simulation(simulation: Simulation, include_questions: bool = False) -> Dict[str, Any]:
    out = {
        "id": simulation.id,
        "title": simulation.title,
        "description": simulation.description,
        "type": simulation.type,
        "status": simulation.status,
        "visibility": simulation.visibility,
        "is_repeatable": simulation.is_repeatable,
        "max_attempts": simulation.max_attempts,
        "start_date": simulation.start_date,
        "end_date": simulation.end_date,
        "duration_minutes": simulation.duration_minutes,
        "use_question_points": simulation.use_question_points,
        "correct_points": simulation.correct_points,
        "wrong_points": simulation.wrong_points,
        "blank_points": simulation.blank_points,
        "max_score": simulation.max_score,
        "passing_score": simulation.passing_score,
        "show_results": simulation.show_results,
        "show_correct_answers": simulation.show_correct_answers,
        "total_questions": simulation.total_questions,
        "created_by_id": simulation.created_by_id,
        "created_at": simulation.created_at,
    }
    if include_questions:
        out["questions"] = [
            {
                "order": slot.order,
                "custom_points": slot.custom_points,
                "custom_negative_points": slot.custom_negative_points,
                "question": serialize_question(slot.question),
            }
            for slot in simulation.questions
        ]
    return out


def serialize_assignment(assignment: SimulationAssignment) -> Dict[str, Any]:
    return {
        "id": assignment.id,
        "simulation_id": assignment.simulation_id,
        "student_id": assignment.student_id,
        "group_id": assignment.group_id,
        "start_date": assignment.start_date,
        "end_date": assignment.end_date,
        "due_date": assignment.due_date,
        "notes": assignment.notes,
        "status": assignment.status,
        "kept_open": assignment.kept_open,
        "created_at": assignment.created_at,
    }
