"""In-app and email notifications for simulation events.

Assignment notifications run after the request has returned (FastAPI
background task) with their own session; failures are logged and reported,
never raised to the caller.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import NotFoundError
from app.core.logging_config import get_logger
from app.db.deps import AsyncSessionLocal
from app.models.group import GroupMember
from app.models.notification import Notification
from app.models.simulation import Simulation
from app.models.simulation_assignment import SimulationAssignment
from app.models.user import Student, User
from app.services.mail_handler_service import mailer_resend
from app.services.mail_handler_service.mailer_resend import EmailError
from app.utils.datetime_utils import as_utc
from app.utils.enums import NotificationType


logger = get_logger("notifications")


@dataclass
class NotificationReport:
    notified: int = 0
    skipped: int = 0
    emails_sent: int = 0
    errors: List[str] = field(default_factory=list)


def simulation_url(simulation_id: uuid.UUID) -> str:
    return f"{settings.APP_URL.rstrip('/')}/simulations/{simulation_id}"


async def _assignment_recipients(
    db: AsyncSession, assignment_ids: Iterable[uuid.UUID]
) -> List[Tuple[User, SimulationAssignment]]:
    """Users targeted by the assignments, each listed once."""
    rows = await db.execute(
        select(SimulationAssignment).where(SimulationAssignment.id.in_(list(assignment_ids)))
    )
    seen: set = set()
    recipients: List[Tuple[User, SimulationAssignment]] = []
    for assignment in rows.scalars().all():
        if assignment.student_id is not None:
            student_ids = [assignment.student_id]
        else:
            members = await db.execute(
                select(GroupMember.student_id).where(GroupMember.group_id == assignment.group_id)
            )
            student_ids = list(members.scalars().all())
        if not student_ids:
            continue

        students = await db.execute(select(Student).where(Student.id.in_(student_ids)))
        for student in students.scalars().all():
            user = student.user
            if user is None or not user.is_active or user.id in seen:
                continue
            seen.add(user.id)
            recipients.append((user, assignment))
    return recipients


async def _already_notified(
    db: AsyncSession, user_ids: List[uuid.UUID], type: NotificationType, simulation_id: uuid.UUID
) -> set:
    if not user_ids:
        return set()
    rows = await db.execute(
        select(Notification.user_id, Notification.payload)
        .where(Notification.user_id.in_(user_ids))
        .where(Notification.type == type)
    )
    return {
        user_id
        for user_id, payload in rows.all()
        if (payload or {}).get("simulation_id") == str(simulation_id)
    }


async def notify_simulation_assigned(
    simulation_id: uuid.UUID,
    assignment_ids: List[uuid.UUID],
    session_factory=AsyncSessionLocal,
) -> NotificationReport:
    """Create one in-app notification per targeted student, then email them.

    A student already notified about the same simulation is skipped, so
    re-assigning (or assigning to overlapping groups) does not spam anyone.
    """
    report = NotificationReport()
    if not assignment_ids:
        return report

    async with session_factory() as db:
        try:
            simulation = await db.get(Simulation, simulation_id)
            if simulation is None:
                logger.warning(f"Simulation {simulation_id} vanished before notifying assignees")
                return report

            recipients = await _assignment_recipients(db, assignment_ids)
            notified = await _already_notified(
                db,
                [user.id for user, _ in recipients],
                NotificationType.simulation_assigned,
                simulation.id,
            )
            pending = [(u, a) for u, a in recipients if u.id not in notified]
            report.skipped = len(recipients) - len(pending)

            title = f"New simulation: {simulation.title}"
            for user, assignment in pending:
                db.add(
                    Notification(
                        user_id=user.id,
                        type=NotificationType.simulation_assigned,
                        title=title,
                        message=assignment.notes or "A new simulation has been assigned to you.",
                        payload={
                            "simulation_id": str(simulation.id),
                            "assignment_id": str(assignment.id),
                            "url": simulation_url(simulation.id),
                        },
                    )
                )
            await db.commit()
            report.notified = len(pending)

            # Plain values only from here: the emails must not touch the session
            emails = [
                (
                    user.email,
                    user.name,
                    as_utc(assignment.start_date or simulation.start_date),
                    as_utc(assignment.end_date or simulation.end_date),
                    assignment.notes,
                )
                for user, assignment in pending
            ]
            sim_title = simulation.title
            duration = simulation.duration_minutes
        except Exception as e:
            await db.rollback()
            msg = f"Failed to create assignment notifications for simulation {simulation_id}: {e}"
            logger.error(msg)
            report.errors.append(msg)
            return report

    if settings.EMAIL_NOTIFICATIONS_ENABLED:
        for email, name, start_date, end_date, notes in emails:
            try:
                await mailer_resend.send_simulation_assigned_email(
                    email=email,
                    name=name,
                    simulation_title=sim_title,
                    simulation_url=simulation_url(simulation_id),
                    start_date=start_date,
                    end_date=end_date,
                    duration_minutes=duration,
                    notes=notes,
                )
                report.emails_sent += 1
            except EmailError as e:
                logger.warning(f"Assignment email to {email} failed: {e}")
                report.errors.append(str(e))

    logger.info(
        f"Simulation {simulation_id}: notified {report.notified} students "
        f"({report.skipped} already notified, {report.emails_sent} emails)"
    )
    return report


def open_answer_graded_notification(
    user_id: uuid.UUID,
    simulation: Simulation,
    result_id: uuid.UUID,
    earned_points: float,
    max_points: float,
) -> Notification:
    return Notification(
        user_id=user_id,
        type=NotificationType.open_answer_graded,
        title=f"Answer graded: {simulation.title}",
        message=f"An open answer was graded: {earned_points:g}/{max_points:g} points.",
        payload={
            "simulation_id": str(simulation.id),
            "result_id": str(result_id),
        },
    )


async def list_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    unread_only: bool = False,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[Notification], int]:
    conditions = [Notification.user_id == user_id]
    if unread_only:
        conditions.append(Notification.is_read.is_(False))

    total = (
        await db.execute(select(func.count()).select_from(Notification).where(*conditions))
    ).scalar_one()
    rows = await db.execute(
        select(Notification)
        .where(*conditions)
        .order_by(Notification.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(rows.scalars().all()), total


async def mark_read(db: AsyncSession, notification_id: uuid.UUID, user_id: uuid.UUID) -> Notification:
    notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise NotFoundError("Notification not found")
    notification.is_read = True
    db.add(notification)
    await db.commit()
    return notification


def serialize_notification(notification: Notification) -> Dict[str, Any]:
    return {
        "id": notification.id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "payload": notification.payload or {},
        "is_read": notification.is_read,
        "created_at": notification.created_at,
    }
