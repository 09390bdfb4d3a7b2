from __future__ import annotations

import pytest
from sqlalchemy import select

from app.core.errors import NotFoundError
from app.models.notification import Notification
from app.services.mail_handler_service import mailer_resend
from app.services.notifications import notification_service
from app.services.notifications.notification_service import (
    list_notifications,
    mark_read,
    notify_simulation_assigned,
)
from app.utils.enums import NotificationType


pytestmark = pytest.mark.anyio


@pytest.fixture()
def sent_emails(monkeypatch):
    sent = []

    async def fake_send(**kwargs):
        sent.append(kwargs)
        return {"id": "email-1"}

    monkeypatch.setattr(mailer_resend, "send_simulation_assigned_email", fake_send)
    monkeypatch.setattr(notification_service.settings, "EMAIL_NOTIFICATIONS_ENABLED", True)
    return sent


async def test_group_and_direct_assignees_are_notified_once(
    db_session, seed, session_factory, sent_emails
):
    first, second = await seed.student(), await seed.student(name="Sara Gallo")
    group = await seed.group(students=[first, second])
    simulation = await seed.simulation([await seed.question()], title="Simulazione Biologia")
    direct = await seed.assignment(simulation, student=first, notes="Porta la calcolatrice")
    via_group = await seed.assignment(simulation, group=group)

    report = await notify_simulation_assigned(
        simulation.id, [direct.id, via_group.id], session_factory=session_factory
    )

    assert report.notified == 2
    assert report.emails_sent == 2
    assert report.errors == []
    assert {e["email"] for e in sent_emails} == {first.user.email, second.user.email}
    assert all(e["simulation_title"] == "Simulazione Biologia" for e in sent_emails)

    again = await notify_simulation_assigned(
        simulation.id, [via_group.id], session_factory=session_factory
    )
    assert again.notified == 0
    assert again.skipped == 2

    rows = (await db_session.execute(select(Notification))).scalars().all()
    assert len(rows) == 2
    assert all(n.type == NotificationType.simulation_assigned for n in rows)
    assert all(n.payload["simulation_id"] == str(simulation.id) for n in rows)


async def test_email_failure_is_reported_not_raised(seed, session_factory, monkeypatch):
    async def failing_send(**kwargs):
        raise mailer_resend.EmailError("Resend API error (500)")

    monkeypatch.setattr(mailer_resend, "send_simulation_assigned_email", failing_send)
    monkeypatch.setattr(notification_service.settings, "EMAIL_NOTIFICATIONS_ENABLED", True)
    student = await seed.student()
    simulation = await seed.simulation([await seed.question()])
    assignment = await seed.assignment(simulation, student=student)

    report = await notify_simulation_assigned(
        simulation.id, [assignment.id], session_factory=session_factory
    )

    assert report.notified == 1
    assert report.emails_sent == 0
    assert len(report.errors) == 1


async def test_emails_are_skipped_when_disabled(seed, session_factory, monkeypatch):
    sent = []

    async def fake_send(**kwargs):
        sent.append(kwargs)

    monkeypatch.setattr(mailer_resend, "send_simulation_assigned_email", fake_send)
    student = await seed.student()
    simulation = await seed.simulation([await seed.question()])
    assignment = await seed.assignment(simulation, student=student)

    report = await notify_simulation_assigned(
        simulation.id, [assignment.id], session_factory=session_factory
    )

    assert report.notified == 1
    assert sent == []


async def test_mark_read_is_scoped_to_owner(db_session, seed):
    owner = await seed.user()
    stranger = await seed.user(name="Estraneo")
    notification = Notification(
        user_id=owner.id,
        type=NotificationType.open_answer_graded,
        title="Answer graded",
        message="1/1.5 points",
        payload={},
    )
    db_session.add(notification)
    await db_session.commit()

    with pytest.raises(NotFoundError):
        await mark_read(db_session, notification.id, stranger.id)

    await mark_read(db_session, notification.id, owner.id)
    unread, total_unread = await list_notifications(db_session, owner.id, unread_only=True)
    everything, total = await list_notifications(db_session, owner.id)
    assert (unread, total_unread) == ([], 0)
    assert total == 1
    assert everything[0].is_read is True
