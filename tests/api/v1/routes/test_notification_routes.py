from __future__ import annotations

import pytest

from app.models.notification import Notification
from app.utils.enums import NotificationType


pytestmark = pytest.mark.anyio


async def test_list_and_mark_read(client, seed, db_session, headers_for):
    user = await seed.user()
    db_session.add_all(
        [
            Notification(
                user_id=user.id,
                type=NotificationType.simulation_assigned,
                title=f"New simulation {i}",
                message="A new simulation has been assigned to you.",
                payload={"simulation_id": f"sim-{i}"},
            )
            for i in range(3)
        ]
    )
    await db_session.commit()
    headers = headers_for(user)

    listed = await client.get("/api/v1/notifications", params={"page_size": 2}, headers=headers)
    data = listed.json()["data"]
    assert data["pagination"] == {"page": 1, "page_size": 2, "total": 3, "total_pages": 2}

    first_id = data["results"][0]["id"]
    marked = await client.post(f"/api/v1/notifications/{first_id}/read", headers=headers)
    unread = await client.get("/api/v1/notifications", params={"unread_only": "true"}, headers=headers)

    assert marked.json()["data"]["is_read"] is True
    assert unread.json()["data"]["pagination"]["total"] == 2


async def test_cannot_read_someone_elses_notification(client, seed, db_session, headers_for):
    owner, other = await seed.user(), await seed.user(name="Altro")
    notification = Notification(
        user_id=owner.id,
        type=NotificationType.open_answer_graded,
        title="Answer graded",
        message="1/1.5 points",
        payload={},
    )
    db_session.add(notification)
    await db_session.commit()

    response = await client.post(
        f"/api/v1/notifications/{notification.id}/read", headers=headers_for(other)
    )

    assert response.status_code == 404
