from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from app.models.simulation_assignment import SimulationAssignment
from app.utils.datetime_utils import get_current_utc_datetime as utcnow
from app.utils.enums import AssignmentStatus


pytestmark = pytest.mark.anyio


async def test_close_expired_dry_run_then_apply(client, seed, db_session, headers_for):
    admin = await seed.admin()
    simulation = await seed.simulation([await seed.question()], title="Simulazione Scaduta")
    assignment = await seed.assignment(
        simulation, student=await seed.student(), end_date=utcnow() - timedelta(days=3)
    )
    url = "/api/v1/admin/assignments/close-expired"

    preview = await client.post(url, params={"dry_run": "true"}, headers=headers_for(admin))
    applied = await client.post(url, headers=headers_for(admin))
    repeated = await client.post(url, headers=headers_for(admin))

    assert preview.json()["msg"] == "Would close 1 assignments"
    assert preview.json()["data"]["dry_run"] is True
    assert applied.json()["data"]["closed_by_date"] == 1
    assert applied.json()["data"]["success"] is True
    assert "Simulazione Scaduta" in applied.json()["data"]["assignments_closed"][0]
    assert repeated.json()["data"]["total_closed"] == 0

    status = await db_session.execute(
        select(SimulationAssignment.status).where(SimulationAssignment.id == assignment.id)
    )
    assert status.scalar_one() == AssignmentStatus.closed


async def test_close_expired_requires_admin(client, seed, headers_for):
    collaborator = await seed.collaborator()

    response = await client.post(
        "/api/v1/admin/assignments/close-expired", headers=headers_for(collaborator)
    )

    assert response.status_code == 403
