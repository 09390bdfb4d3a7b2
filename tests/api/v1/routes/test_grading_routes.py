from __future__ import annotations

import pytest

from app.utils.enums import QuestionType


pytestmark = pytest.mark.anyio


async def submit_open_answer(client, seed, headers_for, author):
    student = await seed.student()
    question = await seed.question(
        QuestionType.open_text,
        text="Descrivi la mitosi",
        keywords=[("profase", 0.5), ("metafase", 0.5)],
    )
    simulation = await seed.simulation([question], author=author)
    await seed.assignment(simulation, student=student)
    await client.post(
        f"/api/v1/student/simulations/{simulation.id}/submit",
        json={"answers": [{"question_id": str(question.id), "answer_text": "Inizia con la profase"}]},
        headers=headers_for(student.user),
    )
    return student, simulation


async def test_pending_list_and_manual_grade(client, seed, headers_for):
    collaborator = await seed.collaborator()
    student, simulation = await submit_open_answer(client, seed, headers_for, collaborator)

    pending = await client.get(
        "/api/v1/grading/pending",
        params={"simulation_id": str(simulation.id)},
        headers=headers_for(collaborator),
    )
    [item] = pending.json()["data"]["results"]
    assert item["auto_score"] == 0.5
    assert item["suggested_points"] == 0.75

    graded = await client.post(
        f"/api/v1/grading/open-answers/{item['id']}",
        json={"earned_points": 1.0, "notes": "Manca la metafase"},
        headers=headers_for(collaborator),
    )
    assert graded.status_code == 200
    assert graded.json()["data"]["result"]["total_score"] == 1.0
    assert graded.json()["data"]["result"]["pending_answers"] == 0

    after = await client.get("/api/v1/grading/pending", headers=headers_for(collaborator))
    assert after.json()["data"]["pagination"]["total"] == 0

    inbox = await client.get("/api/v1/notifications", headers=headers_for(student.user))
    assert inbox.json()["data"]["results"][0]["type"] == "OPEN_ANSWER_GRADED"


async def test_accept_auto_score(client, seed, headers_for):
    admin = await seed.admin()
    await submit_open_answer(client, seed, headers_for, None)
    pending = await client.get("/api/v1/grading/pending", headers=headers_for(admin))
    open_answer_id = pending.json()["data"]["results"][0]["id"]

    response = await client.post(
        f"/api/v1/grading/open-answers/{open_answer_id}/auto", headers=headers_for(admin)
    )

    assert response.status_code == 200
    assert response.json()["data"]["open_answer"]["earned_points"] == 0.75


async def test_grade_above_max_points_is_rejected(client, seed, headers_for):
    admin = await seed.admin()
    await submit_open_answer(client, seed, headers_for, None)
    pending = await client.get("/api/v1/grading/pending", headers=headers_for(admin))
    open_answer_id = pending.json()["data"]["results"][0]["id"]

    response = await client.post(
        f"/api/v1/grading/open-answers/{open_answer_id}",
        json={"earned_points": 9},
        headers=headers_for(admin),
    )

    assert response.status_code == 400
