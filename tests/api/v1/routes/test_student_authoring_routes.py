from __future__ import annotations

import pytest

from app.utils.enums import QuestionStatus


pytestmark = pytest.mark.anyio


async def test_quick_quiz_draws_published_questions_and_is_assigned(client, seed, headers_for):
    student = await seed.student()
    headers = headers_for(student.user)
    published = [await seed.question(text=f"Domanda {i}") for i in range(6)]
    draft = await seed.question(status=QuestionStatus.draft)

    created = await client.post(
        "/api/v1/student/simulations/quick-quiz",
        json={"question_count": 6, "correct_points": 1.5, "wrong_points": -0.4},
        headers=headers,
    )
    assert created.status_code == 201
    data = created.json()["data"]
    assert data["type"] == "QUICK_QUIZ"
    assert data["total_questions"] == 6
    assert data["assignment_id"]

    detail = await client.get(
        f"/api/v1/student/simulations/{data['simulation_id']}", headers=headers
    )
    assert detail.status_code == 200
    question_ids = {q["id"] for q in detail.json()["data"]["questions"]}
    assert question_ids == {str(q.id) for q in published}
    assert str(draft.id) not in question_ids

    listed = await client.get("/api/v1/student/simulations?type=QUICK_QUIZ", headers=headers)
    [item] = listed.json()["data"]["results"]
    assert item["id"] == data["simulation_id"]
    assert item["is_repeatable"] is False


async def test_quick_quiz_cannot_be_retaken(client, seed, headers_for):
    student = await seed.student()
    headers = headers_for(student.user)
    for i in range(5):
        await seed.question(text=f"Domanda {i}")

    created = await client.post(
        "/api/v1/student/simulations/quick-quiz", json={"question_count": 5}, headers=headers
    )
    simulation_id = created.json()["data"]["simulation_id"]

    submitted = await client.post(
        f"/api/v1/student/simulations/{simulation_id}/submit",
        json={"answers": [], "total_time_spent": 60},
        headers=headers,
    )
    assert submitted.status_code == 200

    retake = await client.post(
        f"/api/v1/student/simulations/{simulation_id}/attempts", headers=headers
    )
    assert retake.status_code == 403
    assert retake.json()["error_code"] == "ALREADY_COMPLETED"


async def test_quick_quiz_needs_enough_questions(client, seed, headers_for):
    student = await seed.student()
    for i in range(5):
        await seed.question(text=f"Domanda {i}")

    response = await client.post(
        "/api/v1/student/simulations/quick-quiz",
        json={"question_count": 10},
        headers=headers_for(student.user),
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "NOT_ENOUGH_QUESTIONS"
    assert "available: 5" in response.json()["msg"]


async def test_quick_quiz_is_for_students_only(client, seed, headers_for):
    collaborator = await seed.collaborator()

    response = await client.post(
        "/api/v1/student/simulations/quick-quiz",
        json={"question_count": 5},
        headers=headers_for(collaborator),
    )

    assert response.status_code == 403


async def test_personal_simulation_is_reachable_only_by_its_author(client, seed, headers_for):
    author = await seed.student()
    other = await seed.student(name="Sara Neri")
    questions = [await seed.question(text=f"Domanda {i}") for i in range(2)]

    created = await client.post(
        "/api/v1/student/simulations/personal",
        json={"title": "Ripasso biologia", "question_ids": [str(q.id) for q in questions]},
        headers=headers_for(author.user),
    )
    assert created.status_code == 201
    data = created.json()["data"]
    assert data["type"] == "PERSONAL"
    assert data["total_questions"] == 2
    assert data.get("assignment_id") is None

    own = await client.get(
        f"/api/v1/student/simulations/{data['simulation_id']}", headers=headers_for(author.user)
    )
    assert own.status_code == 200

    started = await client.post(
        f"/api/v1/student/simulations/{data['simulation_id']}/attempts",
        headers=headers_for(author.user),
    )
    assert started.status_code == 200

    foreign = await client.get(
        f"/api/v1/student/simulations/{data['simulation_id']}", headers=headers_for(other.user)
    )
    assert foreign.status_code == 403
    assert foreign.json()["error_code"] == "NO_ACCESS"


async def test_personal_simulation_rejects_unpublished_questions(client, seed, headers_for):
    student = await seed.student()
    published = await seed.question()
    draft = await seed.question(status=QuestionStatus.draft)

    response = await client.post(
        "/api/v1/student/simulations/personal",
        json={"title": "Ripasso chimica", "question_ids": [str(published.id), str(draft.id)]},
        headers=headers_for(student.user),
    )

    assert response.status_code == 400
    assert response.json()["data"]["missing"] == [str(draft.id)]
