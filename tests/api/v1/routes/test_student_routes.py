from __future__ import annotations

from datetime import timedelta

import pytest

from app.utils.datetime_utils import get_current_utc_datetime as utcnow
from app.utils.enums import QuestionType, SimulationVisibility


pytestmark = pytest.mark.anyio


async def test_full_attempt_flow(client, seed, headers_for):
    student = await seed.student()
    headers = headers_for(student.user)
    choice = await seed.question()
    open_text = await seed.question(
        QuestionType.open_text, text="Cos'è l'osmosi?", keywords=[("membrana", 1.0)]
    )
    simulation = await seed.simulation([choice, open_text], title="Simulazione Finale")
    await seed.assignment(simulation, student=student, notes="Buona fortuna")

    listed = await client.get("/api/v1/student/simulations", headers=headers)
    assert listed.status_code == 200
    [item] = listed.json()["data"]["results"]
    assert item["student_status"] == "available"
    assert item["assignment_notes"] == "Buona fortuna"

    detail = await client.get(f"/api/v1/student/simulations/{simulation.id}", headers=headers)
    assert detail.status_code == 200
    questions = detail.json()["data"]["questions"]
    assert len(questions) == 2
    assert all("is_correct" not in option for q in questions for option in q["answers"])

    started = await client.post(
        f"/api/v1/student/simulations/{simulation.id}/attempts", headers=headers
    )
    assert started.json()["msg"] == "Attempt started"
    result_id = started.json()["data"]["result_id"]

    correct_id = str(next(a.id for a in choice.answers if a.is_correct))
    answers = [
        {"question_id": str(choice.id), "answer_id": correct_id, "time_spent": 40},
        {"question_id": str(open_text.id), "answer_text": "Passaggio di acqua attraverso una membrana"},
    ]
    saved = await client.put(
        f"/api/v1/student/simulations/attempts/{result_id}",
        json={"answers": answers[:1], "time_spent": 40},
        headers=headers,
    )
    assert saved.json()["data"]["saved_answers"] == 1

    in_progress = await client.get("/api/v1/student/simulations", headers=headers)
    assert in_progress.json()["data"]["results"][0]["student_status"] == "in_progress"

    submitted = await client.post(
        f"/api/v1/student/simulations/{simulation.id}/submit",
        json={"answers": answers, "total_time_spent": 300},
        headers=headers,
    )
    assert submitted.status_code == 200
    summary = submitted.json()["data"]
    assert summary["result_id"] == result_id
    assert summary["score"] == 1.5
    assert summary["pending_count"] == 1
    assert summary["percentage"] == 50.0

    results = await client.get("/api/v1/student/results", headers=headers)
    assert results.json()["data"]["pagination"]["total"] == 1

    review = await client.get(f"/api/v1/student/results/{result_id}", headers=headers)
    review_answers = review.json()["data"]["answers"]
    assert review_answers[0]["is_correct"] is True
    assert any(o.get("is_correct") for o in review_answers[0]["options"])

    retake = await client.get(f"/api/v1/student/simulations/{simulation.id}", headers=headers)
    assert retake.status_code == 403
    assert retake.json()["error_code"] == "ALREADY_COMPLETED"


async def test_expired_assignment_is_closed_on_entry(client, seed, headers_for):
    student = await seed.student()
    simulation = await seed.simulation([await seed.question()])
    await seed.assignment(simulation, student=student, end_date=utcnow() - timedelta(days=1))
    headers = headers_for(student.user)

    listed = await client.get("/api/v1/student/simulations", headers=headers)
    assert listed.json()["data"]["results"][0]["student_status"] == "expired"

    response = await client.post(
        f"/api/v1/student/simulations/{simulation.id}/attempts", headers=headers
    )

    assert response.status_code == 403
    body = response.json()
    assert body["error_code"] == "ASSIGNMENT_CLOSED"
    assert body["msg"] == "This assignment has been closed"


async def test_not_started_simulation_is_refused(client, seed, headers_for):
    student = await seed.student()
    simulation = await seed.simulation(
        [await seed.question()], start_date=utcnow() + timedelta(days=2)
    )
    await seed.assignment(simulation, student=student)

    response = await client.get(
        f"/api/v1/student/simulations/{simulation.id}", headers=headers_for(student.user)
    )

    assert response.status_code == 403
    assert response.json()["error_code"] == "NOT_STARTED"


async def test_listing_filters_by_status(client, seed, headers_for):
    student = await seed.student()
    headers = headers_for(student.user)
    upcoming = await seed.simulation(
        [await seed.question()], title="Prossima", start_date=utcnow() + timedelta(days=1)
    )
    await seed.assignment(upcoming, student=student)
    await seed.simulation(
        [await seed.question()], title="Pubblica", visibility=SimulationVisibility.public
    )

    everything = await client.get("/api/v1/student/simulations", headers=headers)
    not_started = await client.get(
        "/api/v1/student/simulations", params={"status": "not_started"}, headers=headers
    )

    assert everything.json()["data"]["pagination"]["total"] == 2
    assert [s["title"] for s in not_started.json()["data"]["results"]] == ["Prossima"]


async def test_hidden_results_are_not_revealed(client, seed, headers_for):
    student = await seed.student()
    headers = headers_for(student.user)
    question = await seed.question()
    simulation = await seed.simulation([question], show_results=False)
    await seed.assignment(simulation, student=student)

    submitted = await client.post(
        f"/api/v1/student/simulations/{simulation.id}/submit",
        json={"answers": [{"question_id": str(question.id)}]},
        headers=headers,
    )
    result_id = submitted.json()["data"]["result_id"]
    review = await client.get(f"/api/v1/student/results/{result_id}", headers=headers)

    assert "score" not in submitted.json()["data"]
    assert review.json()["data"]["can_review"] is False
    assert "answers" not in review.json()["data"]


async def test_staff_cannot_use_student_routes(client, seed, headers_for):
    admin = await seed.admin()

    response = await client.get("/api/v1/student/simulations", headers=headers_for(admin))

    assert response.status_code == 403
    assert response.json()["msg"] == "Only students can access this resource"


async def test_results_of_other_students_are_forbidden(client, seed, headers_for):
    owner, other = await seed.student(), await seed.student(name="Curioso")
    simulation = await seed.simulation([await seed.question()])
    result = await seed.completed_result(simulation, owner)

    response = await client.get(
        f"/api/v1/student/results/{result.id}", headers=headers_for(other.user)
    )

    assert response.status_code == 403
