from __future__ import annotations

import pytest


pytestmark = pytest.mark.anyio


async def seed_results(seed, collaborator):
    simulation = await seed.simulation(
        [await seed.question()], author=collaborator, passing_score=9.0
    )
    anna = await seed.student(name="Anna Galli")
    bruno = await seed.student(name="Bruno Conti")
    carla = await seed.student(name="Carla Fabbri")
    await seed.completed_result(simulation, anna, total_score=10.0, duration_seconds=900)
    await seed.completed_result(simulation, anna, total_score=14.0, duration_seconds=1200)
    await seed.completed_result(simulation, bruno, total_score=14.0, duration_seconds=800)
    await seed.completed_result(simulation, carla, total_score=8.0, duration_seconds=1000)
    return simulation, anna, bruno, carla


async def test_statistics_over_completed_attempts(client, seed, headers_for):
    collaborator = await seed.collaborator()
    simulation, *_ = await seed_results(seed, collaborator)

    response = await client.get(
        f"/api/v1/simulations/{simulation.id}/statistics", headers=headers_for(collaborator)
    )

    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["completed_attempts"] == 4
    assert stats["students"] == 3
    assert stats["average_score"] == pytest.approx(11.5)
    assert stats["best_score"] == 14.0
    assert stats["worst_score"] == 8.0
    assert stats["pass_rate"] == pytest.approx(75.0)


async def test_statistics_without_attempts(client, seed, headers_for):
    admin = await seed.admin()
    simulation = await seed.simulation([await seed.question()])

    response = await client.get(
        f"/api/v1/simulations/{simulation.id}/statistics", headers=headers_for(admin)
    )

    stats = response.json()["data"]
    assert stats["completed_attempts"] == 0
    assert stats["average_score"] == 0.0
    assert stats["best_score"] == 0.0


async def test_statistics_are_limited_to_the_author(client, seed, headers_for):
    author = await seed.collaborator()
    outsider = await seed.collaborator(name="Paolo Russo")
    simulation, *_ = await seed_results(seed, author)

    response = await client.get(
        f"/api/v1/simulations/{simulation.id}/statistics", headers=headers_for(outsider)
    )

    assert response.status_code == 403


async def test_staff_leaderboard_ranks_best_result_per_student(client, seed, headers_for):
    collaborator = await seed.collaborator()
    simulation, anna, bruno, carla = await seed_results(seed, collaborator)

    response = await client.get(
        f"/api/v1/simulations/{simulation.id}/leaderboard", headers=headers_for(collaborator)
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total_participants"] == 3
    board = data["leaderboard"]
    assert [row["student_name"] for row in board] == ["Bruno Conti", "Anna Galli", "Carla Fabbri"]
    assert [row["rank"] for row in board] == [1, 1, 3]
    assert [row["total_score"] for row in board] == [14.0, 14.0, 8.0]
    assert [row["passed"] for row in board] == [True, True, False]


async def test_student_leaderboard_hides_other_names(client, seed, headers_for):
    collaborator = await seed.collaborator()
    simulation, anna, bruno, carla = await seed_results(seed, collaborator)

    response = await client.get(
        f"/api/v1/student/simulations/{simulation.id}/leaderboard",
        headers=headers_for(carla.user),
    )

    assert response.status_code == 200
    board = response.json()["data"]["leaderboard"]
    assert board[0]["student_name"] == "Partecipante #1"
    assert board[0].get("student_id") is None
    mine = board[2]
    assert mine["is_current_user"] is True
    assert mine["student_name"] == "Carla Fabbri"
    assert mine["student_id"] == str(carla.id)


async def test_student_leaderboard_requires_a_completed_attempt(client, seed, headers_for):
    collaborator = await seed.collaborator()
    simulation, *_ = await seed_results(seed, collaborator)
    newcomer = await seed.student(name="Dario Longo")

    response = await client.get(
        f"/api/v1/student/simulations/{simulation.id}/leaderboard",
        headers=headers_for(newcomer.user),
    )

    assert response.status_code == 403
