import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies.auth import get_current_student
from app.core.config import settings
from app.core.response import ResponseModel, paginated, success_response
from app.db.deps import get_db
from app.models.user import Student
from app.schemas.attempts import ProgressSave, SubmissionRequest
from app.schemas.simulations import PersonalSimulationCreate, QuickQuizCreate
from app.services import simulation_attempts, student_authoring, student_simulations
from app.utils.enums import SimulationType, StudentSimulationStatus


router = APIRouter(prefix="/student", tags=["student-simulations"])


@router.get("/simulations", response_model=ResponseModel)
async def list_simulations(
    status_filter: Optional[StudentSimulationStatus] = Query(None, alias="status"),
    type: Optional[SimulationType] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
):
    """Simulations the student can reach, each with its student status.

    Method/Path: GET /api/v1/student/simulations?status=&type=&page=&page_size=
    status: not_started | available | in_progress | completed | expired
    """
    items, total = await student_simulations.list_available_simulations(
        db, student, status=status_filter, type=type, page=page, page_size=page_size
    )
    return success_response(
        "Simulations fetched",
        data=paginated(items, page=page, page_size=page_size, total=total),
    )


@router.post(
    "/simulations/quick-quiz",
    response_model=ResponseModel,
    status_code=status.HTTP_201_CREATED,
)
async def generate_quick_quiz(
    payload: QuickQuizCreate,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
):
    """Build a one-shot quiz from random published questions.

    Method/Path: POST /api/v1/student/simulations/quick-quiz
    Body: {"question_count", "question_types"?, "correct_points", "wrong_points", ...}
    Returns: {"simulation_id", "title", "type", "total_questions", "assignment_id"}
    """
    data = await student_authoring.create_quick_quiz(db, student, payload)
    return success_response(
        "Quick quiz generated", data=data, status_code=status.HTTP_201_CREATED
    )


@router.post(
    "/simulations/personal",
    response_model=ResponseModel,
    status_code=status.HTTP_201_CREATED,
)
async def create_personal_simulation(
    payload: PersonalSimulationCreate,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
):
    data = await student_authoring.create_personal_simulation(db, student, payload)
    return success_response(
        "Personal simulation created", data=data, status_code=status.HTTP_201_CREATED
    )


@router.get("/simulations/{simulation_id}/leaderboard", response_model=ResponseModel)
async def get_leaderboard(
    simulation_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=100),
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
):
    """Ranking by best completed result; only your own name is shown."""
    data = await student_simulations.leaderboard_for_student(db, simulation_id, student, limit)
    return success_response("Leaderboard fetched", data=data)


@router.get("/simulations/{simulation_id}", response_model=ResponseModel)
async def get_simulation(
    simulation_id: uuid.UUID,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
):
    """Questions and options to take the simulation; correctness is withheld.

    Access is evaluated on the way in, which also closes an expired
    assignment. Returns 403 with the denial reason as ``error_code``.
    """
    data = await student_simulations.simulation_for_student(db, simulation_id, student)
    return success_response("Simulation fetched", data=data)


@router.post("/simulations/{simulation_id}/attempts", response_model=ResponseModel)
async def start_attempt(
    simulation_id: uuid.UUID,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
):
    """Start a new attempt, or resume the unfinished one.

    Method/Path: POST /api/v1/student/simulations/{simulation_id}/attempts
    Returns: {"result_id", "resumed"}
    """
    data = await simulation_attempts.start_attempt(db, simulation_id, student)
    return success_response("Attempt resumed" if data["resumed"] else "Attempt started", data=data)


@router.put("/simulations/attempts/{result_id}", response_model=ResponseModel)
async def save_progress(
    result_id: uuid.UUID,
    payload: ProgressSave,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
):
    result = await simulation_attempts.save_progress(
        db,
        result_id,
        student,
        [a.model_dump() for a in payload.answers],
        payload.time_spent,
    )
    return success_response(
        "Progress saved",
        data={"result_id": result.id, "saved_answers": len(result.answers or [])},
    )


@router.post("/simulations/{simulation_id}/submit", response_model=ResponseModel)
async def submit(
    simulation_id: uuid.UUID,
    payload: SubmissionRequest,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
):
    """Submit and score the attempt.

    Method/Path: POST /api/v1/student/simulations/{simulation_id}/submit
    Returns: the score summary, or only a message when results are hidden.
    """
    data = await simulation_attempts.submit_attempt(
        db,
        simulation_id,
        student,
        [a.model_dump() for a in payload.answers],
        payload.total_time_spent,
    )
    return success_response("Simulation submitted", data=data)


@router.get("/results", response_model=ResponseModel)
async def list_results(
    simulation_id: Optional[uuid.UUID] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
):
    items, total = await student_simulations.list_results(
        db, student, simulation_id=simulation_id, page=page, page_size=page_size
    )
    return success_response(
        "Results fetched",
        data=paginated(items, page=page, page_size=page_size, total=total),
    )


@router.get("/results/{result_id}", response_model=ResponseModel)
async def result_detail(
    result_id: uuid.UUID,
    student: Student = Depends(get_current_student),
    db: AsyncSession = Depends(get_db),
):
    data = await student_simulations.result_detail(db, result_id, student)
    return success_response("Result fetched", data=data)
