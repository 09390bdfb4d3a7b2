import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.response import ResponseModel, paginated, success_response
from app.core.security import require_roles
from app.db.deps import get_db
from app.models.user import User
from app.schemas.simulations import AssignmentsCreate, SimulationCreate, SimulationUpdate
from app.services.notifications.notification_service import notify_simulation_assigned
from app.services.simulation_management import (
    SimulationService,
    serialize_assignment,
    serialize_simulation,
)
from app.services.simulation_statistics import leaderboard, simulation_statistics
from app.utils.enums import Role, SimulationStatus, SimulationType


router = APIRouter(prefix="/simulations", tags=["simulations"])
staff_only = require_roles(Role.admin, Role.collaborator)


@router.get("", response_model=ResponseModel)
async def list_simulations(
    type: Optional[SimulationType] = Query(None),
    status_filter: Optional[SimulationStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    """List simulations, newest first. Collaborators only see their own.

    Method/Path: GET /api/v1/simulations?type=&status=&page=&page_size=
    """
    service = SimulationService(db, current_user)
    rows, total = await service.list_simulations(
        type=type, status=status_filter, page=page, page_size=page_size
    )
    data = paginated(
        [serialize_simulation(s) for s in rows], page=page, page_size=page_size, total=total
    )
    return success_response("Simulations fetched", data=data)


@router.post("", response_model=ResponseModel, status_code=status.HTTP_201_CREATED)
async def create_simulation(
    payload: SimulationCreate,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    simulation = await SimulationService(db, current_user).create(payload)
    return success_response(
        "Simulation created",
        data=serialize_simulation(simulation, include_questions=True),
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/{simulation_id}", response_model=ResponseModel)
async def get_simulation(
    simulation_id: uuid.UUID,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    simulation = await SimulationService(db, current_user).get(simulation_id)
    return success_response(
        "Simulation fetched", data=serialize_simulation(simulation, include_questions=True)
    )


@router.patch("/{simulation_id}", response_model=ResponseModel)
async def update_simulation(
    simulation_id: uuid.UUID,
    payload: SimulationUpdate,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    """Partial update; ``questions`` (when given) replaces the whole list."""
    simulation = await SimulationService(db, current_user).update(simulation_id, payload)
    return success_response(
        "Simulation updated", data=serialize_simulation(simulation, include_questions=True)
    )


@router.delete("/{simulation_id}", response_model=ResponseModel)
async def delete_simulation(
    simulation_id: uuid.UUID,
    force: bool = Query(False, description="Delete even when students have results"),
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    await SimulationService(db, current_user).delete(simulation_id, force=force)
    return success_response("Simulation deleted", data={"id": simulation_id})


@router.post("/{simulation_id}/publish", response_model=ResponseModel)
async def publish_simulation(
    simulation_id: uuid.UUID,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    simulation = await SimulationService(db, current_user).publish(simulation_id)
    return success_response("Simulation published", data=serialize_simulation(simulation))


@router.post("/{simulation_id}/archive", response_model=ResponseModel)
async def archive_simulation(
    simulation_id: uuid.UUID,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    simulation = await SimulationService(db, current_user).archive(simulation_id)
    return success_response("Simulation archived", data=serialize_simulation(simulation))


@router.get("/{simulation_id}/statistics", response_model=ResponseModel)
async def get_statistics(
    simulation_id: uuid.UUID,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    """Score statistics over completed attempts.

    Method/Path: GET /api/v1/simulations/{simulation_id}/statistics
    """
    simulation = await SimulationService(db, current_user).get(simulation_id)
    data = await simulation_statistics(db, simulation)
    return success_response("Statistics fetched", data=data)


@router.get("/{simulation_id}/leaderboard", response_model=ResponseModel)
async def get_leaderboard(
    simulation_id: uuid.UUID,
    limit: int = Query(50, ge=1, le=100),
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    simulation = await SimulationService(db, current_user).get(simulation_id)
    data = await leaderboard(db, simulation, limit=limit)
    return success_response("Leaderboard fetched", data=data)


@router.post(
    "/{simulation_id}/assignments",
    response_model=ResponseModel,
    status_code=status.HTTP_201_CREATED,
)
async def add_assignments(
    simulation_id: uuid.UUID,
    payload: AssignmentsCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    """Assign a simulation to students and/or groups.

    Method/Path: POST /api/v1/simulations/{simulation_id}/assignments
    Body: {"targets": [{"student_id"|"group_id", "start_date"?, "end_date"?, "due_date"?, "notes"?}]}
    Targets already assigned are skipped. Notifications go out after the
    response, so a mail failure never fails the assignment.
    """
    outcome = await SimulationService(db, current_user).add_assignments(
        simulation_id, payload.targets
    )
    if outcome.created_ids:
        background_tasks.add_task(notify_simulation_assigned, simulation_id, outcome.created_ids)
    return success_response(
        "Assignments created",
        data={
            "created": outcome.created,
            "skipped": outcome.skipped,
            "assignment_ids": outcome.created_ids,
        },
        status_code=status.HTTP_201_CREATED,
    )


@router.delete("/assignments/{assignment_id}", response_model=ResponseModel)
async def remove_assignment(
    assignment_id: uuid.UUID,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    await SimulationService(db, current_user).remove_assignment(assignment_id)
    return success_response("Assignment removed", data={"id": assignment_id})


@router.post("/assignments/{assignment_id}/close", response_model=ResponseModel)
async def close_assignment(
    assignment_id: uuid.UUID,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    assignment = await SimulationService(db, current_user).close_assignment(assignment_id)
    return success_response("Assignment closed", data=serialize_assignment(assignment))


@router.post("/assignments/{assignment_id}/reopen", response_model=ResponseModel)
async def reopen_assignment(
    assignment_id: uuid.UUID,
    current_user: User = Depends(require_roles(Role.admin)),
    db: AsyncSession = Depends(get_db),
):
    """Reactivate an assignment and keep it open past its end date.

    Method/Path: POST /api/v1/simulations/assignments/{assignment_id}/reopen
    Auth: admin only
    """
    assignment = await SimulationService(db, current_user).reopen_assignment(assignment_id)
    return success_response("Assignment reopened", data=serialize_assignment(assignment))


@router.post("/{simulation_id}/virtual-room/open", response_model=ResponseModel)
async def open_virtual_room(
    simulation_id: uuid.UUID,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    """Start the virtual room: students may enter before the start date."""
    session = await SimulationService(db, current_user).open_virtual_room(simulation_id)
    return success_response(
        "Virtual room started",
        data={
            "id": session.id,
            "simulation_id": session.simulation_id,
            "status": session.status,
            "started_at": session.started_at,
        },
    )


@router.post("/{simulation_id}/virtual-room/close", response_model=ResponseModel)
async def close_virtual_room(
    simulation_id: uuid.UUID,
    current_user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
):
    closed = await SimulationService(db, current_user).close_virtual_room(simulation_id)
    return success_response("Virtual room closed", data={"closed_sessions": closed})
