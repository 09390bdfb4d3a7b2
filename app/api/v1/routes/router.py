# Main Router - app/api/v1/router.py
from fastapi import APIRouter
from app.api.v1.routes.admin.admin import router as admin_router
from app.api.v1.routes.grading.grading import router as grading_router
from app.api.v1.routes.notifications.notifications import router as notifications_router
from app.api.v1.routes.questions.questions import router as questions_router
from app.api.v1.routes.simulations.simulations import router as simulations_router
from app.api.v1.routes.student.student_simulations import router as student_router

router = APIRouter()

# Staff routes (admin / collaborator, checked per route)
router.include_router(questions_router)
router.include_router(simulations_router)
router.include_router(grading_router)

# Student routes
router.include_router(student_router)

# Any authenticated user
router.include_router(notifications_router)

# Admin only
router.include_router(admin_router)
