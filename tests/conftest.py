from __future__ import annotations

import os

# Settings are read at import time; pin a throwaway configuration first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_bootstrap.sqlite"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_FILE"] = ""
os.environ["EMAIL_NOTIFICATIONS_ENABLED"] = "false"

import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Iterable, Optional

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from app.core.security import create_access_token
from app.db.deps import Base, get_db
from app.models.group import Group, GroupMember
from app.models.question import Question, QuestionAnswer, QuestionKeyword
from app.models.simulation import Simulation, SimulationQuestion
from app.models.simulation_assignment import SimulationAssignment
from app.models.simulation_result import SimulationResult
from app.models.user import Student, User
from app.utils.enums import (
    AssignmentStatus,
    QuestionStatus,
    QuestionType,
    Role,
    SimulationStatus,
    SimulationType,
    SimulationVisibility,
)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Ensure pytest-anyio uses asyncio for all async tests."""
    return "asyncio"


@pytest.fixture(scope="session")
def test_app() -> FastAPI:
    from app.main import app

    return app


@pytest_asyncio.fixture()
async def engine(tmp_path):
    db_path = tmp_path / "test_simulations.sqlite"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture()
async def client(test_app: FastAPI, session_factory) -> AsyncGenerator[AsyncClient, None]:
    # Each request gets its own session, like production
    async def _get_test_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    test_app.dependency_overrides[get_db] = _get_test_db

    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client

    test_app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


@pytest.fixture()
def headers_for():
    return auth_headers


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Seeder:
    """Builds rows with every relationship collection set up front.

    Leaving a collection unset would make the async session lazy-load it
    later, which it cannot do outside an awaitable context.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def user(self, role: Role = Role.student, name: str = "Mario Rossi") -> User:
        user = User(
            name=name,
            email=f"{uuid.uuid4().hex[:10]}@leonardo.test",
            role=role,
            is_active=True,
        )
        self.session.add(user)
        await self.session.commit()
        return user

    async def admin(self) -> User:
        return await self.user(Role.admin, name="Admin")

    async def collaborator(self, name: str = "Giulia Bianchi") -> User:
        return await self.user(Role.collaborator, name=name)

    async def student(self, name: str = "Luca Verdi") -> Student:
        user = await self.user(Role.student, name=name)
        student = Student(user_id=user.id, user=user, group_memberships=[])
        self.session.add(student)
        await self.session.commit()
        return student

    async def group(
        self,
        name: str = "Medicina A",
        collaborator: Optional[User] = None,
        students: Iterable[Student] = (),
    ) -> Group:
        group = Group(
            name=name,
            reference_collaborator_id=collaborator.id if collaborator else None,
            members=[],
        )
        self.session.add(group)
        await self.session.flush()
        for student in students:
            self.session.add(GroupMember(group_id=group.id, student_id=student.id))
        await self.session.commit()
        return group

    async def question(
        self,
        type: QuestionType = QuestionType.single_choice,
        text: str = "Quale organello produce ATP?",
        status: QuestionStatus = QuestionStatus.published,
        author: Optional[User] = None,
        points: float = 1.0,
        negative_points: float = 0.0,
        keywords: Iterable[tuple] = (),
    ) -> Question:
        """Choice questions get options A, B, C; A is correct, and B too for multiple choice."""
        answers = []
        if type != QuestionType.open_text:
            answers = [
                QuestionAnswer(text="A", is_correct=True, order=0),
                QuestionAnswer(
                    text="B", is_correct=type == QuestionType.multiple_choice, order=1
                ),
                QuestionAnswer(text="C", is_correct=False, order=2),
            ]
        question = Question(
            text=text,
            type=type,
            status=status,
            points=points,
            negative_points=negative_points,
            created_by_id=author.id if author else None,
            answers=answers,
            keywords=[
                QuestionKeyword(keyword=kw, weight=weight, is_required=False)
                for kw, weight in keywords
            ],
        )
        self.session.add(question)
        await self.session.commit()
        return question

    async def simulation(
        self,
        questions: Iterable[Question] = (),
        author: Optional[User] = None,
        status: SimulationStatus = SimulationStatus.published,
        **fields,
    ) -> Simulation:
        fields.setdefault("title", "Simulazione Medicina")
        fields.setdefault("type", SimulationType.official)
        fields.setdefault("visibility", SimulationVisibility.private)
        simulation = Simulation(
            status=status,
            created_by_id=author.id if author else None,
            questions=[
                SimulationQuestion(question_id=q.id, question=q, order=index)
                for index, q in enumerate(questions)
            ],
            **fields,
        )
        self.session.add(simulation)
        await self.session.commit()
        return simulation

    async def assignment(
        self,
        simulation: Simulation,
        student: Optional[Student] = None,
        group: Optional[Group] = None,
        **fields,
    ) -> SimulationAssignment:
        assignment = SimulationAssignment(
            simulation_id=simulation.id,
            student_id=student.id if student else None,
            group_id=group.id if group else None,
            status=fields.pop("status", AssignmentStatus.active),
            **fields,
        )
        self.session.add(assignment)
        await self.session.commit()
        return assignment

    async def completed_result(
        self, simulation: Simulation, student: Student, **fields
    ) -> SimulationResult:
        result = SimulationResult(
            simulation_id=simulation.id,
            student_id=student.id,
            answers=fields.pop("answers", []),
            completed_at=fields.pop("completed_at", utcnow()),
            open_answers=[],
            **fields,
        )
        self.session.add(result)
        await self.session.commit()
        return result


@pytest.fixture()
def seed(db_session: AsyncSession) -> Seeder:
    return Seeder(db_session)
