import uuid
from sqlalchemy import (
    Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, String, Text,
    UniqueConstraint, func,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from app.db.deps import Base
from app.utils.datetime_utils import get_current_utc_datetime
from app.utils.enums import SimulationStatus, SimulationType, SimulationVisibility


class Simulation(Base):
    __tablename__ = "simulations"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(Enum(SimulationType), nullable=False, default=SimulationType.official)
    status = Column(Enum(SimulationStatus), nullable=False, default=SimulationStatus.draft)
    visibility = Column(
        Enum(SimulationVisibility), nullable=False, default=SimulationVisibility.private
    )

    # Attempts
    is_repeatable = Column(Boolean, nullable=False, default=False)
    max_attempts = Column(Integer, nullable=True)  # null = unlimited

    # Default access window; assignments may override it
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    duration_minutes = Column(Integer, nullable=False, default=0)

    # Scoring
    use_question_points = Column(Boolean, nullable=False, default=False)
    correct_points = Column(Float, nullable=False, default=1.5)
    wrong_points = Column(Float, nullable=False, default=-0.4)
    blank_points = Column(Float, nullable=False, default=0.0)
    max_score = Column(Float, nullable=True)
    passing_score = Column(Float, nullable=True)

    # Result visibility
    show_results = Column(Boolean, nullable=False, default=True)
    show_correct_answers = Column(Boolean, nullable=False, default=True)

    created_by_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(
        DateTime(timezone=True), default=get_current_utc_datetime, server_default=func.now()
    )
    updated_at = Column(DateTime(timezone=True), onupdate=get_current_utc_datetime)

    questions = relationship(
        "SimulationQuestion",
        back_populates="simulation",
        cascade="all, delete-orphan",
        order_by="SimulationQuestion.order",
        lazy="selectin",
    )
    assignments = relationship(
        "SimulationAssignment", back_populates="simulation", cascade="all, delete-orphan"
    )
    results = relationship(
        "SimulationResult", back_populates="simulation", cascade="all, delete-orphan"
    )
    sessions = relationship(
        "SimulationSession", back_populates="simulation", cascade="all, delete-orphan"
    )

    @property
    def total_questions(self) -> int:
        return len(self.questions)


class SimulationQuestion(Base):
    """Question slot inside a simulation, with optional per-simulation points."""

    __tablename__ = "simulation_questions"
    __table_args__ = (
        UniqueConstraint("simulation_id", "question_id", name="uq_simulation_questions_pair"),
    )

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    simulation_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("simulations.id", ondelete="CASCADE"), nullable=False
    )
    question_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    order = Column(Integer, nullable=False, default=0)
    custom_points = Column(Float, nullable=True)
    custom_negative_points = Column(Float, nullable=True)

    simulation = relationship("Simulation", back_populates="questions")
    question = relationship("Question", lazy="selectin")
