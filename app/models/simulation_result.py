import uuid
from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, JSON, Text, func, text
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from app.db.deps import Base
from app.utils.datetime_utils import get_current_utc_datetime


class SimulationResult(Base):
    """One attempt. ``completed_at IS NULL`` marks the in-progress attempt."""

    __tablename__ = "simulation_results"
    __table_args__ = (
        Index(
            "uq_simulation_results_in_progress",
            "student_id",
            "simulation_id",
            unique=True,
            postgresql_where=text("completed_at IS NULL"),
            sqlite_where=text("completed_at IS NULL"),
        ),
    )

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    simulation_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("simulations.id", ondelete="CASCADE"), nullable=False
    )
    student_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False
    )
    assignment_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("simulation_assignments.id", ondelete="SET NULL"),
        nullable=True,
    )

    answers = Column(JSON, nullable=False, default=list)
    total_score = Column(Float, nullable=False, default=0.0)
    percentage_score = Column(Float, nullable=False, default=0.0)
    correct_answers = Column(Integer, nullable=False, default=0)
    wrong_answers = Column(Integer, nullable=False, default=0)
    blank_answers = Column(Integer, nullable=False, default=0)
    pending_answers = Column(Integer, nullable=False, default=0)
    duration_seconds = Column(Integer, nullable=False, default=0)

    started_at = Column(
        DateTime(timezone=True), default=get_current_utc_datetime, server_default=func.now()
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)

    simulation = relationship("Simulation", back_populates="results")
    student = relationship("Student")
    open_answers = relationship(
        "SimulationOpenAnswer",
        back_populates="result",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class SimulationOpenAnswer(Base):
    """Open-text answer awaiting (or holding) its grade."""

    __tablename__ = "simulation_open_answers"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    result_id = Column(
        PG_UUID(as_uuid=True),
        ForeignKey("simulation_results.id", ondelete="CASCADE"),
        nullable=False,
    )
    question_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    answer_text = Column(Text, nullable=False)
    auto_score = Column(Float, nullable=True)  # keyword ratio in [0, 1]
    max_points = Column(Float, nullable=False, default=0.0)
    earned_points = Column(Float, nullable=True)
    validator_notes = Column(Text, nullable=True)
    is_validated = Column(Boolean, nullable=False, default=False)
    validated_by_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    validated_at = Column(DateTime(timezone=True), nullable=True)

    result = relationship("SimulationResult", back_populates="open_answers")
