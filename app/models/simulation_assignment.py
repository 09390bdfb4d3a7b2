import uuid
from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Enum, ForeignKey, Text,
    UniqueConstraint, func,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from app.db.deps import Base
from app.utils.datetime_utils import get_current_utc_datetime
from app.utils.enums import AssignmentStatus


class SimulationAssignment(Base):
    __tablename__ = "simulation_assignments"
    __table_args__ = (
        UniqueConstraint("simulation_id", "student_id", name="uq_assignments_simulation_student"),
        UniqueConstraint("simulation_id", "group_id", name="uq_assignments_simulation_group"),
        CheckConstraint(
            "(student_id IS NULL) <> (group_id IS NULL)",
            name="ck_assignments_single_target",
        ),
    )

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    simulation_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("simulations.id", ondelete="CASCADE"), nullable=False
    )
    student_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=True
    )
    group_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("groups.id", ondelete="CASCADE"), nullable=True
    )

    # Overrides of the simulation window (effective date = own value ?? simulation's)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(Enum(AssignmentStatus), nullable=False, default=AssignmentStatus.active)
    # Staff override: stays ACTIVE past end_date, skipped by the auto-close sweep
    kept_open = Column(Boolean, nullable=False, default=False)

    assigned_by_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(
        DateTime(timezone=True), default=get_current_utc_datetime, server_default=func.now()
    )

    simulation = relationship("Simulation", back_populates="assignments")
    student = relationship("Student")
    group = relationship("Group")
