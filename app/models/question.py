import uuid
from sqlalchemy import (
    Boolean, Column, DateTime, Enum, Float, ForeignKey, Integer, Text, String, func
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship
from app.db.deps import Base
from app.utils.datetime_utils import get_current_utc_datetime
from app.utils.enums import QuestionStatus, QuestionType


class Question(Base):
    __tablename__ = "questions"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    text = Column(Text, nullable=False)
    type = Column(Enum(QuestionType), nullable=False, default=QuestionType.single_choice)
    status = Column(Enum(QuestionStatus), nullable=False, default=QuestionStatus.draft)
    points = Column(Float, nullable=False, default=1.0)
    negative_points = Column(Float, nullable=False, default=0.0)
    created_by_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(
        DateTime(timezone=True), default=get_current_utc_datetime, server_default=func.now()
    )

    answers = relationship(
        "QuestionAnswer",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionAnswer.order",
        lazy="selectin",
    )
    keywords = relationship(
        "QuestionKeyword",
        back_populates="question",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def is_choice(self) -> bool:
        return self.type in (QuestionType.single_choice, QuestionType.multiple_choice)


class QuestionAnswer(Base):
    __tablename__ = "question_answers"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)

    question = relationship("Question", back_populates="answers")


class QuestionKeyword(Base):
    __tablename__ = "question_keywords"

    id = Column(PG_UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    question_id = Column(
        PG_UUID(as_uuid=True), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    keyword = Column(String, nullable=False)
    weight = Column(Float, nullable=False, default=1.0)
    is_required = Column(Boolean, nullable=False, default=False)

    question = relationship("Question", back_populates="keywords")
