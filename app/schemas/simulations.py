from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, StringConstraints, model_validator

from app.core.config import settings
from app.utils.enums import QuestionType, SimulationType, SimulationVisibility


TitleStr = Annotated[str, StringConstraints(min_length=3, max_length=200, strip_whitespace=True)]


class SimulationQuestionIn(BaseModel):
    question_id: UUID
    order: Optional[int] = None
    custom_points: Optional[float] = Field(None, ge=0)
    custom_negative_points: Optional[float] = Field(None, le=0)


class SimulationBase(BaseModel):
    description: Optional[str] = None
    type: SimulationType = SimulationType.official
    visibility: SimulationVisibility = SimulationVisibility.private
    is_repeatable: bool = False
    max_attempts: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    duration_minutes: int = Field(0, ge=0)
    use_question_points: bool = False
    correct_points: float = Field(default_factory=lambda: settings.DEFAULT_CORRECT_POINTS)
    wrong_points: float = Field(default_factory=lambda: settings.DEFAULT_WRONG_POINTS, le=0)
    blank_points: float = Field(default_factory=lambda: settings.DEFAULT_BLANK_POINTS)
    max_score: Optional[float] = Field(None, gt=0)
    passing_score: Optional[float] = None
    show_results: bool = True
    show_correct_answers: bool = True


def _check_window(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and end <= start:
        raise ValueError("end_date must be after start_date")


class SimulationCreate(SimulationBase):
    title: TitleStr
    questions: List[SimulationQuestionIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_config(self) -> "SimulationCreate":
        _check_window(self.start_date, self.end_date)
        ids = [q.question_id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError("A question can appear only once in a simulation")
        return self


class SimulationUpdate(BaseModel):
    title: Optional[TitleStr] = None
    description: Optional[str] = None
    visibility: Optional[SimulationVisibility] = None
    is_repeatable: Optional[bool] = None
    max_attempts: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, ge=0)
    use_question_points: Optional[bool] = None
    correct_points: Optional[float] = None
    wrong_points: Optional[float] = Field(None, le=0)
    blank_points: Optional[float] = None
    max_score: Optional[float] = Field(None, gt=0)
    passing_score: Optional[float] = None
    show_results: Optional[bool] = None
    show_correct_answers: Optional[bool] = None
    questions: Optional[List[SimulationQuestionIn]] = None

    @model_validator(mode="after")
    def validate_config(self) -> "SimulationUpdate":
        _check_window(self.start_date, self.end_date)
        if self.questions is not None:
            ids = [q.question_id for q in self.questions]
            if len(ids) != len(set(ids)):
                raise ValueError("A question can appear only once in a simulation")
        return self


class AssignmentTarget(BaseModel):
    student_id: Optional[UUID] = None
    group_id: Optional[UUID] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_target(self) -> "AssignmentTarget":
        if (self.student_id is None) == (self.group_id is None):
            raise ValueError("Provide exactly one of student_id or group_id")
        _check_window(self.start_date, self.end_date)
        return self


class AssignmentsCreate(BaseModel):
    targets: List[AssignmentTarget] = Field(..., min_length=1)


# Student-built simulations

class QuickQuizCreate(BaseModel):
    question_count: int = Field(10, ge=5, le=100)
    question_types: Optional[List[QuestionType]] = None
    duration_minutes: int = Field(0, ge=0)  # 0 = no limit
    correct_points: float = Field(1.0, gt=0)
    wrong_points: float = Field(0.0, le=0)
    show_results: bool = True
    show_correct_answers: bool = True


class PersonalSimulationCreate(BaseModel):
    title: TitleStr
    description: Optional[str] = None
    question_ids: List[UUID] = Field(..., min_length=1, max_length=100)
    is_repeatable: bool = True
    duration_minutes: int = Field(0, ge=0)
    correct_points: float = Field(1.0, gt=0)
    wrong_points: float = Field(0.0, le=0)
    show_results: bool = True
    show_correct_answers: bool = True

    @model_validator(mode="after")
    def validate_questions(self) -> "PersonalSimulationCreate":
        if len(self.question_ids) != len(set(self.question_ids)):
            raise ValueError("A question can appear only once in a simulation")
        return self
