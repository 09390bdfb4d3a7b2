from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, StringConstraints, model_validator

from app.utils.enums import QuestionType


QuestionText = Annotated[str, StringConstraints(min_length=1, strip_whitespace=True)]


class AnswerOptionIn(BaseModel):
    text: QuestionText
    is_correct: bool = False
    order: Optional[int] = None


class KeywordIn(BaseModel):
    keyword: Annotated[str, StringConstraints(min_length=1, max_length=200, strip_whitespace=True)]
    weight: float = Field(1.0, ge=0)
    is_required: bool = False


class QuestionCreate(BaseModel):
    text: QuestionText
    type: QuestionType = QuestionType.single_choice
    points: float = Field(1.0, ge=0)
    negative_points: float = Field(0.0, le=0)
    answers: List[AnswerOptionIn] = Field(default_factory=list)
    keywords: List[KeywordIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_answers(self) -> "QuestionCreate":
        if self.type == QuestionType.open_text:
            if self.answers:
                raise ValueError("Open-text questions do not take answer options")
            return self

        if len(self.answers) < 2:
            raise ValueError("Choice questions need at least two answers")
        correct = sum(1 for a in self.answers if a.is_correct)
        if correct == 0:
            raise ValueError("Mark at least one answer as correct")
        if self.type == QuestionType.single_choice and correct != 1:
            raise ValueError("Single-choice questions need exactly one correct answer")
        if self.keywords:
            raise ValueError("Keywords only apply to open-text questions")
        return self


