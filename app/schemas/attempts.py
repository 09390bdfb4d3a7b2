from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SubmittedAnswer(BaseModel):
    question_id: UUID
    answer_id: Optional[UUID] = None
    answer_ids: List[UUID] = Field(default_factory=list, description="Multiple-choice selection")
    answer_text: Optional[str] = None
    time_spent: int = Field(0, ge=0)
    flagged: bool = False


class ProgressSave(BaseModel):
    answers: List[SubmittedAnswer] = Field(default_factory=list)
    time_spent: int = Field(0, ge=0)


class SubmissionRequest(BaseModel):
    answers: List[SubmittedAnswer] = Field(default_factory=list)
    total_time_spent: int = Field(0, ge=0)
