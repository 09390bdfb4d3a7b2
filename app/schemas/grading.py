from typing import Optional

from pydantic import BaseModel, Field


class OpenAnswerGrade(BaseModel):
    earned_points: float = Field(..., ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class OpenAnswerAutoGrade(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)
