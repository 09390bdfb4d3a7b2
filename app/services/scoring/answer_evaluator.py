from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from app.utils.enums import AnswerCategory, QuestionType


@dataclass(frozen=True)
class ScoringConfig:
    correct_points: float
    wrong_points: float
    blank_points: float
    use_question_points: bool = False

    @classmethod
    def from_simulation(cls, simulation) -> "ScoringConfig":
        return cls(
            correct_points=simulation.correct_points,
            wrong_points=simulation.wrong_points,
            blank_points=simulation.blank_points,
            use_question_points=bool(simulation.use_question_points),
        )


@dataclass(frozen=True)
class AnswerScore:
    earned_points: float
    category: AnswerCategory

    @property
    def is_correct(self) -> bool:
        return self.category == AnswerCategory.correct


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def resolve_points(question, config: ScoringConfig, override=None) -> tuple[float, float]:
    """Effective (points, negative_points) for a question inside a simulation."""
    custom_points = _field(override, "custom_points")
    custom_negative = _field(override, "custom_negative_points")

    if custom_points is not None:
        points = custom_points
    elif config.use_question_points:
        points = question.points
    else:
        points = config.correct_points

    if custom_negative is not None:
        negative_points = custom_negative
    elif config.use_question_points:
        negative_points = question.negative_points
    else:
        negative_points = config.wrong_points

    return float(points), float(negative_points)


def _submitted_choice_ids(submitted_answer) -> set[str]:
    ids = _field(submitted_answer, "answer_ids") or []
    answer_id = _field(submitted_answer, "answer_id")
    if answer_id is not None:
        ids = [*ids, answer_id]
    return {str(i) for i in ids if i is not None}


def _correct_choice_ids(answers: Iterable) -> set[str]:
    return {str(_field(a, "id")) for a in answers if _field(a, "is_correct")}


def score_answer(
    question,
    submitted_answer,
    config: ScoringConfig,
    override=None,
) -> AnswerScore:
    """Score one submitted answer. Pure: callers persist the outcome.

    Choice questions are blank without an answer id, correct when the id
    matches the answer flagged correct, wrong otherwise. Open-text answers
    are blank when empty after trimming and pending (0 points) otherwise.
    """
    points, negative_points = resolve_points(question, config, override)

    if question.type == QuestionType.open_text:
        text = _field(submitted_answer, "answer_text")
        if not text or not str(text).strip():
            return AnswerScore(float(config.blank_points), AnswerCategory.blank)
        return AnswerScore(0.0, AnswerCategory.pending)

    submitted_ids = _submitted_choice_ids(submitted_answer)
    if not submitted_ids:
        return AnswerScore(float(config.blank_points), AnswerCategory.blank)

    correct_ids = _correct_choice_ids(question.answers or [])
    if question.type == QuestionType.multiple_choice:
        is_correct = bool(correct_ids) and submitted_ids == correct_ids
    else:
        # Single choice: the one correct answer, compared with the single id given
        is_correct = len(submitted_ids) == 1 and submitted_ids <= correct_ids

    if is_correct:
        return AnswerScore(points, AnswerCategory.correct)
    return AnswerScore(negative_points, AnswerCategory.wrong)


def max_points_for(question, config: ScoringConfig, override=None) -> float:
    points, _ = resolve_points(question, config, override)
    return points


def first_correct_answer_id(question) -> Optional[str]:
    for answer in question.answers or []:
        if _field(answer, "is_correct"):
            return str(_field(answer, "id"))
    return None
