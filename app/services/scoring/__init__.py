"""Answer scoring for simulations."""

from .answer_evaluator import (
    AnswerScore,
    ScoringConfig,
    max_points_for,
    resolve_points,
    score_answer,
)
from .keyword_scorer import matched_keywords, score_keywords
from .result_calculator import ScoreSummary, graded_category, is_passed, percentage, summarize

__all__ = [
    "AnswerScore",
    "ScoringConfig",
    "max_points_for",
    "resolve_points",
    "score_answer",
    "matched_keywords",
    "score_keywords",
    "ScoreSummary",
    "graded_category",
    "is_passed",
    "percentage",
    "summarize",
]
