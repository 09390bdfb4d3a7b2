from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from app.utils.enums import AnswerCategory


@dataclass
class ScoreSummary:
    total_score: float = 0.0
    correct: int = 0
    wrong: int = 0
    blank: int = 0
    pending: int = 0

    def add(self, category: AnswerCategory, earned_points: float) -> None:
        self.total_score += earned_points
        if category == AnswerCategory.correct:
            self.correct += 1
        elif category == AnswerCategory.wrong:
            self.wrong += 1
        elif category == AnswerCategory.blank:
            self.blank += 1
        else:
            self.pending += 1


def summarize(entries: Iterable[dict]) -> ScoreSummary:
    """Rebuild totals from stored answer entries ({category, earned_points})."""
    summary = ScoreSummary()
    for entry in entries:
        summary.add(AnswerCategory(entry["category"]), float(entry.get("earned_points") or 0))
    summary.total_score = round(summary.total_score, 4)
    return summary


def percentage(total_score: float, max_score: Optional[float]) -> float:
    if not max_score or max_score <= 0:
        return 0.0
    return round(total_score / max_score * 100, 2)


def is_passed(total_score: float, passing_score: Optional[float]) -> Optional[bool]:
    if passing_score is None:
        return None
    return total_score >= passing_score


def graded_category(earned_points: float) -> AnswerCategory:
    """Category of a graded open answer: any positive credit counts as correct."""
    return AnswerCategory.correct if earned_points > 0 else AnswerCategory.wrong
