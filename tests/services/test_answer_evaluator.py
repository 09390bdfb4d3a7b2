from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.services.scoring import ScoringConfig, max_points_for, resolve_points, score_answer
from app.utils.enums import AnswerCategory, QuestionType


CONFIG = ScoringConfig(correct_points=1.5, wrong_points=-0.4, blank_points=0.0)


def make_question(type=QuestionType.single_choice, correct=("a",), points=1.0, negative_points=0.0):
    return SimpleNamespace(
        type=type,
        points=points,
        negative_points=negative_points,
        answers=[
            SimpleNamespace(id=answer_id, is_correct=answer_id in correct)
            for answer_id in ("a", "b", "c")
        ],
    )


def test_correct_single_choice_earns_simulation_points():
    score = score_answer(make_question(), {"answer_id": "a"}, CONFIG)
    assert score.earned_points == 1.5
    assert score.category == AnswerCategory.correct
    assert score.is_correct


def test_wrong_single_choice_earns_wrong_points():
    score = score_answer(make_question(), {"answer_id": "b"}, CONFIG)
    assert score.earned_points == -0.4
    assert score.category == AnswerCategory.wrong


@pytest.mark.parametrize("submitted", [None, {}, {"answer_id": None, "answer_ids": []}])
def test_missing_choice_is_blank(submitted):
    config = ScoringConfig(correct_points=1.5, wrong_points=-0.4, blank_points=-0.1)
    score = score_answer(make_question(), submitted, config)
    assert score.category == AnswerCategory.blank
    assert score.earned_points == -0.1


def test_custom_points_override_question_points():
    question = make_question(points=7.0)
    score = score_answer(question, {"answer_id": "a"}, CONFIG, {"custom_points": 2.0})
    assert score.earned_points == 2.0
    assert score.category == AnswerCategory.correct


def test_question_points_used_when_enabled():
    config = ScoringConfig(1.5, -0.4, 0.0, use_question_points=True)
    question = make_question(points=3.0, negative_points=-1.0)

    assert resolve_points(question, config) == (3.0, -1.0)
    assert score_answer(question, {"answer_id": "c"}, config).earned_points == -1.0


def test_custom_negative_points_override():
    score = score_answer(
        make_question(), {"answer_id": "b"}, CONFIG, SimpleNamespace(custom_points=None, custom_negative_points=-1.0)
    )
    assert score.earned_points == -1.0


def test_multiple_choice_needs_exact_set():
    question = make_question(QuestionType.multiple_choice, correct=("a", "b"))

    assert score_answer(question, {"answer_ids": ["a", "b"]}, CONFIG).is_correct
    assert score_answer(question, {"answer_ids": ["b", "a"]}, CONFIG).is_correct
    assert not score_answer(question, {"answer_ids": ["a"]}, CONFIG).is_correct
    assert not score_answer(question, {"answer_ids": ["a", "b", "c"]}, CONFIG).is_correct


def test_open_text_is_pending_or_blank():
    question = make_question(QuestionType.open_text, correct=())

    pending = score_answer(question, {"answer_text": "La clorofilla assorbe luce"}, CONFIG)
    blank = score_answer(question, {"answer_text": "   "}, CONFIG)

    assert pending.category == AnswerCategory.pending
    assert pending.earned_points == 0.0
    assert blank.category == AnswerCategory.blank


def test_max_points_follow_overrides():
    assert max_points_for(make_question(), CONFIG) == 1.5
    assert max_points_for(make_question(), CONFIG, {"custom_points": 4}) == 4.0
