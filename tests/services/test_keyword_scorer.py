from __future__ import annotations

from types import SimpleNamespace

import pytest

from app.services.scoring import matched_keywords, score_keywords


KEYWORDS = [
    {"keyword": "fotosintesi", "weight": 0.5},
    {"keyword": "clorofilla", "weight": 0.3},
    {"keyword": "ossigeno", "weight": 0.2},
]


def test_weighted_share_of_matched_keywords():
    assert score_keywords("La fotosintesi produce ossigeno", KEYWORDS) == pytest.approx(0.7)


def test_no_keywords_returns_none():
    assert score_keywords("qualunque testo", []) is None


def test_zero_total_weight_returns_none():
    assert score_keywords("fotosintesi", [{"keyword": "fotosintesi", "weight": 0}]) is None


def test_matching_is_case_insensitive_substring():
    keywords = [SimpleNamespace(keyword="Clorofill", weight=1.0)]
    assert score_keywords("pigmento CLOROFILLIANO", keywords) == 1.0


def test_empty_answer_scores_zero():
    assert score_keywords(None, KEYWORDS) == 0.0


def test_matched_keywords_lists_hits():
    assert matched_keywords("Fotosintesi e ossigeno", KEYWORDS) == ["fotosintesi", "ossigeno"]
