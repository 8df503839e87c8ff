from __future__ import annotations

from missionrooms.classifier import classify, detect_category, detect_exam_focus
from missionrooms.models import Category, ExamFocus


def test_mughal_empire_defaults_to_upsc() -> None:
    result = classify("Mughal Empire")
    assert result.category == Category.historical_period
    assert result.exam_focus == ExamFocus.upsc


def test_history_keyword_beats_science_keyword() -> None:
    text = "Chemistry and metallurgy under the Gupta dynasty"
    assert detect_category(text) == Category.historical_period


def test_constitution_beats_geography() -> None:
    assert detect_category("Article 262 and inter-state river disputes") == Category.constitution


def test_matching_is_case_insensitive() -> None:
    assert detect_category("PHOTOSYNTHESIS in C4 plants") == Category.science
    assert detect_category("Himalayan Plateau formation") == Category.geography


def test_unmatched_text_is_general() -> None:
    assert detect_category("Monetary policy transmission") == Category.general


def test_exam_focus_keywords_in_priority_order() -> None:
    assert detect_exam_focus("IBPS PO reasoning") == ExamFocus.banking
    assert detect_exam_focus("NEET genetics revision") == ExamFocus.neet
    assert detect_exam_focus("JEE mechanics") == ExamFocus.jee
    assert detect_exam_focus("SSC CGL polity") == ExamFocus.ssc
    assert detect_exam_focus("UPSC prelims and SSC") == ExamFocus.upsc


def test_explicit_fields_skip_classification() -> None:
    result = classify("Mughal Empire", category=Category.science)
    assert result.category == Category.science
    assert result.exam_focus == ExamFocus.upsc

    result = classify("Photosynthesis", exam_focus=ExamFocus.neet)
    assert result.category == Category.science
    assert result.exam_focus == ExamFocus.neet
