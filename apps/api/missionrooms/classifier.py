from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .models import Category, ExamFocus

# Order matters: earlier categories win when several match.
CATEGORY_KEYWORDS: tuple[tuple[Category, tuple[str, ...]], ...] = (
    (
        Category.historical_period,
        ("sultanate", "empire", "dynasty", "mughal", "gupta", "maurya", "chola", "vijayanagara"),
    ),
    (
        Category.constitution,
        ("constitution", "article", "fundamental rights", "dpsp", "amendment", "preamble"),
    ),
    (
        Category.geography,
        ("river", "mountain", "climate", "mineral", "geography", "plateau"),
    ),
    (
        Category.science,
        ("photosynthesis", "physics", "chemistry", "biology", "formula", "equation", "atom", "cell"),
    ),
)

EXAM_KEYWORDS: tuple[tuple[ExamFocus, tuple[str, ...]], ...] = (
    (ExamFocus.upsc, ("upsc", "civil service", "ias", "ips")),
    (ExamFocus.ssc, ("ssc", "staff selection")),
    (ExamFocus.banking, ("bank", "ibps", "sbi", "rbi")),
    (ExamFocus.neet, ("neet", "medical")),
    (ExamFocus.jee, ("jee", "engineering")),
    (ExamFocus.state_pcs, ("state pcs", "state psc", "public service commission", "pcs")),
)

DEFAULT_CATEGORY = Category.general
DEFAULT_EXAM_FOCUS = ExamFocus.upsc


@dataclass(frozen=True)
class Classification:
    category: Category
    exam_focus: ExamFocus


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def detect_category(text: str) -> Category:
    lowered = text.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if _contains_any(lowered, keywords):
            return category
    return DEFAULT_CATEGORY


def detect_exam_focus(text: str) -> ExamFocus:
    lowered = text.lower()
    for exam, keywords in EXAM_KEYWORDS:
        if _contains_any(lowered, keywords):
            return exam
    return DEFAULT_EXAM_FOCUS


def classify(
    text: str,
    category: Optional[Category] = None,
    exam_focus: Optional[ExamFocus] = None,
) -> Classification:
    return Classification(
        category=category if category is not None else detect_category(text),
        exam_focus=exam_focus if exam_focus is not None else detect_exam_focus(text),
    )
