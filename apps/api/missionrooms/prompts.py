from __future__ import annotations

import json
from typing import Any, NamedTuple, Optional

from .models import Category, ExamFocus
from .registry import get_schema

STRUCTURE_MARKER = "Return ONLY valid JSON in this exact structure:"

QUIZ_QUESTION_COUNT = 5
FLASHCARD_COUNT = 8
TEST_QUESTION_COUNT = 8

EXAM_GUIDANCE: dict[ExamFocus, str] = {
    ExamFocus.upsc: "Focus on UPSC Civil Services exam pattern. Include Prelims MCQ points and Mains descriptive points.",
    ExamFocus.ssc: "Focus on SSC exam pattern. Include quantitative and reasoning aspects where applicable.",
    ExamFocus.banking: "Focus on banking exam requirements. Include current affairs and banking awareness points.",
    ExamFocus.state_pcs: "Focus on state-level competitive exams. Include state-specific information where relevant.",
    ExamFocus.neet: "Focus on NEET medical entrance exam. Include biological and chemical aspects.",
    ExamFocus.jee: "Focus on JEE engineering entrance exam. Include mathematical and physical concepts.",
}

OVERVIEW_CONSTRAINTS = (
    "Keep content BRIEF and EXAM-FOCUSED",
    "Each tab should have 3-8 items maximum",
    "Focus on facts that appear in Indian competitive exams",
    "Use simple, clear language",
    "Include specific years, numbers, and names",
    "Highlight exam-important points",
)

QUIZ_EXAMPLE = {
    "questions": [
        {
            "question": "Question text",
            "options": ["A", "B", "C", "D"],
            "correct_answer": 0,
            "explanation": "Why this is correct",
            "difficulty": "easy",
            "points": 10,
        }
    ]
}

FLASHCARDS_EXAMPLE = {
    "flashcards": [
        {
            "front": "Question or term",
            "back": "Answer or definition",
            "category": "Category name",
            "difficulty": "easy",
            "hint": "Optional hint",
        }
    ]
}

TEST_EXAMPLE = {
    "questions": [
        {
            "question": "Question text",
            "question_type": "mcq",
            "options": ["A", "B", "C", "D"],
            "correct_answer": 0,
            "points": 10,
            "explanation": "Detailed explanation",
            "difficulty": "medium",
        },
        {
            "question": "Short answer question text",
            "question_type": "short",
            "answer": "Expected answer",
            "points": 10,
            "explanation": "Detailed explanation",
            "difficulty": "hard",
        },
    ]
}


class ComposedPrompt(NamedTuple):
    system: str
    user: str


def _render(example: dict[str, Any]) -> str:
    return json.dumps(example, indent=2, ensure_ascii=True)


def _numbered(lines: tuple[str, ...]) -> str:
    return "\n".join(f"{idx}. {line}" for idx, line in enumerate(lines, start=1))


def exam_guidance(exam_focus: ExamFocus) -> str:
    return EXAM_GUIDANCE[exam_focus]


def compose_overview_prompt(
    content: str,
    category: Category,
    exam_focus: ExamFocus,
    subject: Optional[str] = None,
) -> ComposedPrompt:
    schema = get_schema(category)
    constraints = _numbered(
        OVERVIEW_CONSTRAINTS + (f"{STRUCTURE_MARKER}\n{schema.structure(exam_focus.value)}",)
    )
    system = (
        f"{schema.system}\n\n"
        f"EXAM FOCUS: {exam_guidance(exam_focus)}\n\n"
        f"CRITICAL INSTRUCTIONS:\n{constraints}"
    )
    user = (
        f'Create exam-focused learning content for: "{content}"\n'
        f"Subject: {subject or 'General'}\n"
        f"Content Type: {category.value}\n"
        f"Exam Focus: {exam_focus.value}\n\n"
        "Make it concise, exam-relevant, and structured with appropriate tabs. "
        f"Focus on facts that frequently appear in {exam_focus.value.upper()} exams in India."
    )
    return ComposedPrompt(system=system, user=user)


def _context_block(overview: Optional[dict[str, Any]]) -> str:
    if not overview:
        return ""
    return f"Additional context: {json.dumps(overview, sort_keys=True, ensure_ascii=True)}\n"


def _room_prompt(
    role: str,
    ask: str,
    example: dict[str, Any],
    content: str,
    exam_focus: ExamFocus,
    overview: Optional[dict[str, Any]],
) -> ComposedPrompt:
    system = (
        f"{role}\n"
        f"EXAM FOCUS: {exam_guidance(exam_focus)}\n"
        f'Every item must relate directly to: "{content}"\n\n'
        f"{STRUCTURE_MARKER}\n{_render(example)}"
    )
    user = (
        f'{ask} based on: "{content}"\n'
        f"{_context_block(overview)}"
        f"Make it relevant for {exam_focus.value.upper()} and other Indian competitive exams."
    )
    return ComposedPrompt(system=system, user=user)


def compose_quiz_prompt(
    content: str,
    exam_focus: ExamFocus,
    overview: Optional[dict[str, Any]] = None,
    count: int = QUIZ_QUESTION_COUNT,
) -> ComposedPrompt:
    return _room_prompt(
        f"You are creating engaging quiz questions for Indian students. "
        f"Generate {count} multiple choice questions. correct_answer is the index of the right option.",
        f"Create {count} quiz questions",
        QUIZ_EXAMPLE,
        content,
        exam_focus,
        overview,
    )


def compose_flashcards_prompt(
    content: str,
    exam_focus: ExamFocus,
    overview: Optional[dict[str, Any]] = None,
    count: int = FLASHCARD_COUNT,
) -> ComposedPrompt:
    return _room_prompt(
        f"You are creating memory flashcards for Indian students. "
        f"Generate {count} flashcards that help memorize key concepts.",
        f"Create {count} flashcards",
        FLASHCARDS_EXAMPLE,
        content,
        exam_focus,
        overview,
    )


def compose_test_prompt(
    content: str,
    exam_focus: ExamFocus,
    overview: Optional[dict[str, Any]] = None,
    count: int = TEST_QUESTION_COUNT,
) -> ComposedPrompt:
    return _room_prompt(
        f"You are creating comprehensive tests for Indian students. "
        f"Generate {count} test questions of varying difficulty, mixing mcq, short and long "
        "question types. mcq items carry options and correct_answer; short and long items carry answer.",
        f"Create {count} test questions",
        TEST_EXAMPLE,
        content,
        exam_focus,
        overview,
    )
