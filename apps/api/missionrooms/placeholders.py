from __future__ import annotations

import copy
from typing import Any

from .models import Category, ExamFocus

_OVERVIEW: dict[str, Any] = {
    "overview": "Learning content is being generated. This may take a moment.",
    "tabs": [
        {
            "id": "overview_tab",
            "title": "Overview",
            "type": "points",
            "content": [
                "Content is being generated...",
                "Please check back in a moment.",
            ],
        }
    ],
    "keyHighlights": [],
    "examTips": ["Content is being prepared..."],
    "difficulty": "intermediate",
    "estimatedTime": "15 minutes",
}

_QUIZ_QUESTIONS: list[dict[str, Any]] = [
    {
        "id": "placeholder1",
        "question": "What is the capital of India?",
        "options": ["Mumbai", "New Delhi", "Kolkata", "Chennai"],
        "correct_answer": 1,
        "explanation": "New Delhi is the capital city of India.",
        "difficulty": "easy",
        "points": 10,
    },
    {
        "id": "placeholder2",
        "question": "Which article of the Indian Constitution abolishes untouchability?",
        "options": ["Article 14", "Article 15", "Article 17", "Article 21"],
        "correct_answer": 2,
        "explanation": "Article 17 of the Indian Constitution abolishes untouchability.",
        "difficulty": "medium",
        "points": 15,
    },
    {
        "id": "placeholder3",
        "question": "Who was the first Prime Minister of India?",
        "options": ["Mahatma Gandhi", "Jawaharlal Nehru", "Sardar Patel", "B.R. Ambedkar"],
        "correct_answer": 1,
        "explanation": "Jawaharlal Nehru was the first Prime Minister of India.",
        "difficulty": "easy",
        "points": 10,
    },
]

_FLASHCARDS: list[dict[str, Any]] = [
    {
        "id": "placeholder1",
        "front": "Capital of India",
        "back": "New Delhi",
        "category": "Geography",
        "difficulty": "easy",
        "hint": None,
    },
    {
        "id": "placeholder2",
        "front": "Article 17 of the Indian Constitution",
        "back": "Abolishes untouchability",
        "category": "Polity",
        "difficulty": "medium",
        "hint": None,
    },
    {
        "id": "placeholder3",
        "front": "First Prime Minister of India",
        "back": "Jawaharlal Nehru",
        "category": "History",
        "difficulty": "easy",
        "hint": None,
    },
]

_TEST_QUESTIONS: list[dict[str, Any]] = [
    {
        "id": "placeholder1",
        "question": "Explain the significance of the Fundamental Rights in the Indian Constitution.",
        "question_type": "long",
        "options": None,
        "correct_answer": None,
        "answer": None,
        "points": 20,
        "explanation": (
            "Fundamental Rights are essential for the overall development of individuals "
            "and to preserve human dignity."
        ),
        "difficulty": "medium",
    },
    {
        "id": "placeholder2",
        "question": "What is the capital of India?",
        "question_type": "mcq",
        "options": ["Mumbai", "New Delhi", "Kolkata", "Chennai"],
        "correct_answer": 1,
        "answer": None,
        "points": 10,
        "explanation": "New Delhi is the capital city of India.",
        "difficulty": "easy",
    },
    {
        "id": "placeholder3",
        "question": "Name the first Prime Minister of India.",
        "question_type": "short",
        "options": None,
        "correct_answer": None,
        "answer": "Jawaharlal Nehru",
        "points": 10,
        "explanation": "Jawaharlal Nehru was the first Prime Minister of India.",
        "difficulty": "easy",
    },
]


def placeholder_overview(category: Category, exam_focus: ExamFocus) -> dict[str, Any]:
    overview = copy.deepcopy(_OVERVIEW)
    overview["contentType"] = category.value
    overview["examFocus"] = exam_focus.value
    return overview


def placeholder_quiz_questions() -> list[dict[str, Any]]:
    return copy.deepcopy(_QUIZ_QUESTIONS)


def placeholder_flashcards() -> list[dict[str, Any]]:
    return copy.deepcopy(_FLASHCARDS)


def placeholder_test_questions() -> list[dict[str, Any]]:
    return copy.deepcopy(_TEST_QUESTIONS)
