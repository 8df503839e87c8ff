from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from .models import Category
from .schemas import TabType

BASE_SYSTEM_PROMPT = (
    "You are a study buddy specialized in Indian competitive exams. "
    "Create adaptive, exam-focused learning content that is concise yet comprehensive. "
    "Always structure content in tabs based on the topic type."
)


@dataclass(frozen=True)
class TabSpec:
    id: str
    title: str
    type: TabType
    example: tuple[Any, ...]

    def render(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type.value,
            "content": [dict(item) if isinstance(item, dict) else item for item in self.example],
        }


@dataclass(frozen=True)
class SchemaEntry:
    category: Category
    system: str
    tabs: tuple[TabSpec, ...]
    estimated_time: str

    @property
    def tab_ids(self) -> tuple[str, ...]:
        return tuple(tab.id for tab in self.tabs)

    @property
    def tab_types(self) -> frozenset[TabType]:
        return frozenset(tab.type for tab in self.tabs)

    def example(self, exam_focus: str) -> dict[str, Any]:
        return {
            "overview": "Brief 2-3 line overview",
            "contentType": self.category.value,
            "examFocus": exam_focus,
            "tabs": [tab.render() for tab in self.tabs],
            "keyHighlights": ["highlight1", "highlight2"],
            "examTips": ["tip1", "tip2"],
            "difficulty": "intermediate",
            "estimatedTime": self.estimated_time,
        }

    def structure(self, exam_focus: str) -> str:
        return json.dumps(self.example(exam_focus), indent=2, ensure_ascii=True)


SCHEMAS: dict[Category, SchemaEntry] = {
    Category.historical_period: SchemaEntry(
        category=Category.historical_period,
        system=(
            f"{BASE_SYSTEM_PROMPT} For historical periods, focus on rulers, timeline, key events, "
            "and exam-important facts. Structure content with tabs like: Rulers & Dynasties, "
            "Timeline, Key Events, Exam Points."
        ),
        tabs=(
            TabSpec(
                "rulers",
                "Rulers & Dynasties",
                TabType.rulers,
                (
                    {
                        "name": "Ruler Name",
                        "dynasty": "Dynasty",
                        "period": "Years",
                        "capital": "Capital City",
                        "achievements": ["achievement1", "achievement2"],
                    },
                ),
            ),
            TabSpec(
                "timeline",
                "Timeline",
                TabType.timeline,
                ({"year": "Year/Period", "event": "Event", "significance": "Why important for exams"},),
            ),
            TabSpec(
                "key_events",
                "Key Events",
                TabType.list,
                (
                    {
                        "event": "Event Name",
                        "date": "Date",
                        "description": "Brief description",
                        "examImportance": "Why asked in exams",
                    },
                ),
            ),
            TabSpec(
                "exam_points",
                "Exam Important Points",
                TabType.points,
                ("Point 1 - specific exam fact", "Point 2 - another exam fact"),
            ),
        ),
        estimated_time="15 minutes",
    ),
    Category.constitution: SchemaEntry(
        category=Category.constitution,
        system=(
            f"{BASE_SYSTEM_PROMPT} For constitutional topics, focus on articles, parts, schedules, "
            "and amendments. Structure with tabs like: Articles, Parts & Schedules, Amendments, "
            "Exam Facts."
        ),
        tabs=(
            TabSpec(
                "articles",
                "Articles",
                TabType.articles,
                (
                    {
                        "number": "Article Number",
                        "title": "Article Title",
                        "description": "What it covers",
                        "keyPoints": ["point1", "point2"],
                        "examRelevance": "Why important for exams",
                    },
                ),
            ),
            TabSpec(
                "parts_schedules",
                "Parts & Schedules",
                TabType.list,
                (
                    {
                        "kind": "Part/Schedule",
                        "number": "Number",
                        "title": "Title",
                        "articles": "Article range",
                        "description": "What it contains",
                    },
                ),
            ),
            TabSpec(
                "amendments",
                "Key Amendments",
                TabType.list,
                (
                    {
                        "amendmentNumber": "Number",
                        "year": "Year",
                        "description": "What the amendment changed",
                        "keyChanges": ["change1", "change2"],
                        "examImportance": "Why frequently asked",
                    },
                ),
            ),
            TabSpec(
                "exam_facts",
                "Exam Important Facts",
                TabType.points,
                ("Fact 1 - specific constitutional fact", "Fact 2 - another important fact"),
            ),
        ),
        estimated_time="20 minutes",
    ),
    Category.geography: SchemaEntry(
        category=Category.geography,
        system=(
            f"{BASE_SYSTEM_PROMPT} For geography topics, focus on physical features, "
            "economic aspects, and exam-relevant facts."
        ),
        tabs=(
            TabSpec(
                "physical",
                "Physical Features",
                TabType.concepts,
                (
                    {
                        "term": "Feature Name",
                        "definition": "What it is",
                        "explanation": "Detailed description",
                        "examples": ["example1", "example2"],
                    },
                ),
            ),
            TabSpec(
                "economic",
                "Economic Aspects",
                TabType.list,
                (
                    {
                        "aspect": "Economic feature",
                        "description": "Description",
                        "examRelevance": "Why important",
                    },
                ),
            ),
            TabSpec(
                "exam_points",
                "Exam Important Points",
                TabType.points,
                ("Point 1 - specific geography fact", "Point 2 - another important point"),
            ),
        ),
        estimated_time="20 minutes",
    ),
    Category.science: SchemaEntry(
        category=Category.science,
        system=(
            f"{BASE_SYSTEM_PROMPT} For science topics, focus on concepts, formulas, laws, and "
            "practical applications. Structure with tabs like: Key Concepts, Formulas & Laws, "
            "Applications, Exam Points."
        ),
        tabs=(
            TabSpec(
                "concepts",
                "Key Concepts",
                TabType.concepts,
                (
                    {
                        "term": "Concept Name",
                        "definition": "Clear definition",
                        "explanation": "Detailed explanation",
                        "examples": ["example1", "example2"],
                    },
                ),
            ),
            TabSpec(
                "formulas",
                "Formulas & Laws",
                TabType.formulas,
                (
                    {
                        "name": "Formula/Law Name",
                        "expression": "Mathematical expression",
                        "variables": "Variable definitions",
                        "applications": ["application1", "application2"],
                    },
                ),
            ),
            TabSpec(
                "applications",
                "Applications",
                TabType.list,
                (
                    {
                        "application": "Real-world application",
                        "description": "How it works",
                        "examRelevance": "Why important for exams",
                    },
                ),
            ),
            TabSpec(
                "exam_points",
                "Exam Important Points",
                TabType.points,
                ("Point 1 - specific science fact", "Point 2 - another important point"),
            ),
        ),
        estimated_time="25 minutes",
    ),
    Category.general: SchemaEntry(
        category=Category.general,
        system=(
            f"{BASE_SYSTEM_PROMPT} For general topics, create adaptive tabs based on the content. "
            "Use appropriate tab types like concepts, timeline, facts, or points based on what "
            "fits best."
        ),
        tabs=(
            TabSpec(
                "overview_tab",
                "Key Points",
                TabType.points,
                ("Important point 1", "Important point 2"),
            ),
            TabSpec(
                "details",
                "Detailed Information",
                TabType.concepts,
                (
                    {
                        "term": "Concept Name",
                        "definition": "Definition",
                        "explanation": "Explanation",
                        "examples": ["example1"],
                    },
                ),
            ),
            TabSpec(
                "exam_focus",
                "Exam Focus",
                TabType.points,
                ("Exam point 1", "Exam point 2"),
            ),
        ),
        estimated_time="15 minutes",
    ),
}

_missing = set(Category) - set(SCHEMAS)
if _missing:
    raise RuntimeError(f"Schema registry is missing categories: {sorted(c.value for c in _missing)}")


def get_schema(category: Category) -> SchemaEntry:
    return SCHEMAS.get(category, SCHEMAS[Category.general])
