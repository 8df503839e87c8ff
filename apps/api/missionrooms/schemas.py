from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from .models import Category, ExamFocus, LessonDifficulty, LessonRead, ProgressRead, RoomType


class TabType(str, Enum):
    timeline = "timeline"
    list = "list"
    concepts = "concepts"
    articles = "articles"
    rulers = "rulers"
    facts = "facts"
    formulas = "formulas"
    points = "points"


def _as_text(value: Any) -> Any:
    # Models often emit years and article numbers as JSON numbers.
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _variables_text(value: Any) -> Any:
    if isinstance(value, dict):
        return "; ".join(f"{name}: {meaning}" for name, meaning in value.items())
    return _as_text(value)


def _lowered(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


Text = Annotated[str, BeforeValidator(_as_text)]
Variables = Annotated[str, BeforeValidator(_variables_text)]
OverviewDifficulty = Annotated[Literal["beginner", "intermediate", "advanced"], BeforeValidator(_lowered)]
QuestionDifficulty = Annotated[Literal["easy", "medium", "hard"], BeforeValidator(_lowered)]
QuestionType = Annotated[Literal["mcq", "short", "long"], BeforeValidator(_lowered)]


class _TabItem(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class ConceptItem(_TabItem):
    term: str = Field(validation_alias=AliasChoices("term", "concept"))
    definition: str
    explanation: Optional[str] = None
    examples: list[str] = Field(default_factory=list)


class TimelineItem(_TabItem):
    year: Text
    event: Text
    significance: Text = ""


class ArticleItem(_TabItem):
    number: Text = Field(validation_alias=AliasChoices("number", "articleNumber"))
    title: Text
    description: str
    key_points: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("keyPoints", "key_points"),
        serialization_alias="keyPoints",
    )
    exam_relevance: str = Field(
        default="",
        validation_alias=AliasChoices("examRelevance", "exam_relevance"),
        serialization_alias="examRelevance",
    )


class RulerItem(_TabItem):
    name: str
    dynasty: str = ""
    period: Text = ""
    capital: str = ""
    achievements: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("achievements", "keyAchievements"),
    )


class FormulaItem(_TabItem):
    name: str
    expression: str = Field(validation_alias=AliasChoices("expression", "formula"))
    variables: Variables = ""
    applications: list[str] = Field(default_factory=list)


class ListItem(_TabItem):
    description: str


_ITEM_MODELS: dict[TabType, type[_TabItem]] = {
    TabType.concepts: ConceptItem,
    TabType.timeline: TimelineItem,
    TabType.articles: ArticleItem,
    TabType.rulers: RulerItem,
    TabType.formulas: FormulaItem,
    TabType.list: ListItem,
}


# Tab types whose content is a plain ordered list of strings.
STRING_TAB_TYPES = frozenset({TabType.points, TabType.facts})


class Tab(BaseModel):
    id: str
    title: str
    type: TabType
    content: list[Union[str, dict[str, Any]]]

    @model_validator(mode="after")
    def validate_content_shape(self) -> "Tab":
        if self.type in STRING_TAB_TYPES:
            if not all(isinstance(item, str) for item in self.content):
                raise ValueError(f"Tab '{self.id}' of type {self.type.value} must contain strings.")
            return self
        item_model = _ITEM_MODELS[self.type]
        normalized: list[Union[str, dict[str, Any]]] = []
        for item in self.content:
            if not isinstance(item, dict):
                raise ValueError(f"Tab '{self.id}' of type {self.type.value} must contain records.")
            parsed = item_model.model_validate(item)
            normalized.append(parsed.model_dump(by_alias=True))
        self.content = normalized
        return self


class OverviewContent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overview: str
    content_type: str = Field(
        default=Category.general.value,
        validation_alias=AliasChoices("contentType", "content_type"),
        serialization_alias="contentType",
    )
    exam_focus: str = Field(
        default=ExamFocus.upsc.value,
        validation_alias=AliasChoices("examFocus", "exam_focus"),
        serialization_alias="examFocus",
    )
    tabs: list[Tab]
    key_highlights: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("keyHighlights", "key_highlights"),
        serialization_alias="keyHighlights",
    )
    exam_tips: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("examTips", "exam_tips"),
        serialization_alias="examTips",
    )
    difficulty: OverviewDifficulty = "intermediate"
    estimated_time: str = Field(
        default="15 minutes",
        validation_alias=AliasChoices("estimatedTime", "estimated_time"),
        serialization_alias="estimatedTime",
    )

    def tab_types(self) -> list[TabType]:
        return [tab.type for tab in self.tabs]


class QuizQuestion(BaseModel):
    id: Optional[str] = None
    question: str
    options: list[str] = Field(min_length=2)
    correct_answer: int = Field(ge=0, validation_alias=AliasChoices("correct_answer", "correctAnswer"))
    explanation: Optional[str] = None
    difficulty: QuestionDifficulty = "medium"
    points: int = 10

    @model_validator(mode="after")
    def answer_in_options(self) -> "QuizQuestion":
        if self.correct_answer >= len(self.options):
            raise ValueError("correct_answer must index into options.")
        return self


class Flashcard(BaseModel):
    id: Optional[str] = None
    front: str
    back: str
    category: str = "General"
    difficulty: QuestionDifficulty = "medium"
    hint: Optional[str] = None


class TestQuestion(BaseModel):
    __test__ = False

    id: Optional[str] = None
    question: str
    question_type: QuestionType = Field(
        default="mcq", validation_alias=AliasChoices("question_type", "type", "questionType")
    )
    options: Optional[list[str]] = None
    correct_answer: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("correct_answer", "correctAnswer")
    )
    answer: Optional[str] = None
    explanation: Optional[str] = None
    difficulty: QuestionDifficulty = "medium"
    points: int = 10

    @model_validator(mode="after")
    def mcq_has_answer_index(self) -> "TestQuestion":
        if self.question_type == "mcq":
            if not self.options or self.correct_answer is None:
                raise ValueError("mcq test questions need options and correct_answer.")
            if not 0 <= self.correct_answer < len(self.options):
                raise ValueError("correct_answer must index into options.")
        return self


def _wrap_bare_list(data: Any, key: str) -> Any:
    if isinstance(data, list):
        return {key: data}
    return data


class QuizPayload(BaseModel):
    questions: list[QuizQuestion] = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def accept_bare_list(cls, data: Any) -> Any:
        return _wrap_bare_list(data, "questions")


class FlashcardsPayload(BaseModel):
    flashcards: list[Flashcard] = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def accept_bare_list(cls, data: Any) -> Any:
        return _wrap_bare_list(data, "flashcards")


class TestPayload(BaseModel):
    __test__ = False

    questions: list[TestQuestion] = Field(min_length=1)

    @model_validator(mode="before")
    @classmethod
    def accept_bare_list(cls, data: Any) -> Any:
        return _wrap_bare_list(data, "questions")


CONTENT_MAX_CHARS = 20000


class CreateLessonRequest(BaseModel):
    content: str = Field(min_length=1, max_length=CONTENT_MAX_CHARS)
    title: Optional[str] = None
    category: Optional[Category] = None
    exam_focus: Optional[ExamFocus] = None
    subject: Optional[str] = None
    difficulty: LessonDifficulty = LessonDifficulty.medium


class CreateLessonResponse(BaseModel):
    lesson_id: str
    category: Category
    exam_focus: ExamFocus
    overview_ready: bool


class ProgressUpdate(BaseModel):
    score: int = Field(ge=0)
    max_score: int = Field(ge=0)
    time_spent: int = Field(default=0, ge=0)
    completed: bool = False


class RoomContent(BaseModel):
    overview: Optional[dict[str, Any]] = None
    quiz_questions: Optional[list[dict[str, Any]]] = None
    flashcards: Optional[list[dict[str, Any]]] = None
    test_questions: Optional[list[dict[str, Any]]] = None


class RoomContentResponse(BaseModel):
    mission: LessonRead
    room: RoomType
    state: Literal["placeholder", "generated"]
    content: RoomContent
    progress: list[ProgressRead]
