from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict
from sqlalchemy import JSON, Column, Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel


class LessonStatus(str, Enum):
    active = "active"
    completed = "completed"
    archived = "archived"


class RoomType(str, Enum):
    clarity = "clarity"
    quiz = "quiz"
    memory = "memory"
    test = "test"


class Category(str, Enum):
    historical_period = "historical_period"
    constitution = "constitution"
    geography = "geography"
    science = "science"
    general = "general"


class ExamFocus(str, Enum):
    upsc = "upsc"
    ssc = "ssc"
    banking = "banking"
    neet = "neet"
    jee = "jee"
    state_pcs = "state_pcs"


class SourceKind(str, Enum):
    text = "text"
    url = "url"
    topic = "topic"


class LessonDifficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class JobStatus(str, Enum):
    running = "running"
    succeeded = "succeeded"
    failed = "failed"


class ProgressStatus(str, Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    completed = "completed"


class Lesson(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    owner_id: str = Field(index=True)
    title: str
    raw_content: str
    source_kind: SourceKind = SourceKind.text
    source_text: Optional[str] = None
    subject: Optional[str] = None
    category: Category = Category.general
    exam_focus: ExamFocus = ExamFocus.upsc
    difficulty: LessonDifficulty = LessonDifficulty.medium
    status: LessonStatus = LessonStatus.active
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def material(self) -> str:
        return self.source_text or self.raw_content


class OverviewRecord(SQLModel, table=True):
    lesson_id: str = Field(primary_key=True)
    job_id: Optional[str] = None
    content: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=datetime.utcnow)


class QuizQuestionRecord(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    lesson_id: str = Field(index=True)
    batch_id: str = Field(index=True)
    position: int = 0
    question: str
    options: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    correct_answer: int = 0
    explanation: Optional[str] = None
    difficulty: str = "medium"
    points: int = 10
    created_at: datetime = Field(default_factory=datetime.utcnow)


class FlashcardRecord(SQLModel, table=True):
    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    lesson_id: str = Field(index=True)
    batch_id: str = Field(index=True)
    position: int = 0
    front: str
    back: str
    category: str = "General"
    difficulty: str = "medium"
    hint: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class TestQuestionRecord(SQLModel, table=True):
    __test__ = False

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    lesson_id: str = Field(index=True)
    batch_id: str = Field(index=True)
    position: int = 0
    question: str
    question_type: str = "mcq"
    options: Optional[list[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    correct_answer: Optional[int] = None
    answer: Optional[str] = None
    explanation: Optional[str] = None
    difficulty: str = "medium"
    points: int = 10
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ProgressRecord(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "lesson_id", "room_type"),)

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    user_id: str = Field(index=True)
    lesson_id: str = Field(index=True)
    room_type: RoomType
    status: ProgressStatus = ProgressStatus.not_started
    score: int = 0
    max_score: int = 0
    time_spent: int = 0
    completed: bool = False
    attempts: int = 0
    completed_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class GenerationJob(SQLModel, table=True):
    # At most one running claim per (lesson, room).
    __table_args__ = (
        Index(
            "uq_generation_job_running",
            "lesson_id",
            "room_type",
            unique=True,
            sqlite_where=text("status = 'running'"),
            postgresql_where=text("status = 'running'"),
        ),
    )

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True)
    lesson_id: str = Field(index=True)
    room_type: RoomType
    status: JobStatus = JobStatus.running
    message: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class LessonRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    title: str
    raw_content: str
    source_kind: SourceKind
    subject: Optional[str] = None
    category: Category
    exam_focus: ExamFocus
    difficulty: LessonDifficulty
    status: LessonStatus
    created_at: datetime
    updated_at: datetime


class ProgressRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    room_type: RoomType
    status: ProgressStatus
    score: int
    max_score: int
    time_spent: int
    completed: bool
    attempts: int
    completed_at: Optional[datetime] = None
    updated_at: datetime


class GenerationJobRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    lesson_id: str
    room_type: RoomType
    status: JobStatus
    message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
