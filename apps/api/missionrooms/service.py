from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.engine import Engine

from .classifier import classify
from .config import BackendMode
from .generation import ContentMaterializer, Scheduler
from .jobs import list_jobs
from .models import (
    Category,
    ExamFocus,
    GenerationJob,
    Lesson,
    LessonDifficulty,
    LessonRead,
    LessonStatus,
    ProgressRead,
    ProgressRecord,
    RoomType,
    SourceKind,
)
from .placeholders import (
    placeholder_flashcards,
    placeholder_overview,
    placeholder_quiz_questions,
    placeholder_test_questions,
)
from .repository import (
    create_lesson as insert_lesson,
    get_lesson,
    get_overview,
    init_progress,
    latest_room_items,
    list_lessons,
    list_progress,
    update_lesson_status,
    upsert_progress,
)
from .schemas import RoomContent, RoomContentResponse
from .sources import SourceFetcher, detect_source_kind

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 80

_ROOM_CONTENT_FIELD = {
    RoomType.clarity: "overview",
    RoomType.quiz: "quiz_questions",
    RoomType.memory: "flashcards",
    RoomType.test: "test_questions",
}


class LessonNotFound(LookupError):
    pass


class LessonAccessDenied(PermissionError):
    pass


@dataclass(frozen=True)
class CreateLessonResult:
    lesson_id: str
    category: Category
    exam_focus: ExamFocus
    overview_ready: bool


def _derive_title(raw_content: str, fetched_title: str = "") -> str:
    if fetched_title:
        return fetched_title[:TITLE_MAX_CHARS]
    first_line = raw_content.strip().splitlines()[0] if raw_content.strip() else "Untitled mission"
    if len(first_line) <= TITLE_MAX_CHARS:
        return first_line
    return first_line[: TITLE_MAX_CHARS - 3].rstrip() + "..."


class LessonService:
    def __init__(
        self,
        engine: Engine,
        materializer: ContentMaterializer,
        fetcher: SourceFetcher,
        mode: BackendMode,
    ) -> None:
        self.engine = engine
        self.materializer = materializer
        self.fetcher = fetcher
        self.mode = mode

    def create_lesson(
        self,
        owner_id: str,
        raw_content: str,
        category: Optional[Category] = None,
        exam_focus: Optional[ExamFocus] = None,
        subject: Optional[str] = None,
        title: Optional[str] = None,
        difficulty: LessonDifficulty = LessonDifficulty.medium,
    ) -> CreateLessonResult:
        source_kind = detect_source_kind(raw_content)
        source_text = None
        fetched_title = ""
        if source_kind == SourceKind.url:
            fetched = self.fetcher.fetch(raw_content)
            if fetched:
                source_text = fetched["text"]
                fetched_title = fetched["title"]

        classification = classify(source_text or raw_content, category=category, exam_focus=exam_focus)
        lesson = insert_lesson(
            self.engine,
            Lesson(
                owner_id=owner_id,
                title=title or _derive_title(raw_content, fetched_title),
                raw_content=raw_content,
                source_kind=source_kind,
                source_text=source_text,
                subject=subject,
                category=classification.category,
                exam_focus=classification.exam_focus,
                difficulty=difficulty,
                status=LessonStatus.active,
            ),
        )
        init_progress(self.engine, owner_id, lesson.id)
        overview = self.materializer.generate_overview(lesson)
        if overview is None:
            logger.warning("Lesson %s created without an overview; it will be served as a placeholder", lesson.id)
        return CreateLessonResult(
            lesson_id=lesson.id,
            category=lesson.category,
            exam_focus=lesson.exam_focus,
            overview_ready=overview is not None,
        )

    def get_owned_lesson(self, user_id: str, lesson_id: str) -> Lesson:
        lesson = get_lesson(self.engine, lesson_id)
        if lesson is None:
            raise LessonNotFound(lesson_id)
        if lesson.owner_id != user_id:
            raise LessonAccessDenied(lesson_id)
        return lesson

    def list_lessons(self, user_id: str) -> list[Lesson]:
        return list_lessons(self.engine, user_id)

    def get_room_content(
        self, user_id: str, lesson_id: str, room: RoomType, schedule: Scheduler
    ) -> RoomContentResponse:
        lesson = self.get_owned_lesson(user_id, lesson_id)
        payload, generated = self._load_room(lesson, room)
        if not generated:
            self.materializer.schedule_room(lesson, room, schedule)
        return RoomContentResponse(
            mission=LessonRead.model_validate(lesson),
            room=room,
            state="generated" if generated else "placeholder",
            content=RoomContent(**{_ROOM_CONTENT_FIELD[room]: payload}),
            progress=self._progress(user_id, lesson_id),
        )

    def _load_room(self, lesson: Lesson, room: RoomType) -> tuple[Any, bool]:
        if room == RoomType.clarity:
            overview = get_overview(self.engine, lesson.id)
            if overview is not None:
                return overview, True
            return placeholder_overview(lesson.category, lesson.exam_focus), False
        items = latest_room_items(self.engine, room, lesson.id)
        if items:
            return items, True
        if room == RoomType.quiz:
            return placeholder_quiz_questions(), False
        if room == RoomType.memory:
            return placeholder_flashcards(), False
        return placeholder_test_questions(), False

    def _progress(self, user_id: str, lesson_id: str) -> list[ProgressRead]:
        return [ProgressRead.model_validate(record) for record in list_progress(self.engine, user_id, lesson_id)]

    def record_progress(
        self,
        user_id: str,
        lesson_id: str,
        room: RoomType,
        *,
        score: int,
        max_score: int,
        time_spent: int,
        completed: bool,
    ) -> ProgressRecord:
        lesson = self.get_owned_lesson(user_id, lesson_id)
        record = upsert_progress(
            self.engine,
            user_id,
            lesson_id,
            room,
            score=score,
            max_score=max_score,
            time_spent=time_spent,
            completed=completed,
        )
        if lesson.status == LessonStatus.active and self._all_rooms_completed(user_id, lesson_id):
            update_lesson_status(self.engine, lesson_id, LessonStatus.completed)
            logger.info("Lesson %s completed by %s", lesson_id, user_id)
        return record

    def _all_rooms_completed(self, user_id: str, lesson_id: str) -> bool:
        done = {record.room_type for record in list_progress(self.engine, user_id, lesson_id) if record.completed}
        return done == set(RoomType)

    def archive_lesson(self, user_id: str, lesson_id: str) -> Lesson:
        self.get_owned_lesson(user_id, lesson_id)
        return update_lesson_status(self.engine, lesson_id, LessonStatus.archived)

    def list_jobs(self, user_id: str, lesson_id: str) -> list[GenerationJob]:
        self.get_owned_lesson(user_id, lesson_id)
        return list_jobs(self.engine, lesson_id)
