from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from sqlalchemy.engine import Engine

from .config import Settings
from .jobs import claim_generation, holds_claim, update_job
from .llm import GenerationFailed, LLMClient
from .models import JobStatus, Lesson, RoomType
from .prompts import (
    ComposedPrompt,
    compose_flashcards_prompt,
    compose_overview_prompt,
    compose_quiz_prompt,
    compose_test_prompt,
)
from .repository import (
    append_room_items,
    get_lesson,
    get_overview,
    has_room_items,
    save_overview,
)
from .schemas import FlashcardsPayload, OverviewContent, QuizPayload, TestPayload

logger = logging.getLogger(__name__)

Scheduler = Callable[..., Any]


def run_inline(func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    func(*args, **kwargs)


class ContentMaterializer:
    def __init__(self, engine: Engine, llm: LLMClient, settings: Settings) -> None:
        self.engine = engine
        self.llm = llm
        self.settings = settings

    def is_generated(self, lesson_id: str, room: RoomType) -> bool:
        if room == RoomType.clarity:
            return get_overview(self.engine, lesson_id) is not None
        return has_room_items(self.engine, room, lesson_id)

    def generate_overview(self, lesson: Lesson) -> Optional[dict[str, Any]]:
        """Run overview generation in the caller's thread; None if it failed or is already running."""
        scheduled = self.schedule_room(lesson, RoomType.clarity, run_inline)
        if not scheduled:
            return None
        return get_overview(self.engine, lesson.id)

    def schedule_room(self, lesson: Lesson, room: RoomType, schedule: Scheduler) -> bool:
        job = claim_generation(self.engine, lesson.id, room, self.settings.claim_ttl_seconds)
        if job is None:
            logger.debug("Generation for %s/%s already in flight", lesson.id, room.value)
            return False
        logger.info("Scheduling %s generation for lesson %s (job %s)", room.value, lesson.id, job.id)
        schedule(self.run_room_job, job.id, lesson.id, room)
        return True

    def run_room_job(self, job_id: str, lesson_id: str, room: RoomType) -> None:
        lesson = get_lesson(self.engine, lesson_id)
        if lesson is None:
            self._finish(job_id, JobStatus.failed, "lesson not found")
            return
        if self.is_generated(lesson_id, room):
            self._finish(job_id, JobStatus.succeeded, "already generated")
            return
        try:
            count = self._generate_and_store(job_id, lesson, room)
        except GenerationFailed as exc:
            detail = "; ".join(exc.errors) or str(exc)
            logger.error(
                "Background %s generation failed for lesson %s (job %s): %s",
                room.value,
                lesson_id,
                job_id,
                detail,
            )
            self._finish(job_id, JobStatus.failed, detail[:2000])
            return
        except Exception as exc:
            logger.exception("Unexpected error in %s generation job %s", room.value, job_id)
            self._finish(job_id, JobStatus.failed, f"{type(exc).__name__}: {exc}")
            return
        if count is None:
            logger.warning("Job %s lost its %s claim for lesson %s; result dropped", job_id, room.value, lesson_id)
            return
        self._finish(job_id, JobStatus.succeeded, f"{count} items")

    def _finish(self, job_id: str, status: JobStatus, message: str) -> None:
        # A job whose claim was taken over keeps its failed status.
        update_job(self.engine, job_id, status=status, message=message, only_if_running=True)

    def _generate_and_store(self, job_id: str, lesson: Lesson, room: RoomType) -> Optional[int]:
        if room == RoomType.clarity:
            prompt = compose_overview_prompt(
                lesson.material(), lesson.category, lesson.exam_focus, lesson.subject
            )
            overview = self._generate(prompt, OverviewContent)
            if not holds_claim(self.engine, job_id):
                return None
            content = overview.model_dump(mode="json", by_alias=True)
            save_overview(self.engine, lesson.id, content, job_id=job_id)
            return len(overview.tabs)

        context = get_overview(self.engine, lesson.id)
        material = lesson.material()
        if room == RoomType.quiz:
            items = self._generate(compose_quiz_prompt(material, lesson.exam_focus, context), QuizPayload).questions
        elif room == RoomType.memory:
            items = self._generate(
                compose_flashcards_prompt(material, lesson.exam_focus, context), FlashcardsPayload
            ).flashcards
        else:
            items = self._generate(compose_test_prompt(material, lesson.exam_focus, context), TestPayload).questions
        if not holds_claim(self.engine, job_id):
            return None
        append_room_items(self.engine, room, lesson.id, job_id, items)
        return len(items)

    def _generate(self, prompt: ComposedPrompt, schema):
        return self.llm.generate(prompt.system, prompt.user, schema)
