from __future__ import annotations

from datetime import datetime, timedelta

from sqlmodel import Session, select

from missionrooms.config import Settings
from missionrooms.generation import ContentMaterializer
from missionrooms.jobs import STALE_MESSAGE, claim_generation, count_failed_jobs, get_job, list_jobs
from missionrooms.llm import GenerationFailed, LLMClient, MockLLMClient
from missionrooms.models import Category, ExamFocus, FlashcardRecord, GenerationJob, JobStatus, Lesson, RoomType
from missionrooms.repository import append_room_items, create_lesson, get_overview, latest_room_items
from missionrooms.schemas import Flashcard


class FailingClient(LLMClient):
    def __init__(self) -> None:
        self.calls = 0

    def generate(self, system_prompt, user_prompt, schema):
        self.calls += 1
        raise GenerationFailed("both providers failed", errors=["anthropic: 500", "openai: timeout"])


class RecordingClient(MockLLMClient):
    def __init__(self) -> None:
        self.prompts: list[tuple[str, str]] = []

    def generate(self, system_prompt, user_prompt, schema):
        self.prompts.append((system_prompt, user_prompt))
        return super().generate(system_prompt, user_prompt, schema)


def _seed_lesson(engine, raw_content: str = "Mughal Empire") -> Lesson:
    return create_lesson(
        engine,
        Lesson(
            owner_id="user-1",
            title=raw_content,
            raw_content=raw_content,
            category=Category.historical_period,
            exam_focus=ExamFocus.upsc,
        ),
    )


def _age_job(engine, job_id: str) -> None:
    with Session(engine) as session:
        job = session.get(GenerationJob, job_id)
        job.created_at = datetime.utcnow() - timedelta(hours=1)
        session.add(job)
        session.commit()


def test_claim_is_exclusive_per_room(engine) -> None:
    lesson = _seed_lesson(engine)

    first = claim_generation(engine, lesson.id, RoomType.quiz, ttl_seconds=600)
    second = claim_generation(engine, lesson.id, RoomType.quiz, ttl_seconds=600)
    other_room = claim_generation(engine, lesson.id, RoomType.memory, ttl_seconds=600)

    assert first is not None
    assert second is None
    assert other_room is not None


def test_stale_claim_is_taken_over(engine) -> None:
    lesson = _seed_lesson(engine)
    stale = claim_generation(engine, lesson.id, RoomType.test, ttl_seconds=600)
    _age_job(engine, stale.id)

    fresh = claim_generation(engine, lesson.id, RoomType.test, ttl_seconds=600)

    assert fresh is not None
    assert fresh.id != stale.id
    expired = get_job(engine, stale.id)
    assert expired.status == JobStatus.failed
    assert expired.message == STALE_MESSAGE


def test_generate_overview_persists_mock_content(engine, settings: Settings) -> None:
    lesson = _seed_lesson(engine)
    materializer = ContentMaterializer(engine, MockLLMClient(), settings)

    overview = materializer.generate_overview(lesson)

    assert overview is not None
    assert [tab["type"] for tab in overview["tabs"]] == ["rulers", "timeline", "list", "points"]
    assert get_overview(engine, lesson.id) == overview
    jobs = list_jobs(engine, lesson.id)
    assert [(job.room_type, job.status) for job in jobs] == [(RoomType.clarity, JobStatus.succeeded)]


def test_room_generation_uses_overview_as_context(engine, settings: Settings, scheduler) -> None:
    lesson = _seed_lesson(engine)
    client = RecordingClient()
    materializer = ContentMaterializer(engine, client, settings)
    materializer.generate_overview(lesson)

    assert materializer.schedule_room(lesson, RoomType.memory, scheduler)
    scheduler.run_all()

    _, user_prompt = client.prompts[-1]
    assert "Additional context:" in user_prompt
    cards = latest_room_items(engine, RoomType.memory, lesson.id)
    assert len(cards) == 1
    assert cards[0]["front"] == "Question or term"


def test_failed_job_releases_claim(engine, settings: Settings, scheduler) -> None:
    lesson = _seed_lesson(engine)
    failing = ContentMaterializer(engine, FailingClient(), settings)

    assert failing.schedule_room(lesson, RoomType.quiz, scheduler)
    scheduler.run_all()

    assert not failing.is_generated(lesson.id, RoomType.quiz)
    assert count_failed_jobs(engine) == 1
    job = list_jobs(engine, lesson.id)[0]
    assert job.status == JobStatus.failed
    assert "anthropic: 500" in job.message

    working = ContentMaterializer(engine, MockLLMClient(), settings)
    assert working.schedule_room(lesson, RoomType.quiz, scheduler)
    scheduler.run_all()
    assert working.is_generated(lesson.id, RoomType.quiz)


def test_overview_failure_returns_none(engine, settings: Settings) -> None:
    lesson = _seed_lesson(engine)
    materializer = ContentMaterializer(engine, FailingClient(), settings)

    assert materializer.generate_overview(lesson) is None
    assert get_overview(engine, lesson.id) is None
    assert count_failed_jobs(engine) == 1


def test_generated_room_is_never_regenerated(engine, settings: Settings) -> None:
    lesson = _seed_lesson(engine)
    materializer = ContentMaterializer(engine, MockLLMClient(), settings)
    first = claim_generation(engine, lesson.id, RoomType.quiz, ttl_seconds=600)
    materializer.run_room_job(first.id, lesson.id, RoomType.quiz)
    stored = latest_room_items(engine, RoomType.quiz, lesson.id)

    client = FailingClient()
    materializer.llm = client
    second = claim_generation(engine, lesson.id, RoomType.quiz, ttl_seconds=600)
    materializer.run_room_job(second.id, lesson.id, RoomType.quiz)

    assert client.calls == 0
    assert latest_room_items(engine, RoomType.quiz, lesson.id) == stored
    finished = get_job(engine, second.id)
    assert finished.status == JobStatus.succeeded
    assert finished.message == "already generated"


def test_job_for_missing_lesson_fails(engine, settings: Settings) -> None:
    materializer = ContentMaterializer(engine, MockLLMClient(), settings)
    job = claim_generation(engine, "missing", RoomType.quiz, ttl_seconds=600)

    materializer.run_room_job(job.id, "missing", RoomType.quiz)

    assert get_job(engine, job.id).status == JobStatus.failed


def test_taken_over_job_cannot_finish(engine, settings: Settings) -> None:
    lesson = _seed_lesson(engine)
    materializer = ContentMaterializer(engine, MockLLMClient(), settings)
    stale = claim_generation(engine, lesson.id, RoomType.quiz, ttl_seconds=600)
    _age_job(engine, stale.id)
    fresh = claim_generation(engine, lesson.id, RoomType.quiz, ttl_seconds=600)

    materializer.run_room_job(stale.id, lesson.id, RoomType.quiz)

    expired = get_job(engine, stale.id)
    assert expired.status == JobStatus.failed
    assert expired.message == STALE_MESSAGE
    assert count_failed_jobs(engine) == 1
    assert latest_room_items(engine, RoomType.quiz, lesson.id) == []
    assert get_job(engine, fresh.id).status == JobStatus.running

    materializer.run_room_job(fresh.id, lesson.id, RoomType.quiz)
    assert get_job(engine, fresh.id).status == JobStatus.succeeded
    assert len(latest_room_items(engine, RoomType.quiz, lesson.id)) == 1


def test_taken_over_job_failure_keeps_stale_message(engine, settings: Settings) -> None:
    lesson = _seed_lesson(engine)
    stale = claim_generation(engine, lesson.id, RoomType.memory, ttl_seconds=600)
    _age_job(engine, stale.id)
    claim_generation(engine, lesson.id, RoomType.memory, ttl_seconds=600)

    ContentMaterializer(engine, FailingClient(), settings).run_room_job(stale.id, lesson.id, RoomType.memory)

    assert get_job(engine, stale.id).message == STALE_MESSAGE


def test_latest_batch_wins(engine) -> None:
    lesson = _seed_lesson(engine)
    older = [
        Flashcard(front="Founder", back="Babur"),
        Flashcard(front="Capital", back="Agra"),
    ]
    newer = [
        Flashcard(front="Panipat", back="1526"),
        Flashcard(front="Successor", back="Humayun"),
        Flashcard(front="Grandson", back="Akbar"),
    ]
    append_room_items(engine, RoomType.memory, lesson.id, "batch-old", older)
    with Session(engine) as session:
        for record in session.exec(select(FlashcardRecord)).all():
            record.created_at = datetime.utcnow() - timedelta(minutes=5)
            session.add(record)
        session.commit()
    append_room_items(engine, RoomType.memory, lesson.id, "batch-new", newer)

    cards = latest_room_items(engine, RoomType.memory, lesson.id)

    assert [card["front"] for card in cards] == ["Panipat", "Successor", "Grandson"]
