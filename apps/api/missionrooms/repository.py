from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence, Type, Union

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .models import (
    FlashcardRecord,
    Lesson,
    LessonStatus,
    OverviewRecord,
    ProgressRecord,
    ProgressStatus,
    QuizQuestionRecord,
    RoomType,
    TestQuestionRecord,
)
from .schemas import Flashcard, QuizQuestion, TestQuestion

RoomRecord = Union[QuizQuestionRecord, FlashcardRecord, TestQuestionRecord]

ROOM_RECORDS: dict[RoomType, Type[RoomRecord]] = {
    RoomType.quiz: QuizQuestionRecord,
    RoomType.memory: FlashcardRecord,
    RoomType.test: TestQuestionRecord,
}

_ROOM_FIELDS: dict[RoomType, tuple[str, ...]] = {
    RoomType.quiz: ("question", "options", "correct_answer", "explanation", "difficulty", "points"),
    RoomType.memory: ("front", "back", "category", "difficulty", "hint"),
    RoomType.test: (
        "question",
        "question_type",
        "options",
        "correct_answer",
        "answer",
        "points",
        "explanation",
        "difficulty",
    ),
}


def create_lesson(engine: Engine, lesson: Lesson) -> Lesson:
    with Session(engine, expire_on_commit=False) as session:
        session.add(lesson)
        session.commit()
        session.refresh(lesson)
    return lesson


def get_lesson(engine: Engine, lesson_id: str) -> Optional[Lesson]:
    with Session(engine, expire_on_commit=False) as session:
        return session.exec(select(Lesson).where(Lesson.id == lesson_id)).first()


def list_lessons(engine: Engine, owner_id: str) -> list[Lesson]:
    with Session(engine, expire_on_commit=False) as session:
        statement = (
            select(Lesson)
            .where(Lesson.owner_id == owner_id)
            .order_by(Lesson.created_at.desc())
        )
        return list(session.exec(statement).all())


def update_lesson_status(engine: Engine, lesson_id: str, status: LessonStatus) -> Lesson:
    with Session(engine, expire_on_commit=False) as session:
        lesson = session.exec(select(Lesson).where(Lesson.id == lesson_id)).first()
        if not lesson:
            raise ValueError("Lesson not found")
        lesson.status = status
        lesson.updated_at = datetime.utcnow()
        session.add(lesson)
        session.commit()
        session.refresh(lesson)
        return lesson


def get_overview(engine: Engine, lesson_id: str) -> Optional[dict[str, Any]]:
    with Session(engine) as session:
        record = session.get(OverviewRecord, lesson_id)
        return dict(record.content) if record else None


def save_overview(
    engine: Engine, lesson_id: str, content: dict[str, Any], job_id: Optional[str] = None
) -> dict[str, Any]:
    """Store the overview unless one exists; returns whichever overview is stored."""
    with Session(engine) as session:
        existing = session.get(OverviewRecord, lesson_id)
        if existing:
            return dict(existing.content)
        session.add(OverviewRecord(lesson_id=lesson_id, job_id=job_id, content=content))
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            stored = session.get(OverviewRecord, lesson_id)
            return dict(stored.content) if stored else content
    return content


def _record_to_dict(room: RoomType, record: RoomRecord) -> dict[str, Any]:
    data: dict[str, Any] = {"id": record.id}
    for field in _ROOM_FIELDS[room]:
        data[field] = getattr(record, field)
    return data


def latest_room_items(engine: Engine, room: RoomType, lesson_id: str) -> list[dict[str, Any]]:
    """Items of the newest batch for ``room``; older duplicate batches are ignored."""
    record_cls = ROOM_RECORDS[room]
    with Session(engine) as session:
        newest = session.exec(
            select(record_cls)
            .where(record_cls.lesson_id == lesson_id)
            .order_by(record_cls.created_at.desc())
        ).first()
        if not newest:
            return []
        records = session.exec(
            select(record_cls)
            .where(record_cls.lesson_id == lesson_id, record_cls.batch_id == newest.batch_id)
            .order_by(record_cls.position)
        ).all()
        return [_record_to_dict(room, record) for record in records]


def has_room_items(engine: Engine, room: RoomType, lesson_id: str) -> bool:
    record_cls = ROOM_RECORDS[room]
    with Session(engine) as session:
        return session.exec(select(record_cls.id).where(record_cls.lesson_id == lesson_id)).first() is not None


def append_room_items(
    engine: Engine,
    room: RoomType,
    lesson_id: str,
    batch_id: str,
    items: Sequence[Union[QuizQuestion, Flashcard, TestQuestion]],
) -> list[dict[str, Any]]:
    record_cls = ROOM_RECORDS[room]
    fields = _ROOM_FIELDS[room]
    created_at = datetime.utcnow()
    records = []
    for position, item in enumerate(items):
        values = {field: getattr(item, field) for field in fields}
        records.append(
            record_cls(
                lesson_id=lesson_id,
                batch_id=batch_id,
                position=position,
                created_at=created_at,
                **values,
            )
        )
    with Session(engine, expire_on_commit=False) as session:
        session.add_all(records)
        session.commit()
    return [_record_to_dict(room, record) for record in records]


def init_progress(engine: Engine, user_id: str, lesson_id: str) -> None:
    with Session(engine) as session:
        for room in RoomType:
            session.add(ProgressRecord(user_id=user_id, lesson_id=lesson_id, room_type=room))
        session.commit()


def list_progress(engine: Engine, user_id: str, lesson_id: str) -> list[ProgressRecord]:
    with Session(engine, expire_on_commit=False) as session:
        statement = select(ProgressRecord).where(
            ProgressRecord.user_id == user_id, ProgressRecord.lesson_id == lesson_id
        )
        records = list(session.exec(statement).all())
    order = list(RoomType)
    return sorted(records, key=lambda record: order.index(record.room_type))


def upsert_progress(
    engine: Engine,
    user_id: str,
    lesson_id: str,
    room: RoomType,
    *,
    score: int,
    max_score: int,
    time_spent: int,
    completed: bool,
) -> ProgressRecord:
    now = datetime.utcnow()
    with Session(engine, expire_on_commit=False) as session:
        record = session.exec(
            select(ProgressRecord).where(
                ProgressRecord.user_id == user_id,
                ProgressRecord.lesson_id == lesson_id,
                ProgressRecord.room_type == room,
            )
        ).first()
        if record is None:
            record = ProgressRecord(user_id=user_id, lesson_id=lesson_id, room_type=room)
        record.score = score
        record.max_score = max_score
        record.time_spent = time_spent
        record.attempts += 1
        # A room stays completed once finished.
        record.completed = record.completed or completed
        record.status = ProgressStatus.completed if record.completed else ProgressStatus.in_progress
        if completed and record.completed_at is None:
            record.completed_at = now
        record.updated_at = now
        session.add(record)
        session.commit()
        session.refresh(record)
        return record
