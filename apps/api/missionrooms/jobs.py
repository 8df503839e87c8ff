from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .models import GenerationJob, JobStatus, RoomType

STALE_MESSAGE = "claim expired before completion"


def claim_generation(
    engine: Engine, lesson_id: str, room: RoomType, ttl_seconds: int
) -> Optional[GenerationJob]:
    """Claim (lesson, room) for generation; None while another job holds it."""
    now = datetime.utcnow()
    with Session(engine, expire_on_commit=False) as session:
        running = session.exec(
            select(GenerationJob).where(
                GenerationJob.lesson_id == lesson_id,
                GenerationJob.room_type == room,
                GenerationJob.status == JobStatus.running,
            )
        ).first()
        if running:
            if running.created_at > now - timedelta(seconds=ttl_seconds):
                return None
            running.status = JobStatus.failed
            running.message = STALE_MESSAGE
            running.updated_at = now
            session.add(running)
            session.commit()

        job = GenerationJob(lesson_id=lesson_id, room_type=room)
        session.add(job)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            return None
        session.refresh(job)
        return job


def update_job(
    engine: Engine,
    job_id: str,
    *,
    status: Optional[JobStatus] = None,
    message: Optional[str] = None,
    only_if_running: bool = False,
) -> Optional[GenerationJob]:
    with Session(engine, expire_on_commit=False) as session:
        job = session.exec(select(GenerationJob).where(GenerationJob.id == job_id)).first()
        if not job:
            raise ValueError("Job not found")
        if only_if_running and job.status != JobStatus.running:
            return None
        if status is not None:
            job.status = status
        if message is not None:
            job.message = message
        job.updated_at = datetime.utcnow()
        session.add(job)
        session.commit()
        session.refresh(job)
        return job


def get_job(engine: Engine, job_id: str) -> Optional[GenerationJob]:
    with Session(engine, expire_on_commit=False) as session:
        return session.exec(select(GenerationJob).where(GenerationJob.id == job_id)).first()


def holds_claim(engine: Engine, job_id: str) -> bool:
    job = get_job(engine, job_id)
    return job is not None and job.status == JobStatus.running


def list_jobs(engine: Engine, lesson_id: str) -> list[GenerationJob]:
    with Session(engine, expire_on_commit=False) as session:
        statement = (
            select(GenerationJob)
            .where(GenerationJob.lesson_id == lesson_id)
            .order_by(GenerationJob.created_at)
        )
        return list(session.exec(statement).all())


def count_failed_jobs(engine: Engine) -> int:
    with Session(engine) as session:
        return session.exec(
            select(func.count()).select_from(GenerationJob).where(GenerationJob.status == JobStatus.failed)
        ).one()
