from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, load_settings
from .db import build_engine, init_db
from .generation import ContentMaterializer
from .jobs import count_failed_jobs
from .llm import LLMClient, get_llm_client
from .models import GenerationJobRead, LessonRead, ProgressRead, RoomType
from .schemas import CreateLessonRequest, CreateLessonResponse, ProgressUpdate, RoomContentResponse
from .service import LessonAccessDenied, LessonNotFound, LessonService
from .sources import SourceFetcher

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, llm: Optional[LLMClient] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    mode = settings.backend_mode
    engine = build_engine(settings.resolved_database_url())
    init_db(engine)
    materializer = ContentMaterializer(engine, llm or get_llm_client(settings, mode), settings)
    service = LessonService(engine, materializer, SourceFetcher(settings, mode), mode)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.engine = engine
    app.state.lessons = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_routes(app)
    logger.info("Started %s in %s mode", settings.app_name, mode.value)
    return app


def get_lessons(request: Request) -> LessonService:
    return request.app.state.lessons


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def _lesson_error(exc: Exception) -> HTTPException:
    if isinstance(exc, LessonAccessDenied):
        return HTTPException(status_code=403, detail="Access to this mission is denied")
    return HTTPException(status_code=404, detail="Mission not found")


def _register_routes(app: FastAPI) -> None:
    @app.get("/health")
    def health(request: Request) -> dict[str, Any]:
        service: LessonService = request.app.state.lessons
        return {
            "status": "ok",
            "backend_mode": service.mode.value,
            "generation_failures": count_failed_jobs(request.app.state.engine),
        }

    @app.post("/lessons", response_model=CreateLessonResponse)
    def create_lesson(
        payload: CreateLessonRequest,
        user_id: str = Depends(current_user_id),
        service: LessonService = Depends(get_lessons),
    ) -> CreateLessonResponse:
        result = service.create_lesson(
            user_id,
            payload.content,
            category=payload.category,
            exam_focus=payload.exam_focus,
            subject=payload.subject,
            title=payload.title,
            difficulty=payload.difficulty,
        )
        return CreateLessonResponse(
            lesson_id=result.lesson_id,
            category=result.category,
            exam_focus=result.exam_focus,
            overview_ready=result.overview_ready,
        )

    @app.get("/lessons", response_model=list[LessonRead])
    def list_lessons(
        user_id: str = Depends(current_user_id),
        service: LessonService = Depends(get_lessons),
    ) -> list[LessonRead]:
        return [LessonRead.model_validate(lesson) for lesson in service.list_lessons(user_id)]

    @app.get("/lessons/{lesson_id}", response_model=LessonRead)
    def get_lesson(
        lesson_id: str,
        user_id: str = Depends(current_user_id),
        service: LessonService = Depends(get_lessons),
    ) -> LessonRead:
        try:
            return LessonRead.model_validate(service.get_owned_lesson(user_id, lesson_id))
        except (LessonNotFound, LessonAccessDenied) as exc:
            raise _lesson_error(exc)

    @app.get("/lessons/{lesson_id}/rooms/{room}", response_model=RoomContentResponse)
    def get_room_content(
        lesson_id: str,
        room: RoomType,
        background_tasks: BackgroundTasks,
        user_id: str = Depends(current_user_id),
        service: LessonService = Depends(get_lessons),
    ) -> RoomContentResponse:
        try:
            return service.get_room_content(user_id, lesson_id, room, background_tasks.add_task)
        except (LessonNotFound, LessonAccessDenied) as exc:
            raise _lesson_error(exc)

    @app.post("/lessons/{lesson_id}/rooms/{room}/progress", response_model=ProgressRead)
    def record_progress(
        lesson_id: str,
        room: RoomType,
        payload: ProgressUpdate,
        user_id: str = Depends(current_user_id),
        service: LessonService = Depends(get_lessons),
    ) -> ProgressRead:
        try:
            record = service.record_progress(
                user_id,
                lesson_id,
                room,
                score=payload.score,
                max_score=payload.max_score,
                time_spent=payload.time_spent,
                completed=payload.completed,
            )
        except (LessonNotFound, LessonAccessDenied) as exc:
            raise _lesson_error(exc)
        return ProgressRead.model_validate(record)

    @app.post("/lessons/{lesson_id}/archive", response_model=LessonRead)
    def archive_lesson(
        lesson_id: str,
        user_id: str = Depends(current_user_id),
        service: LessonService = Depends(get_lessons),
    ) -> LessonRead:
        try:
            return LessonRead.model_validate(service.archive_lesson(user_id, lesson_id))
        except (LessonNotFound, LessonAccessDenied) as exc:
            raise _lesson_error(exc)

    @app.get("/lessons/{lesson_id}/jobs", response_model=list[GenerationJobRead])
    def list_generation_jobs(
        lesson_id: str,
        user_id: str = Depends(current_user_id),
        service: LessonService = Depends(get_lessons),
    ) -> list[GenerationJobRead]:
        try:
            jobs = service.list_jobs(user_id, lesson_id)
        except (LessonNotFound, LessonAccessDenied) as exc:
            raise _lesson_error(exc)
        return [GenerationJobRead.model_validate(job) for job in jobs]

