from __future__ import annotations

from typing import Any, Callable, Iterator

import pytest
from sqlalchemy.engine import Engine

from missionrooms.config import BackendMode, Settings
from missionrooms.db import build_engine, init_db
from missionrooms.generation import ContentMaterializer
from missionrooms.llm import LLMClient, MockLLMClient
from missionrooms.service import LessonService
from missionrooms.sources import SourceFetcher


class RecordingScheduler:
    """Collects background tasks instead of running them."""

    def __init__(self) -> None:
        self.calls: list[tuple[Callable[..., Any], tuple, dict]] = []

    def __call__(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self.calls.append((func, args, kwargs))

    def run_all(self) -> None:
        pending, self.calls = self.calls, []
        for func, args, kwargs in pending:
            func(*args, **kwargs)


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite://", backend_mode=BackendMode.demo, fetch_url_sources=False)


@pytest.fixture
def engine(settings: Settings) -> Iterator[Engine]:
    engine = build_engine(settings.resolved_database_url())
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def make_service(engine: Engine, settings: Settings) -> Callable[..., LessonService]:
    def build(llm: LLMClient | None = None, fetcher: SourceFetcher | None = None) -> LessonService:
        materializer = ContentMaterializer(engine, llm or MockLLMClient(), settings)
        return LessonService(
            engine,
            materializer,
            fetcher or SourceFetcher(settings, settings.backend_mode),
            settings.backend_mode,
        )

    return build
