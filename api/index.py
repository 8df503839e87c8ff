import logging
import os
import sys

from fastapi import FastAPI
from fastapi.responses import JSONResponse

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
API_DIR = os.path.join(BASE_DIR, "apps", "api")
if API_DIR not in sys.path:
    sys.path.append(API_DIR)

logger = logging.getLogger("missionrooms.index")


def _startup_error_app(detail: str) -> FastAPI:
    fallback = FastAPI(title="Mission Rooms (startup error)")

    @fallback.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    def startup_error(path: str) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": detail, "path": f"/{path}"})

    return fallback


try:
    from missionrooms.main import create_app

    inner_app = create_app()
except Exception as exc:  # pragma: no cover
    # Every route reports the startup error.
    logger.exception("Mission Rooms failed to start")
    app = _startup_error_app(f"{type(exc).__name__}: {exc}")
else:
    app = FastAPI(title=inner_app.title)
    # Serverless routing forwards /api/lessons to this function.
    app.mount("/api", inner_app)
    app.mount("/", inner_app)
