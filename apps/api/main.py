# apps/api/main.py
from __future__ import annotations

import logging
from typing import Callable, Iterable

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

import config
from errors import register_exception_handlers
from routes_auth import router as auth_router
from routes_uploads import router as uploads_router
from routes_videos import router as videos_router
from routes_users import router as users_router
from storage import ensure_bucket
from health import collect_health_status

logging.basicConfig(level=config.settings.log_level)

app = FastAPI(title="Vidshare API")

log = logging.getLogger("api.main")


StartupTask = tuple[str, Callable[[], None], bool]

STARTUP_TASKS: tuple[StartupTask, ...] = (
    ("object_storage", ensure_bucket, True),
)


def _run_startup_tasks(tasks: Iterable[StartupTask]) -> None:
    for name, task, optional in tasks:
        try:
            task()
            log.debug("Startup task '%s' completed", name)
        except Exception as exc:
            if optional:
                log.info("Optional startup task '%s' failed: %s", name, exc)
            else:
                log.warning("Startup task '%s' failed: %s", name, exc)
                raise


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.settings.cors_origins or ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(uploads_router)
app.include_router(videos_router)
app.include_router(users_router)


@app.on_event("startup")
def _startup() -> None:
    _run_startup_tasks(STARTUP_TASKS)


@app.get("/")
def root():
    return {"message": "hello from vidshare"}


@app.get("/healthz")
def healthz(response: Response):
    status = collect_health_status()
    if not status["ok"]:
        response.status_code = 503
    return status


# Run: uvicorn main:app --reload --port 8000
