from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import FastAPI
from redis import Redis
from sqlalchemy import text

from qtrack.api.errors import install_error_handlers
from qtrack.api.routers.cron import router as cron_router
from qtrack.api.routers.invitations import router as invitations_router
from qtrack.api.routers.media import router as media_router
from qtrack.api.routers.notifications import router as notifications_router
from qtrack.api.routers.projects import router as projects_router
from qtrack.api.routers.questions import router as questions_router
from qtrack.api.routers.templates import router as templates_router
from qtrack.core.config import settings
from qtrack.core.db import engine
from qtrack.core.logging import configure_logging
from qtrack.media.object_store import ensure_minio_bucket, minio_ready

configure_logging(settings.LOG_LEVEL)
log = logging.getLogger("qtrack")

app = FastAPI(title=settings.APP_NAME)
install_error_handlers(app)


def _retry_backoff(fn, *, attempts: int = 30, base_sleep_s: float = 1.0, max_sleep_s: float = 2.0, what: str) -> bool:
    sleep_s = base_sleep_s
    for i in range(1, attempts + 1):
        try:
            fn()
            return True
        except Exception as e:
            if i == attempts:
                log.error("Startup: %s still not ready after %s attempts: %s", what, attempts, str(e))
                return False
            log.warning("Startup: %s not ready (attempt %s/%s): %s", what, i, attempts, str(e))
            time.sleep(sleep_s)
            sleep_s = min(max_sleep_s, sleep_s * 2.0)
    return False


def _check_postgres() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def _check_redis() -> bool:
    try:
        r = Redis.from_url(settings.REDIS_URL, socket_connect_timeout=1, socket_timeout=1)
        return bool(r.ping())
    except Exception:
        return False


@app.on_event("startup")
def _startup() -> None:
    # Never crash the API on unavailable deps; tests switch this off.
    if not settings.ENSURE_EXTERNAL_DEPS_ON_STARTUP:
        log.info("Startup: ENSURE_EXTERNAL_DEPS_ON_STARTUP=false; skipping minio ensure")
        return

    _retry_backoff(lambda: ensure_minio_bucket(), what="minio")


@app.get("/health")
def health() -> dict[str, Any]:
    deps = {
        "postgres": _check_postgres(),
        "redis": _check_redis(),
        "minio": minio_ready(),
    }
    return {"ok": all(deps.values()), "deps": deps, "app": settings.APP_NAME}


app.include_router(projects_router, prefix="/projects", tags=["projects"])
app.include_router(questions_router, prefix="/projects", tags=["questions"])
app.include_router(invitations_router, prefix="/invitations", tags=["invitations"])
app.include_router(templates_router, prefix="/answer-form-templates", tags=["templates"])
app.include_router(media_router, prefix="/media", tags=["media"])
app.include_router(notifications_router, prefix="/notifications", tags=["notifications"])
app.include_router(cron_router, prefix="/cron", tags=["cron"])
