"""FastAPI application entrypoint.

This module assembles the LinkUp API: middleware, error handling, the
resource routers and the static mount for uploaded images. Routers are
intentionally thin: they accept requests, delegate to services, and return
JSON responses.

Routes:
- /api/auth/register, /api/auth/login, /api/auth/me
- /api/posts (feed, create, like, comment, delete)
- /api/users (search, profile, follow, profile edits)
- /uploads/<file>
- /health
"""

import json
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles

from .config import settings
from .database import create_db_and_tables
from .routers import auth as auth_routes
from .routers import posts as post_routes
from .routers import users as user_routes

app = FastAPI(title="LinkUp API")
logger = logging.getLogger("linkup.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

# Wide-open CORS keeps a locally served frontend working without extra config in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

settings.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

create_db_and_tables()


def _request_record(request: Request, req_id: str, started: float, **extra) -> str:
    return json.dumps(
        {
            "request_id": req_id,
            "path": request.url.path,
            "method": request.method,
            "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
            "client": request.client.host if request.client else "unknown",
            **extra,
        },
        ensure_ascii=True,
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        if request.url.path.startswith("/api"):
            logger.exception("request_failed %s", _request_record(request, req_id, started))
        raise
    response.headers["X-Request-ID"] = req_id
    if request.url.path.startswith("/api"):
        logger.info(
            "request_done %s",
            _request_record(request, req_id, started, status_code=response.status_code),
        )
    return response


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    """Answer any uncaught error with 500 and the raw message."""
    logger.error("unhandled_error path=%s error=%s", request.url.path, exc)
    headers = {}
    req_id = getattr(request.state, "request_id", None)
    if req_id:
        headers["X-Request-ID"] = req_id
    return JSONResponse(status_code=500, content={"message": "Server error", "error": str(exc)}, headers=headers)


app.include_router(auth_routes.router, prefix="/api/auth", tags=["auth"])
app.include_router(post_routes.router, prefix="/api/posts", tags=["posts"])
app.include_router(user_routes.router, prefix="/api/users", tags=["users"])


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
