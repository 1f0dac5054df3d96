"""FastAPI server for the course-booking assistant.

Run with:
    uvicorn booking_assistant.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from booking_assistant.api.routes import router
from booking_assistant.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from booking_assistant.runtime import build_runtime
from booking_assistant.services.metrics import metrics

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Start-up: build the runtime once and store it in app state."""
    logger.info("Building booking assistant runtime…")
    application.state.runtime = build_runtime()
    logger.info("Assistant ready.")
    yield
    application.state.runtime.close()
    metrics.flush()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Course Booking Assistant",
    description=(
        "Chat assistant that finds language teachers, lists their courses, "
        "takes reservations and answers FAQs in the user's language."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (needed for the chat frontend) ──────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a request ID to every request for log correlation.

    The ID is echoed in the ``X-Request-ID`` response header and prefixed
    to the route log lines for this request.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info(
        "[%s] %s %s", request_id, request.method, request.url.path,
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Course Booking Assistant",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("Starting booking assistant API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "booking_assistant.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
