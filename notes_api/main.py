"""FastAPI application for the Notes API.

Endpoints:
  POST   /notes       Create a note
  GET    /notes       List notes, optionally filtered by ?tag= and ?q=
  GET    /notes/{id}  Fetch a single note
  PUT    /notes/{id}  Replace a note's title, content and tags
  DELETE /notes/{id}  Delete a note
  GET    /health      Service health and note count
  GET    /metrics     Prometheus metrics

Errors are returned as ``{"error": "<message>"}``.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from notes_api.config import Settings
from notes_api.errors import NoteNotFoundError
from notes_api.metrics import HTTP_DURATION, HTTP_REQUESTS
from notes_api.models import NOTE_FIELD_ERROR, TITLE_REQUIRED, Note, NotePayload
from notes_api.storage import NoteFileStorage
from notes_api.store import NoteStore

logger = logging.getLogger(__name__)

INVALID_NOTE_ID = "Invalid note ID"
NOTE_NOT_FOUND = "Note not found"
ROUTE_NOT_FOUND = "Route not found"
MALFORMED_JSON = "Malformed JSON body"
INTERNAL_ERROR = "Internal server error"

# Endpoints excluded from HTTP metrics
_METRICS_EXCLUDE = {"/metrics"}

# Same defaults helmet applies to an Express app
SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


# --- Middleware ---


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn any unhandled exception into a 500 JSON response."""

    def __init__(self, app, *, expose_errors: bool) -> None:
        super().__init__(app)
        self._expose_errors = expose_errors

    async def dispatch(self, request: Request, call_next):
        """Run the request, logging and answering 500 on unexpected errors."""
        try:
            return await call_next(request)
        except Exception as e:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                str(e) if self._expose_errors else INTERNAL_ERROR,
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject restrictive security headers into every response.

    Also sets the wildcard CORS origin, which CORSMiddleware only adds when
    the request carries an ``Origin`` header.
    """

    async def dispatch(self, request: Request, call_next):
        """Add any security header the response does not already set."""
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        response.headers.setdefault("Access-Control-Allow-Origin", "*")
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record HTTP request count and duration for Prometheus."""

    async def dispatch(self, request: Request, call_next):
        """Wrap each request with timing and counting."""
        if request.url.path in _METRICS_EXCLUDE:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        endpoint = _route_template(request)
        HTTP_REQUESTS.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        HTTP_DURATION.labels(endpoint=endpoint).observe(elapsed)
        return response


def _route_template(request: Request) -> str:
    """Matched route path (e.g. ``/notes/{note_id}``) to keep labels bounded.

    Only meaningful after the router has run, which records the matched
    route in the scope.
    """
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


# --- Exception handlers ---


def _validation_message(errors: list[dict[str, Any]]) -> str:
    """Pick the message reported for a failed request validation.

    Body errors win over a bad path id, so ``PUT /notes/abc`` with an
    invalid body reports the body problem.
    """
    body_errors = [err for err in errors if tuple(err["loc"])[:1] == ("body",)]
    if not body_errors and any(tuple(err["loc"])[:1] == ("path",) for err in errors):
        return INVALID_NOTE_ID

    first = (body_errors or errors)[0]
    if first["type"] == NOTE_FIELD_ERROR:
        return first["msg"]
    if first["type"] == "json_invalid":
        return MALFORMED_JSON
    if first["type"] == "missing" and tuple(first["loc"]) == ("body",):
        # No body at all reads as an empty object
        return TITLE_REQUIRED
    return first["msg"]


async def _on_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, _validation_message(list(exc.errors())))


async def _on_note_not_found(request: Request, exc: NoteNotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, NOTE_NOT_FOUND)


async def _on_http_error(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    # Unknown paths and unsupported methods on known paths alike
    if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
        return _error(status.HTTP_404_NOT_FOUND, ROUTE_NOT_FOUND)
    return _error(exc.status_code, str(exc.detail))


# --- Dependencies ---


def get_store(request: Request) -> NoteStore:
    """The NoteStore owned by the running application."""
    return request.app.state.store


# --- Endpoints ---

router = APIRouter()


@router.post("/notes", status_code=status.HTTP_201_CREATED, response_model=Note)
async def create_note(
    payload: NotePayload, store: NoteStore = Depends(get_store)
) -> Note:
    """Create a note."""
    return store.create(payload.title, payload.content, payload.tags)


@router.get("/notes", response_model=list[Note])
async def list_notes(
    tag: Optional[str] = None,
    q: Optional[str] = None,
    store: NoteStore = Depends(get_store),
) -> list[Note]:
    """List notes, filtered by tag substring and/or title/content search."""
    return store.list(tag=tag, q=q)


@router.get("/notes/{note_id}", response_model=Note)
async def get_note(note_id: int, store: NoteStore = Depends(get_store)) -> Note:
    """Fetch a single note."""
    return store.get(note_id)


@router.put("/notes/{note_id}", response_model=Note)
async def update_note(
    note_id: int, payload: NotePayload, store: NoteStore = Depends(get_store)
) -> Note:
    """Replace a note's title, content and tags."""
    return store.update(note_id, payload.title, payload.content, payload.tags)


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: int, store: NoteStore = Depends(get_store)) -> Response:
    """Delete a note."""
    store.delete(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/health")
async def health(store: NoteStore = Depends(get_store)) -> dict[str, Any]:
    """Service health and note count."""
    return {
        "status": "healthy",
        "service": "notes-api",
        "total_notes": store.count,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


# --- Application factory ---


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. The note store lives for the app's lifespan."""
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup: load notes from disk into a fresh store."""
        storage = NoteFileStorage(
            settings.notes_file, atomic_writes=settings.atomic_writes
        )
        app.state.store = NoteStore(storage)
        logger.info(
            "Notes API ready: %d notes, environment=%s",
            app.state.store.count,
            settings.environment,
        )
        yield
        logger.info("Notes API shut down.")

    app = FastAPI(title="Notes API", version="1.0.0", lifespan=lifespan)

    app.add_exception_handler(RequestValidationError, _on_validation_error)
    app.add_exception_handler(NoteNotFoundError, _on_note_not_found)
    app.add_exception_handler(StarletteHTTPException, _on_http_error)

    # Last added runs outermost
    app.add_middleware(ErrorHandlingMiddleware, expose_errors=not settings.is_production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.include_router(router)
    return app


settings = Settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
