import logging
import os
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import FastAPI, Response, Request, Depends, Query, status
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session

from guestbook.config import settings
from guestbook.errors import GuestbookError
from guestbook.ingestion import (
    SubmissionState,
    UploadState,
    edit_message,
    ingest_image,
    remove_image,
    remove_message,
    submit_message,
)
from guestbook.logging_utils import setup_logging, RequestLoggingMiddleware, log_ingestion_data
from guestbook.metrics import record_ingestion_outcome, get_metrics, get_metrics_content_type
from guestbook.retrieval import list_gallery, list_messages_page
from guestbook.schemas import HealthResponse, ImageResponse, MessageForm, MessagesPageResponse
from guestbook.storage import init_db, check_db_health, get_db
from guestbook.uploads import UploadStore
from guestbook.utils import STATIC_DIR, load_page


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

MESSAGE_SENT = "✅ Mensaje enviado correctamente"
MESSAGE_UPDATED = "✅ Mensaje actualizado correctamente"
MESSAGE_DELETED = "✅ Mensaje eliminado"
IMAGE_UPLOADED = "✅ Imagen subida correctamente"
IMAGE_DELETED = "✅ Imagen eliminada"
INTERNAL_ERROR = "❌ Error interno"

upload_store = UploadStore(settings.UPLOAD_DIR)


def get_upload_store() -> UploadStore:
    return upload_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: create tables and the upload directory.
    """
    init_db()
    upload_store.ensure_dir()
    yield


app = FastAPI(
    title="Guestbook API",
    description="Public guestbook with image gallery and admin moderation",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

app.mount("/uploads", StaticFiles(directory=str(upload_store.root), check_dir=False), name="uploads")
app.mount("/static", StaticFiles(directory=str(STATIC_DIR), check_dir=False), name="static")


# =============================================================================
# Error Handling
# =============================================================================

@app.exception_handler(GuestbookError)
async def guestbook_error_handler(request: Request, exc: GuestbookError) -> HTMLResponse:
    """Any pipeline failure that escapes a route becomes its short text message."""
    logger.warning(f"{type(exc).__name__}: {exc.reason}")
    return HTMLResponse(exc.user_message, status_code=exc.status_code)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> HTMLResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return HTMLResponse(INTERNAL_ERROR, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


def reject(request: Request, kind: str, exc: GuestbookError, **ids) -> HTMLResponse:
    """Record a failed ingestion/mutation and render its message."""
    result = exc.state or "error"
    record_ingestion_outcome(kind, result)
    log_ingestion_data(request, kind=kind, result=result, **ids)
    return HTMLResponse(exc.user_message, status_code=exc.status_code)


def accept(request: Request, kind: str, result: str, text: str, **ids) -> HTMLResponse:
    record_ingestion_outcome(kind, result)
    log_ingestion_data(request, kind=kind, result=result, **ids)
    return HTMLResponse(text)


async def read_message_form(request: Request) -> MessageForm:
    """Parse a form-encoded (or multipart) body into MessageForm, ignoring file parts."""
    async with request.form() as form:
        fields = {key: value for key, value in form.multi_items() if isinstance(value, str)}
    return MessageForm.model_validate(fields)


# =============================================================================
# Pages
# =============================================================================

@app.get("/", response_class=HTMLResponse)
async def index_page() -> HTMLResponse:
    return HTMLResponse(load_page("index.html"))


@app.get("/admin", response_class=HTMLResponse)
async def admin_page() -> HTMLResponse:
    """Moderation console. Access control is enforced in front of this service."""
    return HTMLResponse(load_page("admin.html"))


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if:
    1. DB is reachable and both tables exist
    2. The upload directory exists and is writable

    Otherwise returns 503 (Service Unavailable).
    """
    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )

    root = upload_store.root
    if not root.is_dir() or not os.access(root, os.W_OK):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Upload directory missing or not writable"
        )

    return HealthResponse(status="ready")


# =============================================================================
# Message Routes
# =============================================================================

@app.post("/enviar", response_class=HTMLResponse)
async def enviar(request: Request, db: Session = Depends(get_db)) -> HTMLResponse:
    """
    Public submission: form fields author_name (nombre), body (mensaje) and
    verification_token (g-recaptcha-response).
    """
    form = await read_message_form(request)
    try:
        message = submit_message(db, form)
    except GuestbookError as e:
        return reject(request, "message", e)

    return accept(request, "message", SubmissionState.PERSISTED.value, MESSAGE_SENT, message_id=message.id)


@app.get("/mensajes", response_model=MessagesPageResponse)
async def list_mensajes(
    page: Annotated[int | None, Query(description="Page number, clamped to >= 1")] = None,
    page_size: Annotated[int | None, Query(alias="pageSize", description="Page size, clamped to 1..MAX_PAGE_SIZE")] = None,
    limit: Annotated[int | None, Query(description="Legacy alias of pageSize")] = None,
    search: Annotated[str | None, Query(description="Case-insensitive substring of the author name")] = None,
    db: Session = Depends(get_db),
) -> MessagesPageResponse:
    """
    Admin listing, newest first.

    Response:
        - data: messages on this page
        - total: messages matching the search (ignoring pagination)
        - page / page_size: values actually used after clamping
        - total_pages: ceil(total / page_size)
    """
    return list_messages_page(
        db,
        page=page,
        page_size=page_size if page_size is not None else limit,
        search=search,
        default_size=settings.DEFAULT_PAGE_SIZE,
        max_size=settings.MAX_PAGE_SIZE,
    )


@app.put("/mensajes/{message_id}", response_class=HTMLResponse)
async def update_mensaje(message_id: int, request: Request, db: Session = Depends(get_db)) -> HTMLResponse:
    form = await read_message_form(request)
    try:
        edit_message(db, message_id, form)
    except GuestbookError as e:
        return reject(request, "edit", e, message_id=message_id)

    return accept(request, "edit", "updated", MESSAGE_UPDATED, message_id=message_id)


@app.delete("/mensajes/{message_id}", response_class=HTMLResponse)
async def delete_mensaje(message_id: int, request: Request, db: Session = Depends(get_db)) -> HTMLResponse:
    try:
        remove_message(db, message_id)
    except GuestbookError as e:
        return reject(request, "delete_message", e, message_id=message_id)

    return accept(request, "delete_message", "deleted", MESSAGE_DELETED, message_id=message_id)


# =============================================================================
# Image Routes
# =============================================================================

@app.post("/upload-image", response_class=HTMLResponse)
async def upload_image(
    request: Request,
    db: Session = Depends(get_db),
    store: UploadStore = Depends(get_upload_store),
) -> HTMLResponse:
    """
    Multipart upload. Only the part named "file" is considered; JPEG, PNG and
    WEBP up to MAX_IMAGE_SIZE bytes are accepted.
    """
    async with request.form() as form:
        try:
            image = await ingest_image(db, store, form, max_size=settings.MAX_IMAGE_SIZE)
        except GuestbookError as e:
            return reject(request, "image", e, filename=getattr(e, "orphaned_filename", None))

    return accept(request, "image", UploadState.RECORDED.value, IMAGE_UPLOADED, filename=image.filename)


@app.get("/images", response_model=list[ImageResponse])
async def list_images(db: Session = Depends(get_db)) -> list[ImageResponse]:
    return list_gallery(db)


@app.delete("/images/{filename}", response_class=HTMLResponse)
async def delete_image(
    filename: str,
    request: Request,
    db: Session = Depends(get_db),
    store: UploadStore = Depends(get_upload_store),
) -> HTMLResponse:
    try:
        remove_image(db, store, filename)
    except GuestbookError as e:
        return reject(request, "delete_image", e, filename=filename)

    return accept(request, "delete_image", "deleted", IMAGE_DELETED, filename=filename)


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
