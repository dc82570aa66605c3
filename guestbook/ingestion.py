"""
Ingestion orchestration for messages and images.

Message submission:
    received -> sanitized -> validated -> persisted
    early exits: rejected (ValidationError, after sanitizing),
                 storage_error (RepositoryError, after validating; nothing written)

Image upload:
    received -> field_selected -> type_checked -> size_checked -> written -> recorded
    early exits: rejected (MediaRejected, nothing on disk),
                 write_failed (StorageIOError, no row),
                 record_failed (RecordFailed, file on disk without a row)

The file is always written before its row is inserted, so a visible row never
points at a missing file. The reverse (an orphaned, invisible file) is logged
and left in place.
"""

import enum
import logging

from sqlalchemy.orm import Session
from starlette.datastructures import FormData

from guestbook import storage
from guestbook.errors import RecordFailed, RepositoryError, ValidationError
from guestbook.media import MAX_IMAGE_SIZE, select_upload_part, validate_image
from guestbook.sanitizer import validate_edit, validate_submission
from guestbook.schemas import MessageForm
from guestbook.uploads import UploadStore

logger = logging.getLogger(__name__)


class SubmissionState(str, enum.Enum):
    RECEIVED = "received"
    SANITIZED = "sanitized"
    VALIDATED = "validated"
    PERSISTED = "persisted"
    REJECTED = "rejected"
    STORAGE_ERROR = "storage_error"


class UploadState(str, enum.Enum):
    RECEIVED = "received"
    FIELD_SELECTED = "field_selected"
    TYPE_CHECKED = "type_checked"
    SIZE_CHECKED = "size_checked"
    WRITTEN = "written"
    RECORDED = "recorded"
    REJECTED = "rejected"
    WRITE_FAILED = "write_failed"
    RECORD_FAILED = "record_failed"


SUBMIT_STORAGE_ERROR_MESSAGE = "❌ Error guardando mensaje"
EDIT_STORAGE_ERROR_MESSAGE = "❌ Error al actualizar mensaje"
DELETE_MESSAGE_ERROR_MESSAGE = "❌ Error al eliminar"
UPLOAD_ERROR_MESSAGE = "❌ Error al guardar imagen"
DELETE_IMAGE_ERROR_MESSAGE = "❌ Error al eliminar imagen"
INVALID_FILENAME_MESSAGE = "❌ Nombre de archivo inválido"


# =============================================================================
# Messages
# =============================================================================

def submit_message(db: Session, form: MessageForm):
    """
    Run a public submission through the gate and persist it.

    Returns:
        The persisted Message

    Raises:
        ValidationError: state rejected, nothing written
        RepositoryError: state storage_error, nothing written; the user may resubmit
    """
    logger.debug(f"Submission {SubmissionState.RECEIVED.value}")
    try:
        clean = validate_submission(form.author_name, form.body, form.verification_token)
    except ValidationError as e:
        logger.info(f"Submission {SubmissionState.REJECTED.value}: {e.reason}")
        raise

    logger.debug(f"Submission {SubmissionState.VALIDATED.value}")
    try:
        message = storage.insert_message(db, clean.author_name, clean.body)
    except RepositoryError as e:
        logger.error(f"Submission {SubmissionState.STORAGE_ERROR.value}: nothing was written ({e.reason})")
        raise RepositoryError(e.reason, SUBMIT_STORAGE_ERROR_MESSAGE) from e

    logger.info(f"Submission {SubmissionState.PERSISTED.value}: id={message.id}")
    return message


def edit_message(db: Session, message_id: int, form: MessageForm) -> int:
    """Admin edit: same sanitize/validate gate as submissions, without the verification token."""
    clean = validate_edit(form.author_name, form.body)
    try:
        return storage.update_message(db, message_id, clean.author_name, clean.body)
    except RepositoryError as e:
        raise RepositoryError(e.reason, EDIT_STORAGE_ERROR_MESSAGE) from e


def remove_message(db: Session, message_id: int) -> int:
    try:
        return storage.delete_message(db, message_id)
    except RepositoryError as e:
        raise RepositoryError(e.reason, DELETE_MESSAGE_ERROR_MESSAGE) from e


# =============================================================================
# Images
# =============================================================================

async def ingest_image(
    db: Session,
    store: UploadStore,
    form: FormData,
    max_size: int = MAX_IMAGE_SIZE,
):
    """
    Validate, write and record one uploaded image.

    Returns:
        The recorded Image row

    Raises:
        MediaRejected: missing field, bad type or too large; nothing written
        StorageIOError: the write failed; no row inserted
        RecordFailed: the file was written but the row insert failed
    """
    logger.debug(f"Upload {UploadState.RECEIVED.value}")

    part = select_upload_part(form)
    logger.debug(f"Upload {UploadState.FIELD_SELECTED.value}: {part.filename!r}")

    payload = await part.read()
    validated = validate_image(part.content_type, payload, max_size)
    logger.debug(
        f"Upload {UploadState.TYPE_CHECKED.value}, {UploadState.SIZE_CHECKED.value}: "
        f"{part.content_type} -> .{validated.extension}, {len(payload)} bytes"
    )

    # StorageIOError propagates as write_failed
    filename = store.write(validated.payload, validated.extension)
    logger.debug(f"Upload {UploadState.WRITTEN.value}: {filename}")

    try:
        image = storage.insert_image(db, filename)
    except RepositoryError as e:
        logger.error(
            f"Upload {UploadState.RECORD_FAILED.value}: file written but row insert failed, "
            f"leaving orphaned file {filename}",
            extra={"orphaned_filename": filename},
        )
        raise RecordFailed(e.reason, orphaned_filename=filename, user_message=UPLOAD_ERROR_MESSAGE) from e

    logger.info(f"Upload {UploadState.RECORDED.value}: id={image.id}, filename={filename}")
    return image


def remove_image(db: Session, store: UploadStore, filename: str) -> int:
    """
    Delete an image row, then its file.

    The row goes first so the image stops being listed before the file
    disappears. If the row delete fails the file is left alone; if the file
    delete fails afterwards it is logged as orphaned and the call still succeeds.

    Raises:
        ValidationError: filename does not name a file inside the upload dir
        RepositoryError: the row could not be deleted
    """
    try:
        store.path_for(filename)
    except ValueError as e:
        raise ValidationError("invalid_filename", INVALID_FILENAME_MESSAGE, field="filename") from e

    try:
        affected = storage.delete_image(db, filename)
    except RepositoryError as e:
        raise RepositoryError(e.reason, DELETE_IMAGE_ERROR_MESSAGE) from e

    try:
        store.remove(filename)
    except OSError as e:
        logger.error(
            f"Image row deleted but file removal failed, leaving orphaned file {filename}: {e}",
            extra={"orphaned_filename": filename},
        )

    return affected
