"""
Admission checks for uploaded images.

Nothing here touches the disk: the declared content type and the buffered
payload are judged before the storage writer is ever called.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import status
from starlette.datastructures import FormData, UploadFile

from guestbook.errors import MediaRejected

logger = logging.getLogger(__name__)


UPLOAD_FIELD_NAME = "file"

MAX_IMAGE_SIZE = 5 * 1024 * 1024

# Total map from every admissible content type to the extension stored on disk
CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
ALLOWED_CONTENT_TYPES = frozenset(CONTENT_TYPE_EXTENSIONS)

BAD_TYPE_MESSAGE = "❌ Tipo de archivo no permitido"
TOO_LARGE_MESSAGE = "❌ Imagen demasiado grande (máx 5MB)"
MISSING_FIELD_MESSAGE = "❌ No se recibió ninguna imagen"


@dataclass(frozen=True)
class ValidatedImage:
    payload: bytes
    extension: str


def normalize_content_type(content_type: Optional[str]) -> str:
    """Lower-case the media type and drop parameters such as '; charset=...'."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def extension_for(content_type: str) -> str:
    """Return the stored extension for an allowed content type (KeyError otherwise)."""
    return CONTENT_TYPE_EXTENSIONS[normalize_content_type(content_type)]


def select_upload_part(form: FormData) -> UploadFile:
    """
    Pick the candidate file out of a multipart form.

    Only parts named UPLOAD_FIELD_NAME are considered and the first file part
    among them wins. Every other part is ignored.

    Raises:
        MediaRejected: missing_field when no file part carries the expected name
    """
    for part in form.getlist(UPLOAD_FIELD_NAME):
        if isinstance(part, UploadFile):
            return part
    raise MediaRejected("missing_field", MISSING_FIELD_MESSAGE)


def check_content_type(content_type: Optional[str]) -> str:
    """
    Raises:
        MediaRejected: bad_type for anything outside ALLOWED_CONTENT_TYPES

    Returns:
        The extension to store the file under
    """
    normalized = normalize_content_type(content_type)
    if normalized not in ALLOWED_CONTENT_TYPES:
        logger.info(f"Rejected upload content type: {content_type!r}")
        raise MediaRejected(
            "bad_type", BAD_TYPE_MESSAGE, status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
        )
    return extension_for(normalized)


def check_size(payload: bytes, max_size: int = MAX_IMAGE_SIZE) -> None:
    """
    Raises:
        MediaRejected: too_large when payload exceeds max_size bytes
    """
    if len(payload) > max_size:
        logger.info(f"Rejected upload of {len(payload)} bytes (limit {max_size})")
        raise MediaRejected(
            "too_large", TOO_LARGE_MESSAGE, status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        )


def validate_image(content_type: Optional[str], payload: bytes, max_size: int = MAX_IMAGE_SIZE) -> ValidatedImage:
    """Type check, then size check. Returns the payload with its extension."""
    extension = check_content_type(content_type)
    check_size(payload, max_size)
    return ValidatedImage(payload=payload, extension=extension)
