"""
Error taxonomy for the ingestion and retrieval pipeline.

Every failure the pipeline can produce is a GuestbookError subclass carrying
what the caller should see (``user_message`` and ``status_code``) and where the
submission stopped (``state``). The exception handlers registered in
``guestbook.main`` turn these into short text responses.
"""

from typing import Optional

from fastapi import status


class GuestbookError(Exception):
    """Base class for all pipeline failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "❌ Error interno"

    def __init__(
        self,
        reason: str,
        user_message: Optional[str] = None,
        state: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.user_message = user_message or self.default_message
        self.state = state
        if status_code is not None:
            self.status_code = status_code


class ValidationError(GuestbookError):
    """Text submission failed sanitization/validation (invalid_name, invalid_body, missing_verification)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "❌ Datos inválidos"

    def __init__(self, reason: str, user_message: Optional[str] = None, field: Optional[str] = None) -> None:
        super().__init__(reason, user_message=user_message, state="rejected")
        self.field = field


class MediaRejected(GuestbookError):
    """Upload refused before any disk write (bad_type, too_large, missing_field)."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "❌ Imagen rechazada"

    def __init__(self, reason: str, user_message: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(reason, user_message=user_message, state="rejected", status_code=status_code)


class StorageIOError(GuestbookError):
    """Writing the uploaded file failed; no row was inserted."""

    default_message = "❌ Error al guardar imagen"

    def __init__(self, reason: str, user_message: Optional[str] = None) -> None:
        super().__init__(reason, user_message=user_message, state="write_failed")


class RepositoryError(GuestbookError):
    """The relational store rejected or failed an operation."""

    default_message = "❌ Error de base de datos"

    def __init__(self, reason: str, user_message: Optional[str] = None, state: str = "storage_error") -> None:
        super().__init__(reason, user_message=user_message, state=state)


class RecordFailed(RepositoryError):
    """The file was written but its row could not be inserted; the file is orphaned."""

    def __init__(self, reason: str, orphaned_filename: str, user_message: Optional[str] = None) -> None:
        super().__init__(reason, user_message=user_message, state="record_failed")
        self.orphaned_filename = orphaned_filename
