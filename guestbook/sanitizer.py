"""
Text sanitization and validation for guestbook submissions.

Sanitization is a denylist: every forbidden substring is deleted outright
(not escaped) until none remain. Validation runs on the sanitized values.
"""

import logging
import re
from dataclasses import dataclass

from guestbook.errors import ValidationError

logger = logging.getLogger(__name__)


FORBIDDEN_SUBSTRINGS = ("<", ">", '"', "'", ";", "--", "script")

NAME_PATTERN = re.compile(r"[a-zA-ZáéíóúÁÉÍÓÚñÑ\s]{3,50}")

BODY_MIN_LENGTH = 10
BODY_MAX_LENGTH = 500

INVALID_NAME_MESSAGE = "❌ Nombre inválido"
INVALID_BODY_MESSAGE = "❌ Mensaje inválido"
MISSING_VERIFICATION_MESSAGE = "❌ Completa el reCAPTCHA"


@dataclass(frozen=True)
class CleanMessage:
    """Sanitized, validated message fields ready for persistence."""
    author_name: str
    body: str


def sanitize_text(text: str) -> str:
    """
    Remove every forbidden substring from text.

    Deleting one substring can splice together another one
    ("scrscriptipt" -> "script"), so passes repeat until nothing changes.
    """
    previous = None
    while previous != text:
        previous = text
        for forbidden in FORBIDDEN_SUBSTRINGS:
            text = text.replace(forbidden, "")
    return text


def is_valid_name(name: str) -> bool:
    return NAME_PATTERN.fullmatch(name) is not None


def is_valid_body(body: str) -> bool:
    return BODY_MIN_LENGTH <= len(body) <= BODY_MAX_LENGTH


def validate_edit(author_name: str, body: str) -> CleanMessage:
    """
    Sanitize and validate the editable message fields.

    Raises:
        ValidationError: tagged invalid_name or invalid_body
    """
    author_name = sanitize_text(author_name or "")
    body = sanitize_text(body or "")

    if not is_valid_name(author_name):
        logger.debug(f"Rejected name after sanitization: {author_name!r}")
        raise ValidationError("invalid_name", INVALID_NAME_MESSAGE, field="author_name")

    if not is_valid_body(body):
        logger.debug(f"Rejected body of length {len(body)} after sanitization")
        raise ValidationError("invalid_body", INVALID_BODY_MESSAGE, field="body")

    return CleanMessage(author_name=author_name, body=body)


def validate_submission(author_name: str, body: str, verification_token: str) -> CleanMessage:
    """
    Gate for public submissions: the edit checks plus a non-empty
    human-verification token. The token itself is not verified remotely.

    Raises:
        ValidationError: tagged invalid_name, invalid_body or missing_verification
    """
    clean = validate_edit(author_name, body)

    if not verification_token:
        raise ValidationError(
            "missing_verification", MISSING_VERIFICATION_MESSAGE, field="verification_token"
        )

    return clean
