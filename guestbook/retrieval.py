"""
Read side shared by the public gallery and the admin console.

Pagination parameters are clamped rather than rejected: a page below 1 or a
page size below 1 falls back to the minimum, and a page past the end simply
comes back empty with the totals still filled in.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from guestbook.schemas import ImageResponse, MessageResponse, MessagesPageResponse
from guestbook.storage import get_images, get_messages

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageRequest:
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def resolve_page(
    page: Optional[int],
    page_size: Optional[int],
    default_size: int,
    max_size: int,
) -> PageRequest:
    page = max(page or 1, 1)
    if page_size is None:
        page_size = default_size
    page_size = min(max(page_size, 1), max(max_size, 1))
    return PageRequest(page=page, page_size=page_size)


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / max(page_size, 1))


def list_messages_page(
    db: Session,
    page: Optional[int],
    page_size: Optional[int],
    search: Optional[str] = None,
    default_size: int = 5,
    max_size: int = 100,
) -> MessagesPageResponse:
    """
    Admin message listing.

    Returns:
        The requested page, newest first, with total and total_pages
        computed over the (optionally) filtered set
    """
    request = resolve_page(page, page_size, default_size, max_size)
    search = search.strip() if search else None

    messages, total = get_messages(
        db=db,
        limit=request.page_size,
        offset=request.offset,
        search=search or None,
    )

    logger.info(
        f"Message page {request.page} (size {request.page_size}, search={search!r}): "
        f"{len(messages)} of {total}"
    )

    return MessagesPageResponse(
        data=[MessageResponse.model_validate(m) for m in messages],
        total=total,
        page=request.page,
        page_size=request.page_size,
        total_pages=total_pages(total, request.page_size),
    )


def list_gallery(db: Session) -> list[ImageResponse]:
    """Every image, newest first. A listing taken just before a delete may name a file that is already gone."""
    return [ImageResponse.model_validate(image) for image in get_images(db)]
