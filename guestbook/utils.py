"""
Utility functions for the Guestbook API.
"""

import logging
from pathlib import Path

from fastapi import Request

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


def load_page(name: str) -> str:
    """
    Read an HTML page from the static directory.

    Args:
        name: File name inside guestbook/static (e.g. "index.html")

    Returns:
        The page contents, or a one-line error page when it cannot be read
    """
    try:
        return (STATIC_DIR / name).read_text(encoding="utf-8")
    except OSError as e:
        logger.error(f"Could not load page {name}: {e}")
        return f"<h1>Error cargando {name}</h1>"


def route_template(request: Request) -> str:
    """
    Path of the matched route (e.g. /mensajes/{message_id}) rather than the
    concrete URL, so metrics labels stay low-cardinality.
    """
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if path:
        return path
    return request.url.path
