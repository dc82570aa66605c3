import logging
from typing import Generator, List, Optional, Tuple

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from guestbook.config import settings
from guestbook.errors import RepositoryError

logger = logging.getLogger(__name__)

# check_same_thread=False is required for SQLite to work with FastAPI's threadpool
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=connect_args,
    echo=False,
)

# Create SessionLocal class for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug(f"Initializing database with URL: {settings.DATABASE_URL}")
    try:
        # Import models to register them with Base.metadata
        from guestbook.models import Message, Image  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    """
    Check if the database is reachable and both tables exist.

    Returns:
        True if DB is healthy and schema exists, False otherwise.
    """
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        inspector = inspect(engine)
        for table in ("messages", "images"):
            if not inspector.has_table(table):
                logger.error(f"Database schema not applied: '{table}' table not found")
                return False
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def _fail(db: Session, operation: str, error: SQLAlchemyError) -> RepositoryError:
    db.rollback()
    logger.error(f"Database error during {operation}: {error}")
    return RepositoryError(f"{operation} failed: {error}")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# SQLite integer columns are signed 64-bit; ids outside that range cannot exist
MIN_ROW_ID = -(2 ** 63)
MAX_ROW_ID = 2 ** 63 - 1


def _storable_id(row_id: int) -> bool:
    return MIN_ROW_ID <= row_id <= MAX_ROW_ID


# =============================================================================
# Message Repository Functions
# =============================================================================

def insert_message(db: Session, author_name: str, body: str):
    """
    Insert a new message.

    Returns:
        The persisted Message with its generated id

    Raises:
        RepositoryError: if the insert fails (nothing is persisted)
    """
    from guestbook.models import Message

    try:
        message = Message(author_name=author_name, body=body)
        db.add(message)
        db.commit()
        db.refresh(message)
    except SQLAlchemyError as e:
        raise _fail(db, "insert_message", e) from e

    logger.info(f"Message created: id={message.id}")
    return message


def update_message(db: Session, message_id: int, author_name: str, body: str) -> int:
    """
    Overwrite name and body of a message (last writer wins).

    Returns:
        Number of rows affected; 0 when the id does not exist
    """
    from guestbook.models import Message

    if not _storable_id(message_id):
        logger.info(f"Message update: id={message_id} out of range, affected=0")
        return 0

    try:
        affected = (
            db.query(Message)
            .filter(Message.id == message_id)
            .update({Message.author_name: author_name, Message.body: body}, synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as e:
        raise _fail(db, "update_message", e) from e

    logger.info(f"Message update: id={message_id}, affected={affected}")
    return affected


def delete_message(db: Session, message_id: int) -> int:
    from guestbook.models import Message

    if not _storable_id(message_id):
        logger.info(f"Message delete: id={message_id} out of range, affected=0")
        return 0

    try:
        affected = db.query(Message).filter(Message.id == message_id).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        raise _fail(db, "delete_message", e) from e

    logger.info(f"Message delete: id={message_id}, affected={affected}")
    return affected


def get_messages(
    db: Session,
    limit: int,
    offset: int = 0,
    search: Optional[str] = None,
) -> Tuple[list, int]:
    """
    Retrieve one page of messages, newest first.

    Args:
        db: Database session
        limit: Page size
        offset: Number of messages to skip
        search: Case-insensitive substring filter on author_name

    Returns:
        Tuple of (messages list, total count matching the filter)
    """
    from guestbook.models import Message

    logger.debug(f"Querying messages: limit={limit}, offset={offset}, search={search}")

    try:
        query = db.query(Message)

        if search:
            query = query.filter(Message.author_name.ilike(f"%{_escape_like(search)}%", escape="\\"))

        # Total before pagination, over the same filter
        total = query.count()

        # A page starting past the last match is empty; skipping the query also
        # keeps huge offsets away from the database
        if offset >= total:
            messages = []
        else:
            messages = query.order_by(Message.id.desc()).offset(offset).limit(limit).all()
    except SQLAlchemyError as e:
        raise _fail(db, "get_messages", e) from e

    logger.debug(f"Retrieved {len(messages)} of {total} total messages")
    return messages, total


# =============================================================================
# Image Repository Functions
# =============================================================================

def insert_image(db: Session, filename: str):
    from guestbook.models import Image

    try:
        image = Image(filename=filename)
        db.add(image)
        db.commit()
        db.refresh(image)
    except SQLAlchemyError as e:
        raise _fail(db, "insert_image", e) from e

    logger.info(f"Image recorded: id={image.id}, filename={filename}")
    return image


def delete_image(db: Session, filename: str) -> int:
    from guestbook.models import Image

    try:
        affected = db.query(Image).filter(Image.filename == filename).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        raise _fail(db, "delete_image", e) from e

    logger.info(f"Image delete: filename={filename}, affected={affected}")
    return affected


def get_images(db: Session) -> List:
    """All image rows, newest first."""
    from guestbook.models import Image

    try:
        return db.query(Image).order_by(Image.id.desc()).all()
    except SQLAlchemyError as e:
        raise _fail(db, "get_images", e) from e
