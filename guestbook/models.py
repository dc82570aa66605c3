"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from sqlalchemy import Column, Integer, String, Text

from guestbook.storage import Base


class Message(Base):
    """
    Guestbook entry left by a visitor.

    Table: messages
    Both text columns hold sanitized values only.
    """
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    author_name = Column(String(50), nullable=False, index=True)
    body = Column(Text, nullable=False)


class Image(Base):
    """
    Gallery image. ``filename`` is the name of the file in the upload directory.

    Table: images
    """
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, autoincrement=True)
    filename = Column(String(64), nullable=False, unique=True)
