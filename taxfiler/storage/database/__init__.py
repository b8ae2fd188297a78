"""SQLAlchemy declarative base and engine setup."""

from .base import Base, get_db, init_db

__all__ = ["Base", "get_db", "init_db"]
