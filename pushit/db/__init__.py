"""Database package."""
from pushit.db.session import engine, SessionLocal, get_db, get_db_context
from pushit.db.base import Base

__all__ = ["engine", "SessionLocal", "get_db", "get_db_context", "Base"]
