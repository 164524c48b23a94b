"""Database layer: SQLAlchemy models, session and progress repository."""

from snapy.db.models import Base, FlashcardRow, UserProgressRow, QuizResponseRow
from snapy.db.repository import ProgressStore, StaleProgressError
from snapy.db.session import get_db, init_db, reset_engine

__all__ = [
    "Base",
    "FlashcardRow",
    "UserProgressRow",
    "QuizResponseRow",
    "ProgressStore",
    "StaleProgressError",
    "get_db",
    "init_db",
    "reset_engine",
]
