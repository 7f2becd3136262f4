"""Database models and connection management."""

from app.db.database import get_db, init_db, engine, Base
from app.db.models import User, ApiKey

__all__ = [
    "get_db",
    "init_db",
    "engine",
    "Base",
    "User",
    "ApiKey"
]
