"""Database models for persistence."""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from app.db.database import Base


class User(Base):
    """Console operator able to log in."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, unique=True, nullable=False)
    password_hash = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def to_dict(self) -> dict:
        """Convert to dictionary (the password hash is never included)."""
        return {
            "id": self.id,
            "username": self.username,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ApiKey(Base):
    """AWS key pair stored for one user, with an optional egress proxy."""

    __tablename__ = "api_keys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, index=True, nullable=False)
    name = Column(String, nullable=False)
    access_key = Column(String, nullable=False)
    secret_key = Column(String, nullable=False)
    proxy = Column(String, nullable=False, default="", server_default="")
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    def to_dict(self) -> dict:
        """Convert to dictionary with the key pair masked."""
        from app.core.credentials import mask_secret

        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "access_key": mask_secret(self.access_key),
            "has_secret_key": bool(self.secret_key),
            "proxy": self.proxy or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
