"""Credential store: console users and the AWS keys they own.

Passwords are stored as bcrypt hashes. AWS key pairs are stored as entered
because they have to be handed to boto3; they are masked whenever they leave
the API. Every key query is filtered by ``user_id`` so one operator can never
read, change or delete another operator's keys.
"""

import logging
from datetime import datetime
from typing import Optional

import bcrypt
from sqlalchemy.orm import Session

from app.core.exceptions import AuthenticationError, ValidationError
from app.db.models import ApiKey, User

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72

DEFAULT_NAME_FORMAT = "%Y-%m-%d %H:%M"


def hash_password(password: str) -> str:
    """Return the bcrypt hash of ``password`` as text."""
    hashed = bcrypt.hashpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            password.encode("utf-8")[:BCRYPT_MAX_BYTES],
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Malformed hash in the database
        logger.warning("credentials: stored password hash is malformed")
        return False


def mask_secret(value: Optional[str]) -> str:
    """Keep the first and last four characters of ``value``."""
    if not value:
        return ""
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"


def _default_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    return name or datetime.now().strftime(DEFAULT_NAME_FORMAT)


def _require_key_pair(access_key: Optional[str], secret_key: Optional[str]) -> tuple[str, str]:
    access_key = (access_key or "").strip()
    secret_key = (secret_key or "").strip()
    if not access_key or not secret_key:
        raise ValidationError("Access key and secret key are required.", field="access_key")
    return access_key, secret_key


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def ensure_user(db: Session, username: str, password: str) -> bool:
    """Create ``username`` unless it already exists.

    Returns True when a user was created, False when one was already there.
    The stored password of an existing user is left untouched.
    """
    username = (username or "").strip()
    password = (password or "").strip()
    if not username or not password:
        raise ValidationError("Username and password are required.", field="username")

    existing = db.query(User.id).filter(User.username == username).first()
    if existing is not None:
        return False

    db.add(User(username=username, password_hash=hash_password(password)))
    db.commit()
    logger.info("credentials: created user '%s'", username)
    return True


def authenticate_user(db: Session, username: str, password: str) -> User:
    """Return the user whose bcrypt hash matches ``password``."""
    username = (username or "").strip()
    password = (password or "").strip()
    if not username or not password:
        raise AuthenticationError("Missing credentials.")

    user = db.query(User).filter(User.username == username).first()
    if user is None:
        raise AuthenticationError("User not found.")
    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid password.")
    return user


# ---------------------------------------------------------------------------
# API keys
# ---------------------------------------------------------------------------


def list_keys(db: Session, user_id: int) -> list[ApiKey]:
    """Return the user's keys, newest first."""
    return db.query(ApiKey).filter(ApiKey.user_id == user_id).order_by(ApiKey.id.desc()).all()


def get_key(db: Session, user_id: int, key_id: int) -> Optional[ApiKey]:
    return (
        db.query(ApiKey)
        .filter(ApiKey.id == key_id, ApiKey.user_id == user_id)
        .first()
    )


def create_key(
    db: Session,
    user_id: int,
    name: Optional[str],
    access_key: Optional[str],
    secret_key: Optional[str],
    proxy: Optional[str] = "",
) -> ApiKey:
    """Store a new key pair for ``user_id``. A blank name becomes the current time."""
    access_key, secret_key = _require_key_pair(access_key, secret_key)
    record = ApiKey(
        user_id=user_id,
        name=_default_name(name),
        access_key=access_key,
        secret_key=secret_key,
        proxy=(proxy or "").strip(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("credentials: user %s added key id=%s name='%s'", user_id, record.id, record.name)
    return record


def update_key(
    db: Session,
    user_id: int,
    key_id: int,
    name: Optional[str],
    access_key: Optional[str],
    secret_key: Optional[str],
    proxy: Optional[str] = "",
) -> Optional[ApiKey]:
    """Overwrite a key owned by ``user_id``. Returns None if no such key."""
    if not key_id:
        raise ValidationError("Key id is required.", field="key_id")
    access_key, secret_key = _require_key_pair(access_key, secret_key)

    record = get_key(db, user_id, key_id)
    if record is None:
        return None
    record.name = _default_name(name)
    record.access_key = access_key
    record.secret_key = secret_key
    record.proxy = (proxy or "").strip()
    db.commit()
    db.refresh(record)
    logger.info("credentials: user %s updated key id=%s", user_id, key_id)
    return record


def delete_key(db: Session, user_id: int, key_id: int) -> bool:
    """Delete a key owned by ``user_id``. ``key_id`` 0 is a no-op."""
    if not key_id:
        return False
    deleted = (
        db.query(ApiKey)
        .filter(ApiKey.id == key_id, ApiKey.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    if deleted:
        logger.info("credentials: user %s deleted key id=%s", user_id, key_id)
    return bool(deleted)
