"""FastAPI dependency functions: sessions, the current user and the AWS context."""

import asyncio
import functools
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session as DBSession

from app.aws.clients import AWSClientFactory, normalize_region
from app.core import credentials
from app.core import sessions
from app.core.config import settings
from app.core.exceptions import AuthenticationError, NotFoundError, ValidationError
from app.db.database import get_db
from app.db.models import ApiKey

T = TypeVar("T")


@dataclass
class CurrentUser:
    id: int
    username: str
    session: sessions.Session


@dataclass
class AWSContext:
    key: ApiKey
    region: str


def get_session_store(request: Request) -> sessions.SessionStore:
    """Get the session store from app state."""
    return request.app.state.session_store


def get_client_factory(request: Request) -> AWSClientFactory:
    """Get the boto3 client factory from app state."""
    return request.app.state.client_factory


def get_session_id(request: Request) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name)


def set_session_cookie(response: Response, session_id: str) -> None:
    """Issue the session cookie with a lifetime of one full TTL from now."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


def get_current_user(
    response: Response,
    session_id: Optional[str] = Depends(get_session_id),
    store: sessions.SessionStore = Depends(get_session_store),
) -> CurrentUser:
    """Resolve the logged-in user from the session cookie.

    The server-side TTL slides on every access, so the cookie is re-issued
    with each authenticated request to keep the two lifetimes in step.
    """
    session = store.get(session_id)
    if session is None:
        raise AuthenticationError("Not logged in or session expired.")

    user_id = session.get_string(sessions.USER_ID)
    if not user_id:
        raise AuthenticationError("Not logged in or session expired.")

    user = CurrentUser(
        id=int(user_id),
        username=session.get_string(sessions.USERNAME),
        session=session,
    )
    set_session_cookie(response, session_id)
    return user


def get_aws_context(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> AWSContext:
    """Resolve the stored key and region selected for this session."""
    key_id = user.session.get_string(sessions.KEY_ID)
    if not key_id:
        raise ValidationError(
            "No API key selected for this session.",
            field="key_id",
            recovery_hint="Select a key with PUT /api/v1/context before calling AWS routes.",
        )

    key = credentials.get_key(db, user.id, int(key_id))
    if key is None:
        user.session.delete(sessions.KEY_ID)
        raise NotFoundError("The selected API key no longer exists.", resource="API key")

    return AWSContext(key=key, region=normalize_region(user.session.get_string(sessions.REGION)))


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking boto3/httpx call in the default thread-pool executor."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
