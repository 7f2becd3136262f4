"""Login, logout and current-user routes.

A successful login issues a fresh in-memory session and sets it as an
HTTP-only cookie. The login route is rate limited per client address.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session as DBSession

from app.api.deps import (
    CurrentUser,
    get_current_user,
    get_session_id,
    get_session_store,
    run_blocking,
    set_session_cookie,
)
from app.aws.clients import normalize_region
from app.core import credentials, sessions
from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.rate_limit import get_login_rate_limit, limiter
from app.db.database import get_db
from app.models.auth import LoginRequest, MeResponse, UserResponse
from app.models.request import ContextResponse, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def build_context(db: DBSession, user: CurrentUser) -> Optional[ContextResponse]:
    """Describe the key/region selected in the user's session, if any."""
    key_id = user.session.get_string(sessions.KEY_ID)
    if not key_id:
        return None
    key = credentials.get_key(db, user.id, int(key_id))
    return ContextResponse(
        key_id=key.id if key else None,
        key_name=key.name if key else None,
        region=normalize_region(user.session.get_string(sessions.REGION)),
    )


@router.post("/login", response_model=MeResponse, summary="Log in and start a session")
@limiter.limit(get_login_rate_limit)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: DBSession = Depends(get_db),
    store: sessions.SessionStore = Depends(get_session_store),
    previous_session_id: Optional[str] = Depends(get_session_id),
) -> MeResponse:
    """Check the password and set the session cookie."""
    # bcrypt verification is CPU-bound and runs in the executor. The other
    # credential helpers are single-row SQLite queries and stay on the loop.
    try:
        user = await run_blocking(credentials.authenticate_user, db, body.username, body.password)
    except AuthenticationError:
        logger.warning("auth: failed login for '%s' from %s", body.username.strip(), request.client.host if request.client else "?")
        raise

    store.discard(previous_session_id)
    session_id, session = store.create()
    session.set_string(sessions.USER_ID, str(user.id))
    session.set_string(sessions.USERNAME, user.username)

    set_session_cookie(response, session_id)
    logger.info("auth: user '%s' logged in", user.username)
    return MeResponse(user=UserResponse(**user.to_dict()))


@router.post("/logout", response_model=MessageResponse, summary="End the current session")
async def logout(
    response: Response,
    session_id: Optional[str] = Depends(get_session_id),
    store: sessions.SessionStore = Depends(get_session_store),
) -> MessageResponse:
    store.discard(session_id)
    response.delete_cookie(settings.session_cookie_name)
    return MessageResponse(message="Logged out.")


@router.get("/me", response_model=MeResponse, summary="Current user and selected context")
async def me(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> MeResponse:
    return MeResponse(
        user=UserResponse(id=user.id, username=user.username),
        context=build_context(db, user),
    )
