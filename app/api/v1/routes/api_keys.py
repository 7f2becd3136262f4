"""Stored AWS key routes.

Every route works only on the logged-in user's own keys. Key pairs are
masked in responses; the secret key is never returned.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session as DBSession

from app.api.deps import CurrentUser, get_current_user, run_blocking
from app.aws.clients import normalize_proxy_url
from app.aws.netcheck import check_proxy_exit_ip
from app.core import credentials, sessions
from app.core.exceptions import NotFoundError
from app.db.database import get_db
from app.models.keys import KeyInfoResponse, KeyRequest, ProxyCheckResponse
from app.models.request import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/keys", tags=["api-keys"])


@router.get("", response_model=list[KeyInfoResponse], summary="List stored keys")
async def list_keys(
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> list[KeyInfoResponse]:
    return [KeyInfoResponse(**k.to_dict()) for k in credentials.list_keys(db, user.id)]


@router.post(
    "",
    response_model=KeyInfoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Store a new key",
)
async def create_key(
    body: KeyRequest,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> KeyInfoResponse:
    record = credentials.create_key(
        db,
        user.id,
        name=body.name,
        access_key=body.access_key,
        secret_key=body.secret_key,
        proxy=normalize_proxy_url(body.proxy),
    )
    return KeyInfoResponse(**record.to_dict())


@router.put("/{key_id}", response_model=KeyInfoResponse, summary="Replace a stored key")
async def update_key(
    key_id: int,
    body: KeyRequest,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> KeyInfoResponse:
    record = credentials.update_key(
        db,
        user.id,
        key_id,
        name=body.name,
        access_key=body.access_key,
        secret_key=body.secret_key,
        proxy=normalize_proxy_url(body.proxy),
    )
    if record is None:
        raise NotFoundError(f"Key {key_id} not found.", resource="API key")
    return KeyInfoResponse(**record.to_dict())


@router.delete("/{key_id}", response_model=MessageResponse, summary="Delete a stored key")
async def delete_key(
    key_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> MessageResponse:
    if not credentials.delete_key(db, user.id, key_id):
        raise NotFoundError(f"Key {key_id} not found.", resource="API key")

    if user.session.get_string(sessions.KEY_ID) == str(key_id):
        user.session.delete(sessions.KEY_ID)
    return MessageResponse(message=f"Key {key_id} deleted.")


@router.post(
    "/{key_id}/check-proxy",
    response_model=ProxyCheckResponse,
    summary="Show the exit IP of a key's proxy",
)
async def check_proxy(
    key_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> ProxyCheckResponse:
    record = credentials.get_key(db, user.id, key_id)
    if record is None:
        raise NotFoundError(f"Key {key_id} not found.", resource="API key")

    info = await run_blocking(check_proxy_exit_ip, record.proxy)
    return ProxyCheckResponse(key_id=key_id, **info.to_dict())
