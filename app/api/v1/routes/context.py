"""Session context: which stored key and region AWS routes use."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DBSession

from app.api.deps import CurrentUser, get_current_user
from app.aws.clients import normalize_region
from app.core import credentials, sessions
from app.core.exceptions import NotFoundError
from app.db.database import get_db
from app.models.request import ContextRequest, ContextResponse

router = APIRouter(prefix="/api/v1/context", tags=["context"])


@router.put("", response_model=ContextResponse, summary="Select key and region")
async def select_context(
    body: ContextRequest,
    user: CurrentUser = Depends(get_current_user),
    db: DBSession = Depends(get_db),
) -> ContextResponse:
    key = credentials.get_key(db, user.id, body.key_id)
    if key is None:
        raise NotFoundError(f"Key {body.key_id} not found.", resource="API key")

    region = normalize_region(body.region)
    user.session.set_string(sessions.KEY_ID, str(key.id))
    user.session.set_string(sessions.REGION, region)
    return ContextResponse(key_id=key.id, key_name=key.name, region=region)
