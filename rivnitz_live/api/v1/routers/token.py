"""Token issuer endpoint.

Returns bare JSON (no API envelope): mobile and console clients read
``{token, uid, channelName, expiresAt}`` or ``{error}`` directly.
"""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import ORJSONResponse
from loguru import logger

from rivnitz_live.api.v1.dependency import get_livekit_service
from rivnitz_live.services.integrations.livekit_service import LivekitService
from rivnitz_live.utils.app_errors import AppError, HttpStatusCode

router = APIRouter()


@router.get("/token")
async def issue_token(
    channel: str | None = Query(default=None, description="Channel the token is scoped to"),
    uid: int = Query(default=1, description="Numeric participant identity"),
    service: LivekitService = Depends(get_livekit_service),
) -> ORJSONResponse:
    """Mint a publisher token for ``uid`` on ``channel``.

    Raises:
        400: Missing channel parameter
        500: Credential material not configured
    """
    if not channel:
        return ORJSONResponse(
            status_code=HttpStatusCode.BAD_REQUEST,
            content={"error": "Missing ?channel= parameter"},
        )

    try:
        grant = service.create_channel_token(channel, uid)
    except AppError as e:
        logger.error(f"Token issuance failed: {e.errcode} {e.errmesg}")
        return ORJSONResponse(status_code=e.status_code, content={"error": e.errmesg})

    return ORJSONResponse(content=grant.model_dump(by_alias=True))
