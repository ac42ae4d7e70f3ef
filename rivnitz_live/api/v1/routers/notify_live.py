"""Live notification endpoint (bare JSON, like the token endpoint)."""

from fastapi import APIRouter, Depends
from fastapi.responses import ORJSONResponse
from loguru import logger

from rivnitz_live.api.v1.dependency import get_push_service
from rivnitz_live.api.v1.schemas.go_live import NotifyLiveIn
from rivnitz_live.services.integrations.expo_push_service import ExpoPushService
from rivnitz_live.utils.app_errors import AppError, HttpStatusCode

router = APIRouter()


@router.post("/notify-live")
async def notify_live(
    body: NotifyLiveIn,
    service: ExpoPushService = Depends(get_push_service),
) -> ORJSONResponse:
    """Push a "live now" notification to every device with push enabled."""
    try:
        result = await service.notify_live(body.title, body.session_id)
    except AppError as e:
        logger.error(f"notify-live failed for session {body.session_id}: {e.errmesg}")
        return ORJSONResponse(
            status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
            content={"error": e.errmesg},
        )
    except Exception as e:
        logger.exception(f"notify-live failed for session {body.session_id}")
        return ORJSONResponse(
            status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
            content={"error": str(e) or "Unknown error"},
        )

    return ORJSONResponse(content=result.model_dump(exclude_none=True))
