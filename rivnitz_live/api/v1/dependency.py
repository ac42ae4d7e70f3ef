from typing import Annotated

from fastapi import Depends, Request

from rivnitz_live.domain.live.broadcast.orchestrator import LiveSessionOrchestrator
from rivnitz_live.services.integrations.expo_push_service import ExpoPushService
from rivnitz_live.services.integrations.livekit_service import LivekitService, livekit_service
from rivnitz_live.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


def get_orchestrator(request: Request) -> LiveSessionOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise AppError(
            errcode=AppErrorCode.E_INTERNAL_ERROR,
            errmesg="Go-live orchestrator is not running",
            status_code=HttpStatusCode.SERVICE_UNAVAILABLE,
        )
    return orchestrator


def get_livekit_service() -> LivekitService:
    return livekit_service


def get_push_service(request: Request) -> ExpoPushService:
    service = getattr(request.app.state, "push_service", None)
    return service or ExpoPushService()


Orchestrator = Annotated[LiveSessionOrchestrator, Depends(get_orchestrator)]
