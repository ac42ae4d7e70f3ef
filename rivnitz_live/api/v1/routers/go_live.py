"""Operator endpoints of the go-live console.

Every command returns the orchestrator's state projection; failures are
rendered as ApiFailure envelopes by the AppError handler.
"""

from fastapi import APIRouter

from rivnitz_live.api.v1.dependency import Orchestrator
from rivnitz_live.api.v1.schemas.base import ApiOut
from rivnitz_live.api.v1.schemas.go_live import AdmitIn, StartPreviewIn
from rivnitz_live.domain.live.broadcast.models import OrchestratorState

router = APIRouter(prefix="/go-live")


@router.get("/state")
async def get_state(orchestrator: Orchestrator) -> ApiOut[OrchestratorState]:
    return ApiOut[OrchestratorState](results=orchestrator.snapshot())


@router.post("/preview")
async def start_preview(
    body: StartPreviewIn,
    orchestrator: Orchestrator,
) -> ApiOut[OrchestratorState]:
    """Test the camera.

    Raises:
        400: Title or channel name blank
        403: Camera capture denied
        409: Not in setup, or another command is in progress
    """
    state = await orchestrator.start_preview(title=body.title, channel_name=body.channel_name)
    return ApiOut[OrchestratorState](results=state)


@router.post("/preview/cancel")
async def cancel_preview(orchestrator: Orchestrator) -> ApiOut[OrchestratorState]:
    return ApiOut[OrchestratorState](results=await orchestrator.cancel_preview())


@router.post("/start")
async def go_live(orchestrator: Orchestrator) -> ApiOut[OrchestratorState]:
    """Go live from preview.

    Raises:
        403: Microphone capture denied
        409: Not in preview
        502: Token, join or publish failed
        503: Session record could not be created
    """
    return ApiOut[OrchestratorState](results=await orchestrator.go_live())


@router.post("/end")
async def end_session(orchestrator: Orchestrator) -> ApiOut[OrchestratorState]:
    return ApiOut[OrchestratorState](results=await orchestrator.end_session())


@router.post("/admit")
async def admit(body: AdmitIn, orchestrator: Orchestrator) -> ApiOut[OrchestratorState]:
    """Admit a waiting viewer, finishing the current consultation first."""
    return ApiOut[OrchestratorState](results=await orchestrator.admit(body.entry_id))


@router.post("/end-consultation")
async def end_consultation(orchestrator: Orchestrator) -> ApiOut[OrchestratorState]:
    return ApiOut[OrchestratorState](results=await orchestrator.end_consultation())


@router.post("/toggle-mic")
async def toggle_mic(orchestrator: Orchestrator) -> ApiOut[OrchestratorState]:
    return ApiOut[OrchestratorState](results=await orchestrator.toggle_mic())


@router.post("/toggle-camera")
async def toggle_camera(orchestrator: Orchestrator) -> ApiOut[OrchestratorState]:
    return ApiOut[OrchestratorState](results=await orchestrator.toggle_camera())


@router.post("/display/{target}/mounted")
async def display_mounted(target: str, orchestrator: Orchestrator) -> ApiOut[OrchestratorState]:
    """Signal that the console has mounted the display surface ``target``."""
    orchestrator.mount_display(target)
    return ApiOut[OrchestratorState](results=orchestrator.snapshot())


@router.post("/sign-out")
async def sign_out(orchestrator: Orchestrator) -> ApiOut[OrchestratorState]:
    return ApiOut[OrchestratorState](results=await orchestrator.sign_out())
