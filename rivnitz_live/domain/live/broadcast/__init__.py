"""Go-live broadcast orchestration."""

from .errors import (
    CaptureDenied,
    ChannelJoinFailed,
    CommandInFlight,
    CredentialError,
    InvalidAdmission,
    InvalidPhaseTransition,
    LiveSessionError,
    PermissionDenied,
    PersistenceError,
    PublishFailed,
    SessionEnded,
    SetupIncomplete,
    TokenIssuanceFailed,
    TransportError,
)
from .media import DisplayTarget, MediaCoordinator
from .orchestrator import LiveSessionOrchestrator
from .phase_state_machine import LivePhaseMachine
from .waiting_room import EMPTY_WAITING_ROOM, WaitingEntryMachine, project_waiting_room

__all__ = [
    "EMPTY_WAITING_ROOM",
    "CaptureDenied",
    "ChannelJoinFailed",
    "CommandInFlight",
    "CredentialError",
    "DisplayTarget",
    "InvalidAdmission",
    "InvalidPhaseTransition",
    "LivePhaseMachine",
    "LiveSessionError",
    "LiveSessionOrchestrator",
    "MediaCoordinator",
    "PermissionDenied",
    "PersistenceError",
    "PublishFailed",
    "SessionEnded",
    "SetupIncomplete",
    "TokenIssuanceFailed",
    "TransportError",
    "WaitingEntryMachine",
    "project_waiting_room",
]
