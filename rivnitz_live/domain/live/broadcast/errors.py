"""Error taxonomy of the go-live flow.

Every error is recoverable: the phase machine stays in the last state it
reached and the operator retries the triggering action. ``errmesg`` carries
the failing step's own message verbatim.
"""

from rivnitz_live.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


class LiveSessionError(AppError):
    default_errcode = AppErrorCode.E_INTERNAL_ERROR
    default_status = HttpStatusCode.INTERNAL_SERVER_ERROR

    def __init__(self, errmesg: str):
        super().__init__(
            errcode=self.default_errcode,
            errmesg=errmesg,
            status_code=self.default_status,
        )


class PermissionDenied(LiveSessionError):
    """Camera or microphone permission refused, or device unavailable."""

    default_errcode = AppErrorCode.E_CAPTURE_DENIED
    default_status = HttpStatusCode.FORBIDDEN


class CaptureDenied(PermissionDenied):
    pass


class CredentialError(LiveSessionError):
    default_errcode = AppErrorCode.E_TOKEN_ISSUANCE_FAILED
    default_status = HttpStatusCode.BAD_GATEWAY


class TokenIssuanceFailed(CredentialError):
    """Credential endpoint unreachable or rejected the request."""


class TransportError(LiveSessionError):
    default_errcode = AppErrorCode.E_CHANNEL_JOIN_FAILED
    default_status = HttpStatusCode.BAD_GATEWAY


class ChannelJoinFailed(TransportError):
    pass


class PublishFailed(TransportError):
    """Track publish rejected after join. The channel is left before this is raised."""

    default_errcode = AppErrorCode.E_PUBLISH_FAILED


class PersistenceError(LiveSessionError):
    default_errcode = AppErrorCode.E_PERSISTENCE_FAILED
    default_status = HttpStatusCode.SERVICE_UNAVAILABLE


class SessionEnded(PersistenceError):
    """Write attempted on a session record that is already ended."""

    default_errcode = AppErrorCode.E_SESSION_ENDED
    default_status = HttpStatusCode.CONFLICT


class InvalidPhaseTransition(LiveSessionError):
    default_errcode = AppErrorCode.E_INVALID_PHASE_TRANSITION
    default_status = HttpStatusCode.CONFLICT


class SetupIncomplete(LiveSessionError):
    default_errcode = AppErrorCode.E_SETUP_INCOMPLETE
    default_status = HttpStatusCode.BAD_REQUEST


class InvalidAdmission(LiveSessionError):
    default_errcode = AppErrorCode.E_INVALID_ADMISSION
    default_status = HttpStatusCode.CONFLICT


class CommandInFlight(LiveSessionError):
    default_errcode = AppErrorCode.E_COMMAND_IN_FLIGHT
    default_status = HttpStatusCode.CONFLICT


__all__ = [
    "CaptureDenied",
    "ChannelJoinFailed",
    "CommandInFlight",
    "CredentialError",
    "InvalidAdmission",
    "InvalidPhaseTransition",
    "LiveSessionError",
    "PermissionDenied",
    "PersistenceError",
    "PublishFailed",
    "SessionEnded",
    "SetupIncomplete",
    "TokenIssuanceFailed",
    "TransportError",
]
