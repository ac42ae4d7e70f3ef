"""Application error type shared by domain services and routers."""

import inspect
from enum import Enum, IntEnum
from uuid import uuid4


class HttpStatusCode(IntEnum):
    OK = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504


class AppErrorCode(str, Enum):
    E_INTERNAL_ERROR = "E_INTERNAL_ERROR"
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_PARAMS = "E_INVALID_PARAMS"

    # Credentials / token issuance
    E_CREDENTIALS_UNCONFIGURED = "E_CREDENTIALS_UNCONFIGURED"
    E_TOKEN_ISSUANCE_FAILED = "E_TOKEN_ISSUANCE_FAILED"

    # Local media
    E_CAPTURE_DENIED = "E_CAPTURE_DENIED"

    # Transport
    E_CHANNEL_JOIN_FAILED = "E_CHANNEL_JOIN_FAILED"
    E_PUBLISH_FAILED = "E_PUBLISH_FAILED"

    # Session store
    E_PERSISTENCE_FAILED = "E_PERSISTENCE_FAILED"
    E_SESSION_NOT_FOUND = "E_SESSION_NOT_FOUND"
    E_SESSION_ENDED = "E_SESSION_ENDED"
    E_ENTRY_NOT_FOUND = "E_ENTRY_NOT_FOUND"

    # Orchestrator commands
    E_INVALID_PHASE_TRANSITION = "E_INVALID_PHASE_TRANSITION"
    E_SETUP_INCOMPLETE = "E_SETUP_INCOMPLETE"
    E_INVALID_ADMISSION = "E_INVALID_ADMISSION"
    E_COMMAND_IN_FLIGHT = "E_COMMAND_IN_FLIGHT"

    # Push notifications
    E_PUSH_FAILED = "E_PUSH_FAILED"

    def __str__(self) -> str:
        return self.value


class AppError(Exception):
    """Error carrying an error code, a human-readable message and an HTTP status.

    ``erresid`` is a short random id echoed to the client and written to the
    log so a failure report can be matched to its log line.
    """

    def __init__(
        self,
        errcode: AppErrorCode | str = AppErrorCode.E_INTERNAL_ERROR,
        errmesg: str = "We are sorry, an error occurred.",
        status_code: int = HttpStatusCode.INTERNAL_SERVER_ERROR,
    ):
        self.errcode = errcode.value if isinstance(errcode, AppErrorCode) else str(errcode)
        self.errmesg = errmesg
        self.status_code = int(status_code)
        self.erresid = uuid4().hex[:10]

        caller_frame = inspect.stack()[1]
        module = inspect.getmodule(caller_frame.frame)
        module_name = module.__name__ if module else caller_frame.filename
        self.caller_info = f"{module_name}:{caller_frame.function}:{caller_frame.lineno}"

        super().__init__(errmesg)

    def __str__(self) -> str:
        return self.errmesg

    def __repr__(self) -> str:
        return f"{type(self).__name__}(errcode={self.errcode!r}, errmesg={self.errmesg!r})"
