import time
import traceback
import uuid
from contextlib import asynccontextmanager
from os import environ

import logfire
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from granian import Granian
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from rivnitz_live.api.errors import app_error_handler, app_validation_exception_handler
from rivnitz_live.app_config import AppEnvironConfig, get_app_environ_config
from rivnitz_live.domain.live.broadcast.orchestrator import LiveSessionOrchestrator
from rivnitz_live.domain.live.store.memory_store import InMemorySessionStore
from rivnitz_live.domain.live.store.mongo_store import MongoSessionStore
from rivnitz_live.schemas.init_schemas import init_schema
from rivnitz_live.services.integrations.expo_push_service import ExpoPushService
from rivnitz_live.services.integrations.livekit_service import livekit_service
from rivnitz_live.services.integrations.livekit_transport import LivekitTransport
from rivnitz_live.services.token_client import TokenIssuerClient
from rivnitz_live.shared.api.utils import api_failure, init_logger, load_routes
from rivnitz_live.shared.storage.mongo import get_mongo_manager
from rivnitz_live.utils.app_errors import AppError, AppErrorCode


class HTTPLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore
        start_time = time.time()
        request_id = str(uuid.uuid4())[:8]

        logger.info(f"[{request_id}] {request.method} {request.url.path}")

        try:
            response = await call_next(request)

            process_time = (time.time() - start_time) * 1000

            logger.info(
                f"[{request_id}] {request.method} {request.url.path} - "
                f"Status: {response.status_code} - "
                f"Duration: {process_time:.2f}ms"
            )

            return response

        except Exception as exc:
            process_time = (time.time() - start_time) * 1000

            logger.error(
                f"[{request_id}] Unhandled exception in {request.method} {request.url.path} - "
                f"Duration: {process_time:.2f}ms - "
                f"Error: {type(exc).__name__}: {exc}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            failure = api_failure(
                errcode=AppErrorCode.E_INTERNAL_ERROR.value,
                errmesg=f"Internal server error (request_id: {request_id})",
            )
            return ORJSONResponse(
                status_code=500,
                content=failure.model_dump(),
            )


def build_orchestrator(cfg: AppEnvironConfig) -> LiveSessionOrchestrator:
    """Wire the orchestrator to the demo stubs or to Mongo, LiveKit and the token endpoint."""
    if cfg.DEMO_MODE:
        store = InMemorySessionStore()
        token_issuer = livekit_service
    else:
        store = MongoSessionStore()
        token_issuer = TokenIssuerClient(
            cfg.TOKEN_ISSUER_URL,
            timeout=cfg.LIVE_TOKEN_TIMEOUT_SECONDS,
        )

    push_service = ExpoPushService(cfg)
    return LiveSessionOrchestrator.from_config(
        cfg,
        transport=LivekitTransport(cfg),
        store=store,
        token_issuer=token_issuer,
        notifier=push_service.notify_live,
    )


@asynccontextmanager
async def lifespan(server: FastAPI):
    init_logger()

    logger.info("Application startup...")

    cfg = get_app_environ_config()

    if cfg.DEMO_MODE:
        logger.info("DEMO_MODE=true: using the in-memory session store")
    else:
        # Initialize MongoDB schemas and Beanie ODM
        await init_schema()

    server.state.push_service = ExpoPushService(cfg)
    server.state.orchestrator = build_orchestrator(cfg)

    load_routes(server, "/api/v1")

    if cfg.LOGFIRE_ENABLE:
        logger.info("Logfire initializing")

        logfire.configure(
            token=cfg.LOGFIRE_TOKEN,
            service_name="rivnitz-live",
            service_version=environ.get("BUILD_COMMIT") or "dev",
        )

        logger.info("Logfire instrument fastapi")
        logfire.instrument_fastapi(server, capture_headers=True)

        if not cfg.DEMO_MODE:
            logger.info("Logfire instrument mongo")
            logfire.instrument_pymongo(capture_statement=cfg.DEBUG)

        logger.info("Logfire instrument pydantic")
        logfire.instrument_pydantic()

    yield

    logger.info("Application shutdown...")

    await server.state.orchestrator.aclose()
    if not cfg.DEMO_MODE:
        get_mongo_manager().close_all()


app = FastAPI(
    version="1.0",
    title="Rivnitz Live API",
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(HTTPLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,  # type: ignore
    allow_origins=get_app_environ_config().API_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, app_validation_exception_handler)  # type: ignore
app.add_exception_handler(AppError, app_error_handler)  # type: ignore


def build_granian_kwargs():
    cfg = get_app_environ_config()
    kwargs = {
        "interface": "asgi",
        "address": cfg.API_HOST,
        "port": cfg.API_PORT,
        "workers": cfg.API_WORKERS,
        "reload": cfg.DEBUG,
    }

    return kwargs


if __name__ == "__main__":
    granian_kwargs = build_granian_kwargs()
    Granian("rivnitz_live.main:app", **granian_kwargs).serve()
