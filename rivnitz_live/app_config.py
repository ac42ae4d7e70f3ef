from pydantic import BaseModel

from rivnitz_live.shared.config import config


def _flag(key: str, default: str) -> bool:
    return (config.get(key) or default).strip().lower() == "true"


def _float(key: str, default: float) -> float:
    return float((config.get(key) or "").strip() or default)


class AppEnvironConfig(BaseModel):
    # Public demo switch: when enabled, vendor integrations use stubs and avoid network calls.
    DEMO_MODE: bool = _flag("DEMO_MODE", "true")
    DEBUG: bool = _flag("DEBUG", "false")

    API_HOST: str = (config.get("API_HOST") or "0.0.0.0").strip()
    API_PORT: int = int((config.get("API_PORT") or "").strip() or 8000)
    API_WORKERS: int = int((config.get("API_WORKERS") or "").strip() or 1)
    API_CORS_ORIGINS: list[str] = [
        x.strip() for x in (config.get("API_CORS_ORIGINS") or "").split(",") if x.strip()
    ]

    LOGFIRE_ENABLE: bool = _flag("LOGFIRE_ENABLE", "false")
    LOGFIRE_TOKEN: str | None = (config.get("LOGFIRE_TOKEN") or "").strip() or None

    MONGO_DATABASE: str = (config.get("MONGO_DATABASE") or "rivnitz").strip()

    # LiveKit configuration
    LIVEKIT_URL: str | None = (config.get("LIVEKIT_URL") or "").strip() or None
    LIVEKIT_API_KEY: str | None = (config.get("LIVEKIT_API_KEY") or "").strip() or None
    LIVEKIT_API_SECRET: str | None = (config.get("LIVEKIT_API_SECRET") or "").strip() or None

    # Token issuer
    TOKEN_TTL_SECONDS: int = int((config.get("TOKEN_TTL_SECONDS") or "").strip() or 7200)
    TOKEN_ISSUER_URL: str = (
        config.get("TOKEN_ISSUER_URL") or "http://localhost:8000/api/v1/token"
    ).strip()

    # Go Live defaults
    LIVE_HOST_UID: int = int((config.get("LIVE_HOST_UID") or "").strip() or 1)
    LIVE_DEFAULT_TITLE: str = (
        config.get("LIVE_DEFAULT_TITLE") or "Rabbi Landau — Live Teaching"
    ).strip()
    LIVE_CHANNEL_PREFIX: str = (config.get("LIVE_CHANNEL_PREFIX") or "rivnitz-live").strip()
    CAMERA_DEVICE: str = (config.get("CAMERA_DEVICE") or "/dev/video0").strip()
    CAMERA_WIDTH: int = int((config.get("CAMERA_WIDTH") or "").strip() or 1280)
    CAMERA_HEIGHT: int = int((config.get("CAMERA_HEIGHT") or "").strip() or 720)

    # Deadlines for every suspension point of the go-live flow
    LIVE_CAPTURE_TIMEOUT_SECONDS: float = _float("LIVE_CAPTURE_TIMEOUT_SECONDS", 15.0)
    LIVE_TOKEN_TIMEOUT_SECONDS: float = _float("LIVE_TOKEN_TIMEOUT_SECONDS", 10.0)
    LIVE_JOIN_TIMEOUT_SECONDS: float = _float("LIVE_JOIN_TIMEOUT_SECONDS", 20.0)
    LIVE_PUBLISH_TIMEOUT_SECONDS: float = _float("LIVE_PUBLISH_TIMEOUT_SECONDS", 20.0)
    LIVE_STORE_TIMEOUT_SECONDS: float = _float("LIVE_STORE_TIMEOUT_SECONDS", 10.0)
    LIVE_ELAPSED_TICK_SECONDS: float = _float("LIVE_ELAPSED_TICK_SECONDS", 1.0)

    # Live notification (Expo push)
    NOTIFY_ON_GO_LIVE: bool = _flag("NOTIFY_ON_GO_LIVE", "true")
    EXPO_PUSH_URL: str = (
        config.get("EXPO_PUSH_URL") or "https://exp.host/--/api/v2/push/send"
    ).strip()
    PUSH_BATCH_SIZE: int = int((config.get("PUSH_BATCH_SIZE") or "").strip() or 100)
    PUSH_LIVE_TITLE: str = (
        config.get("PUSH_LIVE_TITLE") or "📺 Rabbi Landau is Live Now!"
    ).strip()
    PUSH_LIVE_DEFAULT_BODY: str = (
        config.get("PUSH_LIVE_DEFAULT_BODY") or "Join the live session with Rabbi Landau."
    ).strip()


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
