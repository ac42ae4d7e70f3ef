"""LiveKit credential service.

Thin wrapper around the `livekit-api` package that mints channel-scoped
publisher tokens for a numeric identity.

Usage:
    from rivnitz_live.services.integrations.livekit_service import livekit_service

    grant = livekit_service.create_channel_token(channel="rivnitz-live-1a2b", uid=1)
    grant.token, grant.expires_at
"""

from __future__ import annotations

import time
from datetime import timedelta

from livekit import api
from loguru import logger

from rivnitz_live.app_config import AppEnvironConfig, get_app_environ_config
from rivnitz_live.domain.live.broadcast.models import TokenGrant
from rivnitz_live.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


class LivekitService:
    """Service wrapper for LiveKit access tokens.

    ``issue`` makes the service usable in-process wherever the orchestrator
    expects a token issuer.
    """

    def __init__(self, cfg: AppEnvironConfig | None = None) -> None:
        self._cfg = cfg or get_app_environ_config()
        self._demo_mode = bool(getattr(self._cfg, "DEMO_MODE", True))
        logger.info("LivekitService initialized")

    @property
    def ttl_seconds(self) -> int:
        return self._cfg.TOKEN_TTL_SECONDS

    def create_channel_token(self, channel: str, uid: int) -> TokenGrant:
        """Create a publisher token for ``uid`` scoped to ``channel``.

        Args:
            channel: Channel (room) name the token grants access to
            uid: Numeric participant identity

        Returns:
            TokenGrant with the token and its absolute expiry (epoch seconds)

        Raises:
            AppError: If LIVEKIT_API_KEY or LIVEKIT_API_SECRET is not configured
        """
        ttl = self.ttl_seconds
        expires_at = int(time.time()) + ttl

        if self._demo_mode:
            # Demo-safe token: deterministic placeholder (NOT a real JWT).
            return TokenGrant(
                token=f"DEMO_RTC_TOKEN::{uid}::{channel}",
                uid=uid,
                channel_name=channel,
                expires_at=expires_at,
            )

        api_key = self._cfg.LIVEKIT_API_KEY
        api_secret = self._cfg.LIVEKIT_API_SECRET
        if not api_key or not api_secret:
            logger.error("LIVEKIT_API_KEY or LIVEKIT_API_SECRET not configured")
            raise AppError(
                errcode=AppErrorCode.E_CREDENTIALS_UNCONFIGURED,
                errmesg="RTC provider credentials must be configured. Set LIVEKIT_API_KEY and LIVEKIT_API_SECRET in env.local or environment variables.",
                status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
            )

        logger.info(f"Creating LiveKit token for uid={uid}, channel={channel}, ttl={ttl}s")

        token = (
            api.AccessToken(api_key, api_secret)
            .with_identity(str(uid))
            .with_ttl(timedelta(seconds=ttl))
            .with_grants(
                api.VideoGrants(
                    room_join=True,
                    room=channel,
                    can_publish=True,
                    can_subscribe=True,
                    can_publish_data=True,
                )
            )
        )

        return TokenGrant(
            token=token.to_jwt(),
            uid=uid,
            channel_name=channel,
            expires_at=expires_at,
        )

    async def issue(self, channel: str, uid: int) -> TokenGrant:
        return self.create_channel_token(channel, uid)


livekit_service = LivekitService()
