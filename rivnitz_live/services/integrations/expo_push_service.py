"""Expo push relay for live-session notifications.

Usage:
    from rivnitz_live.services.integrations.expo_push_service import ExpoPushService

    result = await ExpoPushService().notify_live(title="Evening shiur", session_id=sid)
    result.sent
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel

from rivnitz_live.app_config import AppEnvironConfig, get_app_environ_config
from rivnitz_live.schemas.live_session import AppUser
from rivnitz_live.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

NO_DEVICES_MESSAGE = "No registered devices found"


class NotifyLiveResult(BaseModel):
    sent: int
    results: list[Any] | None = None
    message: str | None = None


async def fetch_push_tokens() -> list[str]:
    """Expo push tokens of every user with push enabled."""
    users = await AppUser.find({"pushEnabled": True}).to_list()
    return [u.expo_push_token for u in users if u.expo_push_token]


class ExpoPushService:
    def __init__(
        self,
        cfg: AppEnvironConfig | None = None,
        *,
        token_source: Callable[[], Awaitable[list[str]]] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cfg = cfg or get_app_environ_config()
        self._demo_mode = bool(getattr(self._cfg, "DEMO_MODE", True))
        self._token_source = token_source or fetch_push_tokens
        self._transport = transport

    def build_messages(self, tokens: list[str], title: str, session_id: str) -> list[dict]:
        return [
            {
                "to": token,
                "channelId": "live",
                "title": self._cfg.PUSH_LIVE_TITLE,
                "body": title or self._cfg.PUSH_LIVE_DEFAULT_BODY,
                "data": {"screen": "Live", "sessionId": session_id},
                "sound": "default",
                "priority": "high",
            }
            for token in tokens
        ]

    @staticmethod
    def _batch_result(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {"status": response.status_code, "error": response.text}

    async def send_batches(self, messages: list[dict]) -> list[Any]:
        """POST messages in batches of PUSH_BATCH_SIZE; returns one Expo response per batch.

        A rejected batch does not stop the others: its error body is returned
        in its place. Only an unreachable relay raises.
        """
        batch_size = self._cfg.PUSH_BATCH_SIZE
        results: list[Any] = []

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                for i in range(0, len(messages), batch_size):
                    batch = messages[i : i + batch_size]
                    response = await client.post(
                        self._cfg.EXPO_PUSH_URL,
                        json=batch,
                        headers={
                            "Accept": "application/json",
                            "Accept-Encoding": "gzip, deflate",
                        },
                        timeout=30,
                    )
                    if response.is_error:
                        logger.warning(
                            f"Expo rejected push batch {i // batch_size}: HTTP {response.status_code}"
                        )
                    results.append(self._batch_result(response))
        except httpx.HTTPError as e:
            logger.error(f"Expo push request failed: {e!s}")
            raise AppError(
                errcode=AppErrorCode.E_PUSH_FAILED,
                errmesg=str(e) or "Expo push request failed",
                status_code=HttpStatusCode.BAD_GATEWAY,
            ) from e

        return results

    async def notify_live(self, title: str, session_id: str) -> NotifyLiveResult:
        if self._demo_mode:
            logger.info("ExpoPushService DEMO_MODE=true: notify_live sends nothing (stub)")
            return NotifyLiveResult(sent=0, message=NO_DEVICES_MESSAGE)

        tokens = await self._token_source()
        if not tokens:
            return NotifyLiveResult(sent=0, message=NO_DEVICES_MESSAGE)

        results = await self.send_batches(self.build_messages(tokens, title, session_id))
        logger.info(f"Sent live notification to {len(tokens)} devices for session {session_id}")
        return NotifyLiveResult(sent=len(tokens), results=results)
