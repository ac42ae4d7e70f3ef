"""HTTP client for the token issuer endpoint."""

from __future__ import annotations

import httpx
from loguru import logger
from pydantic import ValidationError

from rivnitz_live.domain.live.broadcast.errors import TokenIssuanceFailed
from rivnitz_live.domain.live.broadcast.models import TokenGrant


class TokenIssuerClient:
    """Fetches channel tokens from ``GET <url>?channel=&uid=``.

    Error bodies of the form ``{"error": "..."}`` are surfaced verbatim.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def issue(self, channel: str, uid: int) -> TokenGrant:
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.get(
                    self.url,
                    params={"channel": channel, "uid": uid},
                    timeout=self.timeout,
                )
        except httpx.HTTPError as e:
            logger.warning(f"Token request to {self.url} failed: {e!s}")
            raise TokenIssuanceFailed(str(e) or f"Token request failed ({type(e).__name__})") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code != 200:
            message = data.get("error") if isinstance(data, dict) else None
            raise TokenIssuanceFailed(
                message or f"Token request failed with HTTP {response.status_code}"
            )

        try:
            grant = TokenGrant.model_validate(data)
        except ValidationError as e:
            raise TokenIssuanceFailed(f"Malformed token response: {e.error_count()} errors") from e

        if grant.channel_name != channel or grant.uid != uid:
            raise TokenIssuanceFailed(
                f"Token issued for {grant.channel_name}/{grant.uid}, expected {channel}/{uid}"
            )

        logger.debug(f"Token issued for channel={channel} uid={uid}, expires at {grant.expires_at}")
        return grant
