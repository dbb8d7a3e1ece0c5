"""Twitch OAuth2 token endpoint client."""

import asyncio
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import aiohttp
from loguru import logger

from chimein.errors import TokenRequestError

AUTHORIZE_URL = "https://id.twitch.tv/oauth2/authorize"
TOKEN_URL = "https://id.twitch.tv/oauth2/token"
VALIDATE_URL = "https://id.twitch.tv/oauth2/validate"

CHAT_SCOPES = ["chat:read", "chat:edit"]
EXTENDED_SCOPES = CHAT_SCOPES + [
    "channel:moderate",
    "whispers:read",
    "whispers:edit",
]


@dataclass
class TokenGrant:
    """A token endpoint response."""
    access_token: str
    refresh_token: Optional[str]
    expires_in: int


class TwitchTokenClient:
    """Talks to id.twitch.tv. Every failure surfaces as TokenRequestError."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout_s: float = 15.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = aiohttp.ClientTimeout(total=timeout_s)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    def authorization_url(self, scopes: list[str] | None = None) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes or CHAT_SCOPES),
        }
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def _post_token(self, form: dict[str, str]) -> TokenGrant:
        session = await self._get_session()
        payload = {"client_id": self.client_id, "client_secret": self.client_secret, **form}
        try:
            async with session.post(TOKEN_URL, data=payload) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    raise TokenRequestError(f"Token request failed: {body}", status=resp.status)
                data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TokenRequestError(f"Token request failed: {e!r}") from e

        try:
            return TokenGrant(
                access_token=data["access_token"],
                refresh_token=data.get("refresh_token"),
                expires_in=int(data["expires_in"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TokenRequestError(f"Malformed token response: {e}") from e

    async def exchange_code(self, code: str) -> TokenGrant:
        grant = await self._post_token({
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        })
        logger.info("Successfully obtained OAuth tokens")
        return grant

    async def refresh(self, refresh_token: str) -> TokenGrant:
        logger.info("Refreshing access token...")
        grant = await self._post_token({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })
        logger.info("Successfully refreshed OAuth token")
        return grant

    async def validate(self, access_token: str) -> int:
        """Return the remaining lifetime in seconds of a valid token."""
        session = await self._get_session()
        try:
            async with session.get(
                VALIDATE_URL, headers={"Authorization": f"OAuth {access_token}"}
            ) as resp:
                if resp.status != 200:
                    raise TokenRequestError("Token rejected by validate endpoint", status=resp.status)
                data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TokenRequestError(f"Validate request failed: {e!r}") from e

        expires_in = int(data.get("expires_in", 0))
        logger.info(f"Token validated successfully. Expires in: {expires_in} seconds")
        return expires_in
