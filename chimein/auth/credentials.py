"""Credential lifecycle manager for the chat connection."""

import asyncio
import time
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from chimein.auth.store import CredentialState, TokenStore
from chimein.auth.twitch_oauth import TokenGrant, TwitchTokenClient
from chimein.errors import ChimeinError, NotAuthorized, TokenRequestError

REFRESH_MARGIN_S = 5 * 60


class CredentialStatus(str, Enum):
    UNAUTHORIZED = "unauthorized"
    AUTHORIZED = "authorized"
    REFRESHING = "refreshing"


class CredentialLifecycleManager:
    """
    Keeps a valid OAuth access token available without operator help.

    States: UNAUTHORIZED -> AUTHORIZED (code exchange or successful load),
    AUTHORIZED -> REFRESHING -> AUTHORIZED on refresh, and -> UNAUTHORIZED
    when the provider rejects the refresh token.

    This is the only writer of the credential file. The store is written
    before memory is updated, so a failed write leaves both untouched.
    """

    def __init__(
        self,
        client: TwitchTokenClient,
        store: TokenStore,
        clock: Callable[[], float] = time.time,
        refresh_margin_s: float = REFRESH_MARGIN_S,
    ):
        self.client = client
        self.store = store
        self.clock = clock
        self.refresh_margin_s = refresh_margin_s
        self._state = CredentialState()
        self._status = CredentialStatus.UNAUTHORIZED
        self._loaded = False
        self._refresh_lock = asyncio.Lock()
        self.refresh_count = 0

    @property
    def status(self) -> CredentialStatus:
        return self._status

    @property
    def state(self) -> CredentialState:
        return self._state.model_copy()

    def set_refresh_token(self, refresh_token: str) -> None:
        """Seed the refresh token (e.g. from configuration)."""
        if refresh_token:
            self._state = self._state.model_copy(update={"refresh_token": refresh_token})

    def authorization_url(self, scopes: list[str] | None = None) -> str:
        return self.client.authorization_url(scopes)

    def _load(self) -> None:
        self._loaded = True
        stored = self.store.load()
        if stored is None:
            return
        # A seeded refresh token survives a file that lacks one
        if not stored.refresh_token and self._state.refresh_token:
            stored = stored.model_copy(update={"refresh_token": self._state.refresh_token})
        self._state = stored
        if stored.access_token:
            self._status = CredentialStatus.AUTHORIZED
        logger.info("Tokens loaded successfully")

    def _commit(self, state: CredentialState) -> None:
        self.store.save(state)
        self._state = state

    def _state_from_grant(self, grant: TokenGrant) -> CredentialState:
        return CredentialState(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token or self._state.refresh_token,
            expires_at=int((self.clock() + grant.expires_in) * 1000),
        )

    def _needs_refresh(self) -> bool:
        if not self._state.access_token:
            return True
        return self._state.expires_within(self.clock(), self.refresh_margin_s)

    async def get_valid_token(self) -> str:
        """
        Return ``"oauth:<token>"``, refreshing first when close to expiry.

        Raises:
            NotAuthorized: nothing to refresh with, or the refresh was rejected.
            TokenRequestError: the token endpoint could not be reached; retry later.
            CredentialStoreError: the refreshed credential could not be saved.
        """
        if not self._state.access_token and not self._loaded:
            self._load()

        if not self._state.access_token and not self._state.refresh_token:
            self._status = CredentialStatus.UNAUTHORIZED
            raise NotAuthorized("No saved tokens. Please authorize the application.")

        if self._needs_refresh():
            async with self._refresh_lock:
                # Another caller may have refreshed while we waited
                if self._needs_refresh():
                    await self._refresh()

        return f"oauth:{self._state.access_token}"

    async def _refresh(self) -> None:
        refresh_token = self._state.refresh_token
        if not refresh_token:
            self._status = CredentialStatus.UNAUTHORIZED
            raise NotAuthorized("No refresh token available. Please re-authorize the application.")

        logger.info("Token expired or about to expire, refreshing...")
        settled = self._status
        self._status = CredentialStatus.REFRESHING
        try:
            try:
                grant = await self.client.refresh(refresh_token)
            except TokenRequestError as e:
                if e.status is None:
                    logger.warning(f"Token refresh did not complete, will retry: {e}")
                    raise
                settled = CredentialStatus.UNAUTHORIZED
                logger.error(f"Error refreshing token: {e}")
                raise NotAuthorized(f"Token refresh rejected: {e}") from e

            self._commit(self._state_from_grant(grant))
            settled = CredentialStatus.AUTHORIZED
            self.refresh_count += 1
        finally:
            # Never left REFRESHING, whatever escaped
            self._status = settled

    async def exchange_authorization_code(self, code: str) -> None:
        """Turn a one-time authorization code into a stored credential."""
        try:
            grant = await self.client.exchange_code(code)
        except TokenRequestError as e:
            self._status = CredentialStatus.UNAUTHORIZED
            logger.error(f"Error getting tokens from code: {e}")
            raise NotAuthorized(f"Authorization code rejected: {e}") from e

        self._commit(self._state_from_grant(grant))
        self._loaded = True
        self._status = CredentialStatus.AUTHORIZED

    async def validate_token(self) -> bool:
        """Ask the provider whether the current token is valid; refresh the expiry if so."""
        token: Optional[str] = self._state.access_token
        if not token:
            return False
        try:
            expires_in = await self.client.validate(token)
            updated = self._state.model_copy(
                update={"expires_at": int((self.clock() + expires_in) * 1000)}
            )
            self._commit(updated)
        except ChimeinError as e:
            logger.warning(f"Token validation failed: {e}")
            return False
        return True
