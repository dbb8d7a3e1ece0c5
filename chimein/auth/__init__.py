"""Twitch OAuth credentials: store, token client and lifecycle manager."""

from chimein.auth.credentials import CredentialLifecycleManager, CredentialStatus
from chimein.auth.store import CredentialState, TokenStore
from chimein.auth.twitch_oauth import (
    CHAT_SCOPES,
    EXTENDED_SCOPES,
    TokenGrant,
    TwitchTokenClient,
)

__all__ = [
    "CHAT_SCOPES",
    "EXTENDED_SCOPES",
    "CredentialLifecycleManager",
    "CredentialState",
    "CredentialStatus",
    "TokenGrant",
    "TokenStore",
    "TwitchTokenClient",
]
