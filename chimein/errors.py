"""Exception hierarchy for chimein."""


class ChimeinError(Exception):
    """Base class for all chimein errors."""


class ConfigError(ChimeinError):
    """Required startup configuration is missing or invalid."""


class NotAuthorized(ChimeinError):
    """No usable chat credential; an operator must re-authorize."""


class CredentialStoreError(ChimeinError):
    """The credential file could not be read or written."""


class TokenRequestError(ChimeinError):
    """A request to the OAuth endpoint failed.

    ``status`` is the HTTP status of a rejection, or None when the endpoint
    could not be reached (network error, timeout, malformed reply).
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class CompletionError(ChimeinError):
    """The completion service failed, timed out or returned nothing."""


class ChannelError(ChimeinError):
    """The chat transport could not deliver a message."""
