"""On-disk credential store."""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import ValidationError

from chimein.config.schema import Base
from chimein.errors import CredentialStoreError


class CredentialState(Base):
    """Persisted OAuth credential. ``expires_at`` is epoch milliseconds."""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    @property
    def expires_at_s(self) -> Optional[float]:
        return self.expires_at / 1000 if self.expires_at else None

    def expires_within(self, now: float, margin_s: float) -> bool:
        """True when expired, expiring within ``margin_s``, or expiry unknown."""
        if self.expires_at_s is None:
            return True
        return now >= self.expires_at_s - margin_s


class TokenStore:
    """
    Reads and writes the credential JSON file.

    Writes go to a temp file in the same directory, are fsynced, then
    atomically replace the target, so a crash never leaves a torn file.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def load(self) -> Optional[CredentialState]:
        """Return the stored credential, or None if nothing was saved yet."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No saved tokens found. Authorization required.")
            return None
        except OSError as e:
            raise CredentialStoreError(f"Cannot read {self.path}: {e}") from e

        try:
            state = CredentialState.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise CredentialStoreError(f"Corrupt credential file {self.path}: {e}") from e

        logger.debug(f"Tokens loaded from {self.path}")
        return state

    def save(self, state: CredentialState) -> None:
        data = state.model_dump(by_alias=True)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".tokens-", dir=self.path.parent)
        except OSError as e:
            raise CredentialStoreError(f"Cannot write {self.path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except OSError as e:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise CredentialStoreError(f"Cannot write {self.path}: {e}") from e

        logger.debug(f"Tokens saved to {self.path}")
