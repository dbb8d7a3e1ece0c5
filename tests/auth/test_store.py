"""Tests for the credential file store."""

import json
import os
import stat

import pytest

from chimein.auth.store import CredentialState, TokenStore
from chimein.errors import CredentialStoreError


class TestTokenStore:
    """Atomic, owner-only JSON persistence."""

    def test_missing_file_is_none(self, tmp_path):
        assert TokenStore(tmp_path / "tokens.json").load() is None

    def test_round_trip_uses_camel_case_ms(self, tmp_path):
        path = tmp_path / "tokens.json"
        store = TokenStore(path)
        store.save(CredentialState(access_token="a", refresh_token="r", expires_at=1_700_000_000_000))

        raw = json.loads(path.read_text())
        assert raw == {"accessToken": "a", "refreshToken": "r", "expiresAt": 1_700_000_000_000}
        loaded = store.load()
        assert loaded.access_token == "a"
        assert loaded.expires_at_s == 1_700_000_000

    def test_owner_only_permissions(self, tmp_path):
        path = tmp_path / "tokens.json"
        TokenStore(path).save(CredentialState(access_token="a"))
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_no_temp_files_left(self, tmp_path):
        TokenStore(tmp_path / "tokens.json").save(CredentialState(access_token="a"))
        assert [p.name for p in tmp_path.iterdir()] == ["tokens.json"]

    def test_reads_existing_file_format(self, tmp_path):
        path = tmp_path / "tokens.json"
        path.write_text(json.dumps({"accessToken": "x", "refreshToken": "y", "expiresAt": 5000}))
        state = TokenStore(path).load()
        assert (state.access_token, state.refresh_token, state.expires_at) == ("x", "y", 5000)

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "tokens.json"
        path.write_text("{not json")
        with pytest.raises(CredentialStoreError):
            TokenStore(path).load()

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        with pytest.raises(CredentialStoreError):
            TokenStore(blocker / "tokens.json").save(CredentialState(access_token="a"))


class TestCredentialState:
    def test_expires_within(self):
        state = CredentialState(expires_at=1_000_000)  # 1000s
        assert state.expires_within(now=800, margin_s=300)
        assert not state.expires_within(now=600, margin_s=300)

    def test_unknown_expiry_counts_as_expiring(self):
        assert CredentialState(access_token="a").expires_within(now=0, margin_s=300)
