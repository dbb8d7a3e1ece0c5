"""Tests for the Twitch token endpoint client."""

import asyncio

import pytest

from chimein.auth.twitch_oauth import CHAT_SCOPES, EXTENDED_SCOPES, TwitchTokenClient
from chimein.errors import TokenRequestError


class FakeResponse:
    def __init__(self, status: int = 200, payload=None, error: BaseException | None = None):
        self.status = status
        self.payload = payload or {}
        self.error = error

    async def __aenter__(self):
        if self.error is not None:
            raise self.error
        return self

    async def __aexit__(self, *exc):
        return False

    async def json(self):
        return self.payload

    async def text(self):
        return str(self.payload)


class FakeSession:
    """Answers every request with one scripted response."""

    def __init__(self, response: FakeResponse):
        self.response = response
        self.closed = False
        self.requests: list[tuple[str, dict]] = []

    def post(self, url, data=None):
        self.requests.append((url, data))
        return self.response

    def get(self, url, headers=None):
        self.requests.append((url, headers))
        return self.response


def make_client(response: FakeResponse) -> TwitchTokenClient:
    return TwitchTokenClient("cid", "secret", "http://localhost:3000/auth/twitch/callback",
                             session=FakeSession(response))


class TestRefresh:
    @pytest.mark.asyncio
    async def test_grant(self):
        client = make_client(FakeResponse(payload={
            "access_token": "a", "refresh_token": "r", "expires_in": 14400,
        }))

        grant = await client.refresh("r0")

        assert (grant.access_token, grant.refresh_token, grant.expires_in) == ("a", "r", 14400)
        url, form = client._session.requests[0]
        assert form["grant_type"] == "refresh_token"
        assert form["refresh_token"] == "r0"

    @pytest.mark.asyncio
    async def test_rejection_carries_status(self):
        client = make_client(FakeResponse(status=400, payload={"message": "Invalid refresh token"}))
        with pytest.raises(TokenRequestError) as exc:
            await client.refresh("r0")
        assert exc.value.status == 400

    @pytest.mark.asyncio
    async def test_timeout_becomes_token_error(self):
        client = make_client(FakeResponse(error=asyncio.TimeoutError()))
        with pytest.raises(TokenRequestError) as exc:
            await client.refresh("r0")
        assert exc.value.status is None

    @pytest.mark.asyncio
    async def test_malformed_reply(self):
        client = make_client(FakeResponse(payload={"token": "?"}))
        with pytest.raises(TokenRequestError, match="Malformed"):
            await client.exchange_code("abc")


class TestValidate:
    @pytest.mark.asyncio
    async def test_expires_in(self):
        client = make_client(FakeResponse(payload={"expires_in": 5000}))
        assert await client.validate("tok") == 5000
        _, headers = client._session.requests[0]
        assert headers == {"Authorization": "OAuth tok"}

    @pytest.mark.asyncio
    async def test_timeout_becomes_token_error(self):
        client = make_client(FakeResponse(error=asyncio.TimeoutError()))
        with pytest.raises(TokenRequestError):
            await client.validate("tok")


def test_authorization_url_scopes():
    client = TwitchTokenClient("cid", "secret", "http://localhost:3000/auth/twitch/callback")
    assert "scope=chat%3Aread+chat%3Aedit" in client.authorization_url()
    assert "whispers%3Aedit" in client.authorization_url(EXTENDED_SCOPES)
    assert CHAT_SCOPES == ["chat:read", "chat:edit"]
