"""Tests for the command line interface."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from typer.testing import CliRunner

from chimein import __version__
from chimein.cli.commands import BotRunner, app
from chimein.errors import NotAuthorized

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_status_lists_modes(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "twitch": {"username": "gigarob0t", "channels": ["gigasnail"], "authToken": "oauth:x"},
        "behavior": {"hype": {"enabled": True}},
    }))

    result = runner.invoke(app, ["status", "--config", str(path)])

    assert result.exit_code == 0
    assert "hype-mode" in result.stdout
    assert "topic-tracking" in result.stdout
    assert "legacy token" in result.stdout


def test_run_refuses_incomplete_config(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"twitch": {"username": "gigarob0t"}}))

    result = runner.invoke(app, ["run", "--config", str(path)])

    assert result.exit_code == 1
    assert "twitch.channels" in result.stdout


def test_auth_url_requires_oauth(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{}")

    result = runner.invoke(app, ["auth-url", "--config", str(path)])
    assert result.exit_code == 1


class FakeOrchestrator:
    def __init__(self):
        self.runs = 0
        self.stopped = asyncio.Event()
        self.shutdown = AsyncMock(side_effect=lambda: self.stopped.set())

    async def run(self):
        self.runs += 1
        await self.stopped.wait()


class FlakyChannel:
    """Loses its login on the first start, then stays connected until stopped."""

    def __init__(self):
        self.starts = 0
        self.stopped = asyncio.Event()

    async def start(self):
        self.starts += 1
        if self.starts == 1:
            raise NotAuthorized("Login authentication failed")
        await self.stopped.wait()

    async def stop(self):
        self.stopped.set()


async def settle():
    for _ in range(3):
        await asyncio.sleep(0)


class TestBotRunner:
    """The bot can be started again after the chat login is lost."""

    @pytest.mark.asyncio
    async def test_restarts_transport_after_reauthorization(self):
        orchestrator, channel = FakeOrchestrator(), FlakyChannel()
        server = SimpleNamespace(orchestrator=None)
        credentials = MagicMock()
        credentials.get_valid_token = AsyncMock(return_value="oauth:abc")
        runner = BotRunner(orchestrator, channel, server, credentials=credentials)

        await runner.start()
        await settle()
        assert server.orchestrator is orchestrator
        assert not runner.channel_running

        await runner.start()
        await settle()
        assert channel.starts == 2
        assert orchestrator.runs == 1
        assert runner.channel_running

        await runner.start()
        assert channel.starts == 2

        await runner.stop()
        orchestrator.shutdown.assert_awaited_once()
        assert not runner.channel_running

    @pytest.mark.asyncio
    async def test_no_token_starts_nothing(self):
        orchestrator, channel = FakeOrchestrator(), FlakyChannel()
        server = SimpleNamespace(orchestrator=None)
        credentials = MagicMock()
        credentials.get_valid_token = AsyncMock(side_effect=NotAuthorized("no saved tokens"))
        runner = BotRunner(orchestrator, channel, server, credentials=credentials)

        with pytest.raises(NotAuthorized):
            await runner.start()
        assert server.orchestrator is None
        assert channel.starts == 0
