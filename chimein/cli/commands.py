"""CLI commands for chimein."""

import asyncio
import signal
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from chimein import __logo__, __version__
from chimein.config.loader import get_config_path, load_config, load_persona, validate_startup
from chimein.config.schema import Config
from chimein.errors import ConfigError, NotAuthorized
from chimein.utils.logging import configure_logging

# Initialize Rich console
console = Console()

app = typer.Typer(name="chimein", help=f"{__logo__} chimein - Twitch chat companion")


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} chimein v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """chimein - Twitch chat companion."""
    pass


def _load(config_path: Optional[Path]) -> Config:
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _make_provider(config: Config):
    """Create LiteLLMProvider from config."""
    from chimein.providers.litellm_provider import LiteLLMProvider

    p = config.llm.provider
    return LiteLLMProvider(
        api_key=p.api_key or None,
        api_base=p.api_base,
        default_model=config.llm.model,
        extra_headers=p.extra_headers,
    )


def _make_credentials(config: Config):
    """Create the credential manager, or None when a legacy token is configured."""
    from chimein.auth import CredentialLifecycleManager, TokenStore, TwitchTokenClient

    twitch = config.twitch
    if not twitch.use_oauth:
        return None
    client = TwitchTokenClient(twitch.client_id, twitch.client_secret, twitch.redirect_uri)
    manager = CredentialLifecycleManager(client, TokenStore(config.token_path))
    manager.set_refresh_token(twitch.refresh_token)
    return manager


class BotRunner:
    """
    Owns the orchestrator and chat transport tasks of a running bot.

    ``start()`` is safe to call again: it is the control server's
    ``on_authorized`` hook, so after a lost login the operator re-authorizes
    and the transport is started afresh while the orchestrator keeps running.
    """

    def __init__(self, orchestrator, channel, server, credentials=None, auth_hint: str = ""):
        self.orchestrator = orchestrator
        self.channel = channel
        self.server = server
        self.credentials = credentials
        self.auth_hint = auth_hint
        self._run_task: Optional[asyncio.Task] = None
        self._channel_task: Optional[asyncio.Task] = None

    @property
    def channel_running(self) -> bool:
        return self._channel_task is not None and not self._channel_task.done()

    async def start(self) -> None:
        """Start whatever is not running. Raises NotAuthorized without a usable token."""
        if self.channel_running:
            return
        if self.credentials is not None:
            await self.credentials.get_valid_token()

        self.server.orchestrator = self.orchestrator
        if self._run_task is None or self._run_task.done():
            self._run_task = asyncio.create_task(self.orchestrator.run())
        self._channel_task = asyncio.create_task(self.channel.start())
        self._channel_task.add_done_callback(self._on_channel_done)
        logger.info("Bot started")

    def _on_channel_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, NotAuthorized):
            logger.error(f"Chat login lost: {error}. Re-authorize at {self.auth_hint}")
        elif error is not None:
            logger.error(f"Chat transport stopped: {error}")

    async def stop(self) -> None:
        await self.orchestrator.shutdown()
        await self.channel.stop()
        tasks = [t for t in (self._run_task, self._channel_task) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


# ============================================================================
# Run
# ============================================================================


@app.command()
def run(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Control server port"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """Connect to chat and start answering."""
    config = _load(config_path)
    configure_logging(config.logging, verbose=verbose)
    try:
        validate_startup(config)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print(f"Set it in {config_path or get_config_path()} or via CHIMEIN_* env vars")
        raise typer.Exit(1)

    if port is not None:
        config.gateway.port = port

    console.print(f"{__logo__} Starting chimein on port {config.gateway.port}...")
    asyncio.run(_serve(config))


async def _serve(config: Config) -> None:
    from chimein.bus.queue import MessageBus
    from chimein.channels.twitch import TwitchChannel
    from chimein.gateway.server import ControlServer
    from chimein.orchestrator.core import Orchestrator
    from chimein.providers.completion import CompletionService
    from chimein.providers.speech import SpeechSynthesizer

    bus = MessageBus()
    provider = _make_provider(config)
    completion = CompletionService(provider, config.llm.model, config.llm.timeout_s)
    speech = None
    if config.tts.enabled:
        speech = SpeechSynthesizer(provider, config.tts.output_path, config.tts.model, config.tts.voice)

    credentials = _make_credentials(config)

    async def static_token() -> str:
        return config.twitch.auth_token

    token_provider = credentials.get_valid_token if credentials else static_token
    channel = TwitchChannel(config.twitch, bus, token_provider)
    orchestrator = Orchestrator(
        config, completion, channel.send, bus=bus, persona=load_persona(config), speech=speech
    )
    server = ControlServer(config.gateway.host, config.gateway.port, credentials=credentials)
    runner = BotRunner(
        orchestrator,
        channel,
        server,
        credentials=credentials,
        auth_hint=f"http://localhost:{config.gateway.port}/auth/twitch",
    )
    server.on_authorized = runner.start
    await server.start()

    try:
        await runner.start()
    except NotAuthorized as e:
        logger.warning(f"OAuth authorization required: {e}")
        console.print("\n[yellow]OAuth Authorization Required![/yellow]")
        console.print(f"Please visit: [cyan]{runner.auth_hint}[/cyan]\n")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    try:
        await stop.wait()
    finally:
        console.print("\nShutting down...")
        await runner.stop()
        await server.stop()
        if credentials is not None:
            await credentials.client.close()


# ============================================================================
# Status
# ============================================================================


@app.command()
def status(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Show resolved configuration and mode settings."""
    path = config_path or get_config_path()
    config = _load(config_path)

    console.print(f"{__logo__} chimein Status\n")
    console.print(f"Config: {path} {'[green]✓[/green]' if path.exists() else '[red]✗[/red]'}")
    console.print(f"Model: {config.llm.model}")
    console.print(f"Channels: {', '.join(config.twitch.channels) or '[dim]not set[/dim]'}")
    auth = "OAuth" if config.twitch.use_oauth else ("legacy token" if config.twitch.auth_token else None)
    console.print(f"Auth: {f'[green]✓ {auth}[/green]' if auth else '[red]✗ not configured[/red]'}")
    if config.twitch.use_oauth:
        console.print(f"Token file: {config.token_path} {'[green]✓[/green]' if config.token_path.exists() else '[dim]not yet authorized[/dim]'}")
    console.print(f"Bot: {'[green]enabled[/green]' if config.behavior.bot_enabled else '[yellow]standby[/yellow]'}")
    console.print(f"Commit policy: {config.behavior.commit_policy.value}")
    console.print()

    table = Table(title="Modes")
    table.add_column("Mode", style="cyan")
    table.add_column("Enabled", style="green")
    table.add_column("Cooldown", style="yellow")
    table.add_column("Probability", style="yellow")
    for slug, mode in config.behavior.modes().items():
        table.add_row(
            slug,
            "✓" if mode.enabled else "✗",
            f"{mode.cooldown_s:g}s",
            f"{mode.probability:.0%}",
        )
    console.print(table)


# ============================================================================
# OAuth
# ============================================================================


@app.command("auth-url")
def auth_url(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
    extended: bool = typer.Option(False, "--extended", help="Request moderation and whisper scopes too"),
):
    """Print the Twitch authorization URL."""
    from chimein.auth.twitch_oauth import EXTENDED_SCOPES

    credentials = _make_credentials(_load(config_path))
    if credentials is None:
        console.print("[red]Error: twitch.clientId and twitch.clientSecret are required for OAuth[/red]")
        raise typer.Exit(1)
    console.print(credentials.authorization_url(EXTENDED_SCOPES if extended else None))


@app.command()
def authorize(
    code: str = typer.Argument(..., help="Authorization code from the redirect"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file path"),
):
    """Exchange an authorization code and save the tokens."""
    config = _load(config_path)
    configure_logging(config.logging)
    credentials = _make_credentials(config)
    if credentials is None:
        console.print("[red]Error: twitch.clientId and twitch.clientSecret are required for OAuth[/red]")
        raise typer.Exit(1)

    async def _exchange() -> None:
        try:
            await credentials.exchange_authorization_code(code)
        finally:
            await credentials.client.close()

    try:
        asyncio.run(_exchange())
    except NotAuthorized as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Tokens saved to {config.token_path}")


if __name__ == "__main__":
    app()
