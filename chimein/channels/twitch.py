"""Twitch chat over IRC-on-websocket."""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

import aiohttp
from loguru import logger

from chimein.bus.queue import MessageBus
from chimein.channels.base import BaseChannel
from chimein.config.schema import TwitchConfig
from chimein.errors import ChannelError, ChimeinError, NotAuthorized

TokenProvider = Callable[[], Awaitable[str]]

HIGHLIGHTED_MSG_ID = "highlighted-message"

_TAG_ESCAPES = {":": ";", "s": " ", "\\": "\\", "r": "\r", "n": "\n"}


@dataclass
class IrcMessage:
    """One parsed IRC line."""
    command: str
    params: list[str] = field(default_factory=list)
    prefix: str = ""
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def nick(self) -> str:
        return self.prefix.split("!", 1)[0] if self.prefix else ""

    @property
    def trailing(self) -> str:
        return self.params[-1] if self.params else ""


def _unescape_tag(value: str) -> str:
    out = []
    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\" and i + 1 < len(value):
            out.append(_TAG_ESCAPES.get(value[i + 1], value[i + 1]))
            i += 2
            continue
        if ch != "\\":
            out.append(ch)
        i += 1
    return "".join(out)


def parse_irc_line(line: str) -> IrcMessage:
    """Parse ``[@tags] [:prefix] COMMAND [params] [:trailing]``."""
    line = line.rstrip("\r\n")
    tags: dict[str, str] = {}
    prefix = ""

    if line.startswith("@"):
        raw_tags, _, line = line[1:].partition(" ")
        for item in raw_tags.split(";"):
            if not item:
                continue
            key, _, value = item.partition("=")
            tags[key] = _unescape_tag(value)

    if line.startswith(":"):
        prefix, _, line = line[1:].partition(" ")

    trailing: Optional[str] = None
    if " :" in line:
        line, _, trailing = line.partition(" :")
    elif line.startswith(":"):
        trailing = line[1:]
        line = ""

    parts = line.split()
    command = parts[0].upper() if parts else ""
    params = parts[1:]
    if trailing is not None:
        params.append(trailing)

    return IrcMessage(command=command, params=params, prefix=prefix, tags=tags)


class TwitchChannel(BaseChannel):
    """
    Twitch chat client.

    Logs in with a token from ``token_provider`` (a static legacy token or the
    credential manager), joins the configured channels, and reconnects with
    exponential backoff. A fresh token is requested for every connection
    attempt, which is how refreshed credentials reach the transport.
    """

    name = "twitch"

    def __init__(
        self,
        config: TwitchConfig,
        bus: MessageBus,
        token_provider: TokenProvider,
        session: aiohttp.ClientSession | None = None,
    ):
        super().__init__(config, bus)
        self.config: TwitchConfig = config
        self.token_provider = token_provider
        self.username = config.username.lower()
        self.channels = [c.lower().lstrip("#") for c in config.channels if c.strip()]
        self._session = session
        self._owns_session = session is None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._reconnect_requested = False

    async def start(self) -> None:
        """Connect and keep the connection alive until stop() is called.

        Token fetch failures other than NotAuthorized back off and retry like
        connection errors.

        Raises:
            NotAuthorized: no usable credential; re-authorization is needed.
        """
        self._running = True
        delay = self.config.reconnect_delay_s
        session = self._session or aiohttp.ClientSession()
        self._session = session
        try:
            while self._running:
                logged_in = False
                try:
                    token = await self.token_provider()
                    logged_in = await self._run_connection(token)
                except NotAuthorized:
                    raise
                except ChimeinError as e:
                    logger.warning(f"[{self.name}] Connection attempt failed: {e}")
                except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                    logger.warning(f"[{self.name}] Connection error: {e!r}")
                finally:
                    await self._close_ws()
                    if self._connected:
                        await self._handle_connection("disconnected", reason="connection closed")

                if not self._running:
                    break
                if logged_in:
                    delay = self.config.reconnect_delay_s
                logger.info(f"[{self.name}] Reconnecting in {delay:.0f}s")
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.config.max_reconnect_delay_s)
        finally:
            self._running = False
            if self._owns_session:
                await session.close()
                self._session = None

    async def stop(self) -> None:
        self._running = False
        await self._close_ws()

    async def _close_ws(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None

    async def _run_connection(self, token: str) -> bool:
        """One websocket session. Returns True if login succeeded."""
        assert self._session is not None
        logged_in = False
        self._reconnect_requested = False
        self._ws = await self._session.ws_connect(self.config.irc_url)

        await self._write("CAP REQ :twitch.tv/tags twitch.tv/commands")
        await self._write(f"PASS {token if token.startswith('oauth:') else 'oauth:' + token}")
        await self._write(f"NICK {self.username}")

        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                for line in msg.data.split("\r\n"):
                    if not line:
                        continue
                    if await self._on_line(parse_irc_line(line)):
                        logged_in = True
                    if self._reconnect_requested:
                        return logged_in
            elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                break
        return logged_in

    async def _on_line(self, msg: IrcMessage) -> bool:
        """Handle one line. Returns True on successful login."""
        if msg.command == "PING":
            await self._write(f"PONG :{msg.trailing}")
        elif msg.command == "001":
            for channel in self.channels:
                await self._write(f"JOIN #{channel}")
            await self._handle_connection("connected", address=self.config.irc_url)
            return True
        elif msg.command == "PRIVMSG" and len(msg.params) >= 2:
            await self._on_privmsg(msg)
        elif msg.command == "RECONNECT":
            logger.info(f"[{self.name}] Server requested reconnect")
            self._reconnect_requested = True
        elif msg.command == "NOTICE":
            notice = msg.trailing
            logger.warning(f"[{self.name}] NOTICE: {notice}")
            if "authentication failed" in notice.lower() or "improperly formatted auth" in notice.lower():
                raise NotAuthorized(f"Twitch rejected the chat login: {notice}")
        return False

    async def _on_privmsg(self, msg: IrcMessage) -> None:
        channel = msg.params[0].lstrip("#")
        text = msg.trailing
        author = msg.tags.get("login") or msg.nick
        await self._handle_message(
            author=author,
            channel=channel,
            text=text,
            is_self=author.lower() == self.username,
            is_highlighted=msg.tags.get("msg-id") == HIGHLIGHTED_MSG_ID,
            metadata={
                "display_name": msg.tags.get("display-name", author),
                "tags": msg.tags,
            },
        )

    async def _write(self, line: str) -> None:
        if self._ws is None or self._ws.closed:
            raise ChannelError("Not connected to Twitch chat")
        await self._ws.send_str(line)

    async def send(self, channel: str, text: str) -> None:
        if not self._connected:
            raise ChannelError("Not connected to Twitch chat")
        clean = " ".join(text.splitlines())
        try:
            await self._write(f"PRIVMSG #{channel.lstrip('#')} :{clean}")
        except ConnectionResetError as e:
            raise ChannelError(f"Send failed: {e}") from e
