"""HTTP control surface for the running bot.

Provides mode status/toggle endpoints, the master switch, the Twitch OAuth
redirect and callback, and a direct question endpoint.
"""

import json
from typing import Any, Awaitable, Callable, Optional

from aiohttp import web
from loguru import logger

from chimein.auth.credentials import CredentialLifecycleManager
from chimein.auth.twitch_oauth import EXTENDED_SCOPES
from chimein.errors import ChimeinError, CompletionError, NotAuthorized
from chimein.orchestrator.core import Orchestrator

OnAuthorized = Callable[[], Awaitable[None]]


class ControlServer:
    """aiohttp application exposing the orchestrator's controls.

    The orchestrator may be attached after the server starts (it is only
    built once credentials are available); until then mode endpoints answer
    503.
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 3000,
        orchestrator: Orchestrator | None = None,
        credentials: CredentialLifecycleManager | None = None,
        on_authorized: OnAuthorized | None = None,
    ):
        self.host = host
        self.port = port
        self.orchestrator = orchestrator
        self.credentials = credentials
        self.on_authorized = on_authorized
        self._runner: Optional[web.AppRunner] = None

    def build_app(self) -> web.Application:
        app = web.Application()

        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/api/bot/status", self._handle_bot_status)
        app.router.add_post("/api/bot/toggle", self._handle_bot_toggle)
        app.router.add_get("/api/oauth/auth-url", self._handle_auth_url)
        app.router.add_get("/api/{mode}/status", self._handle_mode_status)
        app.router.add_post("/api/{mode}/toggle", self._handle_mode_toggle)
        app.router.add_get("/auth/twitch", self._handle_auth_redirect)
        app.router.add_get("/auth/twitch/callback", self._handle_auth_callback)
        app.router.add_get("/gpt/{text}", self._handle_gpt)

        return app

    async def start(self) -> None:
        """Start the HTTP server."""
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info(f"Control server started at http://{self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        logger.info("Control server stopped")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _error(status: int, message: str) -> web.Response:
        return web.json_response({"error": message}, status=status)

    def _require_orchestrator(self) -> Orchestrator:
        if self.orchestrator is None:
            raise web.HTTPServiceUnavailable(
                text=json.dumps({"error": "Bot not initialized"}),
                content_type="application/json",
            )
        return self.orchestrator

    @staticmethod
    async def _read_enabled(request: web.Request) -> bool:
        try:
            body: Any = await request.json()
        except json.JSONDecodeError:
            raise web.HTTPBadRequest(
                text=json.dumps({"error": "Request body must be JSON"}),
                content_type="application/json",
            )
        enabled = body.get("enabled") if isinstance(body, dict) else None
        if not isinstance(enabled, bool):
            raise web.HTTPBadRequest(
                text=json.dumps({"error": "enabled must be a boolean"}),
                content_type="application/json",
            )
        return enabled

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _handle_health(self, request: web.Request) -> web.Response:
        data = {"status": "ok", "bot_ready": self.orchestrator is not None}
        if self.credentials is not None:
            data["credentials"] = self.credentials.status.value
        return web.json_response(data)

    async def _handle_bot_status(self, request: web.Request) -> web.Response:
        orchestrator = self._require_orchestrator()
        return web.json_response({"enabled": orchestrator.bot_enabled})

    async def _handle_bot_toggle(self, request: web.Request) -> web.Response:
        orchestrator = self._require_orchestrator()
        enabled = await self._read_enabled(request)
        orchestrator.set_bot_enabled(enabled)
        return web.json_response({"success": True, "status": {"enabled": orchestrator.bot_enabled}})

    async def _handle_mode_status(self, request: web.Request) -> web.Response:
        orchestrator = self._require_orchestrator()
        mode = request.match_info["mode"]
        try:
            return web.json_response(orchestrator.mode_status(mode))
        except KeyError:
            return self._error(404, f"Unknown mode: {mode}")

    async def _handle_mode_toggle(self, request: web.Request) -> web.Response:
        orchestrator = self._require_orchestrator()
        mode = request.match_info["mode"]
        if mode not in orchestrator.modes:
            return self._error(404, f"Unknown mode: {mode}")
        enabled = await self._read_enabled(request)
        orchestrator.set_mode_enabled(mode, enabled)
        return web.json_response({"success": True, "status": orchestrator.mode_status(mode)})

    async def _handle_auth_url(self, request: web.Request) -> web.Response:
        if self.credentials is None:
            return self._error(404, "OAuth is not configured")
        return web.json_response({"auth_url": self.credentials.authorization_url(EXTENDED_SCOPES)})

    async def _handle_auth_redirect(self, request: web.Request) -> web.Response:
        if self.credentials is None:
            return self._error(404, "OAuth is not configured")
        raise web.HTTPFound(self.credentials.authorization_url())

    async def _handle_auth_callback(self, request: web.Request) -> web.Response:
        if self.credentials is None:
            return self._error(404, "OAuth is not configured")
        code = request.query.get("code")
        if not code:
            error = request.query.get("error_description") or "No authorization code received"
            return web.Response(status=400, text=f"Authorization failed: {error}")

        try:
            await self.credentials.exchange_authorization_code(code)
        except ChimeinError as e:
            logger.error(f"OAuth callback error: {e}")
            return web.Response(status=500, text="Failed to complete authorization.")

        logger.info("OAuth authorization successful")
        if self.on_authorized is not None:
            try:
                await self.on_authorized()
            except NotAuthorized as e:
                logger.error(f"Bot could not start after authorization: {e}")
                return web.Response(status=500, text="Authorized, but the bot failed to start.")

        return web.Response(
            text="Authorization successful! The bot is starting. You can close this window."
        )

    async def _handle_gpt(self, request: web.Request) -> web.Response:
        orchestrator = self._require_orchestrator()
        text = request.match_info["text"]
        try:
            answer = await orchestrator.ask(text)
        except CompletionError as e:
            logger.error(f"Error generating response: {e}")
            return web.Response(status=500, text="An error occurred while generating the response.")
        return web.Response(text=answer)
