"""Hype command echo."""

from typing import Any

from chimein.bus.events import ChatMessage
from chimein.config.schema import HypeModeConfig
from chimein.modes.base import ModeContext, ModeHandler
from chimein.orchestrator.state import HypeRotationState


class HypeHandler(ModeHandler):
    """Answers any hype command with the next one in the rotation.

    The rotation never repeats the same command twice in a row (as long as
    the list holds more than one distinct command) and one cooldown covers
    every trigger.
    """

    slug = "hype-mode"
    label = "Hype Mode"
    config: HypeModeConfig

    def __init__(self, ctx: ModeContext, config: HypeModeConfig):
        super().__init__(ctx, config)
        self.rotation = HypeRotationState(commands=config.commands)

    def can_handle(self, message: ChatMessage) -> bool:
        if not self.enabled or not self.rotation.commands:
            return False
        lowered = message.text.lower().strip()
        return any(cmd.lower() in lowered for cmd in self.rotation.commands)

    async def handle(self, message: ChatMessage) -> bool:
        ticket = self.ctx.gate.reserve(self.cooldown, self.config.cooldown_s, self.config.probability)
        if ticket is None:
            return False
        with ticket:
            command = self.rotation.next()
            await self.say(self.channel_for(message), command)
        return True

    def status(self) -> dict[str, Any]:
        data = super().status()
        data["commands"] = list(self.rotation.commands)
        return data
