"""chimein - a 24/7 Twitch chat companion that knows when to chime in."""

__version__ = "0.1.0"
__logo__ = "💬"
