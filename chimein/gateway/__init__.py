"""HTTP control surface."""

from chimein.gateway.server import ControlServer

__all__ = ["ControlServer"]
