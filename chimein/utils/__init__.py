"""Utility helpers."""

from chimein.utils.logging import configure_logging

__all__ = ["configure_logging"]
