"""CLI module for chimein."""
