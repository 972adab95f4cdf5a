# cetusbot/config/__init__.py
"""Configuration package for cetusbot."""

from .settings import settings, Settings, trade_config

__all__ = ["settings", "Settings", "trade_config"]
