"""
Exception hierarchy for cetusbot.

ConfigError aborts the process before any trading starts. Everything under
TradeError is recoverable at cycle granularity: the orchestrator logs it,
marks the cycle failed and moves on.
"""

from typing import Any, Dict, Optional


class BotError(Exception):
    """Base exception for all cetusbot errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigError(BotError):
    """Missing required setting or malformed signing key."""


class TradeError(BotError):
    """Base for failures that only sink the current cycle."""


class RpcError(TradeError):
    """Transport, HTTP or JSON-RPC level failure talking to the Sui node."""


class TransactionFailedError(RpcError):
    """The node accepted the transaction but its effects report failure."""

    def __init__(
        self,
        message: str,
        digest: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.digest = digest


class PoolNotFoundError(TradeError):
    pass


class PoolStateError(TradeError):
    """Pool snapshot is stale, paused or missing price state."""


class TokenInfoNotFoundError(TradeError):
    pass


class InsufficientFundsError(TradeError):
    def __init__(
        self,
        message: str,
        coin_type: Optional[str] = None,
        required: int = 0,
        available: int = 0,
    ):
        super().__init__(
            message,
            {"coin_type": coin_type, "required": required, "available": available},
        )
        self.coin_type = coin_type
        self.required = required
        self.available = available


class SwapExecutionError(TradeError):
    """Building or submitting a swap failed; the cause is chained."""
