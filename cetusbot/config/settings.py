# cetusbot/config/settings.py

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from cetusbot.errors import ConfigError
from cetusbot.types import TradeConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    # --- Node + wallet ---
    rpc_url: str = Field(default="https://fullnode.mainnet.sui.io:443", alias="SUI_RPC_URL")
    private_key: str = Field(default="", alias="PRIVATE_KEY")
    rpc_timeout_sec: float = Field(default=30.0)

    # --- Trading ---
    coin_type_a: str = Field(default="0x2::sui::SUI", alias="COIN_TYPE_A")
    coin_type_b: str = Field(default="", alias="COIN_TYPE_B")
    slippage: float = Field(default=1.0, alias="SLIPPAGE")
    trade_count: int = Field(default=3, alias="TRADE_COUNT")
    amount_to_trade: str = Field(default="1000000", alias="AMOUNT_TO_TRADE")
    delay_between_trades_ms: int = Field(default=5000, alias="DELAY_BETWEEN_TRADES_MS")

    # --- Cetus (mainnet) ---
    clmm_package: str = Field(
        default="0x1eabed72c53feb3805120a081dc15963c204dc8d091542592abaf7a35689b2fb"
    )
    integrate_package: str = Field(
        default="0x996c4d9480708fb8b92aa7acf819fb0497b5ec8e65ba06601cae2fb6db3312c3"
    )
    global_config_id: str = Field(
        default="0xdaa46292632c3c4d8f31f23ea0f9b36a28ff3677e9684980e4438403a67a3d8f"
    )
    gas_budget: int = Field(default=50_000_000)
    pool_cache_sec: float = Field(default=10.0)
    pool_max_age_sec: float = Field(default=30.0)


def trade_config(s: "Settings", trade_count: int | None = None) -> TradeConfig:
    """Validate the trading knobs once and freeze them for the run."""
    if not s.coin_type_b:
        raise ConfigError("COIN_TYPE_B is not configured")
    try:
        amount = int(s.amount_to_trade)
    except ValueError:
        raise ConfigError(
            f"AMOUNT_TO_TRADE is not an integer: {s.amount_to_trade!r}"
        ) from None
    try:
        return TradeConfig(
            coin_type_a=s.coin_type_a,
            coin_type_b=s.coin_type_b,
            slippage=s.slippage,
            trade_count=trade_count if trade_count is not None else s.trade_count,
            amount_to_trade=amount,
            delay_between_trades_ms=s.delay_between_trades_ms,
        )
    except ValidationError as e:
        raise ConfigError(f"invalid trade settings: {e}") from e


# Global settings instance
settings = Settings()
