from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Side(str, Enum):
    BUY = "buy"  # coin A -> coin B
    SELL = "sell"  # coin B -> coin A


class CycleStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED_NO_SELL = "skipped_no_sell"
    FAILED = "failed"


class TradeConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    coin_type_a: str  # base token
    coin_type_b: str  # target token
    slippage: float = Field(1.0, ge=0.0, lt=100.0)  # percent
    trade_count: int = Field(3, ge=1)
    amount_to_trade: int = Field(1_000_000, gt=0)
    delay_between_trades_ms: int = Field(5000, ge=0)


class TokenInfo(BaseModel):
    coin_type: str
    decimals: int
    symbol: str | None = None


class CoinAsset(BaseModel):
    coin_type: str
    coin_object_id: str
    balance: int


class PoolInfo(BaseModel):
    pool_id: str
    coin_type_a: str
    coin_type_b: str

    def serves(self, x: str, y: str) -> bool:
        return {self.coin_type_a, self.coin_type_b} == {x, y}


class PoolSnapshot(BaseModel):
    pool_id: str
    coin_type_a: str
    coin_type_b: str
    current_tick_index: Optional[int] = None
    decimals_a: int
    decimals_b: int
    liquidity: Optional[int] = None
    fee_rate: int = 0  # parts per million
    is_pause: bool = False
    fetched_at: float


class Quote(BaseModel):
    a2b: bool
    amount_in: int
    estimated_amount_out: int
    min_amount_out: int
    sqrt_price_x64: int
    price: float  # human units, coin B per coin A
    price_impact_pct: float = 0.0


class SwapIntent(BaseModel):
    a2b: bool
    amount_in: int
    min_amount_out: int
    wallet_address: str
    pool_id: str
    coin_type_a: str
    coin_type_b: str


class TradeReceipt(BaseModel):
    digest: str
    side: Side
    amount_in: int


class CycleResult(BaseModel):
    index: int
    status: CycleStatus
    buy_digest: str | None = None
    sell_digest: str | None = None
    sold: int = 0
    error: str | None = None


class RunReport(BaseModel):
    results: List[CycleResult] = Field(default_factory=list)
    final_balance_a: Optional[int] = None
    final_balance_b: Optional[int] = None

    def _count(self, status: CycleStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def succeeded(self) -> int:
        return self._count(CycleStatus.SUCCEEDED)

    @property
    def skipped(self) -> int:
        return self._count(CycleStatus.SKIPPED_NO_SELL)

    @property
    def failed(self) -> int:
        return self._count(CycleStatus.FAILED)
