import time
from decimal import ROUND_FLOOR, Decimal, localcontext
from typing import Callable, Optional, Tuple

from cetusbot.cetus.tick_math import (
    PRECISION,
    Q64,
    sqrt_price_x64_to_price,
    tick_to_sqrt_price_x64,
)
from cetusbot.errors import PoolStateError
from cetusbot.types import PoolSnapshot, Quote

FEE_RATE_DENOMINATOR = 1_000_000


def _floor_int(d: Decimal) -> int:
    return max(0, int(d.to_integral_value(rounding=ROUND_FLOOR)))


def min_amount_out(estimated: int, slippage: float) -> int:
    """floor(estimated * (1 - slippage/100)) in exact decimal arithmetic."""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        bound = Decimal(estimated) * (Decimal(100) - Decimal(str(slippage))) / 100
        return _floor_int(bound)


def estimate_amount_out(
    pool: PoolSnapshot, a2b: bool, amount_in: int, sqrt_price_x64: int
) -> Tuple[int, int]:
    """Output of a swap that stays inside the current tick range.

    Returns (estimated_out, spot_out) where spot_out is what the same
    after-fee input would fetch at the unmoved price. Without a liquidity
    figure the curve degenerates to the spot price.
    """
    with localcontext() as ctx:
        ctx.prec = PRECISION
        x = Decimal(amount_in) * (FEE_RATE_DENOMINATOR - pool.fee_rate) / FEE_RATE_DENOMINATOR
        s = Decimal(sqrt_price_x64) / Q64
        spot = x * s * s if a2b else x / (s * s)

        if pool.liquidity is None:
            out = spot
        else:
            if pool.liquidity <= 0:
                raise PoolStateError(f"pool {pool.pool_id} has no active liquidity")
            L = Decimal(pool.liquidity)
            if a2b:
                next_s = L * s / (L + x * s)
                out = L * (s - next_s)
            else:
                next_s = s + x / L
                out = L * (1 / s - 1 / next_s)

        return _floor_int(out), _floor_int(spot)


class QuoteEngine:
    """Prices a swap against a pool snapshot and bounds it by slippage."""

    def __init__(
        self,
        slippage: float,
        max_age_sec: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.slippage = slippage
        self.max_age_sec = max_age_sec
        self.clock = clock

    def check(self, pool: PoolSnapshot) -> None:
        if pool.current_tick_index is None:
            raise PoolStateError(f"pool {pool.pool_id} snapshot has no tick index")
        if pool.is_pause:
            raise PoolStateError(f"pool {pool.pool_id} is paused")
        if self.max_age_sec is not None:
            age = self.clock() - pool.fetched_at
            if age > self.max_age_sec:
                raise PoolStateError(
                    f"pool {pool.pool_id} snapshot is stale ({age:.1f}s old)",
                    {"age_sec": age},
                )

    def quote(self, pool: PoolSnapshot, a2b: bool, amount_in: int) -> Quote:
        if amount_in <= 0:
            raise ValueError("amount_in must be positive")
        self.check(pool)

        sqrt_price = tick_to_sqrt_price_x64(pool.current_tick_index)
        estimated, spot = estimate_amount_out(pool, a2b, amount_in, sqrt_price)
        impact = 0.0 if spot == 0 else (spot - estimated) / spot * 100

        return Quote(
            a2b=a2b,
            amount_in=amount_in,
            estimated_amount_out=estimated,
            min_amount_out=min_amount_out(estimated, self.slippage),
            sqrt_price_x64=sqrt_price,
            price=float(sqrt_price_x64_to_price(sqrt_price, pool.decimals_a, pool.decimals_b)),
            price_impact_pct=max(0.0, impact),
        )
