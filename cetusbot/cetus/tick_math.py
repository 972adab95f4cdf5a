from decimal import Decimal, localcontext

from cetusbot.errors import PoolStateError

MIN_TICK = -443636
MAX_TICK = 443636
MIN_SQRT_PRICE_X64 = 4295048016
MAX_SQRT_PRICE_X64 = 79226673515401279992447579055

Q64 = 2**64
PRECISION = 78


def tick_to_sqrt_price_x64(tick: int) -> int:
    """sqrt(1.0001 ** tick) as an unsigned Q64.64 fixed-point integer."""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise PoolStateError(f"tick index {tick} out of range")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return int(Decimal("1.0001").sqrt() ** tick * Q64)


def sqrt_price_x64_to_price(sqrt_price_x64: int, decimals_a: int, decimals_b: int) -> Decimal:
    """Human price of coin A in units of coin B."""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        raw = (Decimal(sqrt_price_x64) / Q64) ** 2
        return raw * Decimal(10) ** (decimals_a - decimals_b)


def i32_from_bits(bits: int) -> int:
    """Move I32 values are stored as their two's-complement u32 bits."""
    bits = int(bits) & 0xFFFFFFFF
    return bits - 2**32 if bits & 0x80000000 else bits
