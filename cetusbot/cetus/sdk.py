import logging
import re
import time
from typing import Any, Callable, Dict, List, Optional

from cetusbot.cetus.tick_math import (
    MAX_SQRT_PRICE_X64,
    MIN_SQRT_PRICE_X64,
    i32_from_bits,
    tick_to_sqrt_price_x64,
)
from cetusbot.errors import PoolStateError, RpcError, TokenInfoNotFoundError
from cetusbot.trade.quote import estimate_amount_out
from cetusbot.types import CoinAsset, PoolInfo, PoolSnapshot, SwapIntent, TokenInfo

logger = logging.getLogger(__name__)

CLOCK_ID = "0x6"
_ADDR = re.compile(r"(?:^|(?<=[<,\s]))(?:0x)?([0-9a-fA-F]{1,64})(?=::)")


def normalize_coin_type(coin_type: str) -> str:
    """Canonical form with every package address padded to 32 bytes."""
    return _ADDR.sub(lambda m: "0x" + m.group(1).lower().zfill(64), coin_type.strip())


def _type_args(type_str: str) -> List[str]:
    if "<" not in type_str:
        return []
    inner = type_str[type_str.index("<") + 1 : type_str.rindex(">")]
    args, depth, start = [], 0, 0
    for i, ch in enumerate(inner):
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        elif ch == "," and depth == 0:
            args.append(inner[start:i].strip())
            start = i + 1
    args.append(inner[start:].strip())
    return args


class CetusClient:
    """Cetus CLMM access built on the Sui node's JSON-RPC."""

    def __init__(
        self,
        client,
        clmm_package: str,
        integrate_package: str,
        global_config_id: str,
        gas_budget: int = 50_000_000,
        pool_cache_sec: float = 10.0,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.clmm_package = clmm_package
        self.integrate_package = integrate_package
        self.global_config_id = global_config_id
        self.gas_budget = gas_budget
        self.pool_cache_sec = pool_cache_sec
        self.clock = clock
        self._pools: Optional[List[PoolInfo]] = None
        self._pools_at = 0.0
        self._tokens: Dict[str, TokenInfo] = {}

    # --- pools ---
    def refresh_pools(self) -> List[PoolInfo]:
        event_type = f"{self.clmm_package}::factory::CreatePoolEvent"
        pools: List[PoolInfo] = []
        cursor = None
        while True:
            page = self.client.query_events(event_type, cursor)
            if not isinstance(page, dict):
                raise RpcError("pool events: malformed response", {"response": page})
            for ev in page.get("data") or []:
                try:
                    body = ev.get("parsedJson") or {}
                    pools.append(
                        PoolInfo(
                            pool_id=body["pool_id"],
                            coin_type_a=normalize_coin_type(body["coin_type_a"]),
                            coin_type_b=normalize_coin_type(body["coin_type_b"]),
                        )
                    )
                except (AttributeError, KeyError, TypeError, ValueError):
                    logger.debug(f"[cetus] skipping malformed pool event {ev!r:.120}")
            if not page.get("hasNextPage"):
                break
            cursor = page.get("nextCursor")
        self._pools = pools
        self._pools_at = self.clock()
        logger.debug(f"[cetus] loaded {len(pools)} pools")
        return pools

    def list_pools(self) -> List[PoolInfo]:
        if self._pools is None or self.clock() - self._pools_at > self.pool_cache_sec:
            return self.refresh_pools()
        return self._pools

    def get_pool(self, pool_id: str) -> PoolSnapshot:
        obj = self.client.get_object(pool_id)
        content = obj.get("content") or {}
        fields = content.get("fields")
        if not fields:
            raise PoolStateError(f"pool {pool_id} has no readable content")
        args = _type_args(content.get("type") or obj.get("type") or "")
        if len(args) != 2:
            raise PoolStateError(f"pool {pool_id} has unexpected type {content.get('type')}")
        coin_a, coin_b = (normalize_coin_type(a) for a in args)

        try:
            tick = None
            raw_tick = fields.get("current_tick_index")
            if isinstance(raw_tick, dict) and "bits" in (raw_tick.get("fields") or {}):
                tick = i32_from_bits(raw_tick["fields"]["bits"])
            liquidity = fields.get("liquidity")
            liquidity = int(liquidity) if liquidity is not None else None
            fee_rate = int(fields.get("fee_rate", 0))
        except (TypeError, ValueError) as e:
            raise PoolStateError(f"pool {pool_id} has malformed fields: {e}") from e

        return PoolSnapshot(
            pool_id=pool_id,
            coin_type_a=coin_a,
            coin_type_b=coin_b,
            current_tick_index=tick,
            decimals_a=self.get_token_info(coin_a).decimals,
            decimals_b=self.get_token_info(coin_b).decimals,
            liquidity=liquidity,
            fee_rate=fee_rate,
            is_pause=bool(fields.get("is_pause", False)),
            fetched_at=self.clock(),
        )

    def price_impact(self, pool: PoolSnapshot, a2b: bool, amount_in: int) -> int:
        """Expected output of a swap against the pool's current state."""
        if pool.current_tick_index is None:
            raise PoolStateError(f"pool {pool.pool_id} has no current tick")
        sqrt_price = tick_to_sqrt_price_x64(pool.current_tick_index)
        return estimate_amount_out(pool, a2b, amount_in, sqrt_price)[0]

    # --- tokens ---
    def get_token_info(self, coin_type: str) -> TokenInfo:
        key = normalize_coin_type(coin_type)
        if key in self._tokens:
            return self._tokens[key]
        meta = self.client.get_coin_metadata(coin_type)
        if not isinstance(meta, dict) or meta.get("decimals") is None:
            raise TokenInfoNotFoundError(f"Token information not found for {coin_type}")
        try:
            info = TokenInfo(
                coin_type=key, decimals=int(meta["decimals"]), symbol=meta.get("symbol")
            )
        except (TypeError, ValueError) as e:
            raise TokenInfoNotFoundError(
                f"Token information for {coin_type} is malformed: {meta!r}"
            ) from e
        self._tokens[key] = info
        return info

    # --- swaps ---
    def build_swap(
        self, intent: SwapIntent, assets: List[CoinAsset], gas_coin: Optional[str] = None
    ) -> str:
        """Base64 bytes of a pool_script swap that fails on chain below min_amount_out."""
        if not assets:
            raise RpcError("no input coins supplied for swap")
        arguments: List[Any] = [
            self.global_config_id,
            intent.pool_id,
            [a.coin_object_id for a in assets],
            True,  # by_amount_in
            str(intent.amount_in),
            str(intent.min_amount_out),
            str(MIN_SQRT_PRICE_X64 if intent.a2b else MAX_SQRT_PRICE_X64),
            CLOCK_ID,
        ]
        return self.client.unsafe_move_call(
            self.integrate_package,
            "pool_script",
            "swap_a2b" if intent.a2b else "swap_b2a",
            [intent.coin_type_a, intent.coin_type_b],
            arguments,
            self.gas_budget,
            gas=gas_coin,
        )
