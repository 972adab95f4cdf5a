import logging
from typing import List, Optional, Tuple

from cetusbot.cetus.sdk import normalize_coin_type
from cetusbot.errors import (
    InsufficientFundsError,
    PoolNotFoundError,
    SwapExecutionError,
    TradeError,
)
from cetusbot.types import CoinAsset, PoolInfo, Side, SwapIntent, TradeConfig, TradeReceipt

logger = logging.getLogger(__name__)

SUI_COIN_TYPE = normalize_coin_type("0x2::sui::SUI")


class SwapExecutor:
    """Builds, signs and submits one Cetus swap per call. Never retries."""

    def __init__(self, config: TradeConfig, sdk, client, balances, quotes, dry_run: bool = False):
        self.config = config
        self.sdk = sdk
        self.client = client
        self.balances = balances
        self.quotes = quotes
        self.dry_run = dry_run

    def coins_for(self, side: Side) -> Tuple[str, str]:
        if side == Side.BUY:
            return self.config.coin_type_a, self.config.coin_type_b
        return self.config.coin_type_b, self.config.coin_type_a

    def find_pool(self, coin_x: str, coin_y: str) -> PoolInfo:
        x, y = normalize_coin_type(coin_x), normalize_coin_type(coin_y)
        for pool in self.sdk.list_pools():
            if pool.serves(x, y):
                return pool
        raise PoolNotFoundError(f"Pool not found for token pair {coin_x} and {coin_y}")

    def _pick(self, assets: List[CoinAsset], coin_type: str, amount: int) -> List[CoinAsset]:
        picked: List[CoinAsset] = []
        total = 0
        for a in assets:
            if total >= amount:
                break
            picked.append(a)
            total += a.balance
        if total < amount:
            raise InsufficientFundsError(
                f"insufficient {coin_type}: need {amount}, have {total}",
                coin_type=coin_type,
                required=amount,
                available=total,
            )
        return picked

    def _pick_with_gas(
        self, assets: List[CoinAsset], coin_type: str, amount: int
    ) -> Tuple[List[CoinAsset], Optional[str]]:
        budget = self.sdk.gas_budget
        fits = [a for a in assets if a.balance >= budget]
        if not fits:
            raise InsufficientFundsError(
                "no SUI coin can cover the gas budget",
                coin_type=coin_type,
                required=budget,
                available=max((a.balance for a in assets), default=0),
            )
        # smallest coin that still covers gas
        gas = fits[-1]
        rest = [a for a in assets if a.coin_object_id != gas.coin_object_id]
        return self._pick(rest, coin_type, amount), gas.coin_object_id

    def split_sui(self, assets: List[CoinAsset], amount: int) -> None:
        """Pay amount SUI back to the wallet so it sits in its own coin object."""
        logger.info(f"[swap] splitting {amount} SUI off the gas coin")
        tx_bytes = self.client.pay_sui(
            [a.coin_object_id for a in assets],
            [self.balances.address],
            [amount],
            self.sdk.gas_budget,
        )
        self.client.sign_and_submit(tx_bytes)

    def select_coins(
        self, coin_type: str, amount: int
    ) -> Tuple[List[CoinAsset], Optional[str]]:
        """Coin objects covering amount, plus a reserved gas coin when paying in SUI.

        A wallet whose SUI sits in a single coin gets that coin split first,
        since unsafe_moveCall cannot spend the gas coin as swap input.
        """
        assets = sorted(self.balances.assets_of(coin_type), key=lambda a: a.balance, reverse=True)
        if normalize_coin_type(coin_type) != SUI_COIN_TYPE:
            return self._pick(assets, coin_type, amount), None

        try:
            return self._pick_with_gas(assets, coin_type, amount)
        except InsufficientFundsError:
            total = sum(a.balance for a in assets)
            # the split pays its own gas before the swap reserves another budget
            if self.dry_run or total < amount + 2 * self.sdk.gas_budget:
                raise
        self.split_sui(assets, amount)
        assets = sorted(self.balances.assets_of(coin_type), key=lambda a: a.balance, reverse=True)
        return self._pick_with_gas(assets, coin_type, amount)

    def swap(self, side: Side, amount: int) -> TradeReceipt:
        logger.info(f"[swap] Executing {side.value.upper()} for {amount} units")
        coin_in, coin_out = self.coins_for(side)

        # registry check for both legs of the pair
        self.sdk.get_token_info(self.config.coin_type_a)
        self.sdk.get_token_info(self.config.coin_type_b)

        pool_info = self.find_pool(coin_in, coin_out)
        pool = self.sdk.get_pool(pool_info.pool_id)
        # pool ordering, not buy/sell, decides the curve direction
        a2b = normalize_coin_type(coin_in) == pool.coin_type_a

        quote = self.quotes.quote(pool, a2b, amount)
        logger.info(
            f"[swap] pool={pool.pool_id} a2b={a2b} est_out={quote.estimated_amount_out} "
            f"min_out={quote.min_amount_out} impact={quote.price_impact_pct:.3f}%"
        )

        assets, gas_coin = self.select_coins(coin_in, amount)
        intent = SwapIntent(
            a2b=a2b,
            amount_in=amount,
            min_amount_out=quote.min_amount_out,
            wallet_address=self.balances.address,
            pool_id=pool.pool_id,
            coin_type_a=pool.coin_type_a,
            coin_type_b=pool.coin_type_b,
        )

        try:
            tx_bytes = self.sdk.build_swap(intent, assets, gas_coin=gas_coin)
            if self.dry_run:
                res = self.client.dry_run(tx_bytes)
            else:
                res = self.client.sign_and_submit(tx_bytes)
        except TradeError as e:
            raise SwapExecutionError(
                f"{side.value} swap failed: {e}",
                {"side": side.value, "amount": amount, "pool_id": pool.pool_id},
            ) from e

        digest = res.get("digest") or (res.get("effects") or {}).get("transactionDigest", "")
        logger.info(f"Transaction successful: {digest}{' (dry run)' if self.dry_run else ''}")
        return TradeReceipt(digest=digest, side=side, amount_in=amount)
