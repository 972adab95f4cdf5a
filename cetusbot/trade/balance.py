import logging
from typing import List

from cetusbot.cetus.sdk import normalize_coin_type
from cetusbot.types import CoinAsset

logger = logging.getLogger(__name__)


class BalanceTracker:
    """Fresh wallet balance reads. Nothing is cached between calls."""

    def __init__(self, client):
        self.client = client
        self.address = client.get_address()

    def assets_of(self, coin_type: str) -> List[CoinAsset]:
        want = normalize_coin_type(coin_type)
        return [
            a
            for a in self.client.get_owned_assets(self.address, coin_type)
            if normalize_coin_type(a.coin_type) == want
        ]

    def balance_of(self, coin_type: str) -> int:
        # a wallet can hold one token as many separate coin objects
        total = sum(a.balance for a in self.assets_of(coin_type))
        logger.debug(f"[balance] {coin_type} = {total}")
        return total
