import time

import pytest

from cetusbot.cetus.sdk import normalize_coin_type
from cetusbot.errors import (
    InsufficientFundsError,
    PoolNotFoundError,
    PoolStateError,
    RpcError,
    SwapExecutionError,
    TokenInfoNotFoundError,
    TransactionFailedError,
)
from cetusbot.trade.quote import QuoteEngine
from cetusbot.trade.swap import SwapExecutor
from cetusbot.types import CoinAsset, PoolInfo, PoolSnapshot, Side, TokenInfo, TradeConfig

SUI = normalize_coin_type("0x2::sui::SUI")
TOK = normalize_coin_type("0xabc::tok::TOK")


class FakeSdk:
    def __init__(self, pools, snapshot, gas_budget=100):
        self.pools = pools
        self.snapshot = snapshot
        self.gas_budget = gas_budget
        self.built = []
        self.build_error = None
        self.unknown_tokens = set()

    def list_pools(self):
        return self.pools

    def get_token_info(self, coin_type):
        if normalize_coin_type(coin_type) in self.unknown_tokens:
            raise TokenInfoNotFoundError(f"Token information not found for {coin_type}")
        return TokenInfo(coin_type=normalize_coin_type(coin_type), decimals=9)

    def get_pool(self, pool_id):
        return self.snapshot.model_copy(update={"pool_id": pool_id, "fetched_at": time.time()})

    def build_swap(self, intent, assets, gas_coin=None):
        if self.build_error:
            raise self.build_error
        self.built.append((intent, assets, gas_coin))
        return "dHg="


class FakeClient:
    def __init__(self, error=None):
        self.error = error
        self.submitted = []
        self.dry = []
        self.payments = []
        self.on_pay = None

    def pay_sui(self, input_coins, recipients, amounts, gas_budget):
        self.payments.append((input_coins, recipients, amounts, gas_budget))
        if self.on_pay:
            self.on_pay(recipients, amounts)
        return "cGF5"

    def sign_and_submit(self, tx):
        if self.error:
            raise self.error
        self.submitted.append(tx)
        return {"digest": f"D{len(self.submitted)}", "effects": {"status": {"status": "success"}}}

    def dry_run(self, tx):
        self.dry.append(tx)
        return {"effects": {"status": {"status": "success"}, "transactionDigest": "DRY"}}


class FakeBalances:
    address = "0xme"

    def __init__(self, assets):
        self.assets = assets

    def assets_of(self, coin_type):
        want = normalize_coin_type(coin_type)
        return [a for a in self.assets if normalize_coin_type(a.coin_type) == want]


def coin(coin_type, oid, balance):
    return CoinAsset(coin_type=coin_type, coin_object_id=oid, balance=balance)


def snapshot(coin_a, coin_b, **kw):
    return PoolSnapshot(pool_id="0xp", coin_type_a=coin_a, coin_type_b=coin_b,
                        current_tick_index=0, decimals_a=9, decimals_b=9,
                        fetched_at=time.time(), **kw)


CONFIG = TradeConfig(coin_type_a="0x2::sui::SUI", coin_type_b="0xabc::tok::TOK",
                     slippage=1, trade_count=3, amount_to_trade=1000, delay_between_trades_ms=0)

WALLET = [
    coin(SUI, "0xgas", 500),
    coin(SUI, "0xs1", 800),
    coin(SUI, "0xs2", 400),
    coin(TOK, "0xt1", 3000),
]


def make_executor(pool_order=(SUI, TOK), wallet=WALLET, client=None, dry_run=False, **sdk_kw):
    pools = [PoolInfo(pool_id="0xother", coin_type_a=SUI, coin_type_b="0x" + "9" * 64 + "::x::X"),
             PoolInfo(pool_id="0xp", coin_type_a=pool_order[0], coin_type_b=pool_order[1])]
    sdk = FakeSdk(pools, snapshot(*pool_order), **sdk_kw)
    client = client or FakeClient()
    ex = SwapExecutor(CONFIG, sdk, client, FakeBalances(list(wallet)), QuoteEngine(1, max_age_sec=30),
                      dry_run=dry_run)
    return ex, sdk, client


@pytest.mark.parametrize("order", [(SUI, TOK), (TOK, SUI)])
def test_pool_lookup_is_symmetric(order):
    ex, _, _ = make_executor(pool_order=order)
    assert ex.find_pool("0x2::sui::SUI", "0xabc::tok::TOK").pool_id == "0xp"
    assert ex.find_pool("0xabc::tok::TOK", "0x2::sui::SUI").pool_id == "0xp"


def test_pool_not_found():
    ex, _, _ = make_executor()
    ex.sdk.pools = ex.sdk.pools[:1]
    with pytest.raises(PoolNotFoundError):
        ex.swap(Side.BUY, 1000)


@pytest.mark.parametrize("order,side,a2b", [
    ((SUI, TOK), Side.BUY, True),
    ((SUI, TOK), Side.SELL, False),
    ((TOK, SUI), Side.BUY, False),
    ((TOK, SUI), Side.SELL, True),
])
def test_direction_flag_follows_pool_order(order, side, a2b):
    ex, sdk, _ = make_executor(pool_order=order)
    ex.swap(side, 200)
    intent, _, _ = sdk.built[-1]
    assert intent.a2b is a2b
    assert (intent.coin_type_a, intent.coin_type_b) == order


def test_buy_enforces_min_out_and_reserves_gas():
    ex, sdk, client = make_executor()
    receipt = ex.swap(Side.BUY, 1000)
    assert receipt.digest == "D1"
    assert receipt.side == Side.BUY
    assert client.submitted == ["dHg="]

    intent, assets, gas_coin = sdk.built[-1]
    assert intent.amount_in == 1000
    assert intent.min_amount_out == 990  # tick 0, no fee, 1% slippage
    assert intent.wallet_address == "0xme"
    # smallest SUI coin that covers the gas budget is kept for gas
    assert gas_coin == "0xs2"
    assert [a.coin_object_id for a in assets] == ["0xs1", "0xgas"]


def test_sell_uses_target_coins_without_gas_reservation():
    ex, sdk, _ = make_executor()
    ex.swap(Side.SELL, 2500)
    _, assets, gas_coin = sdk.built[-1]
    assert gas_coin is None
    assert [a.coin_object_id for a in assets] == ["0xt1"]


def test_insufficient_funds():
    ex, sdk, client = make_executor()
    with pytest.raises(InsufficientFundsError) as ei:
        ex.swap(Side.SELL, 3001)
    assert ei.value.required == 3001
    assert ei.value.available == 3000
    assert sdk.built == [] and client.submitted == []


def test_no_gas_coin():
    ex, _, _ = make_executor(wallet=[coin(SUI, "0xs1", 50)], gas_budget=100)
    with pytest.raises(InsufficientFundsError, match="gas"):
        ex.swap(Side.BUY, 10)


def test_unknown_token():
    ex, sdk, _ = make_executor()
    sdk.unknown_tokens.add(TOK)
    with pytest.raises(TokenInfoNotFoundError):
        ex.swap(Side.BUY, 1000)


def test_bad_pool_state_propagates():
    ex, sdk, _ = make_executor()
    sdk.snapshot = sdk.snapshot.model_copy(update={"current_tick_index": None})
    with pytest.raises(PoolStateError):
        ex.swap(Side.BUY, 1000)


def test_submission_failure_is_wrapped():
    cause = TransactionFailedError("transaction failed: MoveAbort", digest="Dx")
    ex, _, _ = make_executor(client=FakeClient(error=cause))
    with pytest.raises(SwapExecutionError) as ei:
        ex.swap(Side.BUY, 1000)
    assert ei.value.__cause__ is cause
    assert ei.value.details["side"] == "buy"


def test_build_failure_is_wrapped():
    ex, sdk, client = make_executor()
    sdk.build_error = RpcError("unsafe_moveCall: boom")
    with pytest.raises(SwapExecutionError, match="boom"):
        ex.swap(Side.SELL, 100)
    assert client.submitted == []


def test_dry_run_does_not_submit():
    ex, _, client = make_executor(dry_run=True)
    receipt = ex.swap(Side.BUY, 1000)
    assert receipt.digest == "DRY"
    assert client.submitted == [] and client.dry == ["dHg="]


def test_single_sui_coin_is_split_before_buy():
    budget = 50_000_000
    ex, sdk, client = make_executor(wallet=[coin(SUI, "0xonly", 10_000_000_000)], gas_budget=budget)

    def settle(recipients, amounts):
        assert recipients == ["0xme"]
        # the transfer lands as a fresh coin; the source coin paid amount plus gas
        ex.balances.assets = [
            coin(SUI, "0xonly", 10_000_000_000 - amounts[0] - 2_000_000),
            coin(SUI, "0xsplit", amounts[0]),
        ]

    client.on_pay = settle
    receipt = ex.swap(Side.BUY, 1_000_000)

    assert client.payments == [(["0xonly"], ["0xme"], [1_000_000], budget)]
    assert client.submitted == ["cGF5", "dHg="]
    assert receipt.digest == "D2"
    _, assets, gas_coin = sdk.built[-1]
    assert gas_coin == "0xonly"
    assert [a.coin_object_id for a in assets] == ["0xsplit"]


def test_single_sui_coin_too_small_for_split_and_swap_gas():
    ex, _, client = make_executor(wallet=[coin(SUI, "0xonly", 1_150)], gas_budget=100)
    with pytest.raises(InsufficientFundsError):
        ex.swap(Side.BUY, 1_000)
    assert client.payments == [] and client.submitted == []


def test_single_sui_coin_dry_run_cannot_split():
    ex, _, client = make_executor(wallet=[coin(SUI, "0xonly", 10_000)], gas_budget=100, dry_run=True)
    with pytest.raises(InsufficientFundsError):
        ex.swap(Side.BUY, 1_000)
    assert client.payments == [] and client.dry == []
