import logging
import signal
import threading
from dataclasses import dataclass
from typing import Optional

import typer

from cetusbot.cetus.sdk import CetusClient, normalize_coin_type
from cetusbot.config.settings import Settings, settings, trade_config
from cetusbot.errors import BotError, TradeError
from cetusbot.sui.client import SuiClient
from cetusbot.sui.keys import load_keypair
from cetusbot.trade.balance import BalanceTracker
from cetusbot.trade.cycle import CycleOrchestrator
from cetusbot.trade.quote import QuoteEngine
from cetusbot.trade.swap import SwapExecutor
from cetusbot.types import Side, TradeConfig

app = typer.Typer(add_completion=False)

# --- Logging setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)
logger = logging.getLogger("cetusbot")


@dataclass
class Bot:
    config: TradeConfig
    client: SuiClient
    sdk: CetusClient
    balances: BalanceTracker
    quotes: QuoteEngine
    executor: SwapExecutor
    orchestrator: CycleOrchestrator


def build_bot(
    s: Settings, trade_count: Optional[int] = None, dry_run: bool = False
) -> Bot:
    config = trade_config(s, trade_count=trade_count)
    keypair = load_keypair(s.private_key)
    client = SuiClient(s.rpc_url, keypair, timeout=s.rpc_timeout_sec)
    sdk = CetusClient(
        client,
        clmm_package=s.clmm_package,
        integrate_package=s.integrate_package,
        global_config_id=s.global_config_id,
        gas_budget=s.gas_budget,
        pool_cache_sec=s.pool_cache_sec,
    )
    sdk.refresh_pools()

    balances = BalanceTracker(client)
    quotes = QuoteEngine(config.slippage, max_age_sec=s.pool_max_age_sec)
    executor = SwapExecutor(config, sdk, client, balances, quotes, dry_run=dry_run)
    orchestrator = CycleOrchestrator(config, executor, balances)
    return Bot(config, client, sdk, balances, quotes, executor, orchestrator)


def _setup(debug: bool, **kw) -> Bot:
    if debug:
        logger.setLevel(logging.DEBUG)
    try:
        return build_bot(settings, **kw)
    except BotError as e:
        logger.error(f"Bot setup failed: {e}")
        raise typer.Exit(code=1)


@app.command()
def run(
    trade_count: Optional[int] = typer.Option(None, help="override TRADE_COUNT"),
    dry_run: bool = typer.Option(False, help="dry-run swaps instead of executing"),
    debug: bool = typer.Option(False, help="verbose logs"),
):
    """Run the configured number of buy -> sell cycles."""
    bot = _setup(debug, trade_count=trade_count, dry_run=dry_run)
    logger.info(f"Using wallet: {bot.client.get_address()}")

    # first Ctrl-C lets the current cycle finish, then stops
    prev = None
    if threading.current_thread() is threading.main_thread():
        prev = signal.signal(signal.SIGINT, lambda *_: bot.orchestrator.stop())
    try:
        report = bot.orchestrator.run()
    finally:
        if prev is not None:
            signal.signal(signal.SIGINT, prev)
    for r in report.results:
        logger.debug(f"[result] {r.model_dump()}")


@app.command()
def balances(debug: bool = typer.Option(False, help="verbose logs")):
    """Print the wallet's balance of both configured tokens."""
    bot = _setup(debug)
    for coin_type in (bot.config.coin_type_a, bot.config.coin_type_b):
        try:
            typer.echo(f"{coin_type}: {bot.balances.balance_of(coin_type)}")
        except TradeError as e:
            typer.echo(f"{coin_type}: error {e}")


@app.command()
def quote(
    sell: bool = typer.Option(False, help="quote the sell leg (B -> A)"),
    amount: Optional[int] = typer.Option(None, min=1, help="input amount, smallest unit"),
    debug: bool = typer.Option(False, help="verbose logs"),
):
    """Quote one leg against the live pool without trading."""
    bot = _setup(debug)
    side = Side.SELL if sell else Side.BUY
    coin_in, coin_out = bot.executor.coins_for(side)
    try:
        pool_info = bot.executor.find_pool(coin_in, coin_out)
        pool = bot.sdk.get_pool(pool_info.pool_id)
        a2b = normalize_coin_type(coin_in) == pool.coin_type_a
        if amount is None:
            amount = bot.config.amount_to_trade
        q = bot.quotes.quote(pool, a2b, amount)
    except TradeError as e:
        typer.echo(f"quote failed: {e}")
        raise typer.Exit(code=1)
    typer.echo(
        f"pool={pool.pool_id} tick={pool.current_tick_index} a2b={q.a2b} "
        f"price={q.price:.8g} in={q.amount_in} est_out={q.estimated_amount_out} "
        f"min_out={q.min_amount_out} impact={q.price_impact_pct:.4f}%"
    )


if __name__ == "__main__":  # pragma: no cover
    app()
