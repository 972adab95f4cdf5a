import logging
import threading

from cetusbot.errors import TradeError
from cetusbot.types import CycleResult, CycleStatus, RunReport, Side, TradeConfig

logger = logging.getLogger(__name__)


class CycleOrchestrator:
    """Runs trade_count buy -> wait -> measure -> sell cycles in sequence.

    Every cycle ends as a CycleResult. A TradeError raised anywhere inside
    a cycle marks only that cycle failed; the run carries on with the next
    one. The amount sold is always the measured change in the target
    balance, never the requested buy size.
    """

    def __init__(self, config: TradeConfig, executor, balances):
        self.config = config
        self.executor = executor
        self.balances = balances
        self._stop = threading.Event()

    def stop(self):
        """Cut any pending pause short and start no further cycles."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def pause(self, before: str):
        secs = self.config.delay_between_trades_ms / 1000
        if secs <= 0:
            return
        logger.info(f"Waiting {secs:g} seconds before {before}...")
        self._stop.wait(secs)

    def run_cycle(self, index: int) -> CycleResult:
        cfg = self.config
        buy_digest = None
        sold = 0
        try:
            before = self.balances.balance_of(cfg.coin_type_b)
            base = self.balances.balance_of(cfg.coin_type_a)
            logger.info(f"Initial {cfg.coin_type_a} balance: {base}")
            logger.info(f"Initial {cfg.coin_type_b} balance: {before}")

            buy = self.executor.swap(Side.BUY, cfg.amount_to_trade)
            buy_digest = buy.digest

            self.pause("selling")

            sold = self.balances.balance_of(cfg.coin_type_b) - before
            logger.info(f"Amount of {cfg.coin_type_b} to sell: {sold}")
            if sold <= 0:
                logger.info("Nothing to sell, skipping sell transaction")
                return CycleResult(
                    index=index,
                    status=CycleStatus.SKIPPED_NO_SELL,
                    buy_digest=buy_digest,
                    sold=sold,
                )

            sell = self.executor.swap(Side.SELL, sold)
        except TradeError as e:
            logger.error(f"Error in trade cycle {index}: {type(e).__name__}: {e}")
            logger.info("Continuing to next cycle...")
            return CycleResult(
                index=index,
                status=CycleStatus.FAILED,
                buy_digest=buy_digest,
                sold=max(sold, 0),
                error=f"{type(e).__name__}: {e}",
            )

        return CycleResult(
            index=index,
            status=CycleStatus.SUCCEEDED,
            buy_digest=buy_digest,
            sell_digest=sell.digest,
            sold=sold,
        )

    def report_final_balances(self, report: RunReport) -> RunReport:
        cfg = self.config
        try:
            report.final_balance_a = self.balances.balance_of(cfg.coin_type_a)
            report.final_balance_b = self.balances.balance_of(cfg.coin_type_b)
        except TradeError as e:
            logger.error(f"Error checking final balances: {e}")
            return report
        logger.info(f"Final {cfg.coin_type_a} balance: {report.final_balance_a}")
        logger.info(f"Final {cfg.coin_type_b} balance: {report.final_balance_b}")
        return report

    def run(self) -> RunReport:
        cfg = self.config
        n = cfg.trade_count
        logger.info(f"Starting Cetus trading bot for {n} cycles...")
        logger.info(f"Trading pair: {cfg.coin_type_a} <-> {cfg.coin_type_b}")

        report = RunReport()
        for i in range(1, n + 1):
            if self.stopped:
                logger.warning(f"Stop requested, skipping cycles {i}..{n}")
                break
            logger.info(f"==== Trade Cycle {i}/{n} ====")
            report.results.append(self.run_cycle(i))
            if i < n:
                self.pause("next cycle")

        self.report_final_balances(report)
        logger.info(
            f"Trading completed! succeeded={report.succeeded} "
            f"skipped={report.skipped} failed={report.failed}"
        )
        return report
