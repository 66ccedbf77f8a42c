import argparse
import logging
import os
import sys

from dotenv import load_dotenv
from loguru import logger

from foliotrack.adapters.eventbus.in_process import InProcessEventBus
from foliotrack.adapters.logging.jsonl_logger import JsonlEventLogger
from foliotrack.adapters.market_data.yfinance_history import YFinancePriceHistory
from foliotrack.adapters.postgres.db import ensure_schema
from foliotrack.adapters.postgres.ledger import PostgresCashFlowLedger, PostgresTradeLedger
from foliotrack.adapters.postgres.store import PostgresDerivedSeriesStore
from foliotrack.core.valuation.config import ValuationConfig
from foliotrack.core.valuation.events import PrecomputeFailed, PrecomputeFinished
from foliotrack.core.valuation.service import PrecomputeService


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="foliotrack",
        description="Rebuild portfolio valuation series and performance stats.",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Print the latest run status instead of running",
    )
    return parser.parse_args(argv)


def _print_finished(event: PrecomputeFinished) -> None:
    logger.info(
        "run={} tickers={} days={} range={}..{} value={}",
        event.run_id,
        event.tickers,
        event.days,
        event.start_date,
        event.end_date,
        event.current_value,
    )


def _print_failed(event: PrecomputeFailed) -> None:
    logger.error("run={} failed: {}", event.run_id, event.error)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _parse_args(argv)
    level = os.getenv("LOG_LEVEL", "INFO")
    logger.remove()
    logger.add(sys.stdout, level=level)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    ensure_schema()
    store = PostgresDerivedSeriesStore()
    if args.status:
        run = store.latest_run()
        if run is None:
            logger.info("status=not_started")
        else:
            logger.info(
                "run={} status={} started={} completed={} error={}",
                run.run_id,
                run.status.value,
                run.started_at,
                run.completed_at,
                run.last_error,
            )
        return 0

    config = ValuationConfig.from_env()
    bus = InProcessEventBus()
    log_path = os.getenv("FOLIO_EVENT_LOG_PATH", "journal/events.jsonl")
    if log_path:
        JsonlEventLogger(log_path).subscribe(bus)
    bus.subscribe(PrecomputeFinished, _print_finished)
    bus.subscribe(PrecomputeFailed, _print_failed)

    service = PrecomputeService(
        trades=PostgresTradeLedger(),
        cash_flows=PostgresCashFlowLedger(),
        prices=YFinancePriceHistory(default_currency=config.base_currency),
        store=store,
        config=config,
        event_bus=bus,
    )
    try:
        service.run()
    except Exception:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
