from functools import lru_cache

from foliotrack.adapters.market_data.yfinance_history import YFinancePriceHistory
from foliotrack.adapters.postgres.ledger import PostgresCashFlowLedger, PostgresTradeLedger
from foliotrack.adapters.postgres.store import PostgresDerivedSeriesStore
from foliotrack.core.valuation.config import ValuationConfig
from foliotrack.core.valuation.service import PrecomputeService


@lru_cache(maxsize=1)
def get_precompute_service() -> PrecomputeService:
    """
    One service per process so repeated triggers share the in-flight guard.
    """
    config = ValuationConfig.from_env()
    return PrecomputeService(
        trades=PostgresTradeLedger(),
        cash_flows=PostgresCashFlowLedger(),
        prices=YFinancePriceHistory(default_currency=config.base_currency),
        store=PostgresDerivedSeriesStore(),
        config=config,
    )
