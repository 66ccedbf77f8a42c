import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from foliotrack.api import settings
from foliotrack.api.deps import get_precompute_service
from foliotrack.core.valuation.models import PerformanceSummary, PrecomputeRun, RunStatus
from foliotrack.core.valuation.service import PrecomputeService

router = APIRouter(prefix="/portfolio", tags=["portfolio"])
logger = logging.getLogger(__name__)


@router.post("/precompute", status_code=202)
def trigger_precompute(
    service: PrecomputeService = Depends(get_precompute_service),
) -> dict[str, Any]:
    """Start a background recompute; a run already in flight is left alone."""
    started = service.trigger()
    logger.info("Precompute trigger started=%s", started)
    return {"success": True, "started": started}


@router.get("/status")
def get_status(
    service: PrecomputeService = Depends(get_precompute_service),
) -> dict[str, Any]:
    return _status_payload(service.get_status())


@router.get("/values")
def get_values(
    service: PrecomputeService = Depends(get_precompute_service),
) -> Any:
    """
    Serve the cached daily, per-ticker and monthly series without waiting on
    an in-flight recompute. Stale data comes back flagged and, when enabled,
    kicks off a refresh.
    """
    overview = service.get_overview()
    if overview is None:
        latest = service.get_status()
        if latest is not None and latest.status == RunStatus.COMPLETED and not service.run_is_stale(latest):
            # A fresh completed run with no rows means the trade ledger is empty.
            return JSONResponse(
                status_code=404,
                content={"success": False, "message": "No trades data"},
            )
        if latest is None or latest.status != RunStatus.IN_PROGRESS:
            service.trigger()
        return JSONResponse(
            status_code=202,
            content={
                "success": True,
                "extension_in_progress": True,
                "message": "Precomputation started. Please wait a moment.",
            },
        )

    in_flight = overview.status is not None and overview.status.status == RunStatus.IN_PROGRESS
    refreshing = False
    if overview.stale and not in_flight and settings.AUTO_REFRESH:
        logger.info("Portfolio data not up to date, triggering background precomputation")
        refreshing = service.trigger()

    return {
        "success": True,
        "daily_dates": [day.isoformat() for day in overview.dates],
        "daily_values": [float(value) for value in overview.values],
        "daily_invested": [float(value) for value in overview.invested],
        "daily_ticker_values": {
            ticker: [float(value) for value in values]
            for ticker, values in overview.ticker_values.items()
        },
        "monthly_net": [
            {"month": row.month, "net_value": float(row.net_value)}
            for row in overview.monthly_contributions
        ],
        "portfolio_stats": _summary_payload(overview.summary),
        "stale": overview.stale,
        "extension_in_progress": in_flight or refreshing,
        "status": _status_payload(overview.status),
    }


@router.get("/prices")
def get_prices(
    service: PrecomputeService = Depends(get_precompute_service),
) -> list[dict]:
    return [
        {
            "ticker": row.ticker,
            "date": row.date.isoformat(),
            "original_currency": row.original_currency,
            "original_price": str(row.original_price),
            "converted_price": str(row.converted_price),
        }
        for row in service.get_ticker_prices()
    ]


@router.get("/summary")
def get_summary(
    service: PrecomputeService = Depends(get_precompute_service),
) -> dict[str, Any]:
    return _summary_payload(service.get_summary())


def _summary_payload(summary: Optional[PerformanceSummary]) -> dict[str, Any]:
    if summary is None:
        return {}
    return {
        "irr": summary.irr,
        "twr": summary.twr,
        "total_invested": float(summary.total_invested),
        "total_withdrawn": float(summary.total_withdrawn),
        "current_value": float(summary.current_value),
        "profit_loss": float(summary.profit_loss),
        "return_percentage": float(summary.return_percentage),
        "calc_date": summary.calc_date.isoformat(),
    }


def _status_payload(run: Optional[PrecomputeRun]) -> dict[str, Any]:
    if run is None:
        return {"status": RunStatus.NOT_STARTED.value, "has_data": False}
    return {
        "status": run.status.value,
        "started_at": run.started_at.isoformat() if run.started_at else None,
        "completed_at": run.completed_at.isoformat() if run.completed_at else None,
        "total_tickers": run.total_tickers,
        "last_error": run.last_error,
        "has_data": True,
    }
