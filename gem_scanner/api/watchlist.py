"""
Watchlist API endpoints.

Provides endpoints for managing the tracked tickers.
"""

import logging
from fastapi import APIRouter, HTTPException, BackgroundTasks, Request
from typing import List

from ..agents import AnalysisInProgressError, AnalysisService
from ..database.dao import InvalidTickerError
from ..database.models import WatchlistItem, WatchlistItemCreate, APIResponse
from .tasks import create_task, start_step, record_outcome, complete_task, fail_task

router = APIRouter()
logger = logging.getLogger(__name__)


async def scan_watchlist(service: AnalysisService, task_id: str) -> None:
    """Analyze every watchlist ticker in turn, tracking progress on the task."""
    try:
        await service.scan_watchlist(
            on_step=lambda ticker, i, total: start_step(task_id, ticker, i, total),
            on_outcome=lambda ticker, outcome: record_outcome(task_id, ticker, outcome.status),
            reserved=True,
        )
        complete_task(task_id)
    except Exception as e:
        logger.error(f"Watchlist scan failed: {e}")
        fail_task(task_id, str(e))


@router.get("", response_model=List[WatchlistItem])
async def get_watchlist(request: Request):
    """Get all watchlist rows in display order."""
    return request.app.state.settings.rows()


@router.post("", response_model=APIResponse)
async def add_to_watchlist(item: WatchlistItemCreate, request: Request):
    """Add a ticker to the watchlist. Adding a tracked ticker is a no-op."""
    try:
        added = await request.app.state.settings.add_ticker(item.ticker)
    except InvalidTickerError as e:
        raise HTTPException(status_code=400, detail=str(e))

    ticker = item.ticker.strip().upper()
    return APIResponse(
        success=True,
        message=f"{ticker} added to watchlist" if added else f"{ticker} is already in your watchlist",
        data={"added": added},
    )


@router.delete("/{ticker}", response_model=APIResponse)
async def remove_from_watchlist(ticker: str, request: Request):
    """Remove a ticker from the watchlist. Removing an untracked ticker is a no-op."""
    ticker = ticker.strip().upper()
    removed = await request.app.state.settings.remove_ticker(ticker)
    return APIResponse(
        success=True,
        message=f"{ticker} removed from watchlist" if removed else f"{ticker} not in watchlist",
        data={"removed": removed},
    )


@router.post("/refresh", response_model=APIResponse)
async def refresh_watchlist_prices(request: Request):
    """Refresh last price and change for every watchlist row."""
    updated = await request.app.state.service.refresh_quotes()
    return APIResponse(success=True, message=f"Updated {updated} quotes")


@router.post("/scan", response_model=APIResponse)
async def scan_all_watchlist(request: Request, background_tasks: BackgroundTasks):
    """Trigger analysis for all stocks in the watchlist."""
    service: AnalysisService = request.app.state.service
    tickers = service.settings.tickers

    if not tickers:
        raise HTTPException(status_code=400, detail="Watchlist is empty")
    try:
        service.reserve()
    except AnalysisInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))

    task = create_task("watchlist scan", len(tickers))
    background_tasks.add_task(scan_watchlist, service, task.task_id)

    return APIResponse(
        success=True,
        message=f"Started analysis for {len(tickers)} stocks",
        data={"tickers": tickers, "task_id": task.task_id}
    )
