"""
Analysis API endpoints.

Triggers hidden gem analyses and reports their outcome.
"""

import logging
from fastapi import APIRouter, HTTPException, Request

from ..agents import AnalysisInProgressError, AnalysisService, status_message
from ..database.dao import InvalidTickerError
from ..database.models import APIResponse, AnalysisOutcome

router = APIRouter()
logger = logging.getLogger(__name__)


def outcome_response(outcome: AnalysisOutcome) -> APIResponse:
    """Wrap an analysis outcome in the generic API response."""
    return APIResponse(
        success=outcome.status != "failed",
        message=status_message(outcome),
        data=outcome.model_dump(mode="json"),
    )


async def run_analysis(service: AnalysisService, ticker: str) -> APIResponse:
    try:
        outcome = await service.analyze(ticker)
    except InvalidTickerError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AnalysisInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return outcome_response(outcome)


@router.post("/analyze/{ticker}", response_model=APIResponse)
async def analyze_stock_endpoint(ticker: str, request: Request):
    """
    Trigger a hidden gem analysis for a single stock.

    This endpoint:
    1. Runs the coordinator agent
    2. Runs the five specialist agents if the conviction score clears the threshold
    3. Stores the resulting alert
    """
    return await run_analysis(request.app.state.service, ticker)


@router.post("/analyze-now", response_model=APIResponse)
async def analyze_now(request: Request):
    """Analyze the first ticker in the watchlist."""
    service: AnalysisService = request.app.state.service
    try:
        outcome = await service.analyze_now()
    except AnalysisInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if outcome is None:
        raise HTTPException(status_code=400, detail="Watchlist is empty")
    return outcome_response(outcome)


@router.get("/analysis/status")
async def get_analysis_status(request: Request):
    """Whether an analysis is currently running."""
    return {"analyzing": request.app.state.service.busy}
