"""
Hidden Gem Orchestrator.

Runs one coordinator agent call, gates on its conviction score, then fans
out to the five specialist agents in parallel and merges everything into
a single AlertRecord.
"""

import os
import time
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from .client import AgentClient
from ..database.dao import require_ticker
from ..database.models import (
    AgentEnvelope,
    AlertRecord,
    AnalysisCompleted,
    AnalysisFailed,
    AnalysisOutcome,
    AnalysisSkipped,
    CoordinatorResult,
    FundamentalResult,
    IndustryResult,
    RiskResult,
    SentimentResult,
    TechnicalResult,
)

logger = logging.getLogger(__name__)


# Agent ids of the deployed orchestrator; each can be overridden from the environment.
DEFAULT_AGENT_IDS: Dict[str, str] = {
    "coordinator": "697233d11d92f5e2dd22e545",
    "technical": "697233471d92f5e2dd22e52f",
    "fundamental": "6972335fd6d0dcaec111be25",
    "sentiment": "69723379d6d0dcaec111be2f",
    "industry": "69723391d6d0dcaec111be36",
    "risk": "697233add6d0dcaec111be3a",
}

COORDINATOR_TASK = (
    "Analyze {ticker} stock ticker to determine if it's a hidden gem - an undervalued "
    "small-to-medium cap stock with high growth potential that's overlooked by the market. "
    "Search the web for current data and identify what the market is missing."
)

SPECIALIST_TASKS: Dict[str, Tuple[str, Type[BaseModel]]] = {
    "technical": (
        "{ticker}: Search web for early breakout patterns, accumulation phases, and unusual "
        "volume. Is this stock in discovery stage before mainstream notices?",
        TechnicalResult,
    ),
    "fundamental": (
        "{ticker}: Search web for undervaluation signs - low P/E but high growth, improving "
        "margins, strong revenue growth. What fundamentals is Wall Street missing?",
        FundamentalResult,
    ),
    "sentiment": (
        "{ticker}: Search web for emerging catalysts not yet priced in - new contracts, product "
        "launches, partnerships, under-the-radar announcements. What positive news is being "
        "overlooked?",
        SentimentResult,
    ),
    "industry": (
        "{ticker}: Search web for emerging industry trends and tailwinds that could lift this "
        "small-cap. What macro trends position this stock for growth?",
        IndustryResult,
    ),
    "risk": (
        "{ticker}: Assess small-cap risks - is this a hidden gem or a value trap? Check "
        "liquidity, insider selling, red flags.",
        RiskResult,
    ),
}


def load_agent_ids() -> Dict[str, str]:
    """Agent ids, with COORDINATOR_AGENT_ID style overrides from the environment."""
    return {
        name: os.getenv(f"{name.upper()}_AGENT_ID", default)
        for name, default in DEFAULT_AGENT_IDS.items()
    }


def validate_threshold(threshold: int) -> int:
    if not 1 <= threshold <= 100:
        raise ValueError(f"Conviction threshold must be between 1 and 100, got {threshold}")
    return threshold


class RecordIdGenerator:
    """Creation-time ids (epoch milliseconds), strictly increasing within a process."""

    def __init__(self):
        self._last = 0

    def __call__(self) -> str:
        value = max(int(time.time() * 1000), self._last + 1)
        self._last = value
        return str(value)


class HiddenGemOrchestrator:
    """
    Orchestrates the coordinator and specialist agents for one ticker.

    The orchestrator never touches the stores; callers decide what to do
    with the outcome.
    """

    def __init__(
        self,
        client: AgentClient,
        agent_ids: Optional[Dict[str, str]] = None,
        id_generator: Optional[RecordIdGenerator] = None,
    ):
        self.client = client
        self.agent_ids = agent_ids or load_agent_ids()
        self.new_id = id_generator or RecordIdGenerator()

    async def _call_coordinator(self, ticker: str) -> AgentEnvelope:
        try:
            return await self.client.invoke(
                COORDINATOR_TASK.format(ticker=ticker), self.agent_ids["coordinator"]
            )
        except Exception as e:
            return AgentEnvelope.failure(str(e) or type(e).__name__)

    async def _call_specialist(self, name: str, ticker: str) -> Optional[BaseModel]:
        """Run one specialist call; any failure yields None."""
        task, model = SPECIALIST_TASKS[name]
        try:
            envelope = await self.client.invoke(task.format(ticker=ticker), self.agent_ids[name])
        except Exception as e:
            logger.warning(f"{name} analysis for {ticker} raised: {e}")
            return None

        if not envelope.succeeded:
            logger.warning(
                f"{name} analysis for {ticker} failed: {envelope.failure_reason or 'agent did not report success'}"
            )
            return None

        try:
            return model.model_validate(envelope.response.result)
        except ValidationError as e:
            logger.warning(f"Could not parse {name} analysis for {ticker}: {e}")
            return None

    async def _run_specialists(self, ticker: str) -> Dict[str, Optional[BaseModel]]:
        names = list(SPECIALIST_TASKS)
        results = await asyncio.gather(*[self._call_specialist(name, ticker) for name in names])
        return dict(zip(names, results))

    async def run_analysis(self, ticker: str, threshold: int) -> AnalysisOutcome:
        """
        Run the full hidden gem analysis for one ticker.

        Args:
            ticker: Ticker symbol, normalized to upper case
            threshold: Minimum conviction score (1-100) for the deep dive

        Returns:
            AnalysisCompleted, AnalysisSkipped or AnalysisFailed

        Raises:
            InvalidTickerError: If the ticker is empty
            ValueError: If the threshold is out of range
        """
        ticker = require_ticker(ticker)
        validate_threshold(threshold)

        logger.info(f"Running coordinator analysis for {ticker}")
        envelope = await self._call_coordinator(ticker)

        if not envelope.succeeded:
            error = envelope.failure_reason or "Analysis failed"
            logger.error(f"Coordinator analysis failed for {ticker}: {error}")
            return AnalysisFailed(ticker=ticker, error=error)

        try:
            coordinator = CoordinatorResult.model_validate(envelope.response.result)
        except ValidationError as e:
            logger.error(f"Malformed coordinator response for {ticker}: {e}")
            return AnalysisFailed(ticker=ticker, error=f"Malformed coordinator response: {e}")

        if coordinator.conviction_score < threshold:
            logger.info(
                f"{ticker} conviction score {coordinator.conviction_score:.1f} below threshold {threshold}"
            )
            return AnalysisSkipped(
                ticker=ticker,
                conviction_score=coordinator.conviction_score,
                threshold=threshold,
                coordinator=coordinator,
            )

        logger.info(f"{ticker} shows potential ({coordinator.conviction_score:.1f}), running specialists")
        specialists = await self._run_specialists(ticker)

        record = self._build_record(ticker, coordinator, specialists)
        present = [name for name, ok in record.specialist_fields().items() if ok]
        logger.info(f"Analysis complete for {ticker}: {len(present)}/5 specialists ({', '.join(present)})")
        return AnalysisCompleted(record=record)

    def _build_record(
        self,
        ticker: str,
        coordinator: CoordinatorResult,
        specialists: Dict[str, Any],
    ) -> AlertRecord:
        return AlertRecord(
            id=self.new_id(),
            ticker=coordinator.ticker or ticker,
            company_name=coordinator.company_name,
            conviction_score=coordinator.conviction_score,
            recommendation=coordinator.overall_recommendation,
            summary=coordinator.summary,
            timestamp=datetime.now(timezone.utc).isoformat(),
            coordinator=coordinator,
            **specialists,
        )
