"""
Analysis Service.

Connects the orchestrator to the alert and settings stores: reads the
conviction threshold, runs one analysis at a time and files completed
alerts.
"""

import logging
from typing import Awaitable, Callable, Dict, Any, Iterable, Optional

from .orchestrator import HiddenGemOrchestrator
from .quotes import fetch_quotes
from ..database.dao import AlertStore, SettingsStore, require_ticker
from ..database.models import (
    AnalysisCompleted,
    AnalysisFailed,
    AnalysisOutcome,
    AnalysisSkipped,
)

logger = logging.getLogger(__name__)

QuoteFetcher = Callable[[Iterable[str]], Awaitable[Dict[str, Dict[str, Any]]]]
StepCallback = Callable[[str, int, int], None]
OutcomeCallback = Callable[[str, AnalysisOutcome], None]


class AnalysisInProgressError(RuntimeError):
    """Raised when an analysis is requested while another is running."""


def status_message(outcome: AnalysisOutcome) -> str:
    """User-facing status text for an analysis outcome."""
    if isinstance(outcome, AnalysisCompleted):
        return "Analysis complete!"
    if isinstance(outcome, AnalysisSkipped):
        return f"{outcome.ticker} conviction score ({outcome.conviction_score:.1f}) below threshold"
    return outcome.error


class AnalysisService:
    """Runs analyses against the stores, one at a time."""

    def __init__(
        self,
        orchestrator: HiddenGemOrchestrator,
        alerts: AlertStore,
        settings: SettingsStore,
        quote_fetcher: QuoteFetcher = fetch_quotes,
    ):
        self.orchestrator = orchestrator
        self.alerts = alerts
        self.settings = settings
        self.quote_fetcher = quote_fetcher
        self._in_flight = False

    @property
    def busy(self) -> bool:
        return self._in_flight

    def reserve(self) -> None:
        """Take the in-flight guard, or raise if another analysis holds it."""
        if self._in_flight:
            raise AnalysisInProgressError("An analysis is already running")
        self._in_flight = True

    def release(self) -> None:
        self._in_flight = False

    async def analyze(self, ticker: str) -> AnalysisOutcome:
        """
        Analyze a ticker with the current threshold.

        Completed analyses are prepended to the alert store and selected.
        Skipped and failed analyses leave the store untouched. The guard is
        held until the store writes have finished.
        """
        ticker = require_ticker(ticker)
        self.reserve()
        try:
            return await self._analyze(ticker)
        finally:
            self.release()

    async def _analyze(self, ticker: str) -> AnalysisOutcome:
        outcome = await self.orchestrator.run_analysis(ticker, self.settings.threshold)

        if isinstance(outcome, AnalysisCompleted):
            await self.alerts.add(outcome.record)
            self.alerts.select(outcome.record.id)

        if not isinstance(outcome, AnalysisFailed):
            await self.settings.mark_scanned(ticker)

        logger.info(f"{ticker}: {status_message(outcome)}")
        return outcome

    async def scan_watchlist(
        self,
        on_step: Optional[StepCallback] = None,
        on_outcome: Optional[OutcomeCallback] = None,
        reserved: bool = False,
    ) -> Dict[str, AnalysisOutcome]:
        """
        Analyze every watchlist ticker in order as one request.

        The guard is held for the whole scan, so a single analysis cannot
        start between two tickers. Pass reserved=True when the caller has
        already taken the guard with reserve().
        """
        if not reserved:
            self.reserve()
        try:
            tickers = self.settings.tickers
            outcomes: Dict[str, AnalysisOutcome] = {}
            for i, ticker in enumerate(tickers):
                if on_step:
                    on_step(ticker, i, len(tickers))
                outcomes[ticker] = await self._analyze(ticker)
                if on_outcome:
                    on_outcome(ticker, outcomes[ticker])
            return outcomes
        finally:
            self.release()

    async def analyze_now(self) -> Optional[AnalysisOutcome]:
        """Analyze the first watchlist ticker, if any."""
        tickers = self.settings.tickers
        if not tickers:
            return None
        return await self.analyze(tickers[0])

    async def refresh_quotes(self) -> int:
        """Update watchlist rows with fresh quotes. Returns the number updated."""
        quotes = await self.quote_fetcher(self.settings.tickers)
        for ticker, quote in quotes.items():
            await self.settings.record_quote(
                ticker,
                price=quote["current_price"],
                change_percent=quote.get("change_percent") or 0.0,
            )
        return len(quotes)
