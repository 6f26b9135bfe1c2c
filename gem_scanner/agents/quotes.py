"""
Quote Collector.

Fetches the current price and daily change for watchlist tickers from
yfinance. Quotes only feed the watchlist display rows; the analysis
itself is done by the remote agents.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Any, Iterable, Optional

import yfinance as yf

logger = logging.getLogger(__name__)

# Thread pool for parallel yfinance calls
_executor = ThreadPoolExecutor(max_workers=10)


class QuoteCollector:
    """Collects a price snapshot for a single ticker."""

    def __init__(self, ticker: str):
        self.ticker = ticker.upper()
        self.stock = yf.Ticker(self.ticker)
        self._info = None

    def _get_info(self) -> Dict[str, Any]:
        """Get stock info with caching."""
        if self._info is None:
            try:
                self._info = self.stock.info
            except Exception as e:
                logger.error(f"Failed to fetch info for {self.ticker}: {e}")
                self._info = {}
        return self._info

    def get_current_price(self) -> Dict[str, Any]:
        """Get current price and change percent."""
        info = self._get_info()

        current_price = info.get("regularMarketPrice") or info.get("currentPrice") or info.get("previousClose")
        previous_close = info.get("regularMarketPreviousClose") or info.get("previousClose")

        change_percent = None
        if current_price and previous_close:
            change_percent = ((current_price - previous_close) / previous_close) * 100

        return {
            "current_price": current_price,
            "previous_close": previous_close,
            "change_percent": change_percent,
        }


def _fetch_quote_sync(ticker: str) -> Optional[Dict[str, Any]]:
    """Fetch a quote synchronously (for thread pool)."""
    try:
        quote = QuoteCollector(ticker).get_current_price()
    except Exception as e:
        logger.warning(f"Failed to get price data for {ticker}: {e}")
        return None
    if quote.get("current_price") is None:
        return None
    return quote


async def fetch_quotes(tickers: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """
    Fetch quotes for several tickers in parallel.

    Tickers whose quote could not be fetched are left out of the result.
    """
    tickers = list(tickers)
    loop = asyncio.get_running_loop()
    quotes = await asyncio.gather(
        *[loop.run_in_executor(_executor, _fetch_quote_sync, ticker) for ticker in tickers]
    )
    return {ticker: quote for ticker, quote in zip(tickers, quotes) if quote}
