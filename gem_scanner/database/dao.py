"""
Stores for alerts, settings and the watchlist.

Each store keeps its state in memory and writes it through to the
injected blob storage after every mutation.
"""

from datetime import datetime, timezone
from typing import Optional, List
from pydantic import TypeAdapter
from .connection import BlobStorage
from .models import (
    AlertRecord, Settings, SettingsUpdate, WatchlistItem, normalize_ticker
)
import logging

logger = logging.getLogger(__name__)

ALERTS_KEY = "stock_alerts"
SETTINGS_KEY = "stock_settings"
WATCHLIST_KEY = "stock_watchlist"

_alerts_adapter = TypeAdapter(List[AlertRecord])
_watchlist_adapter = TypeAdapter(List[WatchlistItem])


class InvalidTickerError(ValueError):
    """Raised for empty or whitespace ticker input."""


def require_ticker(symbol: str) -> str:
    """Normalize a ticker, rejecting empty input."""
    ticker = normalize_ticker(symbol)
    if not ticker:
        raise InvalidTickerError("Ticker symbol is required")
    return ticker


def default_watchlist_rows(tickers: List[str]) -> List[WatchlistItem]:
    return [WatchlistItem(ticker=ticker) for ticker in tickers]


# ===========================================
# Alert Store
# ===========================================

class AlertStore:
    """Newest-first collection of alert records."""

    def __init__(self, storage: BlobStorage):
        self.storage = storage
        self._alerts: List[AlertRecord] = []
        self.selected_id: Optional[str] = None

    async def load(self) -> None:
        """Load alerts from storage; a missing key means no alerts."""
        raw = await self.storage.read(ALERTS_KEY)
        self._alerts = _alerts_adapter.validate_json(raw) if raw else []
        self.selected_id = None
        logger.info(f"Loaded {len(self._alerts)} alerts")

    async def save(self) -> None:
        await self.storage.write(ALERTS_KEY, self.dump())

    def dump(self) -> str:
        return _alerts_adapter.dump_json(self._alerts).decode()

    async def add(self, record: AlertRecord) -> AlertRecord:
        """Prepend a record."""
        self._alerts.insert(0, record)
        await self.save()
        return record

    async def remove(self, alert_id: str) -> bool:
        """Remove a record by id. Returns False if it was not present."""
        remaining = [a for a in self._alerts if a.id != alert_id]
        removed = len(remaining) != len(self._alerts)
        if self.selected_id == alert_id:
            self.selected_id = None
        if removed:
            self._alerts = remaining
            await self.save()
        return removed

    def list_all(self) -> List[AlertRecord]:
        return list(self._alerts)

    def get(self, alert_id: str) -> Optional[AlertRecord]:
        for alert in self._alerts:
            if alert.id == alert_id:
                return alert
        return None

    def select(self, alert_id: str) -> Optional[AlertRecord]:
        """Select a record for viewing; None if it does not exist."""
        alert = self.get(alert_id)
        if alert is not None:
            self.selected_id = alert.id
        return alert

    @property
    def selected(self) -> Optional[AlertRecord]:
        return self.get(self.selected_id) if self.selected_id else None

    def alerts_today(self, now: Optional[datetime] = None) -> int:
        """Count alerts created on the current (UTC) date."""
        today = (now or datetime.now(timezone.utc)).date()
        count = 0
        for alert in self._alerts:
            try:
                created = datetime.fromisoformat(alert.timestamp.replace("Z", "+00:00"))
            except ValueError:
                continue
            if created.date() == today:
                count += 1
        return count

    def __len__(self) -> int:
        return len(self._alerts)


# ===========================================
# Settings Store
# ===========================================

class SettingsStore:
    """Dashboard settings plus the parallel watchlist display rows."""

    def __init__(self, storage: BlobStorage):
        self.storage = storage
        self.settings = Settings()
        self._rows: List[WatchlistItem] = default_watchlist_rows(self.settings.watchlist)

    async def load(self) -> None:
        """Load settings and watchlist rows; missing keys keep defaults."""
        raw_settings = await self.storage.read(SETTINGS_KEY)
        raw_rows = await self.storage.read(WATCHLIST_KEY)

        self.settings = Settings.model_validate_json(raw_settings) if raw_settings else Settings()
        if raw_rows:
            self._rows = _watchlist_adapter.validate_json(raw_rows)
        else:
            self._rows = default_watchlist_rows(self.settings.watchlist)

    async def save(self) -> None:
        await self.storage.write(SETTINGS_KEY, self.settings.model_dump_json())
        await self.storage.write(WATCHLIST_KEY, _watchlist_adapter.dump_json(self._rows).decode())

    @property
    def threshold(self) -> int:
        return self.settings.conviction_threshold

    @property
    def tickers(self) -> List[str]:
        return list(self.settings.watchlist)

    def rows(self) -> List[WatchlistItem]:
        return list(self._rows)

    def contains(self, symbol: str) -> bool:
        return normalize_ticker(symbol) in self.settings.watchlist

    async def add_ticker(self, symbol: str) -> bool:
        """Track a ticker. Returns False if it was already tracked."""
        ticker = require_ticker(symbol)
        if self.contains(ticker):
            return False

        self.settings = self.settings.model_copy(
            update={"watchlist": [*self.settings.watchlist, ticker]}
        )
        if not any(row.ticker == ticker for row in self._rows):
            self._rows.append(WatchlistItem(ticker=ticker))
        await self.save()
        logger.info(f"Added {ticker} to watchlist")
        return True

    async def remove_ticker(self, symbol: str) -> bool:
        """Stop tracking a ticker. Returns False if it was not tracked."""
        ticker = normalize_ticker(symbol)
        tracked = self.contains(ticker)
        has_row = any(row.ticker == ticker for row in self._rows)
        if not tracked and not has_row:
            return False

        self.settings = self.settings.model_copy(
            update={"watchlist": [t for t in self.settings.watchlist if t != ticker]}
        )
        self._rows = [row for row in self._rows if row.ticker != ticker]
        await self.save()
        logger.info(f"Removed {ticker} from watchlist")
        return True

    async def update(self, changes: SettingsUpdate) -> Settings:
        """Apply a partial settings update."""
        values = changes.model_dump(exclude_none=True)
        self.settings = Settings.model_validate({**self.settings.model_dump(), **values})
        await self.save()
        return self.settings

    async def reset(self) -> Settings:
        """Restore default settings and watchlist rows."""
        self.settings = Settings()
        self._rows = default_watchlist_rows(self.settings.watchlist)
        await self.save()
        return self.settings

    async def record_quote(self, ticker: str, price: float, change_percent: float) -> None:
        """Update the last known price of a watchlist row."""
        await self._update_row(ticker, last_price=price, change_percent=change_percent)

    async def mark_scanned(self, ticker: str, label: str = "Just now") -> None:
        await self._update_row(ticker, last_scan=label)

    async def _update_row(self, ticker: str, **fields) -> None:
        ticker = normalize_ticker(ticker)
        changed = False
        for i, row in enumerate(self._rows):
            if row.ticker == ticker:
                self._rows[i] = row.model_copy(update=fields)
                changed = True
        if changed:
            await self.save()

