"""Tests for AnalysisService: store effects of each analysis outcome."""
import asyncio

import pytest

from gem_scanner.agents.scanner import (
    AnalysisInProgressError,
    AnalysisService,
    status_message,
)
from gem_scanner.database.connection import MemoryStorage
from gem_scanner.database.dao import AlertStore, InvalidTickerError, SettingsStore
from gem_scanner.database.models import AnalysisCompleted, AnalysisFailed, AnalysisSkipped, SettingsUpdate

from conftest import all_success_responses, coordinator_payload, failed, ok


def make_service(make_orchestrator, alert_store, settings_store, responses, quotes=None, **kwargs):
    orchestrator, client = make_orchestrator(responses, **kwargs)

    async def fake_quotes(tickers):
        return {t: q for t, q in (quotes or {}).items() if t in list(tickers)}

    return AnalysisService(orchestrator, alert_store, settings_store, quote_fetcher=fake_quotes), client


class TestAnalysisService:

    @pytest.mark.asyncio
    async def test_completed_analysis_is_prepended_and_selected(self, make_orchestrator, alert_store, settings_store):
        service, _ = make_service(make_orchestrator, alert_store, settings_store, all_success_responses("NVDA", 85))
        await alert_store.add((await service.orchestrator.run_analysis("NVDA", 70)).record)

        outcome = await service.analyze("NVDA")

        assert isinstance(outcome, AnalysisCompleted)
        assert len(alert_store) == 2
        assert alert_store.list_all()[0].id == outcome.record.id
        assert alert_store.selected.id == outcome.record.id
        assert status_message(outcome) == "Analysis complete!"

    @pytest.mark.asyncio
    async def test_skipped_leaves_store_unchanged(self, make_orchestrator, alert_store, settings_store):
        service, _ = make_service(
            make_orchestrator, alert_store, settings_store, {"coordinator": ok(coordinator_payload("ZZZZ", 40))}
        )

        outcome = await service.analyze("ZZZZ")

        assert isinstance(outcome, AnalysisSkipped)
        assert alert_store.list_all() == []
        assert status_message(outcome) == "ZZZZ conviction score (40.0) below threshold"

    @pytest.mark.asyncio
    async def test_failed_leaves_store_unchanged(self, make_orchestrator, alert_store, settings_store):
        service, _ = make_service(make_orchestrator, alert_store, settings_store, {"coordinator": failed("Rate limited")})

        outcome = await service.analyze("AAPL")

        assert isinstance(outcome, AnalysisFailed)
        assert alert_store.list_all() == []
        assert status_message(outcome) == "Rate limited"

    @pytest.mark.asyncio
    async def test_uses_threshold_from_settings(self, make_orchestrator, alert_store, settings_store):
        await settings_store.update(SettingsUpdate(conviction_threshold=50))
        service, _ = make_service(make_orchestrator, alert_store, settings_store, all_success_responses("PLTR", 55))

        outcome = await service.analyze("PLTR")

        assert isinstance(outcome, AnalysisCompleted)

    @pytest.mark.asyncio
    async def test_rejects_reentry(self, make_orchestrator, alert_store, settings_store):
        service, _ = make_service(
            make_orchestrator, alert_store, settings_store, all_success_responses("NVDA", 85), delay=0.02
        )

        first = asyncio.create_task(service.analyze("NVDA"))
        await asyncio.sleep(0)
        assert service.busy

        with pytest.raises(AnalysisInProgressError):
            await service.analyze("AAPL")

        await first
        assert not service.busy
        assert len(alert_store) == 1

    @pytest.mark.asyncio
    async def test_empty_ticker_rejected(self, make_orchestrator, alert_store, settings_store):
        service, client = make_service(make_orchestrator, alert_store, settings_store, {})

        with pytest.raises(InvalidTickerError):
            await service.analyze(" ")
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_marks_watchlist_row_scanned(self, make_orchestrator, alert_store, settings_store):
        service, _ = make_service(
            make_orchestrator, alert_store, settings_store, {"coordinator": ok(coordinator_payload("AAPL", 40))}
        )

        await service.analyze("aapl")

        row = [r for r in settings_store.rows() if r.ticker == "AAPL"][0]
        assert row.last_scan == "Just now"

    @pytest.mark.asyncio
    async def test_analyze_now_uses_first_watchlist_ticker(self, make_orchestrator, alert_store, settings_store):
        service, client = make_service(make_orchestrator, alert_store, settings_store, all_success_responses("NVDA", 85))

        outcome = await service.analyze_now()

        assert outcome.record.ticker == "NVDA"
        assert "NVDA" in client.calls[0][1]

    @pytest.mark.asyncio
    async def test_analyze_now_with_empty_watchlist(self, make_orchestrator, alert_store, settings_store):
        for ticker in list(settings_store.tickers):
            await settings_store.remove_ticker(ticker)
        service, client = make_service(make_orchestrator, alert_store, settings_store, {})

        assert await service.analyze_now() is None
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_refresh_quotes(self, make_orchestrator, alert_store, settings_store):
        quotes = {
            "NVDA": {"current_price": 1192.0, "change_percent": 2.5},
            "AAPL": {"current_price": 185.5, "change_percent": None},
        }
        service, _ = make_service(make_orchestrator, alert_store, settings_store, {}, quotes=quotes)

        updated = await service.refresh_quotes()

        rows = {r.ticker: r for r in settings_store.rows()}
        assert updated == 2
        assert rows["NVDA"].last_price == 1192.0
        assert rows["AAPL"].change_percent == 0.0
        assert rows["MSFT"].last_price == 0.0


class SlowStorage(MemoryStorage):
    """Storage whose writes suspend and note whether an analysis was running."""

    def __init__(self):
        super().__init__()
        self.service = None
        self.busy_during_writes = []

    async def write(self, key, value):
        if self.service is not None:
            self.busy_during_writes.append(self.service.busy)
        await asyncio.sleep(0.005)
        await super().write(key, value)


class TestInFlightGuard:

    @pytest.mark.asyncio
    async def test_guard_held_until_stores_are_written(self, make_orchestrator):
        storage = SlowStorage()
        alerts, settings = AlertStore(storage), SettingsStore(storage)
        orchestrator, _ = make_orchestrator(all_success_responses("NVDA", 85))
        service = AnalysisService(orchestrator, alerts, settings)
        storage.service = service

        await service.analyze("NVDA")

        assert storage.busy_during_writes and all(storage.busy_during_writes)
        assert not service.busy

    @pytest.mark.asyncio
    async def test_scan_reports_each_ticker(self, make_orchestrator, alert_store, settings_store):
        service, _ = make_service(
            make_orchestrator, alert_store, settings_store, {"coordinator": ok(coordinator_payload("NVDA", 30))}
        )
        steps, seen = [], {}

        outcomes = await service.scan_watchlist(
            on_step=lambda ticker, i, total: steps.append((ticker, i, total)),
            on_outcome=lambda ticker, outcome: seen.update({ticker: outcome.status}),
        )

        assert list(outcomes) == ["NVDA", "AAPL", "MSFT"]
        assert steps == [("NVDA", 0, 3), ("AAPL", 1, 3), ("MSFT", 2, 3)]
        assert seen == {"NVDA": "skipped", "AAPL": "skipped", "MSFT": "skipped"}
        assert not service.busy

    @pytest.mark.asyncio
    async def test_analysis_rejected_while_scan_runs(self, make_orchestrator, alert_store, settings_store):
        service, client = make_service(
            make_orchestrator, alert_store, settings_store,
            {"coordinator": ok(coordinator_payload("NVDA", 30))}, delay=0.01,
        )

        scan = asyncio.create_task(service.scan_watchlist())
        rejected = 0
        while not scan.done():
            await asyncio.sleep(0.002)
            if scan.done():
                break
            with pytest.raises(AnalysisInProgressError):
                await service.analyze("TSLA")
            rejected += 1

        outcomes = await scan
        assert rejected > 0
        assert set(outcomes) == {"NVDA", "AAPL", "MSFT"}
        assert all("TSLA" not in instruction for _, instruction in client.calls)

    @pytest.mark.asyncio
    async def test_reserved_scan_skips_second_reservation(self, make_orchestrator, alert_store, settings_store):
        service, _ = make_service(
            make_orchestrator, alert_store, settings_store, {"coordinator": ok(coordinator_payload("NVDA", 30))}
        )
        service.reserve()

        with pytest.raises(AnalysisInProgressError):
            await service.scan_watchlist()
        outcomes = await service.scan_watchlist(reserved=True)

        assert len(outcomes) == 3
        assert not service.busy
