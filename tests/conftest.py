"""Shared test fixtures for the hidden gem scanner tests."""
import asyncio

import pytest

from gem_scanner.agents.orchestrator import DEFAULT_AGENT_IDS, HiddenGemOrchestrator
from gem_scanner.database.connection import MemoryStorage
from gem_scanner.database.dao import AlertStore, SettingsStore
from gem_scanner.database.models import AgentEnvelope, AgentResponse


SPECIALISTS = ("technical", "fundamental", "sentiment", "industry", "risk")
AGENT_NAMES = {agent_id: name for name, agent_id in DEFAULT_AGENT_IDS.items()}


def coordinator_payload(ticker="NVDA", score=85.0, recommendation="buy"):
    return {
        "ticker": ticker,
        "company_name": f"{ticker} Corp",
        "conviction_score": score,
        "overall_recommendation": recommendation,
        "alert_triggered": True,
        "analysis_summary": {
            "technical_score": 80,
            "fundamental_score": 78,
            "sentiment_score": 70,
            "industry_score": 88,
            "risk_score": 40,
        },
        "key_insights": {
            "strengths": ["Growing data center revenue"],
            "weaknesses": ["Customer concentration"],
            "opportunities": ["Sovereign AI demand"],
            "threats": ["Export controls"],
        },
        "price_target": {"current_price": 120.0, "target_price": 150.0, "upside_potential": 25.0},
        "action_items": ["Watch next earnings call"],
        "confidence": 0.8,
        "summary": f"{ticker} looks undervalued relative to growth.",
    }


def specialist_payloads():
    return {
        "technical": {
            "technical_score": 78,
            "signals": {"trend": "bullish", "momentum": "strong", "volume_pattern": "accumulation"},
            "indicators": {
                "rsi": 61.5,
                "macd": "bullish crossover",
                "moving_averages": {"ma_50": 110.0, "ma_200": 95.0, "golden_cross": True},
            },
            "support_resistance": {"support_levels": [105.0, 98.0], "resistance_levels": [130.0]},
            "recommendation": "buy",
            "confidence": 0.7,
            "summary": "Breakout forming on rising volume.",
        },
        "fundamental": {
            "fundamental_score": 74,
            "valuation": {"pe_ratio": 35.0, "peg_ratio": 0.9, "price_to_book": 20.0,
                          "valuation_assessment": "undervalued on growth"},
            "financial_health": {"revenue_growth_yoy": 120.0, "profit_margin": 48.0,
                                 "debt_to_equity": 0.2, "current_ratio": 4.0, "health_rating": "strong"},
            "earnings": {"eps_growth": 150.0, "earnings_surprise": 8.0, "next_earnings_date": "2026-11-20"},
            "recommendation": "buy",
            "confidence": 0.75,
            "summary": "Margins expanding faster than consensus.",
        },
        "sentiment": {
            "sentiment_score": 70,
            "overall_sentiment": "positive",
            "news_articles": [
                {"headline": "New hyperscaler contract", "source": "Wire", "date": "2026-10-01",
                 "sentiment": "positive", "relevance": 0.9},
            ],
            "catalysts": {"positive_catalysts": ["New contract"], "negative_catalysts": [],
                          "upcoming_events": ["Investor day"]},
            "social_sentiment": {"buzz_level": "high", "sentiment_trend": "improving"},
            "recommendation": "buy",
            "confidence": 0.6,
            "summary": "Catalysts not yet priced in.",
        },
        "industry": {
            "industry_score": 88,
            "sector_performance": {"sector_name": "Semiconductors", "performance_ytd": 30.0,
                                   "trend": "up", "outlook": "positive"},
            "competitive_landscape": {"market_position": "leader", "competitive_advantages": ["Software moat"],
                                      "competitive_threats": ["Custom silicon"]},
            "regulatory_environment": {"regulatory_risk": "medium", "recent_changes": [],
                                       "upcoming_regulations": ["Export rules"]},
            "macroeconomic_factors": {"interest_rate_sensitivity": "low", "economic_cycle_stage": "expansion",
                                      "key_indicators": ["Capex"]},
            "recommendation": "buy",
            "confidence": 0.8,
            "summary": "Strong secular tailwinds.",
        },
        "risk": {
            "risk_score": 40,
            "overall_risk": "moderate",
            "volatility_analysis": {"beta": 1.7, "volatility_30d": 45.0, "max_drawdown": -30.0,
                                    "volatility_rating": "high"},
            "liquidity_analysis": {"avg_daily_volume": 40000000, "bid_ask_spread": 0.01,
                                   "liquidity_rating": "excellent"},
            "concentration_risks": {"insider_ownership": 4.0, "institutional_ownership": 65.0,
                                    "top_holder_concentration": 9.0, "concentration_concern": "low"},
            "negative_catalysts": {"identified_risks": ["Valuation"], "upcoming_risk_events": [],
                                   "systemic_risks": ["Rates"]},
            "recommendation": "hold",
            "confidence": 0.65,
            "summary": "Volatile but liquid; not a value trap.",
        },
    }


class FakeAgentClient:
    """
    Deterministic agent client keyed by agent name.

    `responses` maps an agent name to an AgentEnvelope, or to an exception
    instance that invoke() will raise.
    """

    def __init__(self, responses=None, delay=0.0):
        self.responses = dict(responses or {})
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def invoke(self, instruction, agent_id):
        name = AGENT_NAMES[agent_id]
        self.calls.append((name, instruction))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            response = self.responses.get(name)
            if isinstance(response, Exception):
                raise response
            if response is None:
                return AgentEnvelope.failure(f"no response configured for {name}")
            return response
        finally:
            self.in_flight -= 1

    @property
    def called_agents(self):
        return [name for name, _ in self.calls]


def ok(result):
    return AgentEnvelope.ok(result)


def failed(error="Agent unavailable"):
    return AgentEnvelope.failure(error)


def declined(message="Agent could not complete the task"):
    return AgentEnvelope(success=True, response=AgentResponse(status="error", result=None, message=message))


def all_success_responses(ticker="NVDA", score=85.0):
    responses = {"coordinator": ok(coordinator_payload(ticker, score))}
    responses.update({name: ok(payload) for name, payload in specialist_payloads().items()})
    return responses


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def alert_store(storage):
    return AlertStore(storage)


@pytest.fixture
def settings_store(storage):
    return SettingsStore(storage)


@pytest.fixture
def make_orchestrator():
    def _make(responses, **kwargs):
        client = FakeAgentClient(responses, **kwargs)
        return HiddenGemOrchestrator(client, agent_ids=dict(DEFAULT_AGENT_IDS)), client
    return _make
