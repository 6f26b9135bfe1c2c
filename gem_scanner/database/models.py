"""
Pydantic models for data validation and serialization.

These models are used for:
- Agent envelopes and the structured payloads returned by each agent
- Alert records persisted by the alert store
- Watchlist rows and dashboard settings
- Request/response validation in the API
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal, Dict, Any, Union
from datetime import datetime


Recommendation = Literal['buy', 'hold', 'sell']
ScanFrequency = Literal['1h', '2h', '4h', '8h', '24h']

SCAN_FREQUENCIES = ('1h', '2h', '4h', '8h', '24h')
DEFAULT_WATCHLIST = ['NVDA', 'AAPL', 'MSFT']


def normalize_ticker(value: str) -> str:
    """Strip and upper-case a ticker symbol."""
    return (value or "").strip().upper()


# ===========================================
# Agent Envelope Models
# ===========================================

class AgentResponse(BaseModel):
    """Inner response of an agent invocation."""
    status: str
    result: Any = None
    message: Optional[str] = None


class AgentEnvelope(BaseModel):
    """Normalized response from one agent invocation."""
    success: bool
    response: Optional[AgentResponse] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        """True when both the transport and the agent reported success."""
        return (
            self.success
            and self.response is not None
            and self.response.status == "success"
        )

    @property
    def failure_reason(self) -> Optional[str]:
        """Transport error, or the agent's own message when it declined."""
        if self.error:
            return self.error
        if self.response is not None:
            return self.response.message
        return None

    @classmethod
    def failure(cls, error: str) -> "AgentEnvelope":
        return cls(success=False, error=error)

    @classmethod
    def ok(cls, result: Any) -> "AgentEnvelope":
        return cls(success=True, response=AgentResponse(status="success", result=result))


# ===========================================
# Coordinator Models
# ===========================================

class AnalysisSummary(BaseModel):
    """Sub-scores reported by the coordinator."""
    technical_score: float = 0.0
    fundamental_score: float = 0.0
    sentiment_score: float = 0.0
    industry_score: float = 0.0
    risk_score: float = 0.0


class KeyInsights(BaseModel):
    """SWOT style insight lists."""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    opportunities: List[str] = Field(default_factory=list)
    threats: List[str] = Field(default_factory=list)


class PriceTarget(BaseModel):
    current_price: float = 0.0
    target_price: float = 0.0
    upside_potential: float = 0.0


class CoordinatorResult(BaseModel):
    """Gating result of the coordinator agent."""
    model_config = ConfigDict(frozen=True)

    ticker: str = ""
    company_name: str = ""
    conviction_score: float = Field(..., ge=0, le=100)
    overall_recommendation: Recommendation
    alert_triggered: bool = False
    analysis_summary: AnalysisSummary = Field(default_factory=AnalysisSummary)
    key_insights: KeyInsights = Field(default_factory=KeyInsights)
    price_target: PriceTarget = Field(default_factory=PriceTarget)
    action_items: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    summary: str = ""

    @field_validator('ticker')
    @classmethod
    def validate_ticker(cls, v: str) -> str:
        return normalize_ticker(v)

    @field_validator('overall_recommendation', mode='before')
    @classmethod
    def lower_recommendation(cls, v):
        return v.lower() if isinstance(v, str) else v


# ===========================================
# Specialist Models
# ===========================================

class SpecialistResult(BaseModel):
    """Fields shared by every specialist payload."""
    model_config = ConfigDict(frozen=True)

    recommendation: Recommendation
    confidence: float = 0.0
    summary: str = ""

    @field_validator('recommendation', mode='before')
    @classmethod
    def lower_recommendation(cls, v):
        return v.lower() if isinstance(v, str) else v


class TechnicalSignals(BaseModel):
    trend: str = "neutral"
    momentum: str = "moderate"
    volume_pattern: str = ""


class MovingAverages(BaseModel):
    ma_50: float = 0.0
    ma_200: float = 0.0
    golden_cross: bool = False


class TechnicalIndicators(BaseModel):
    rsi: float = 0.0
    macd: str = ""
    moving_averages: MovingAverages = Field(default_factory=MovingAverages)


class SupportResistance(BaseModel):
    support_levels: List[float] = Field(default_factory=list)
    resistance_levels: List[float] = Field(default_factory=list)


class TechnicalResult(SpecialistResult):
    technical_score: float
    signals: TechnicalSignals = Field(default_factory=TechnicalSignals)
    indicators: TechnicalIndicators = Field(default_factory=TechnicalIndicators)
    support_resistance: SupportResistance = Field(default_factory=SupportResistance)


class Valuation(BaseModel):
    pe_ratio: float = 0.0
    peg_ratio: float = 0.0
    price_to_book: float = 0.0
    valuation_assessment: str = ""


class FinancialHealth(BaseModel):
    revenue_growth_yoy: float = 0.0
    profit_margin: float = 0.0
    debt_to_equity: float = 0.0
    current_ratio: float = 0.0
    health_rating: str = ""


class Earnings(BaseModel):
    eps_growth: float = 0.0
    earnings_surprise: float = 0.0
    next_earnings_date: str = ""


class FundamentalResult(SpecialistResult):
    fundamental_score: float
    valuation: Valuation = Field(default_factory=Valuation)
    financial_health: FinancialHealth = Field(default_factory=FinancialHealth)
    earnings: Earnings = Field(default_factory=Earnings)


class NewsArticle(BaseModel):
    headline: str
    source: str = ""
    date: str = ""
    sentiment: Literal['positive', 'negative', 'neutral'] = 'neutral'
    relevance: float = 0.0


class Catalysts(BaseModel):
    positive_catalysts: List[str] = Field(default_factory=list)
    negative_catalysts: List[str] = Field(default_factory=list)
    upcoming_events: List[str] = Field(default_factory=list)


class SocialSentiment(BaseModel):
    buzz_level: str = ""
    sentiment_trend: str = ""


class SentimentResult(SpecialistResult):
    sentiment_score: float
    overall_sentiment: Literal['positive', 'negative', 'neutral'] = 'neutral'
    news_articles: List[NewsArticle] = Field(default_factory=list)
    catalysts: Catalysts = Field(default_factory=Catalysts)
    social_sentiment: SocialSentiment = Field(default_factory=SocialSentiment)


class SectorPerformance(BaseModel):
    sector_name: str = ""
    performance_ytd: float = 0.0
    trend: str = ""
    outlook: str = ""


class CompetitiveLandscape(BaseModel):
    market_position: str = ""
    competitive_advantages: List[str] = Field(default_factory=list)
    competitive_threats: List[str] = Field(default_factory=list)


class RegulatoryEnvironment(BaseModel):
    regulatory_risk: str = ""
    recent_changes: List[str] = Field(default_factory=list)
    upcoming_regulations: List[str] = Field(default_factory=list)


class MacroeconomicFactors(BaseModel):
    interest_rate_sensitivity: str = ""
    economic_cycle_stage: str = ""
    key_indicators: List[str] = Field(default_factory=list)


class IndustryResult(SpecialistResult):
    industry_score: float
    sector_performance: SectorPerformance = Field(default_factory=SectorPerformance)
    competitive_landscape: CompetitiveLandscape = Field(default_factory=CompetitiveLandscape)
    regulatory_environment: RegulatoryEnvironment = Field(default_factory=RegulatoryEnvironment)
    macroeconomic_factors: MacroeconomicFactors = Field(default_factory=MacroeconomicFactors)


class VolatilityAnalysis(BaseModel):
    beta: float = 0.0
    volatility_30d: float = 0.0
    max_drawdown: float = 0.0
    volatility_rating: str = ""


class LiquidityAnalysis(BaseModel):
    avg_daily_volume: float = 0.0
    bid_ask_spread: float = 0.0
    liquidity_rating: str = ""


class ConcentrationRisks(BaseModel):
    insider_ownership: float = 0.0
    institutional_ownership: float = 0.0
    top_holder_concentration: float = 0.0
    concentration_concern: str = ""


class NegativeCatalysts(BaseModel):
    identified_risks: List[str] = Field(default_factory=list)
    upcoming_risk_events: List[str] = Field(default_factory=list)
    systemic_risks: List[str] = Field(default_factory=list)


class RiskResult(SpecialistResult):
    risk_score: float
    overall_risk: str = ""
    volatility_analysis: VolatilityAnalysis = Field(default_factory=VolatilityAnalysis)
    liquidity_analysis: LiquidityAnalysis = Field(default_factory=LiquidityAnalysis)
    concentration_risks: ConcentrationRisks = Field(default_factory=ConcentrationRisks)
    negative_catalysts: NegativeCatalysts = Field(default_factory=NegativeCatalysts)


# ===========================================
# Alert Models
# ===========================================

class AlertRecord(BaseModel):
    """Persisted result of one completed analysis run."""
    model_config = ConfigDict(frozen=True)

    id: str
    ticker: str
    company_name: str
    conviction_score: float
    recommendation: Recommendation
    summary: str
    timestamp: str
    coordinator: CoordinatorResult
    technical: Optional[TechnicalResult] = None
    fundamental: Optional[FundamentalResult] = None
    sentiment: Optional[SentimentResult] = None
    industry: Optional[IndustryResult] = None
    risk: Optional[RiskResult] = None

    def specialist_fields(self) -> Dict[str, bool]:
        """Map of specialist name to whether its payload is present."""
        return {
            name: getattr(self, name) is not None
            for name in ("technical", "fundamental", "sentiment", "industry", "risk")
        }


class AnalysisCompleted(BaseModel):
    status: Literal['completed'] = 'completed'
    record: AlertRecord


class AnalysisSkipped(BaseModel):
    status: Literal['skipped'] = 'skipped'
    ticker: str
    conviction_score: float
    threshold: int
    coordinator: Optional[CoordinatorResult] = None


class AnalysisFailed(BaseModel):
    status: Literal['failed'] = 'failed'
    ticker: str
    error: str


AnalysisOutcome = Union[AnalysisCompleted, AnalysisSkipped, AnalysisFailed]


# ===========================================
# Watchlist Models
# ===========================================

class WatchlistItem(BaseModel):
    """Display row for a tracked ticker."""
    ticker: str
    last_price: float = 0.0
    change_percent: float = 0.0
    last_scan: str = "Never"

    @field_validator('ticker')
    @classmethod
    def validate_ticker(cls, v: str) -> str:
        return normalize_ticker(v)


class WatchlistItemCreate(BaseModel):
    """Model for adding a stock to watchlist."""
    ticker: str = Field(..., min_length=1, max_length=10)


# ===========================================
# Settings Models
# ===========================================

class Settings(BaseModel):
    """User-configurable dashboard settings."""
    conviction_threshold: int = Field(70, ge=1, le=100)
    scan_frequency: ScanFrequency = '4h'
    enable_notifications: bool = True
    watchlist: List[str] = Field(default_factory=lambda: list(DEFAULT_WATCHLIST))


class SettingsUpdate(BaseModel):
    """Model for updating settings."""
    conviction_threshold: Optional[int] = Field(None, ge=1, le=100)
    scan_frequency: Optional[ScanFrequency] = None
    enable_notifications: Optional[bool] = None


# ===========================================
# Background Task Models
# ===========================================

class TaskStatus(BaseModel):
    """Model for background task status."""
    task_id: str
    status: Literal['pending', 'running', 'completed', 'failed']
    progress: Optional[float] = None
    message: Optional[str] = None
    result: Optional[dict] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


# ===========================================
# API Response Models
# ===========================================

class APIResponse(BaseModel):
    """Generic API response model."""
    success: bool
    message: Optional[str] = None
    data: Optional[dict] = None
