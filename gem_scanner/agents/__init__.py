"""
Hidden Gem Scanner Agents.

This package contains:
- AgentClient / HttpAgentClient: invoke remote analysis agents
- HiddenGemOrchestrator: coordinator gating plus specialist fan-out
- AnalysisService: runs analyses against the stores
- QuoteCollector: yfinance quotes for the watchlist
"""

from .client import (
    AgentClient,
    HttpAgentClient,
    UnconfiguredAgentClient,
    extract_json,
)
from .orchestrator import (
    HiddenGemOrchestrator,
    RecordIdGenerator,
    load_agent_ids,
)
from .quotes import (
    QuoteCollector,
    fetch_quotes,
)
from .scanner import (
    AnalysisInProgressError,
    AnalysisService,
    status_message,
)

__all__ = [
    "AgentClient",
    "HttpAgentClient",
    "UnconfiguredAgentClient",
    "extract_json",
    "HiddenGemOrchestrator",
    "RecordIdGenerator",
    "load_agent_ids",
    "QuoteCollector",
    "fetch_quotes",
    "AnalysisInProgressError",
    "AnalysisService",
    "status_message",
]
